"""Rule filter normalization shared by the per-concern compilers."""

from __future__ import annotations

from ..bundle import CompiledFilter
from ..diagnostics import DiagnosticScope, ViolationCode
from ..models import RuleFilter


def compile_filter(
    rule_filter: RuleFilter | None,
    scope: DiagnosticScope,
    field: str = "filter",
    allow_size: bool = True,
) -> CompiledFilter:
    """Normalize a rule filter.

    Several predicates are combined with AND semantics; the renderer emits
    them as a conjunctive filter. Tags are sorted by key.

    Args:
        rule_filter: Filter as given in the descriptor
        scope: Diagnostics scope of the owning rule
        field: Field path of the filter within the rule
        allow_size: Whether object size bounds are supported by the rule kind

    Returns:
        Compiled filter (empty when no filter was given)
    """
    if rule_filter is None:
        return CompiledFilter()

    greater = rule_filter.object_size_greater_than
    less = rule_filter.object_size_less_than

    if not allow_size and (greater is not None or less is not None):
        scope.error(
            field,
            ViolationCode.OUT_OF_RANGE,
            "object size bounds are only supported by lifecycle rules",
        )
    else:
        scope.in_range(greater, f"{field}.object_size_greater_than", minimum=0)
        scope.in_range(less, f"{field}.object_size_less_than", minimum=1)
        if greater is not None and less is not None and greater >= less:
            scope.error(
                f"{field}.object_size_less_than",
                ViolationCode.OUT_OF_RANGE,
                f"object_size_less_than ({less}) must be greater than object_size_greater_than ({greater})",
            )

    for key in rule_filter.tags:
        if not key:
            scope.error(f"{field}.tags", ViolationCode.REQUIRES_FIELD, "filter tag keys must not be empty")

    return CompiledFilter(
        prefix=rule_filter.prefix,
        tags=tuple(sorted(rule_filter.tags.items())),
        object_size_greater_than=greater if allow_size else None,
        object_size_less_than=less if allow_size else None,
    )
