"""Intelligent tiering compiler."""

from __future__ import annotations

from ..bundle import CompiledTieringRule
from ..constants import SECTION_TIERING, TIERING_ACCESS_TIER_DAYS
from ..diagnostics import Diagnostics, ViolationCode
from ..models import BucketDescriptor
from .filters import compile_filter

_ACCESS_TIERS = frozenset(TIERING_ACCESS_TIER_DAYS)


def compile_tiering_rules(
    descriptor: BucketDescriptor,
    diagnostics: Diagnostics,
) -> dict[str, CompiledTieringRule]:
    """Compile intelligent tiering rules, keyed by rule name.

    Each access tier must fall within its allowed day range, and objects must
    reach the archive tier before the deep archive tier.
    """
    compiled = {}
    for name, rule in descriptor.intelligent_tiering_rules.items():
        scope = diagnostics.scope(SECTION_TIERING, name)
        rule_filter = compile_filter(rule.filter, scope, allow_size=False)

        scope.require(rule.tierings, "tierings", "tiering rule requires at least one access tier")
        for tier, days in rule.tierings.items():
            field = f"tierings.{tier}"
            if scope.one_of(tier, _ACCESS_TIERS, field) and scope.require(days, field):
                minimum, maximum = TIERING_ACCESS_TIER_DAYS[tier]
                scope.in_range(days, field, minimum=minimum, maximum=maximum)

        archive = rule.tierings.get("ARCHIVE_ACCESS")
        deep_archive = rule.tierings.get("DEEP_ARCHIVE_ACCESS")
        if archive is not None and deep_archive is not None and deep_archive <= archive:
            scope.error(
                "tierings.DEEP_ARCHIVE_ACCESS",
                ViolationCode.NON_MONOTONIC_SEQUENCE,
                f"DEEP_ARCHIVE_ACCESS ({deep_archive} days) must come after ARCHIVE_ACCESS ({archive} days)",
            )

        tierings = sorted(
            ((tier, days) for tier, days in rule.tierings.items() if days is not None),
            key=lambda item: (item[1], item[0]),
        )
        compiled[name] = CompiledTieringRule(
            name=name,
            enabled=rule.enabled,
            filter=rule_filter,
            tierings=tuple(tierings),
        )
    return compiled
