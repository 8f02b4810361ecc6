"""Lifecycle compiler.

Expands each named lifecycle rule into an ordered action list: current
transitions by ascending day-offset, then expiration, noncurrent-version
transitions and expiration, and incomplete multipart upload cleanup.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Sequence

from ..bundle import (
    ACTION_ABORT_MULTIPART_UPLOAD,
    ACTION_EXPIRE,
    ACTION_EXPIRE_DELETE_MARKERS,
    ACTION_NONCURRENT_EXPIRE,
    ACTION_NONCURRENT_TRANSITION,
    ACTION_TRANSITION,
    CompiledFilter,
    CompiledLifecycleRule,
    LifecycleAction,
)
from ..constants import (
    INFREQUENT_ACCESS_CLASSES,
    INFREQUENT_ACCESS_MIN_DAYS,
    MAX_NEWER_NONCURRENT_VERSIONS,
    MIN_NEWER_NONCURRENT_VERSIONS,
    SECTION_LIFECYCLE,
    TRANSITION_STORAGE_CLASS_RANK,
)
from ..diagnostics import Diagnostics, DiagnosticScope, ViolationCode
from ..models import BucketDescriptor, LifecycleRule, NoncurrentVersionTransition, Transition
from .filters import compile_filter

logger = logging.getLogger(__name__)

_LEGAL_CLASSES = frozenset(TRANSITION_STORAGE_CLASS_RANK)


def compile_lifecycle_rules(
    descriptor: BucketDescriptor,
    diagnostics: Diagnostics,
) -> dict[str, CompiledLifecycleRule]:
    """Compile every lifecycle rule, keyed by rule name."""
    compiled = {}
    for name, rule in descriptor.lifecycle_rules.items():
        scope = diagnostics.scope(SECTION_LIFECYCLE, name)
        compiled[name] = compile_lifecycle_rule(name, rule, scope, bool(descriptor.versioning_enabled))
    return compiled


def compile_lifecycle_rule(
    name: str,
    rule: LifecycleRule,
    scope: DiagnosticScope,
    versioning_enabled: bool,
) -> CompiledLifecycleRule:
    """Compile a single lifecycle rule.

    Args:
        name: Rule name
        rule: Rule as given in the descriptor
        scope: Diagnostics scope for the rule
        versioning_enabled: Resolved bucket versioning state

    Returns:
        Compiled rule; only meaningful when no errors were reported
    """
    rule_filter = compile_filter(rule.filter, scope)
    transitions = _sorted_transitions(rule.transitions, scope, "transitions")
    noncurrent_transitions = _sorted_transitions(
        rule.noncurrent_version_transitions, scope, "noncurrent_version_transitions"
    )

    actions: list[LifecycleAction] = [
        LifecycleAction(ACTION_TRANSITION, days=t.days, storage_class=t.storage_class) for t in transitions
    ]
    actions.extend(_expiration_actions(rule, transitions, rule_filter, scope))
    actions.extend(
        LifecycleAction(
            ACTION_NONCURRENT_TRANSITION,
            days=t.days,
            storage_class=t.storage_class,
            newer_noncurrent_versions=t.newer_noncurrent_versions,
        )
        for t in noncurrent_transitions
    )
    actions.extend(_noncurrent_expiration_actions(rule, noncurrent_transitions, scope))

    abort_days = rule.abort_incomplete_multipart_upload_days
    if abort_days is not None:
        scope.in_range(abort_days, "abort_incomplete_multipart_upload_days", minimum=1)
        if rule_filter.tags:
            scope.error(
                "abort_incomplete_multipart_upload_days",
                ViolationCode.MUTUALLY_EXCLUSIVE,
                "incomplete multipart upload cleanup cannot be combined with a tag filter",
            )
        actions.append(LifecycleAction(ACTION_ABORT_MULTIPART_UPLOAD, days=abort_days))

    if not _declares_actions(rule):
        scope.error("", ViolationCode.REQUIRES_FIELD, f"lifecycle rule {name!r} defines no actions")

    if not versioning_enabled and (rule.noncurrent_version_transitions or rule.noncurrent_version_expiration):
        scope.warning(
            "noncurrent_version_expiration" if rule.noncurrent_version_expiration else "noncurrent_version_transitions",
            ViolationCode.REQUIRES_FIELD,
            "noncurrent-version actions have no effect unless versioning_enabled is true",
        )

    logger.debug(f"Compiled lifecycle rule {name} with {len(actions)} action(s)")
    return CompiledLifecycleRule(name=name, enabled=rule.enabled, filter=rule_filter, actions=tuple(actions))


def _declares_actions(rule: LifecycleRule) -> bool:
    # Invalid actions are reported on their own path, not as a missing action.
    return bool(
        rule.transitions
        or rule.expiration is not None
        or rule.noncurrent_version_transitions
        or rule.noncurrent_version_expiration is not None
        or rule.abort_incomplete_multipart_upload_days is not None
    )


def _sorted_transitions(
    transitions: Sequence[Transition | NoncurrentVersionTransition],
    scope: DiagnosticScope,
    field: str,
) -> list[Transition | NoncurrentVersionTransition]:
    """Check each transition, then sort by day-offset and check the sequence.

    Input order does not matter; the output is always ascending.
    """
    usable = []
    for index, transition in enumerate(transitions):
        item = f"{field}.{index}"
        has_days = scope.require(transition.days, f"{item}.days")
        has_class = scope.require(transition.storage_class, f"{item}.storage_class")
        if has_days:
            has_days = scope.in_range(transition.days, f"{item}.days", minimum=0)
        if has_class:
            has_class = scope.one_of(transition.storage_class, _LEGAL_CLASSES, f"{item}.storage_class")
        if has_days and has_class and transition.storage_class in INFREQUENT_ACCESS_CLASSES:
            scope.in_range(transition.days, f"{item}.days", minimum=INFREQUENT_ACCESS_MIN_DAYS)
        if isinstance(transition, NoncurrentVersionTransition):
            scope.in_range(
                transition.newer_noncurrent_versions,
                f"{item}.newer_noncurrent_versions",
                minimum=MIN_NEWER_NONCURRENT_VERSIONS,
                maximum=MAX_NEWER_NONCURRENT_VERSIONS,
            )
        if has_days and has_class:
            usable.append(transition)

    ordered = sorted(usable, key=lambda t: t.days)
    for previous, current in zip(ordered, ordered[1:]):
        if current.days == previous.days:
            scope.error(
                field,
                ViolationCode.NON_MONOTONIC_SEQUENCE,
                f"transition day-offsets must be strictly increasing; day {current.days} appears more than once",
            )
        elif TRANSITION_STORAGE_CLASS_RANK[current.storage_class] <= TRANSITION_STORAGE_CLASS_RANK[previous.storage_class]:
            scope.error(
                field,
                ViolationCode.NON_MONOTONIC_SEQUENCE,
                f"{current.storage_class} at day {current.days} cannot follow "
                f"{previous.storage_class} at day {previous.days}",
            )
    return ordered


def _expiration_actions(
    rule: LifecycleRule,
    transitions: list[Transition],
    rule_filter: CompiledFilter,
    scope: DiagnosticScope,
) -> list[LifecycleAction]:
    expiration = rule.expiration
    if expiration is None:
        return []

    days = expiration.days_after_object_creation
    expiry_date = expiration.date
    delete_markers = expiration.clean_up_expired_object_delete_markers

    if delete_markers and (days is not None or expiry_date is not None):
        scope.error(
            "expiration.clean_up_expired_object_delete_markers",
            ViolationCode.MUTUALLY_EXCLUSIVE,
            "clean_up_expired_object_delete_markers cannot be combined with a dated expiration",
        )
    if delete_markers and rule_filter.tags:
        scope.error(
            "expiration.clean_up_expired_object_delete_markers",
            ViolationCode.MUTUALLY_EXCLUSIVE,
            "clean_up_expired_object_delete_markers cannot be combined with a tag filter",
        )
    if days is not None and expiry_date is not None:
        scope.error(
            "expiration.date",
            ViolationCode.MUTUALLY_EXCLUSIVE,
            "expiration date and days_after_object_creation cannot both be set",
        )
    if days is None and expiry_date is None and not delete_markers:
        scope.error("expiration", ViolationCode.REQUIRES_FIELD, "expiration requires at least one action")

    actions = []
    if days is not None:
        if scope.in_range(days, "expiration.days_after_object_creation", minimum=1) and transitions:
            last = transitions[-1]
            if days <= last.days:
                scope.error(
                    "expiration.days_after_object_creation",
                    ViolationCode.NON_MONOTONIC_SEQUENCE,
                    f"expiration at day {days} must come after the last transition at day {last.days}",
                )
        actions.append(LifecycleAction(ACTION_EXPIRE, days=days))
    if expiry_date is not None:
        try:
            date.fromisoformat(expiry_date)
        except ValueError:
            scope.error("expiration.date", ViolationCode.OUT_OF_RANGE, f"{expiry_date!r} is not an ISO-8601 date")
        actions.append(LifecycleAction(ACTION_EXPIRE, date=expiry_date))
    if delete_markers:
        actions.append(LifecycleAction(ACTION_EXPIRE_DELETE_MARKERS))
    return actions


def _noncurrent_expiration_actions(
    rule: LifecycleRule,
    transitions: list[NoncurrentVersionTransition],
    scope: DiagnosticScope,
) -> list[LifecycleAction]:
    expiration = rule.noncurrent_version_expiration
    if expiration is None:
        return []

    if not scope.require(expiration.days, "noncurrent_version_expiration.days"):
        return []
    scope.in_range(
        expiration.newer_noncurrent_versions,
        "noncurrent_version_expiration.newer_noncurrent_versions",
        minimum=MIN_NEWER_NONCURRENT_VERSIONS,
        maximum=MAX_NEWER_NONCURRENT_VERSIONS,
    )
    if scope.in_range(expiration.days, "noncurrent_version_expiration.days", minimum=1) and transitions:
        last = transitions[-1]
        if expiration.days <= last.days:
            scope.error(
                "noncurrent_version_expiration.days",
                ViolationCode.NON_MONOTONIC_SEQUENCE,
                f"noncurrent expiration at day {expiration.days} must come after the last "
                f"noncurrent transition at day {last.days}",
            )
    return [
        LifecycleAction(
            ACTION_NONCURRENT_EXPIRE,
            days=expiration.days,
            newer_noncurrent_versions=expiration.newer_noncurrent_versions,
        )
    ]
