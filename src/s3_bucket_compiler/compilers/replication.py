"""Replication compiler."""

from __future__ import annotations

import logging

from ..bundle import CompiledReplication, CompiledReplicationRule
from ..constants import ACCOUNT_SCOPE_CROSS, ACCOUNT_SCOPE_SAME, SECTION_REPLICATION_RULES
from ..diagnostics import Diagnostics, ViolationCode
from ..models import BucketDescriptor, ReplicationFeatures, ReplicationRule
from ..utils.addresses import bucket_arn
from .filters import compile_filter

logger = logging.getLogger(__name__)


def check_unique_priorities(rules: dict[str, ReplicationRule], diagnostics: Diagnostics) -> None:
    """Report one ``DUPLICATE_KEY`` per priority value shared by several rules.

    The violation is attached to the first rule (in descriptor order) holding
    the priority and names every rule that shares it.
    """
    holders: dict[int, list[str]] = {}
    for name, rule in rules.items():
        if rule.priority is not None:
            holders.setdefault(rule.priority, []).append(name)

    for priority, names in holders.items():
        if len(names) < 2:
            continue
        quoted = ", ".join(repr(name) for name in names)
        diagnostics.scope(SECTION_REPLICATION_RULES, names[0]).error(
            "priority",
            ViolationCode.DUPLICATE_KEY,
            f"priority {priority} is used by more than one rule: {quoted}",
        )


def compile_replication(descriptor: BucketDescriptor, diagnostics: Diagnostics) -> CompiledReplication | None:
    """Compile replication rules into a priority-ordered rule set.

    Args:
        descriptor: Validated, defaulted descriptor
        diagnostics: Sink for cross-rule violations

    Returns:
        Compiled replication, or None when the descriptor has none
    """
    replication = descriptor.replication
    if replication is None:
        return None

    check_unique_priorities(replication.rules, diagnostics)

    compiled = [
        compile_replication_rule(name, rule, diagnostics)
        for name, rule in replication.rules.items()
    ]
    compiled.sort(key=lambda rule: (-rule.priority, rule.name))

    return CompiledReplication(role=replication.role, rules=tuple(compiled))


def compile_replication_rule(name: str, rule: ReplicationRule, diagnostics: Diagnostics) -> CompiledReplicationRule:
    """Compile one replication rule.

    Ownership transfer and encrypted-object replication are independent;
    either, both or neither may be present. A rule that hands ownership to
    another account is classified cross-account, which means the destination
    bucket policy must also grant the replication role access. That grant is
    outside what the compiler can see, so it is only flagged.
    """
    scope = diagnostics.scope(SECTION_REPLICATION_RULES, name)
    rule_filter = compile_filter(rule.filter, scope, allow_size=False)
    features = rule.features or ReplicationFeatures()

    transfer = rule.change_object_ownership_to_destination_bucket_owner
    cross_account = transfer is not None
    encrypted = rule.replicate_kms_encrypted_objects

    if cross_account:
        logger.debug(f"Replication rule {name} is cross-account; destination must grant the replication role")

    return CompiledReplicationRule(
        name=name,
        priority=rule.priority,
        enabled=rule.enabled,
        destination_bucket=bucket_arn(rule.destination_bucket),
        filter=rule_filter,
        storage_class=rule.storage_class,
        replica_kms_key_id=encrypted.replica_kms_key_id if encrypted else None,
        destination_account_id=transfer.destination_account_id.strip() if transfer else None,
        account_scope=ACCOUNT_SCOPE_CROSS if cross_account else ACCOUNT_SCOPE_SAME,
        requires_destination_grant=cross_account,
        metrics=bool(features.metrics),
        replication_time_control=bool(features.replication_time_control),
        replica_modification_sync=bool(features.replica_modification_sync),
        delete_marker_replication=bool(features.delete_marker_replication),
    )
