"""Defaulting resolver.

Fills unset (``None``) fields with declared defaults and derives values
implied by other fields. Explicit values are never overridden. Runs after
validation so validators still see what the caller actually set.
"""

from __future__ import annotations

from dataclasses import replace

from .constants import (
    DEFAULT_INCLUDE_NONCURRENT_OBJECTS,
    DEFAULT_INVENTORY_FORMAT,
    DEFAULT_INVENTORY_FREQUENCY,
    DEFAULT_OBJECT_OWNERSHIP,
    DEFAULT_SSE_ALGORITHM,
)
from .models import (
    BucketDescriptor,
    EncryptionConfig,
    InventoryDestination,
    InventoryRule,
    NotificationConfig,
    PublicAccessBlock,
    ReplicationConfig,
    ReplicationFeatures,
    ReplicationRule,
)


def _or(value, default):
    return default if value is None else value


def resolve_encryption(encryption: EncryptionConfig | None) -> EncryptionConfig:
    encryption = encryption or EncryptionConfig()
    return replace(
        encryption,
        sse_algorithm=_or(encryption.sse_algorithm, DEFAULT_SSE_ALGORITHM),
        bucket_key_enabled=_or(encryption.bucket_key_enabled, False),
    )


def resolve_public_access_block(block: PublicAccessBlock | None) -> PublicAccessBlock:
    block = block or PublicAccessBlock()
    return PublicAccessBlock(
        block_public_acls=_or(block.block_public_acls, False),
        block_public_policy=_or(block.block_public_policy, False),
        ignore_public_acls=_or(block.ignore_public_acls, False),
        restrict_public_buckets=_or(block.restrict_public_buckets, False),
    )


def resolve_replication_features(features: ReplicationFeatures | None) -> ReplicationFeatures:
    """Default replication flags to False.

    Replication time control reports through replication metrics, so an
    unset ``metrics`` flag follows ``replication_time_control``.
    """
    features = features or ReplicationFeatures()
    time_control = _or(features.replication_time_control, False)
    return ReplicationFeatures(
        metrics=_or(features.metrics, time_control),
        replication_time_control=time_control,
        replica_modification_sync=_or(features.replica_modification_sync, False),
        delete_marker_replication=_or(features.delete_marker_replication, False),
    )


def resolve_replication(replication: ReplicationConfig | None) -> ReplicationConfig | None:
    if replication is None:
        return None
    rules: dict[str, ReplicationRule] = {
        name: replace(rule, features=resolve_replication_features(rule.features))
        for name, rule in replication.rules.items()
    }
    return replace(replication, rules=rules)


def resolve_inventory_rule(rule: InventoryRule) -> InventoryRule:
    destination = rule.destination or InventoryDestination()
    return replace(
        rule,
        destination=replace(
            destination,
            output_format=_or(destination.output_format, DEFAULT_INVENTORY_FORMAT),
        ),
        frequency=_or(rule.frequency, DEFAULT_INVENTORY_FREQUENCY),
        include_noncurrent_objects=_or(rule.include_noncurrent_objects, DEFAULT_INCLUDE_NONCURRENT_OBJECTS),
    )


def resolve_notifications(notifications: NotificationConfig | None) -> NotificationConfig | None:
    if notifications is None:
        return None
    return replace(notifications, eventbridge=_or(notifications.eventbridge, False))


def resolve_versioning(descriptor: BucketDescriptor) -> bool:
    """Object lock and replication both imply versioning when it is unset."""
    if descriptor.versioning_enabled is not None:
        return descriptor.versioning_enabled
    return bool(descriptor.enables_object_lock) or descriptor.replication is not None


def resolve_defaults(descriptor: BucketDescriptor) -> BucketDescriptor:
    """Return a new descriptor with every optional field resolved.

    Args:
        descriptor: Validated descriptor; it is not modified

    Returns:
        Descriptor whose boolean flags, encryption, public access block,
        ownership and per-rule defaults are all populated
    """
    return replace(
        descriptor,
        versioning_enabled=resolve_versioning(descriptor),
        enables_object_lock=_or(descriptor.enables_object_lock, False),
        encryption=resolve_encryption(descriptor.encryption),
        public_access_block=resolve_public_access_block(descriptor.public_access_block),
        object_ownership=_or(descriptor.object_ownership, DEFAULT_OBJECT_OWNERSHIP),
        requester_pays=_or(descriptor.requester_pays, False),
        transfer_acceleration=_or(descriptor.transfer_acceleration, False),
        notifications=resolve_notifications(descriptor.notifications),
        replication=resolve_replication(descriptor.replication),
        inventory_rules={name: resolve_inventory_rule(rule) for name, rule in descriptor.inventory_rules.items()},
    )
