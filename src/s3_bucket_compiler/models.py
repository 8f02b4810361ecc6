"""Descriptor models for bucket compilation.

A ``None`` field means the caller left it unset. Validators depend on that
distinction, so defaults are only filled in by ``defaults.resolve_defaults``.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RuleFilter:
    """Object filter shared by lifecycle, replication and tiering rules."""

    prefix: str | None = None
    tags: dict[str, str] = field(default_factory=dict)
    object_size_greater_than: int | None = None
    object_size_less_than: int | None = None


@dataclass(frozen=True)
class DefaultRetention:
    """Default object lock retention."""

    retention_days: int | None = None
    retention_years: int | None = None
    retention_mode: str | None = None


@dataclass(frozen=True)
class ObjectLockConfig:
    """Object lock configuration."""

    token: str | None = None
    default_retention: DefaultRetention | None = None


@dataclass(frozen=True)
class EncryptionConfig:
    """Default server-side encryption."""

    sse_algorithm: str | None = None
    kms_master_key_id: str | None = None
    bucket_key_enabled: bool | None = None


@dataclass(frozen=True)
class PublicAccessBlock:
    """Public access block flags."""

    block_public_acls: bool | None = None
    block_public_policy: bool | None = None
    ignore_public_acls: bool | None = None
    restrict_public_buckets: bool | None = None


@dataclass(frozen=True)
class CorsRule:
    """A single CORS rule."""

    allowed_methods: tuple[str, ...] = ()
    allowed_origins: tuple[str, ...] = ()
    allowed_headers: tuple[str, ...] = ()
    expose_headers: tuple[str, ...] = ()
    max_age_seconds: int | None = None
    id: str | None = None


@dataclass(frozen=True)
class RedirectAllRequests:
    """Redirect every request to another host."""

    host_name: str | None = None
    protocol: str | None = None


@dataclass(frozen=True)
class RoutingRule:
    """Conditional redirect for a static website."""

    condition_key_prefix: str | None = None
    condition_http_error_code: str | None = None
    redirect_host_name: str | None = None
    redirect_protocol: str | None = None
    redirect_http_code: str | None = None
    replace_key_prefix_with: str | None = None
    replace_key_with: str | None = None


@dataclass(frozen=True)
class StaticWebsite:
    """Static website hosting documents."""

    index_document: str | None = None
    error_document: str | None = None
    routing_rules: tuple[RoutingRule, ...] = ()


@dataclass(frozen=True)
class WebsiteConfig:
    """Website hosting as received from the caller.

    Exactly one of the two variants must be set; validators report the
    other cases.
    """

    redirect_requests_for_an_object: RedirectAllRequests | None = None
    static_website: StaticWebsite | None = None


@dataclass(frozen=True)
class Transition:
    """Current-version storage class transition."""

    days: int | None = None
    storage_class: str | None = None


@dataclass(frozen=True)
class NoncurrentVersionTransition:
    """Noncurrent-version storage class transition."""

    days: int | None = None
    storage_class: str | None = None
    newer_noncurrent_versions: int | None = None


@dataclass(frozen=True)
class Expiration:
    """Current-version expiration."""

    days_after_object_creation: int | None = None
    date: str | None = None
    clean_up_expired_object_delete_markers: bool | None = None


@dataclass(frozen=True)
class NoncurrentVersionExpiration:
    """Noncurrent-version expiration."""

    days: int | None = None
    newer_noncurrent_versions: int | None = None


@dataclass(frozen=True)
class LifecycleRule:
    """Named lifecycle rule."""

    enabled: bool = True
    filter: RuleFilter | None = None
    transitions: tuple[Transition, ...] = ()
    expiration: Expiration | None = None
    noncurrent_version_expiration: NoncurrentVersionExpiration | None = None
    noncurrent_version_transitions: tuple[NoncurrentVersionTransition, ...] = ()
    abort_incomplete_multipart_upload_days: int | None = None


@dataclass(frozen=True)
class EncryptedObjectReplication:
    """Replicate KMS-encrypted objects using a destination-side key."""

    replica_kms_key_id: str | None = None


@dataclass(frozen=True)
class OwnershipTransfer:
    """Hand replica ownership to the destination bucket owner."""

    destination_account_id: str | None = None


@dataclass(frozen=True)
class ReplicationFeatures:
    """Optional replication feature flags."""

    metrics: bool | None = None
    replication_time_control: bool | None = None
    replica_modification_sync: bool | None = None
    delete_marker_replication: bool | None = None


@dataclass(frozen=True)
class ReplicationRule:
    """Named replication rule."""

    destination_bucket: str | None = None
    priority: int | None = None
    enabled: bool = True
    filter: RuleFilter | None = None
    storage_class: str | None = None
    replicate_kms_encrypted_objects: EncryptedObjectReplication | None = None
    change_object_ownership_to_destination_bucket_owner: OwnershipTransfer | None = None
    features: ReplicationFeatures | None = None


@dataclass(frozen=True)
class ReplicationConfig:
    """Replication role and rules."""

    role: str | None = None
    rules: dict[str, ReplicationRule] = field(default_factory=dict)


@dataclass(frozen=True)
class EventSubscription:
    """Event types delivered to a destination, optionally key-filtered."""

    events: tuple[str, ...] = ()
    filter_prefix: str | None = None
    filter_suffix: str | None = None


@dataclass(frozen=True)
class NotificationConfig:
    """Destination address to subscriptions."""

    destinations: dict[str, tuple[EventSubscription, ...]] = field(default_factory=dict)
    eventbridge: bool | None = None


@dataclass(frozen=True)
class InventoryDestination:
    """Where inventory reports are delivered."""

    bucket_arn: str | None = None
    account_id: str | None = None
    prefix: str | None = None
    output_format: str | None = None
    encryption: str | None = None
    kms_key_id: str | None = None


@dataclass(frozen=True)
class InventoryRule:
    """Named inventory report."""

    enabled: bool = True
    filter_prefix: str | None = None
    destination: InventoryDestination | None = None
    frequency: str | None = None
    include_noncurrent_objects: bool | None = None
    optional_fields: tuple[str, ...] = ()


@dataclass(frozen=True)
class TieringRule:
    """Named intelligent tiering configuration."""

    enabled: bool = True
    filter: RuleFilter | None = None
    tierings: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class BucketDescriptor:
    """Caller-supplied bucket description, prior to validation."""

    name: str | None = None
    bucket_owner_account_id: str | None = None
    tags: dict[str, str] = field(default_factory=dict)
    versioning_enabled: bool | None = None
    enables_object_lock: bool | None = None
    object_lock: ObjectLockConfig | None = None
    encryption: EncryptionConfig | None = None
    public_access_block: PublicAccessBlock | None = None
    object_ownership: str | None = None
    requester_pays: bool | None = None
    transfer_acceleration: bool | None = None
    policy: str | None = None
    cors_rules: tuple[CorsRule, ...] = ()
    website: WebsiteConfig | None = None
    notifications: NotificationConfig | None = None
    lifecycle_rules: dict[str, LifecycleRule] = field(default_factory=dict)
    replication: ReplicationConfig | None = None
    inventory_rules: dict[str, InventoryRule] = field(default_factory=dict)
    intelligent_tiering_rules: dict[str, TieringRule] = field(default_factory=dict)
