"""Compiled, fully-defaulted configuration bundle."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from types import MappingProxyType
from typing import Any, Mapping

from .models import CorsRule, RedirectAllRequests, RoutingRule

# Lifecycle action kinds, in the order they are emitted for a rule
ACTION_TRANSITION = "transition"
ACTION_EXPIRE = "expire"
ACTION_EXPIRE_DELETE_MARKERS = "expire_delete_markers"
ACTION_NONCURRENT_TRANSITION = "noncurrent_transition"
ACTION_NONCURRENT_EXPIRE = "noncurrent_expire"
ACTION_ABORT_MULTIPART_UPLOAD = "abort_multipart_upload"

WEBSITE_REDIRECT = "redirect"
WEBSITE_STATIC = "static"


@dataclass(frozen=True)
class CompiledFilter:
    """Normalized object filter. Tags are sorted by key."""

    prefix: str | None = None
    tags: tuple[tuple[str, str], ...] = ()
    object_size_greater_than: int | None = None
    object_size_less_than: int | None = None

    @property
    def predicates(self) -> int:
        """Number of individual predicates; each tag counts once."""
        return (
            (self.prefix is not None)
            + len(self.tags)
            + (self.object_size_greater_than is not None)
            + (self.object_size_less_than is not None)
        )

    @property
    def conjunctive(self) -> bool:
        """Whether the predicates must be AND-ed together."""
        return self.predicates > 1

    @property
    def is_empty(self) -> bool:
        return self.predicates == 0


@dataclass(frozen=True)
class LifecycleAction:
    """One step of a compiled lifecycle rule."""

    action: str
    days: int | None = None
    storage_class: str | None = None
    date: str | None = None
    newer_noncurrent_versions: int | None = None


@dataclass(frozen=True)
class CompiledLifecycleRule:
    name: str
    enabled: bool
    filter: CompiledFilter
    actions: tuple[LifecycleAction, ...]

    def actions_of(self, kind: str) -> tuple[LifecycleAction, ...]:
        """Return the actions of a single kind, in compiled order."""
        return tuple(action for action in self.actions if action.action == kind)

    @property
    def transitions(self) -> tuple[LifecycleAction, ...]:
        return self.actions_of(ACTION_TRANSITION)

    @property
    def noncurrent_transitions(self) -> tuple[LifecycleAction, ...]:
        return self.actions_of(ACTION_NONCURRENT_TRANSITION)


@dataclass(frozen=True)
class CompiledReplicationRule:
    name: str
    priority: int
    enabled: bool
    destination_bucket: str
    filter: CompiledFilter
    storage_class: str | None
    replica_kms_key_id: str | None
    destination_account_id: str | None
    account_scope: str
    requires_destination_grant: bool
    metrics: bool
    replication_time_control: bool
    replica_modification_sync: bool
    delete_marker_replication: bool


@dataclass(frozen=True)
class CompiledReplication:
    """Replication rules ordered by priority, highest first."""

    role: str
    rules: tuple[CompiledReplicationRule, ...]


@dataclass(frozen=True)
class CompiledSubscription:
    events: tuple[str, ...]
    filter_prefix: str | None = None
    filter_suffix: str | None = None


@dataclass(frozen=True)
class CompiledDestination:
    address: str
    kind: str
    subscriptions: tuple[CompiledSubscription, ...]


@dataclass(frozen=True)
class CompiledNotifications:
    destinations: tuple[CompiledDestination, ...]
    eventbridge: bool = False

    def by_kind(self, kind: str) -> tuple[CompiledDestination, ...]:
        """Return the destinations of one kind, in descriptor order."""
        return tuple(destination for destination in self.destinations if destination.kind == kind)


@dataclass(frozen=True)
class CompiledInventoryRule:
    name: str
    enabled: bool
    filter_prefix: str | None
    destination_bucket_arn: str
    destination_account_id: str | None
    destination_prefix: str | None
    output_format: str
    encryption: str | None
    kms_key_id: str | None
    frequency: str
    included_object_versions: str
    optional_fields: tuple[str, ...]


@dataclass(frozen=True)
class CompiledTieringRule:
    name: str
    enabled: bool
    filter: CompiledFilter
    tierings: tuple[tuple[str, int], ...]


@dataclass(frozen=True)
class CompiledObjectLock:
    token: str | None = None
    retention_mode: str | None = None
    retention_days: int | None = None
    retention_years: int | None = None


@dataclass(frozen=True)
class CompiledEncryption:
    sse_algorithm: str
    kms_master_key_id: str | None
    bucket_key_enabled: bool


@dataclass(frozen=True)
class CompiledPublicAccessBlock:
    block_public_acls: bool = False
    block_public_policy: bool = False
    ignore_public_acls: bool = False
    restrict_public_buckets: bool = False


@dataclass(frozen=True)
class CompiledWebsite:
    """Website hosting as a tagged variant: ``kind`` selects the populated fields."""

    kind: str
    redirect: RedirectAllRequests | None = None
    index_document: str | None = None
    error_document: str | None = None
    routing_rules: tuple[RoutingRule, ...] = ()


@dataclass(frozen=True)
class ConfigurationBundle:
    """Validated, defaulted and normalized bucket configuration."""

    bucket_name: str
    owner_account_id: str | None
    tags: tuple[tuple[str, str], ...]
    versioning_enabled: bool
    object_lock: CompiledObjectLock | None
    encryption: CompiledEncryption
    public_access_block: CompiledPublicAccessBlock
    object_ownership: str
    requester_pays: bool
    transfer_acceleration: bool
    policy: str | None = None
    cors_rules: tuple[CorsRule, ...] = ()
    website: CompiledWebsite | None = None
    lifecycle_rules: Mapping[str, CompiledLifecycleRule] = field(default_factory=dict)
    replication: CompiledReplication | None = None
    notifications: CompiledNotifications | None = None
    inventory_rules: Mapping[str, CompiledInventoryRule] = field(default_factory=dict)
    intelligent_tiering_rules: Mapping[str, CompiledTieringRule] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Rule maps are read-only views over private copies
        for name in ("lifecycle_rules", "inventory_rules", "intelligent_tiering_rules"):
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name))))

    def to_dict(self) -> dict[str, Any]:
        """Return the bundle as plain dicts, lists and scalars."""
        return _plain(self)


def _plain(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return {item.name: _plain(getattr(value, item.name)) for item in fields(value)}
    if isinstance(value, Mapping):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value
