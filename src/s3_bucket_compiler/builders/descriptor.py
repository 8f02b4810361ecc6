"""Builder for bucket descriptors from plain mappings."""

from __future__ import annotations

from contextlib import contextmanager, nullcontext
from typing import Any, Callable, Iterator, Mapping

from ..constants import (
    SECTION_CORS,
    SECTION_INVENTORY,
    SECTION_LIFECYCLE,
    SECTION_NOTIFICATION_DESTINATIONS,
    SECTION_REPLICATION_RULES,
    SECTION_TAGS,
    SECTION_TIERING,
)
from ..diagnostics import Diagnostics, Violation, ViolationCode
from ..models import (
    BucketDescriptor,
    CorsRule,
    DefaultRetention,
    EncryptedObjectReplication,
    EncryptionConfig,
    EventSubscription,
    Expiration,
    InventoryDestination,
    InventoryRule,
    LifecycleRule,
    NoncurrentVersionExpiration,
    NoncurrentVersionTransition,
    NotificationConfig,
    ObjectLockConfig,
    OwnershipTransfer,
    PublicAccessBlock,
    RedirectAllRequests,
    ReplicationConfig,
    ReplicationFeatures,
    ReplicationRule,
    RoutingRule,
    RuleFilter,
    StaticWebsite,
    TieringRule,
    Transition,
    WebsiteConfig,
)
from ..utils.errors import DescriptorError

Build = Callable[[Mapping[str, Any], str], Any]

# Collections whose entries are reported as rules of their section
_KEYED_SECTIONS = frozenset(
    {
        SECTION_TAGS,
        SECTION_CORS,
        SECTION_LIFECYCLE,
        SECTION_REPLICATION_RULES,
        SECTION_NOTIFICATION_DESTINATIONS,
        SECTION_INVENTORY,
        SECTION_TIERING,
    }
)


def create_descriptor_from_spec(
    spec: Mapping[str, Any],
    diagnostics: Diagnostics | None = None,
) -> BucketDescriptor:
    """Create a bucket descriptor from a plain mapping.

    Only shapes and scalar types are checked here. Missing or conflicting
    fields are left for the validators so they can be reported together.

    Args:
        spec: Bucket description using the descriptor's snake_case field names
        diagnostics: Sink for shape errors. A value of the wrong type is
            reported and left unset. Without a sink the first shape error
            is raised instead.

    Returns:
        Immutable bucket descriptor

    Raises:
        DescriptorError: If no sink is given and a value has the wrong type
    """
    sink = Diagnostics() if diagnostics is None else diagnostics
    descriptor = DescriptorBuilder(sink).build(spec)
    if diagnostics is None and len(sink):
        first = sink.sorted()[0]
        raise DescriptorError(first.path or "<root>", first.message)
    return descriptor


class DescriptorBuilder:
    """Shapes a mapping into a descriptor, reporting values of the wrong type."""

    def __init__(self, diagnostics: Diagnostics):
        self.diagnostics = diagnostics
        self._entry: tuple[str, str] | None = None

    def build(self, spec: Mapping[str, Any]) -> BucketDescriptor:
        if not self._is_mapping(spec, ""):
            return BucketDescriptor()

        return BucketDescriptor(
            name=self._str(spec, "name", ""),
            bucket_owner_account_id=self._str(spec, "bucket_owner_account_id", ""),
            tags=self._str_map(spec, "tags", ""),
            versioning_enabled=self._bool(spec, "versioning_enabled", ""),
            enables_object_lock=self._bool(spec, "enables_object_lock", ""),
            object_lock=self._optional(spec, "object_lock", "", self._object_lock),
            encryption=self._optional(spec, "encryption", "", self._encryption),
            public_access_block=self._optional(spec, "public_access_block", "", self._public_access_block),
            object_ownership=self._str(spec, "object_ownership", ""),
            requester_pays=self._bool(spec, "requester_pays", ""),
            transfer_acceleration=self._bool(spec, "transfer_acceleration", ""),
            policy=self._str(spec, "policy", ""),
            cors_rules=self._items(spec, "cors_rules", "", self._cors_rule),
            website=self._optional(spec, "website", "", self._website),
            notifications=self._optional(spec, "notifications", "", self._notifications),
            lifecycle_rules=self._keyed(spec, "lifecycle_rules", "", self._lifecycle_rule),
            replication=self._optional(spec, "replication", "", self._replication),
            inventory_rules=self._keyed(spec, "inventory_rules", "", self._inventory_rule),
            intelligent_tiering_rules=self._keyed(spec, "intelligent_tiering_rules", "", self._tiering_rule),
        )

    def _object_lock(self, data: Mapping[str, Any], path: str) -> ObjectLockConfig:
        return ObjectLockConfig(
            token=self._str(data, "token", path),
            default_retention=self._optional(data, "default_retention", path, self._default_retention),
        )

    def _default_retention(self, data: Mapping[str, Any], path: str) -> DefaultRetention:
        return DefaultRetention(
            retention_days=self._int(data, "retention_days", path),
            retention_years=self._int(data, "retention_years", path),
            retention_mode=self._str(data, "retention_mode", path),
        )

    def _encryption(self, data: Mapping[str, Any], path: str) -> EncryptionConfig:
        return EncryptionConfig(
            sse_algorithm=self._str(data, "sse_algorithm", path),
            kms_master_key_id=self._str(data, "kms_master_key_id", path),
            bucket_key_enabled=self._bool(data, "bucket_key_enabled", path),
        )

    def _public_access_block(self, data: Mapping[str, Any], path: str) -> PublicAccessBlock:
        return PublicAccessBlock(
            block_public_acls=self._bool(data, "block_public_acls", path),
            block_public_policy=self._bool(data, "block_public_policy", path),
            ignore_public_acls=self._bool(data, "ignore_public_acls", path),
            restrict_public_buckets=self._bool(data, "restrict_public_buckets", path),
        )

    def _cors_rule(self, data: Mapping[str, Any], path: str) -> CorsRule:
        return CorsRule(
            allowed_methods=self._str_tuple(data, "allowed_methods", path),
            allowed_origins=self._str_tuple(data, "allowed_origins", path),
            allowed_headers=self._str_tuple(data, "allowed_headers", path),
            expose_headers=self._str_tuple(data, "expose_headers", path),
            max_age_seconds=self._int(data, "max_age_seconds", path),
            id=self._str(data, "id", path),
        )

    def _website(self, data: Mapping[str, Any], path: str) -> WebsiteConfig:
        return WebsiteConfig(
            redirect_requests_for_an_object=self._optional(
                data, "redirect_requests_for_an_object", path, self._redirect
            ),
            static_website=self._optional(data, "static_website", path, self._static_website),
        )

    def _redirect(self, data: Mapping[str, Any], path: str) -> RedirectAllRequests:
        return RedirectAllRequests(
            host_name=self._str(data, "host_name", path),
            protocol=self._str(data, "protocol", path),
        )

    def _static_website(self, data: Mapping[str, Any], path: str) -> StaticWebsite:
        return StaticWebsite(
            index_document=self._str(data, "index_document", path),
            error_document=self._str(data, "error_document", path),
            routing_rules=self._items(data, "routing_rules", path, self._routing_rule),
        )

    def _routing_rule(self, data: Mapping[str, Any], path: str) -> RoutingRule:
        return RoutingRule(
            condition_key_prefix=self._str(data, "condition_key_prefix", path),
            condition_http_error_code=self._str(data, "condition_http_error_code", path),
            redirect_host_name=self._str(data, "redirect_host_name", path),
            redirect_protocol=self._str(data, "redirect_protocol", path),
            redirect_http_code=self._str(data, "redirect_http_code", path),
            replace_key_prefix_with=self._str(data, "replace_key_prefix_with", path),
            replace_key_with=self._str(data, "replace_key_with", path),
        )

    def _filter(self, data: Mapping[str, Any], path: str) -> RuleFilter:
        return RuleFilter(
            prefix=self._str(data, "prefix", path),
            tags=self._str_map(data, "tags", path),
            object_size_greater_than=self._int(data, "object_size_greater_than", path),
            object_size_less_than=self._int(data, "object_size_less_than", path),
        )

    def _transition(self, data: Any, path: str) -> Transition | None:
        # Accept the compact (days, storage_class) pair as well as a mapping
        if isinstance(data, (list, tuple)):
            if len(data) != 2:
                self._report(path, "expected a (days, storage_class) pair")
                return None
            data = {"days": data[0], "storage_class": data[1]}
        if not self._is_mapping(data, path):
            return None
        return Transition(
            days=self._int(data, "days", path),
            storage_class=self._str(data, "storage_class", path),
        )

    def _noncurrent_transition(self, data: Mapping[str, Any], path: str) -> NoncurrentVersionTransition:
        return NoncurrentVersionTransition(
            days=self._int(data, "days", path),
            storage_class=self._str(data, "storage_class", path),
            newer_noncurrent_versions=self._int(data, "newer_noncurrent_versions", path),
        )

    def _expiration(self, data: Mapping[str, Any], path: str) -> Expiration:
        return Expiration(
            days_after_object_creation=self._int(data, "days_after_object_creation", path),
            date=self._str(data, "date", path),
            clean_up_expired_object_delete_markers=self._bool(data, "clean_up_expired_object_delete_markers", path),
        )

    def _noncurrent_expiration(self, data: Mapping[str, Any], path: str) -> NoncurrentVersionExpiration:
        return NoncurrentVersionExpiration(
            days=self._int(data, "days", path),
            newer_noncurrent_versions=self._int(data, "newer_noncurrent_versions", path),
        )

    def _lifecycle_rule(self, data: Mapping[str, Any], path: str) -> LifecycleRule:
        return LifecycleRule(
            enabled=self._enabled(data, path),
            filter=self._optional(data, "filter", path, self._filter),
            transitions=self._items(data, "transitions", path, self._transition, raw=True),
            expiration=self._optional(data, "expiration", path, self._expiration),
            noncurrent_version_expiration=self._optional(
                data, "noncurrent_version_expiration", path, self._noncurrent_expiration
            ),
            noncurrent_version_transitions=self._items(
                data, "noncurrent_version_transitions", path, self._noncurrent_transition
            ),
            abort_incomplete_multipart_upload_days=self._int(data, "abort_incomplete_multipart_upload_days", path),
        )

    def _replication(self, data: Mapping[str, Any], path: str) -> ReplicationConfig:
        return ReplicationConfig(
            role=self._str(data, "role", path),
            rules=self._keyed(data, "rules", path, self._replication_rule),
        )

    def _replication_rule(self, data: Mapping[str, Any], path: str) -> ReplicationRule:
        return ReplicationRule(
            destination_bucket=self._str(data, "destination_bucket", path),
            priority=self._int(data, "priority", path),
            enabled=self._enabled(data, path),
            filter=self._optional(data, "filter", path, self._filter),
            storage_class=self._str(data, "storage_class", path),
            replicate_kms_encrypted_objects=self._optional(
                data,
                "replicate_kms_encrypted_objects",
                path,
                lambda d, p: EncryptedObjectReplication(replica_kms_key_id=self._str(d, "replica_kms_key_id", p)),
            ),
            change_object_ownership_to_destination_bucket_owner=self._optional(
                data,
                "change_object_ownership_to_destination_bucket_owner",
                path,
                lambda d, p: OwnershipTransfer(destination_account_id=self._str(d, "destination_account_id", p)),
            ),
            features=self._optional(data, "features", path, self._replication_features),
        )

    def _replication_features(self, data: Mapping[str, Any], path: str) -> ReplicationFeatures:
        return ReplicationFeatures(
            metrics=self._bool(data, "metrics", path),
            replication_time_control=self._bool(data, "replication_time_control", path),
            replica_modification_sync=self._bool(data, "replica_modification_sync", path),
            delete_marker_replication=self._bool(data, "delete_marker_replication", path),
        )

    def _notifications(self, data: Mapping[str, Any], path: str) -> NotificationConfig:
        destinations_path = _join(path, "destinations")
        raw_destinations = data.get("destinations") or {}

        destinations = {}
        if self._is_mapping(raw_destinations, destinations_path):
            for address, subscriptions in raw_destinations.items():
                address_path = _join(destinations_path, str(address))
                with self._within(destinations_path, str(address)):
                    if isinstance(subscriptions, Mapping):
                        subscriptions = [subscriptions]
                    if not self._is_sequence(subscriptions, address_path):
                        continue
                    built = []
                    for index, item in enumerate(subscriptions):
                        item_path = f"{address_path}.{index}"
                        if self._is_mapping(item, item_path):
                            built.append(self._subscription(item, item_path))
                destinations[str(address)] = tuple(built)

        return NotificationConfig(
            destinations=destinations,
            eventbridge=self._bool(data, "eventbridge", path),
        )

    def _subscription(self, data: Mapping[str, Any], path: str) -> EventSubscription:
        return EventSubscription(
            events=self._str_tuple(data, "events", path),
            filter_prefix=self._str(data, "filter_prefix", path),
            filter_suffix=self._str(data, "filter_suffix", path),
        )

    def _inventory_rule(self, data: Mapping[str, Any], path: str) -> InventoryRule:
        return InventoryRule(
            enabled=self._enabled(data, path),
            filter_prefix=self._str(data, "filter_prefix", path),
            destination=self._optional(data, "destination", path, self._inventory_destination),
            frequency=self._str(data, "frequency", path),
            include_noncurrent_objects=self._bool(data, "include_noncurrent_objects", path),
            optional_fields=self._str_tuple(data, "optional_fields", path),
        )

    def _inventory_destination(self, data: Mapping[str, Any], path: str) -> InventoryDestination:
        return InventoryDestination(
            bucket_arn=self._str(data, "bucket_arn", path),
            account_id=self._str(data, "account_id", path),
            prefix=self._str(data, "prefix", path),
            output_format=self._str(data, "output_format", path),
            encryption=self._str(data, "encryption", path),
            kms_key_id=self._str(data, "kms_key_id", path),
        )

    def _tiering_rule(self, data: Mapping[str, Any], path: str) -> TieringRule:
        tierings_path = _join(path, "tierings")
        raw_tierings = data.get("tierings") or {}
        tierings = {}
        if self._is_mapping(raw_tierings, tierings_path):
            for tier, days in raw_tierings.items():
                days = self._typed(days, _join(tierings_path, str(tier)), _is_int, "an integer")
                if days is not None:
                    tierings[str(tier)] = days
        return TieringRule(
            enabled=self._enabled(data, path),
            filter=self._optional(data, "filter", path, self._filter),
            tierings=tierings,
        )

    # Shape helpers

    @contextmanager
    def _within(self, section: str, rule: str) -> Iterator[None]:
        previous, self._entry = self._entry, (section, rule)
        try:
            yield
        finally:
            self._entry = previous

    def _report(self, path: str, message: str) -> None:
        """Report a shape error at a dotted path, split into section, rule and field."""
        if self._entry is not None:
            section, rule = self._entry
            base = f"{section}.{rule}"
            if path == base or path.startswith(f"{base}."):
                field = path[len(base) + 1:]
                self.diagnostics.add(Violation(section, rule, field, ViolationCode.OUT_OF_RANGE, message))
                return
        section, _, field = path.partition(".")
        self.diagnostics.add(Violation(section, "", field, ViolationCode.OUT_OF_RANGE, message))

    def _is_mapping(self, value: Any, path: str) -> bool:
        if not isinstance(value, Mapping):
            self._report(path, f"expected a mapping, got {type(value).__name__}")
            return False
        return True

    def _is_sequence(self, value: Any, path: str) -> bool:
        if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple)):
            self._report(path, f"expected a list, got {type(value).__name__}")
            return False
        return True

    def _typed(self, value: Any, path: str, check: Callable[[Any], bool], kind: str) -> Any:
        if value is not None and not check(value):
            self._report(path, f"expected {kind}, got {type(value).__name__}")
            return None
        return value

    def _str(self, data: Mapping[str, Any], key: str, path: str) -> str | None:
        return self._typed(data.get(key), _join(path, key), lambda v: isinstance(v, str), "a string")

    def _int(self, data: Mapping[str, Any], key: str, path: str) -> int | None:
        return self._typed(data.get(key), _join(path, key), _is_int, "an integer")

    def _bool(self, data: Mapping[str, Any], key: str, path: str) -> bool | None:
        return self._typed(data.get(key), _join(path, key), lambda v: isinstance(v, bool), "a boolean")

    def _enabled(self, data: Mapping[str, Any], path: str) -> bool:
        enabled = self._bool(data, "enabled", path)
        return True if enabled is None else enabled

    def _str_tuple(self, data: Mapping[str, Any], key: str, path: str) -> tuple[str, ...]:
        value = data.get(key)
        if value is None:
            return ()
        if isinstance(value, str):
            return (value,)
        child = _join(path, key)
        if not self._is_sequence(value, child):
            return ()
        items = []
        for index, item in enumerate(value):
            if isinstance(item, str):
                items.append(item)
            else:
                self._report(f"{child}.{index}", f"expected a string, got {type(item).__name__}")
        return tuple(items)

    def _str_map(self, data: Mapping[str, Any], key: str, path: str) -> dict[str, str]:
        value = data.get(key)
        if value is None:
            return {}
        child = _join(path, key)
        if not self._is_mapping(value, child):
            return {}
        result = {}
        for item_key, item_value in value.items():
            with self._within(child, str(item_key)) if child in _KEYED_SECTIONS else nullcontext():
                if isinstance(item_value, str):
                    result[str(item_key)] = item_value
                else:
                    self._report(f"{child}.{item_key}", f"expected a string, got {type(item_value).__name__}")
        return result

    def _optional(self, data: Mapping[str, Any], key: str, path: str, build: Build) -> Any:
        value = data.get(key)
        if value is None:
            return None
        child = _join(path, key)
        if not self._is_mapping(value, child):
            return None
        return build(value, child)

    def _items(self, data: Mapping[str, Any], key: str, path: str, build: Build, raw: bool = False) -> tuple[Any, ...]:
        value = data.get(key)
        if value is None:
            return ()
        child = _join(path, key)
        if not self._is_sequence(value, child):
            return ()
        built = []
        for index, item in enumerate(value):
            item_path = f"{child}.{index}"
            with self._within(child, str(index)) if child in _KEYED_SECTIONS else nullcontext():
                if not raw and not self._is_mapping(item, item_path):
                    continue
                result = build(item, item_path)
            if result is not None:
                built.append(result)
        return tuple(built)

    def _keyed(self, data: Mapping[str, Any], key: str, path: str, build: Build) -> dict[str, Any]:
        value = data.get(key)
        if value is None:
            return {}
        child = _join(path, key)
        if not self._is_mapping(value, child):
            return {}
        result = {}
        for name, item in value.items():
            item_path = _join(child, str(name))
            with self._within(child, str(name)):
                if self._is_mapping(item, item_path):
                    result[str(name)] = build(item, item_path)
        return result


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key
