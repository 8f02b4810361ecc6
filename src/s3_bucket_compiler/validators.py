"""Field validators for bucket descriptors.

Each validator inspects one sub-configuration and reports into the shared
``Diagnostics`` sink. Validators never raise and never stop early, so a
single pass surfaces every problem in the descriptor.
"""

from __future__ import annotations

import re
from typing import Callable

from .constants import (
    BUCKET_NAME_MAX_LENGTH,
    BUCKET_NAME_MIN_LENGTH,
    CORS_METHODS,
    KMS_ALGORITHMS,
    MAX_BUCKET_TAGS,
    MAX_CORS_RULES,
    MAX_TAG_KEY_LENGTH,
    MAX_TAG_VALUE_LENGTH,
    OBJECT_OWNERSHIP_MODES,
    REPLICATION_STORAGE_CLASSES,
    RETENTION_MODES,
    SECTION_CORS,
    SECTION_ENCRYPTION,
    SECTION_NAME,
    SECTION_NOTIFICATION_DESTINATIONS,
    SECTION_OBJECT_LOCK,
    SECTION_OBJECT_LOCK_ENABLED,
    SECTION_OWNER_ACCOUNT,
    SECTION_OWNERSHIP,
    SECTION_REPLICATION,
    SECTION_REPLICATION_RULES,
    SECTION_TAGS,
    SECTION_VERSIONING,
    SECTION_WEBSITE,
    SSE_AES256,
    SSE_ALGORITHMS,
    WEBSITE_PROTOCOLS,
)
from .diagnostics import Diagnostics, ViolationCode
from .models import BucketDescriptor, RedirectAllRequests, StaticWebsite
from .utils.addresses import classify_destination

Validator = Callable[[BucketDescriptor, Diagnostics], None]

_BUCKET_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9.\-]*[a-z0-9]$")
_IP_ADDRESS_RE = re.compile(r"^\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}$")


def validate_name(descriptor: BucketDescriptor, diagnostics: Diagnostics) -> None:
    """Validate the bucket name.

    A missing name is an error. Names outside the storage service's naming
    rules are reported as warnings; ``warnings_as_errors`` turns them into
    rejections.
    """
    scope = diagnostics.scope(SECTION_NAME)
    name = descriptor.name
    if not scope.require(name, "", "bucket name is required"):
        return

    if not BUCKET_NAME_MIN_LENGTH <= len(name) <= BUCKET_NAME_MAX_LENGTH:
        scope.warning(
            "",
            ViolationCode.OUT_OF_RANGE,
            f"bucket name must be {BUCKET_NAME_MIN_LENGTH}-{BUCKET_NAME_MAX_LENGTH} characters, got {len(name)}",
        )
    elif not _BUCKET_NAME_RE.match(name) or ".." in name:
        scope.warning(
            "",
            ViolationCode.OUT_OF_RANGE,
            "bucket name may only contain lowercase letters, digits, '.' and '-', "
            "and must start and end with a letter or digit",
        )
    elif _IP_ADDRESS_RE.match(name):
        scope.warning("", ViolationCode.OUT_OF_RANGE, "bucket name must not be formatted as an IP address")


def validate_tags(descriptor: BucketDescriptor, diagnostics: Diagnostics) -> None:
    """Validate bucket tag count and key/value lengths."""
    if len(descriptor.tags) > MAX_BUCKET_TAGS:
        diagnostics.scope(SECTION_TAGS).error(
            "",
            ViolationCode.OUT_OF_RANGE,
            f"at most {MAX_BUCKET_TAGS} tags are allowed, got {len(descriptor.tags)}",
        )

    for key, value in descriptor.tags.items():
        scope = diagnostics.scope(SECTION_TAGS, key)
        if not key or len(key) > MAX_TAG_KEY_LENGTH:
            scope.error("", ViolationCode.OUT_OF_RANGE, f"tag keys must be 1-{MAX_TAG_KEY_LENGTH} characters")
        if len(value) > MAX_TAG_VALUE_LENGTH:
            scope.error("", ViolationCode.OUT_OF_RANGE, f"tag values must be at most {MAX_TAG_VALUE_LENGTH} characters")


def validate_object_lock(descriptor: BucketDescriptor, diagnostics: Diagnostics) -> None:
    """Validate object lock settings and their dependency on versioning."""
    lock_enabled = descriptor.enables_object_lock is True

    if lock_enabled and descriptor.versioning_enabled is False:
        diagnostics.scope(SECTION_VERSIONING).error(
            "",
            ViolationCode.REQUIRES_FIELD,
            "enables_object_lock requires versioning_enabled to be true",
        )

    lock = descriptor.object_lock
    if lock is None:
        return

    if not lock_enabled:
        diagnostics.scope(SECTION_OBJECT_LOCK_ENABLED).error(
            "",
            ViolationCode.REQUIRES_FIELD,
            "object_lock settings require enables_object_lock to be true",
        )

    retention = lock.default_retention
    if retention is None:
        return

    scope = diagnostics.scope(SECTION_OBJECT_LOCK)
    scope.one_of(retention.retention_mode, RETENTION_MODES, "default_retention.retention_mode")
    scope.in_range(retention.retention_days, "default_retention.retention_days", minimum=1)
    scope.in_range(retention.retention_years, "default_retention.retention_years", minimum=1)

    if retention.retention_days is not None and retention.retention_years is not None:
        scope.error(
            "default_retention",
            ViolationCode.MUTUALLY_EXCLUSIVE,
            "retention_days and retention_years cannot both be set",
        )

    # A token means the caller is amending an existing lock configuration
    if lock.token is None:
        scope.require(
            retention.retention_mode,
            "default_retention.retention_mode",
            "default_retention requires retention_mode when no token is given",
        )
        if retention.retention_days is None and retention.retention_years is None:
            scope.error(
                "default_retention.retention_days",
                ViolationCode.REQUIRES_FIELD,
                "default_retention requires retention_days when no token is given",
            )


def validate_encryption(descriptor: BucketDescriptor, diagnostics: Diagnostics) -> None:
    """Validate the default encryption algorithm and key pairing."""
    encryption = descriptor.encryption
    if encryption is None:
        return

    scope = diagnostics.scope(SECTION_ENCRYPTION)
    scope.one_of(encryption.sse_algorithm, SSE_ALGORITHMS, "sse_algorithm")

    if encryption.kms_master_key_id and encryption.sse_algorithm in (None, SSE_AES256):
        scope.error(
            "kms_master_key_id",
            ViolationCode.MUTUALLY_EXCLUSIVE,
            "kms_master_key_id cannot be used with AES256 encryption",
        )


def validate_object_ownership(descriptor: BucketDescriptor, diagnostics: Diagnostics) -> None:
    diagnostics.scope(SECTION_OWNERSHIP).one_of(descriptor.object_ownership, OBJECT_OWNERSHIP_MODES, "")


def validate_requester_pays(descriptor: BucketDescriptor, diagnostics: Diagnostics) -> None:
    """Requester-pays billing must be attributable to an owner account."""
    if descriptor.requester_pays:
        diagnostics.scope(SECTION_OWNER_ACCOUNT).require(
            descriptor.bucket_owner_account_id,
            "",
            "requester_pays requires bucket_owner_account_id",
        )


def validate_website(descriptor: BucketDescriptor, diagnostics: Diagnostics) -> None:
    """Validate website hosting; redirect and static hosting are exclusive."""
    website = descriptor.website
    if website is None:
        return

    scope = diagnostics.scope(SECTION_WEBSITE)
    redirect = website.redirect_requests_for_an_object
    static = website.static_website

    if redirect is not None and static is not None:
        scope.error(
            "",
            ViolationCode.MUTUALLY_EXCLUSIVE,
            "redirect_requests_for_an_object and static_website cannot both be set",
        )
        return
    if redirect is None and static is None:
        scope.error(
            "",
            ViolationCode.REQUIRES_FIELD,
            "website requires either redirect_requests_for_an_object or static_website",
        )
        return

    if redirect is not None:
        _validate_redirect(redirect, diagnostics)
    else:
        _validate_static_website(static, diagnostics)


def _validate_redirect(redirect: RedirectAllRequests, diagnostics: Diagnostics) -> None:
    scope = diagnostics.scope(SECTION_WEBSITE)
    scope.require(redirect.host_name, "redirect_requests_for_an_object.host_name")
    scope.one_of(redirect.protocol, WEBSITE_PROTOCOLS, "redirect_requests_for_an_object.protocol")


def _validate_static_website(static: StaticWebsite, diagnostics: Diagnostics) -> None:
    scope = diagnostics.scope(SECTION_WEBSITE)
    if scope.require(static.index_document, "static_website.index_document") and "/" in static.index_document:
        scope.error(
            "static_website.index_document",
            ViolationCode.OUT_OF_RANGE,
            "index_document is a suffix and must not contain '/'",
        )

    for index, rule in enumerate(static.routing_rules):
        field = f"static_website.routing_rules.{index}"
        if rule.replace_key_prefix_with is not None and rule.replace_key_with is not None:
            scope.error(
                field,
                ViolationCode.MUTUALLY_EXCLUSIVE,
                "replace_key_prefix_with and replace_key_with cannot both be set",
            )
        if not any(
            (
                rule.redirect_host_name,
                rule.redirect_http_code,
                rule.redirect_protocol,
                rule.replace_key_prefix_with is not None,
                rule.replace_key_with is not None,
            )
        ):
            scope.error(field, ViolationCode.REQUIRES_FIELD, "routing rule requires a redirect target")
        scope.one_of(rule.redirect_protocol, WEBSITE_PROTOCOLS, f"{field}.redirect_protocol")


def validate_cors(descriptor: BucketDescriptor, diagnostics: Diagnostics) -> None:
    """Validate CORS rules."""
    rules = descriptor.cors_rules
    if len(rules) > MAX_CORS_RULES:
        diagnostics.scope(SECTION_CORS).error(
            "",
            ViolationCode.OUT_OF_RANGE,
            f"at most {MAX_CORS_RULES} CORS rules are allowed, got {len(rules)}",
        )

    for index, rule in enumerate(rules):
        scope = diagnostics.scope(SECTION_CORS, str(index))
        scope.require(rule.allowed_origins, "allowed_origins")
        if scope.require(rule.allowed_methods, "allowed_methods"):
            for method in rule.allowed_methods:
                scope.one_of(method.upper(), CORS_METHODS, "allowed_methods")
        scope.in_range(rule.max_age_seconds, "max_age_seconds", minimum=0)


def validate_replication(descriptor: BucketDescriptor, diagnostics: Diagnostics) -> None:
    """Validate per-rule replication fields and source-side preconditions.

    Cross-rule checks (priority uniqueness) belong to the replication
    compiler.
    """
    replication = descriptor.replication
    if replication is None:
        return

    scope = diagnostics.scope(SECTION_REPLICATION)
    scope.require(replication.role, "role")
    scope.require(replication.rules, "rules", "replication requires at least one rule")

    if descriptor.versioning_enabled is False:
        diagnostics.scope(SECTION_VERSIONING).error(
            "",
            ViolationCode.REQUIRES_FIELD,
            "replication requires versioning_enabled to be true",
        )

    encryption = descriptor.encryption
    key_based = encryption is not None and encryption.sse_algorithm in KMS_ALGORITHMS

    for name, rule in replication.rules.items():
        rule_scope = diagnostics.scope(SECTION_REPLICATION_RULES, name)
        rule_scope.require(rule.destination_bucket, "destination_bucket")
        if rule_scope.require(rule.priority, "priority"):
            rule_scope.in_range(rule.priority, "priority", minimum=0)
        rule_scope.one_of(rule.storage_class, REPLICATION_STORAGE_CLASSES, "storage_class")

        transfer = rule.change_object_ownership_to_destination_bucket_owner
        if transfer is not None:
            account_id = (transfer.destination_account_id or "").strip()
            rule_scope.require(
                account_id,
                "change_object_ownership_to_destination_bucket_owner.destination_account_id",
                "ownership transfer requires a destination account id",
            )

        encrypted = rule.replicate_kms_encrypted_objects
        if encrypted is not None:
            rule_scope.require(
                encrypted.replica_kms_key_id,
                "replicate_kms_encrypted_objects.replica_kms_key_id",
                "replicating KMS-encrypted objects requires a destination key",
            )
            if not key_based:
                rule_scope.error(
                    "replicate_kms_encrypted_objects",
                    ViolationCode.REQUIRES_FIELD,
                    "replicating KMS-encrypted objects requires encryption.sse_algorithm to be a KMS scheme",
                )

        features = rule.features
        if features is not None and features.replication_time_control and features.metrics is False:
            rule_scope.error(
                "features.metrics",
                ViolationCode.REQUIRES_FIELD,
                "replication_time_control requires metrics to be enabled",
            )


def validate_notifications(descriptor: BucketDescriptor, diagnostics: Diagnostics) -> None:
    """Every destination address must classify as a function, queue or topic."""
    notifications = descriptor.notifications
    if notifications is None:
        return

    for address in notifications.destinations:
        if classify_destination(address) is None:
            diagnostics.scope(SECTION_NOTIFICATION_DESTINATIONS, address).error(
                "",
                ViolationCode.INVALID_ENUM_VALUE,
                f"cannot classify destination {address!r}: expected a function (:lambda:), "
                "queue (:sqs:) or topic (:sns:) address",
            )


FIELD_VALIDATORS: tuple[Validator, ...] = (
    validate_name,
    validate_tags,
    validate_object_lock,
    validate_encryption,
    validate_object_ownership,
    validate_requester_pays,
    validate_website,
    validate_cors,
    validate_replication,
    validate_notifications,
)


def run_field_validators(descriptor: BucketDescriptor, diagnostics: Diagnostics) -> None:
    """Run every field validator against the descriptor."""
    for validator in FIELD_VALIDATORS:
        validator(descriptor, diagnostics)
