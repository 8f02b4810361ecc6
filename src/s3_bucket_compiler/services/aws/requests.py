"""Render configuration bundles into S3 control-plane requests.

Each request is the operation name plus the keyword arguments a botocore S3
client method takes (``put_bucket_lifecycle_configuration(**params)`` for
``PutBucketLifecycleConfiguration``). Nothing here performs network I/O.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from functools import lru_cache
from typing import Any, Iterable

from botocore.exceptions import ParamValidationError
from botocore.model import ServiceModel
from botocore.session import get_session
from botocore.validate import ParamValidator

from ...bundle import (
    ACTION_ABORT_MULTIPART_UPLOAD,
    ACTION_EXPIRE,
    ACTION_EXPIRE_DELETE_MARKERS,
    ACTION_NONCURRENT_EXPIRE,
    ACTION_NONCURRENT_TRANSITION,
    ACTION_TRANSITION,
    WEBSITE_REDIRECT,
    CompiledDestination,
    CompiledFilter,
    CompiledInventoryRule,
    CompiledLifecycleRule,
    CompiledReplicationRule,
    CompiledTieringRule,
    CompiledWebsite,
    ConfigurationBundle,
)
from ...constants import (
    DESTINATION_FUNCTION,
    DESTINATION_QUEUE,
    DESTINATION_TOPIC,
    INVENTORY_ENCRYPTION_SSE_KMS,
    INVENTORY_ENCRYPTION_SSE_S3,
    REPLICATION_TIME_THRESHOLD_MINUTES,
)

logger = logging.getLogger(__name__)

# Notification configuration list key and ARN key per destination kind
_NOTIFICATION_KEYS = {
    DESTINATION_TOPIC: ("TopicConfigurations", "TopicArn"),
    DESTINATION_QUEUE: ("QueueConfigurations", "QueueArn"),
    DESTINATION_FUNCTION: ("LambdaFunctionConfigurations", "LambdaFunctionArn"),
}


@dataclass(frozen=True)
class ControlPlaneRequest:
    """A single S3 API call: operation name and its parameters."""

    operation: str
    params: dict[str, Any]


def _status(enabled: bool) -> str:
    return "Enabled" if enabled else "Disabled"


def _tag_set(tags: Iterable[tuple[str, str]]) -> list[dict[str, str]]:
    return [{"Key": key, "Value": value} for key, value in tags]


def render_filter(rule_filter: CompiledFilter) -> dict[str, Any]:
    """Render a compiled filter; several predicates become an ``And`` block."""
    if rule_filter.is_empty:
        return {"Prefix": ""}

    if rule_filter.conjunctive:
        conjunction: dict[str, Any] = {}
        if rule_filter.prefix is not None:
            conjunction["Prefix"] = rule_filter.prefix
        if rule_filter.tags:
            conjunction["Tags"] = _tag_set(rule_filter.tags)
        if rule_filter.object_size_greater_than is not None:
            conjunction["ObjectSizeGreaterThan"] = rule_filter.object_size_greater_than
        if rule_filter.object_size_less_than is not None:
            conjunction["ObjectSizeLessThan"] = rule_filter.object_size_less_than
        return {"And": conjunction}

    if rule_filter.prefix is not None:
        return {"Prefix": rule_filter.prefix}
    if rule_filter.tags:
        key, value = rule_filter.tags[0]
        return {"Tag": {"Key": key, "Value": value}}
    if rule_filter.object_size_greater_than is not None:
        return {"ObjectSizeGreaterThan": rule_filter.object_size_greater_than}
    return {"ObjectSizeLessThan": rule_filter.object_size_less_than}


def render_lifecycle_rule(rule: CompiledLifecycleRule) -> dict[str, Any]:
    """Render a compiled lifecycle rule into an S3 ``LifecycleRule``."""
    aws_rule: dict[str, Any] = {
        "ID": rule.name,
        "Status": _status(rule.enabled),
        "Filter": render_filter(rule.filter),
    }

    for action in rule.actions:
        if action.action == ACTION_TRANSITION:
            aws_rule.setdefault("Transitions", []).append(
                {"Days": action.days, "StorageClass": action.storage_class}
            )
        elif action.action == ACTION_EXPIRE:
            if action.date is not None:
                expiry = datetime.combine(date.fromisoformat(action.date), time(), tzinfo=timezone.utc)
                aws_rule["Expiration"] = {"Date": expiry}
            else:
                aws_rule["Expiration"] = {"Days": action.days}
        elif action.action == ACTION_EXPIRE_DELETE_MARKERS:
            aws_rule["Expiration"] = {"ExpiredObjectDeleteMarker": True}
        elif action.action == ACTION_NONCURRENT_TRANSITION:
            transition = {"NoncurrentDays": action.days, "StorageClass": action.storage_class}
            if action.newer_noncurrent_versions is not None:
                transition["NewerNoncurrentVersions"] = action.newer_noncurrent_versions
            aws_rule.setdefault("NoncurrentVersionTransitions", []).append(transition)
        elif action.action == ACTION_NONCURRENT_EXPIRE:
            expiration = {"NoncurrentDays": action.days}
            if action.newer_noncurrent_versions is not None:
                expiration["NewerNoncurrentVersions"] = action.newer_noncurrent_versions
            aws_rule["NoncurrentVersionExpiration"] = expiration
        elif action.action == ACTION_ABORT_MULTIPART_UPLOAD:
            aws_rule["AbortIncompleteMultipartUpload"] = {"DaysAfterInitiation": action.days}
        else:
            raise RuntimeError(f"Unknown lifecycle action {action.action!r}")

    return aws_rule


def render_replication_rule(
    rule: CompiledReplicationRule,
    time_threshold_minutes: int = REPLICATION_TIME_THRESHOLD_MINUTES,
) -> dict[str, Any]:
    """Render a compiled replication rule into an S3 ``ReplicationRule``."""
    destination: dict[str, Any] = {"Bucket": rule.destination_bucket}
    if rule.storage_class:
        destination["StorageClass"] = rule.storage_class
    if rule.destination_account_id:
        destination["Account"] = rule.destination_account_id
        destination["AccessControlTranslation"] = {"Owner": "Destination"}
    if rule.replica_kms_key_id:
        destination["EncryptionConfiguration"] = {"ReplicaKmsKeyID": rule.replica_kms_key_id}
    if rule.replication_time_control:
        destination["ReplicationTime"] = {"Status": "Enabled", "Time": {"Minutes": time_threshold_minutes}}
    if rule.metrics:
        destination["Metrics"] = {"Status": "Enabled", "EventThreshold": {"Minutes": time_threshold_minutes}}

    aws_rule: dict[str, Any] = {
        "ID": rule.name,
        "Priority": rule.priority,
        "Status": _status(rule.enabled),
        "Filter": render_filter(rule.filter),
        "Destination": destination,
        "DeleteMarkerReplication": {"Status": _status(rule.delete_marker_replication)},
    }

    criteria: dict[str, Any] = {}
    if rule.replica_kms_key_id:
        criteria["SseKmsEncryptedObjects"] = {"Status": "Enabled"}
    if rule.replica_modification_sync:
        criteria["ReplicaModifications"] = {"Status": "Enabled"}
    if criteria:
        aws_rule["SourceSelectionCriteria"] = criteria

    return aws_rule


def render_notifications(destinations: Iterable[CompiledDestination], eventbridge: bool) -> dict[str, Any]:
    """Render compiled destinations into an S3 ``NotificationConfiguration``.

    Every subscription becomes one configuration entry, in destination then
    subscription order.
    """
    configuration: dict[str, Any] = {}
    for destination in destinations:
        list_key, arn_key = _NOTIFICATION_KEYS[destination.kind]
        for subscription in destination.subscriptions:
            entry: dict[str, Any] = {arn_key: destination.address, "Events": list(subscription.events)}
            filter_rules = []
            if subscription.filter_prefix:
                filter_rules.append({"Name": "prefix", "Value": subscription.filter_prefix})
            if subscription.filter_suffix:
                filter_rules.append({"Name": "suffix", "Value": subscription.filter_suffix})
            if filter_rules:
                entry["Filter"] = {"Key": {"FilterRules": filter_rules}}
            configuration.setdefault(list_key, []).append(entry)
    if eventbridge:
        configuration["EventBridgeConfiguration"] = {}
    return configuration


def render_inventory_rule(rule: CompiledInventoryRule) -> dict[str, Any]:
    """Render a compiled inventory rule into an S3 ``InventoryConfiguration``."""
    s3_destination: dict[str, Any] = {
        "Bucket": rule.destination_bucket_arn,
        "Format": rule.output_format,
    }
    if rule.destination_account_id:
        s3_destination["AccountId"] = rule.destination_account_id
    if rule.destination_prefix:
        s3_destination["Prefix"] = rule.destination_prefix
    if rule.encryption == INVENTORY_ENCRYPTION_SSE_S3:
        s3_destination["Encryption"] = {"SSES3": {}}
    elif rule.encryption == INVENTORY_ENCRYPTION_SSE_KMS:
        s3_destination["Encryption"] = {"SSEKMS": {"KeyId": rule.kms_key_id}}

    configuration: dict[str, Any] = {
        "Id": rule.name,
        "IsEnabled": rule.enabled,
        "Destination": {"S3BucketDestination": s3_destination},
        "IncludedObjectVersions": rule.included_object_versions,
        "Schedule": {"Frequency": rule.frequency},
    }
    if rule.filter_prefix:
        configuration["Filter"] = {"Prefix": rule.filter_prefix}
    if rule.optional_fields:
        configuration["OptionalFields"] = list(rule.optional_fields)
    return configuration


def render_tiering_rule(rule: CompiledTieringRule) -> dict[str, Any]:
    """Render a compiled tiering rule into an S3 ``IntelligentTieringConfiguration``."""
    configuration: dict[str, Any] = {
        "Id": rule.name,
        "Status": _status(rule.enabled),
        "Tierings": [{"Days": days, "AccessTier": tier} for tier, days in rule.tierings],
    }
    if not rule.filter.is_empty:
        configuration["Filter"] = render_filter(rule.filter)
    return configuration


def render_website(website: CompiledWebsite) -> dict[str, Any]:
    if website.kind == WEBSITE_REDIRECT:
        redirect = {"HostName": website.redirect.host_name}
        if website.redirect.protocol:
            redirect["Protocol"] = website.redirect.protocol
        return {"RedirectAllRequestsTo": redirect}

    configuration: dict[str, Any] = {"IndexDocument": {"Suffix": website.index_document}}
    if website.error_document:
        configuration["ErrorDocument"] = {"Key": website.error_document}
    routing_rules = []
    for rule in website.routing_rules:
        condition = {}
        if rule.condition_key_prefix is not None:
            condition["KeyPrefixEquals"] = rule.condition_key_prefix
        if rule.condition_http_error_code is not None:
            condition["HttpErrorCodeReturnedEquals"] = rule.condition_http_error_code
        redirect = {}
        for source, target in (
            (rule.redirect_host_name, "HostName"),
            (rule.redirect_protocol, "Protocol"),
            (rule.redirect_http_code, "HttpRedirectCode"),
            (rule.replace_key_prefix_with, "ReplaceKeyPrefixWith"),
            (rule.replace_key_with, "ReplaceKeyWith"),
        ):
            if source is not None:
                redirect[target] = source
        routing_rule: dict[str, Any] = {"Redirect": redirect}
        if condition:
            routing_rule["Condition"] = condition
        routing_rules.append(routing_rule)
    if routing_rules:
        configuration["RoutingRules"] = routing_rules
    return configuration


def render_requests(
    bundle: ConfigurationBundle,
    time_threshold_minutes: int = REPLICATION_TIME_THRESHOLD_MINUTES,
) -> list[ControlPlaneRequest]:
    """Render a bundle into the ordered list of control-plane requests.

    Bucket creation comes first, followed by bucket-wide settings, then the
    per-concern configurations. Optional concerns that are absent produce no
    request.

    Args:
        bundle: Compiled configuration bundle
        time_threshold_minutes: Replication time control and metrics threshold

    Returns:
        Requests in the order they should be applied
    """
    name = bundle.bucket_name
    requests = [
        ControlPlaneRequest(
            "CreateBucket",
            {
                "Bucket": name,
                "ObjectLockEnabledForBucket": bundle.object_lock is not None,
                "ObjectOwnership": bundle.object_ownership,
            },
        ),
        ControlPlaneRequest(
            "PutBucketOwnershipControls",
            {"Bucket": name, "OwnershipControls": {"Rules": [{"ObjectOwnership": bundle.object_ownership}]}},
        ),
        ControlPlaneRequest(
            "PutPublicAccessBlock",
            {
                "Bucket": name,
                "PublicAccessBlockConfiguration": {
                    "BlockPublicAcls": bundle.public_access_block.block_public_acls,
                    "IgnorePublicAcls": bundle.public_access_block.ignore_public_acls,
                    "BlockPublicPolicy": bundle.public_access_block.block_public_policy,
                    "RestrictPublicBuckets": bundle.public_access_block.restrict_public_buckets,
                },
            },
        ),
    ]

    if bundle.versioning_enabled:
        requests.append(
            ControlPlaneRequest("PutBucketVersioning", {"Bucket": name, "VersioningConfiguration": {"Status": "Enabled"}})
        )

    sse_default: dict[str, Any] = {"SSEAlgorithm": bundle.encryption.sse_algorithm}
    if bundle.encryption.kms_master_key_id:
        sse_default["KMSMasterKeyID"] = bundle.encryption.kms_master_key_id
    requests.append(
        ControlPlaneRequest(
            "PutBucketEncryption",
            {
                "Bucket": name,
                "ServerSideEncryptionConfiguration": {
                    "Rules": [
                        {
                            "ApplyServerSideEncryptionByDefault": sse_default,
                            "BucketKeyEnabled": bundle.encryption.bucket_key_enabled,
                        }
                    ]
                },
            },
        )
    )

    if bundle.tags:
        requests.append(ControlPlaneRequest("PutBucketTagging", {"Bucket": name, "Tagging": {"TagSet": _tag_set(bundle.tags)}}))

    requests.append(
        ControlPlaneRequest(
            "PutBucketRequestPayment",
            {
                "Bucket": name,
                "RequestPaymentConfiguration": {"Payer": "Requester" if bundle.requester_pays else "BucketOwner"},
            },
        )
    )

    if bundle.transfer_acceleration:
        requests.append(
            ControlPlaneRequest(
                "PutBucketAccelerateConfiguration",
                {"Bucket": name, "AccelerateConfiguration": {"Status": "Enabled"}},
            )
        )

    lock = bundle.object_lock
    if lock is not None and (lock.retention_mode or lock.token):
        lock_configuration: dict[str, Any] = {"ObjectLockEnabled": "Enabled"}
        retention: dict[str, Any] = {}
        if lock.retention_mode:
            retention["Mode"] = lock.retention_mode
        if lock.retention_days is not None:
            retention["Days"] = lock.retention_days
        if lock.retention_years is not None:
            retention["Years"] = lock.retention_years
        if retention:
            lock_configuration["Rule"] = {"DefaultRetention": retention}
        params = {"Bucket": name, "ObjectLockConfiguration": lock_configuration}
        if lock.token:
            params["Token"] = lock.token
        requests.append(ControlPlaneRequest("PutObjectLockConfiguration", params))

    if bundle.policy:
        requests.append(ControlPlaneRequest("PutBucketPolicy", {"Bucket": name, "Policy": bundle.policy}))

    if bundle.cors_rules:
        cors_rules = []
        for rule in bundle.cors_rules:
            aws_rule: dict[str, Any] = {
                "AllowedMethods": list(rule.allowed_methods),
                "AllowedOrigins": list(rule.allowed_origins),
            }
            if rule.id:
                aws_rule["ID"] = rule.id
            if rule.allowed_headers:
                aws_rule["AllowedHeaders"] = list(rule.allowed_headers)
            if rule.expose_headers:
                aws_rule["ExposeHeaders"] = list(rule.expose_headers)
            if rule.max_age_seconds is not None:
                aws_rule["MaxAgeSeconds"] = rule.max_age_seconds
            cors_rules.append(aws_rule)
        requests.append(ControlPlaneRequest("PutBucketCors", {"Bucket": name, "CORSConfiguration": {"CORSRules": cors_rules}}))

    if bundle.website is not None:
        requests.append(
            ControlPlaneRequest("PutBucketWebsite", {"Bucket": name, "WebsiteConfiguration": render_website(bundle.website)})
        )

    if bundle.lifecycle_rules:
        requests.append(
            ControlPlaneRequest(
                "PutBucketLifecycleConfiguration",
                {
                    "Bucket": name,
                    "LifecycleConfiguration": {
                        "Rules": [render_lifecycle_rule(rule) for rule in bundle.lifecycle_rules.values()]
                    },
                },
            )
        )

    if bundle.replication is not None:
        requests.append(
            ControlPlaneRequest(
                "PutBucketReplication",
                {
                    "Bucket": name,
                    "ReplicationConfiguration": {
                        "Role": bundle.replication.role,
                        "Rules": [
                            render_replication_rule(rule, time_threshold_minutes) for rule in bundle.replication.rules
                        ],
                    },
                },
            )
        )

    if bundle.notifications is not None:
        requests.append(
            ControlPlaneRequest(
                "PutBucketNotificationConfiguration",
                {
                    "Bucket": name,
                    "NotificationConfiguration": render_notifications(
                        bundle.notifications.destinations, bundle.notifications.eventbridge
                    ),
                },
            )
        )

    for rule in bundle.inventory_rules.values():
        requests.append(
            ControlPlaneRequest(
                "PutBucketInventoryConfiguration",
                {"Bucket": name, "Id": rule.name, "InventoryConfiguration": render_inventory_rule(rule)},
            )
        )

    for rule in bundle.intelligent_tiering_rules.values():
        requests.append(
            ControlPlaneRequest(
                "PutBucketIntelligentTieringConfiguration",
                {"Bucket": name, "Id": rule.name, "IntelligentTieringConfiguration": render_tiering_rule(rule)},
            )
        )

    logger.debug(f"Rendered {len(requests)} request(s) for bucket {name}")
    return requests


@lru_cache(maxsize=1)
def _s3_service_model() -> ServiceModel:
    return get_session().get_service_model("s3")


def validate_request(request: ControlPlaneRequest) -> None:
    """Validate request parameters against botocore's S3 service model.

    Raises:
        ParamValidationError: If the parameters do not match the operation's input shape
    """
    shape = _s3_service_model().operation_model(request.operation).input_shape
    report = ParamValidator().validate(request.params, shape)
    if report.has_errors():
        raise ParamValidationError(report=report.generate_report())


def validate_requests(requests: Iterable[ControlPlaneRequest]) -> None:
    """Validate every request, raising on the first mismatch."""
    for request in requests:
        validate_request(request)
