"""Inventory compiler."""

from __future__ import annotations

from ..bundle import CompiledInventoryRule
from ..constants import (
    INVENTORY_ENCRYPTION_SSE_KMS,
    INVENTORY_ENCRYPTIONS,
    INVENTORY_FORMATS,
    INVENTORY_FREQUENCIES,
    INVENTORY_OPTIONAL_FIELDS,
    SECTION_INVENTORY,
)
from ..diagnostics import Diagnostics, ViolationCode
from ..models import BucketDescriptor, InventoryDestination
from ..utils.addresses import bucket_arn


def compile_inventory_rules(
    descriptor: BucketDescriptor,
    diagnostics: Diagnostics,
) -> dict[str, CompiledInventoryRule]:
    """Compile inventory report rules, keyed by rule name."""
    compiled = {}
    for name, rule in descriptor.inventory_rules.items():
        scope = diagnostics.scope(SECTION_INVENTORY, name)
        destination = rule.destination or InventoryDestination()

        scope.require(destination.bucket_arn, "destination.bucket_arn")
        scope.one_of(destination.output_format, INVENTORY_FORMATS, "destination.output_format")
        scope.one_of(destination.encryption, INVENTORY_ENCRYPTIONS, "destination.encryption")
        if destination.encryption == INVENTORY_ENCRYPTION_SSE_KMS:
            scope.require(destination.kms_key_id, "destination.kms_key_id", "SSE-KMS inventory encryption requires kms_key_id")
        elif destination.kms_key_id is not None:
            scope.error(
                "destination.kms_key_id",
                ViolationCode.MUTUALLY_EXCLUSIVE,
                "kms_key_id is only used with SSE-KMS inventory encryption",
            )
        scope.one_of(rule.frequency, INVENTORY_FREQUENCIES, "frequency")
        for optional_field in rule.optional_fields:
            scope.one_of(optional_field, INVENTORY_OPTIONAL_FIELDS, "optional_fields")

        compiled[name] = CompiledInventoryRule(
            name=name,
            enabled=rule.enabled,
            filter_prefix=rule.filter_prefix,
            destination_bucket_arn=bucket_arn(destination.bucket_arn) if destination.bucket_arn else "",
            destination_account_id=destination.account_id,
            destination_prefix=destination.prefix,
            output_format=destination.output_format,
            encryption=destination.encryption,
            kms_key_id=destination.kms_key_id,
            frequency=rule.frequency,
            included_object_versions="All" if rule.include_noncurrent_objects else "Current",
            optional_fields=tuple(sorted(set(rule.optional_fields))),
        )
    return compiled
