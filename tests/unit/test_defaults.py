"""Unit tests for the defaulting resolver."""

from __future__ import annotations

from s3_bucket_compiler.builders.descriptor import create_descriptor_from_spec
from s3_bucket_compiler.defaults import (
    resolve_defaults,
    resolve_replication_features,
    resolve_versioning,
)
from s3_bucket_compiler.models import BucketDescriptor, ReplicationFeatures


class TestResolveDefaults:
    """Test resolved defaults for an otherwise empty descriptor."""

    def test_all_defaults(self) -> None:
        """Test that every optional field is populated."""
        resolved = resolve_defaults(BucketDescriptor(name="test-bucket"))

        assert resolved.versioning_enabled is False
        assert resolved.enables_object_lock is False
        assert resolved.encryption.sse_algorithm == "AES256"
        assert resolved.encryption.kms_master_key_id is None
        assert resolved.encryption.bucket_key_enabled is False
        assert resolved.object_ownership == "BucketOwnerEnforced"
        assert resolved.requester_pays is False
        assert resolved.transfer_acceleration is False
        assert resolved.public_access_block.block_public_acls is False
        assert resolved.public_access_block.restrict_public_buckets is False

    def test_descriptor_is_not_modified(self) -> None:
        """Test that resolving returns a new descriptor."""
        descriptor = BucketDescriptor(name="test-bucket")
        resolved = resolve_defaults(descriptor)

        assert resolved is not descriptor
        assert descriptor.encryption is None
        assert descriptor.versioning_enabled is None

    def test_explicit_values_are_kept(self) -> None:
        """Test that explicit values are never overridden."""
        descriptor = create_descriptor_from_spec(
            {
                "name": "test-bucket",
                "object_ownership": "ObjectWriter",
                "encryption": {"sse_algorithm": "aws:kms", "bucket_key_enabled": True},
                "public_access_block": {"block_public_acls": True},
            }
        )
        resolved = resolve_defaults(descriptor)

        assert resolved.object_ownership == "ObjectWriter"
        assert resolved.encryption.sse_algorithm == "aws:kms"
        assert resolved.encryption.bucket_key_enabled is True
        assert resolved.public_access_block.block_public_acls is True
        assert resolved.public_access_block.block_public_policy is False

    def test_idempotent(self) -> None:
        """Test that resolving twice changes nothing."""
        descriptor = create_descriptor_from_spec(
            {
                "name": "test-bucket",
                "inventory_rules": {"daily": {"destination": {"bucket_arn": "reports"}}},
            }
        )
        once = resolve_defaults(descriptor)

        assert resolve_defaults(once) == once


class TestVersioningDerivation:
    """Test versioning implied by other settings."""

    def test_object_lock_implies_versioning(self) -> None:
        """Test that object lock turns on unset versioning."""
        assert resolve_versioning(BucketDescriptor(name="b", enables_object_lock=True)) is True

    def test_replication_implies_versioning(self) -> None:
        """Test that replication turns on unset versioning."""
        descriptor = create_descriptor_from_spec({"name": "b", "replication": {"role": "r"}})
        assert resolve_versioning(descriptor) is True

    def test_explicit_versioning_wins(self) -> None:
        """Test that an explicit value is kept."""
        assert resolve_versioning(BucketDescriptor(name="b", versioning_enabled=True)) is True
        assert resolve_versioning(BucketDescriptor(name="b")) is False


class TestReplicationFeatures:
    """Test replication feature defaults."""

    def test_unset_features(self) -> None:
        """Test that every feature defaults to disabled."""
        features = resolve_replication_features(None)

        assert features == ReplicationFeatures(
            metrics=False,
            replication_time_control=False,
            replica_modification_sync=False,
            delete_marker_replication=False,
        )

    def test_metrics_follow_time_control(self) -> None:
        """Test that unset metrics are enabled along with replication time control."""
        features = resolve_replication_features(ReplicationFeatures(replication_time_control=True))

        assert features.metrics is True

    def test_explicit_metrics_kept(self) -> None:
        """Test that explicit metrics are kept."""
        features = resolve_replication_features(ReplicationFeatures(metrics=True))

        assert features.metrics is True
        assert features.replication_time_control is False


class TestInventoryDefaults:
    """Test inventory rule defaults."""

    def test_inventory_rule_defaults(self) -> None:
        """Test format, frequency and version defaults."""
        descriptor = create_descriptor_from_spec(
            {"name": "b", "inventory_rules": {"daily": {"destination": {"bucket_arn": "reports"}}}}
        )
        rule = resolve_defaults(descriptor).inventory_rules["daily"]

        assert rule.destination.output_format == "CSV"
        assert rule.frequency == "Daily"
        assert rule.include_noncurrent_objects is True

    def test_notifications_eventbridge_default(self) -> None:
        """Test that EventBridge delivery defaults to off."""
        descriptor = create_descriptor_from_spec({"name": "b", "notifications": {"destinations": {}}})

        assert resolve_defaults(descriptor).notifications.eventbridge is False
