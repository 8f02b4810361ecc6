"""Unit tests for the compiler pipeline."""

from __future__ import annotations

import copy

import pytest

from s3_bucket_compiler import (
    CompilationRejected,
    CompileResult,
    CompilerOptions,
    PipelineState,
    ViolationCode,
    compile_bucket,
    compile_bucket_spec,
    create_descriptor_from_spec,
)
from s3_bucket_compiler.bundle import CompiledEncryption, CompiledPublicAccessBlock, ConfigurationBundle
from s3_bucket_compiler.diagnostics import Severity
from s3_bucket_compiler.pipeline import BucketCompiler

ROLE = "arn:aws:iam::123456789012:role/replication"


def function(index: int) -> str:
    return f"arn:aws:lambda:us-east-1:123456789012:function:handler-{index}"


class TestBundledResults:
    """Test descriptors that compile."""

    def test_all_defaults(self) -> None:
        """Test the bundle for a bare descriptor."""
        result = compile_bucket_spec({"name": "test-bucket"})

        assert result.ok
        assert result.state is PipelineState.BUNDLED
        assert result.violations == ()
        assert result.bundle == ConfigurationBundle(
            bucket_name="test-bucket",
            owner_account_id=None,
            tags=(),
            versioning_enabled=False,
            object_lock=None,
            encryption=CompiledEncryption(sse_algorithm="AES256", kms_master_key_id=None, bucket_key_enabled=False),
            public_access_block=CompiledPublicAccessBlock(
                block_public_acls=False,
                block_public_policy=False,
                ignore_public_acls=False,
                restrict_public_buckets=False,
            ),
            object_ownership="BucketOwnerEnforced",
            requester_pays=False,
            transfer_acceleration=False,
            policy=None,
            cors_rules=(),
            website=None,
            lifecycle_rules={},
            replication=None,
            notifications=None,
            inventory_rules={},
            intelligent_tiering_rules={},
        )

    def test_short_name_compiles(self) -> None:
        """Test that a name outside the naming rules only warns."""
        result = compile_bucket_spec({"name": "b"})

        assert result.ok
        assert result.bundle.bucket_name == "b"
        assert [(v.path, v.severity) for v in result.violations] == [("name", Severity.WARNING)]

    def test_state_history(self) -> None:
        """Test the states visited on success."""
        result = compile_bucket_spec({"name": "test-bucket"})

        assert result.states == (
            PipelineState.RECEIVED,
            PipelineState.VALIDATING,
            PipelineState.DEFAULTING,
            PipelineState.COMPILING,
            PipelineState.BUNDLED,
        )

    def test_transitions_reordered(self) -> None:
        """Test that lifecycle transitions come out ascending."""
        result = compile_bucket_spec(
            {
                "name": "b",
                "versioning_enabled": True,
                "lifecycle_rules": {"r": {"transitions": [(90, "GLACIER"), (30, "STANDARD_IA")]}},
            }
        )

        assert result.ok
        transitions = result.bundle.lifecycle_rules["r"].transitions
        assert [(t.days, t.storage_class) for t in transitions] == [(30, "STANDARD_IA"), (90, "GLACIER")]
        assert result.errors == ()

    def test_object_lock_implies_versioning(self) -> None:
        """Test that object lock with unset versioning compiles with versioning on."""
        result = compile_bucket_spec(
            {
                "name": "test-bucket",
                "enables_object_lock": True,
                "object_lock": {"default_retention": {"retention_mode": "GOVERNANCE", "retention_days": 30}},
            }
        )

        assert result.ok
        assert result.bundle.versioning_enabled is True
        assert result.bundle.object_lock.retention_mode == "GOVERNANCE"
        assert result.bundle.object_lock.retention_days == 30

    def test_five_function_destinations(self) -> None:
        """Test that many function destinations are accepted."""
        destinations = {function(i): {"events": ["s3:ObjectCreated:*"]} for i in range(5)}
        result = compile_bucket_spec({"name": "test-bucket", "notifications": {"destinations": destinations}})

        assert result.ok
        assert result.violations == ()
        assert len(result.bundle.notifications.destinations) == 5

    def test_cors_methods_normalized(self) -> None:
        """Test that CORS methods are uppercased and de-duplicated."""
        result = compile_bucket_spec(
            {
                "name": "test-bucket",
                "cors_rules": [{"allowed_methods": ["get", "GET", "put"], "allowed_origins": ["*"]}],
            }
        )

        assert result.bundle.cors_rules[0].allowed_methods == ("GET", "PUT")

    def test_static_website(self) -> None:
        """Test the website variant tag."""
        result = compile_bucket_spec(
            {"name": "test-bucket", "website": {"static_website": {"index_document": "index.html"}}}
        )

        assert result.bundle.website.kind == "static"
        assert result.bundle.website.index_document == "index.html"

    def test_warnings_do_not_reject(self) -> None:
        """Test that warnings are carried on a bundled result."""
        result = compile_bucket_spec(
            {
                "name": "test-bucket",
                "lifecycle_rules": {"old": {"noncurrent_version_expiration": {"days": 30}}},
            }
        )

        assert result.ok
        assert len(result.warnings) == 1
        assert result.errors == ()

    def test_warnings_as_errors(self) -> None:
        """Test that warnings reject when configured to."""
        result = compile_bucket_spec(
            {
                "name": "test-bucket",
                "lifecycle_rules": {"old": {"noncurrent_version_expiration": {"days": 30}}},
            },
            CompilerOptions(warnings_as_errors=True),
        )

        assert result.state is PipelineState.REJECTED
        assert result.bundle is None


class TestDeterminism:
    """Test that compilation is repeatable."""

    SPEC = {
        "name": "test-bucket",
        "tags": {"b": "2", "a": "1"},
        "replication": {
            "role": ROLE,
            "rules": {
                "one": {"destination_bucket": "backup", "priority": 2},
                "two": {"destination_bucket": "backup", "priority": 5},
            },
        },
        "lifecycle_rules": {"r": {"expiration": {"days_after_object_creation": 30}}},
    }

    def test_idempotent(self) -> None:
        """Test that the same descriptor compiles to the same bundle."""
        descriptor = create_descriptor_from_spec(self.SPEC)

        first = compile_bucket(descriptor)
        second = compile_bucket(descriptor)

        assert first.ok
        assert first.bundle == second.bundle
        assert first.bundle.to_dict() == second.bundle.to_dict()
        assert first.bundle.tags == (("a", "1"), ("b", "2"))

    def test_violations_deterministic(self) -> None:
        """Test that violations come out in the same order every time."""
        spec = {"name": "AB", "object_ownership": "Everyone", "website": {}, "tags": {"k": "v" * 300}}

        first = compile_bucket_spec(spec).violation_report()
        second = compile_bucket_spec(spec).violation_report()

        assert first == second
        assert [violation["path"] for violation in first] == [
            "name",
            "object_ownership",
            "tags.k",
            "website",
        ]


    def test_descriptor_not_modified(self) -> None:
        """Test that compiling leaves the descriptor and its nested rules untouched."""
        descriptor = create_descriptor_from_spec(
            {
                **self.SPEC,
                "inventory_rules": {"daily": {"destination": {"bucket_arn": "reports"}}},
                "notifications": {
                    "destinations": {"arn:aws:sqs:us-east-1:123456789012:q": {"events": ["s3:ObjectCreated:*"]}},
                },
            }
        )
        snapshot = copy.deepcopy(descriptor)

        result = compile_bucket(descriptor)

        assert result.ok
        assert descriptor == snapshot
        assert descriptor.versioning_enabled is None
        assert descriptor.inventory_rules["daily"].frequency is None

    def test_bundle_rule_maps_read_only(self) -> None:
        """Test that the rule maps of a bundle cannot be changed."""
        bundle = compile_bucket_spec(self.SPEC).bundle

        with pytest.raises(TypeError):
            bundle.lifecycle_rules["extra"] = bundle.lifecycle_rules["r"]
        with pytest.raises(AttributeError):
            bundle.lifecycle_rules.clear()
        assert list(bundle.lifecycle_rules) == ["r"]
        assert bundle.to_dict()["lifecycle_rules"]["r"]["name"] == "r"


class TestShapeErrors:
    """Test input values of the wrong type."""

    def test_all_shape_errors_reported(self) -> None:
        """Test that every wrongly typed value is reported instead of raised."""
        result = compile_bucket_spec(
            {"name": "test-bucket", "versioning_enabled": "yes", "replication": {"role": 5, "rules": {}}}
        )

        assert result.state is PipelineState.REJECTED
        assert result.states == (PipelineState.RECEIVED, PipelineState.VALIDATING, PipelineState.REJECTED)
        assert [(v.path, v.code) for v in result.violations] == [
            ("replication.role", ViolationCode.OUT_OF_RANGE),
            ("replication.rules", ViolationCode.REQUIRES_FIELD),
            ("versioning_enabled", ViolationCode.OUT_OF_RANGE),
        ]
        assert "expected a string, got int" in result.violations[0].message

    def test_shape_errors_with_other_violations(self) -> None:
        """Test that shape errors are reported together with field violations."""
        result = compile_bucket_spec(
            {
                "name": "test-bucket",
                "object_ownership": "Everyone",
                "lifecycle_rules": {"r": {"transitions": [(30,)]}, "s": "daily"},
            }
        )

        assert [(v.path, v.code) for v in result.violations] == [
            ("lifecycle_rules.r.transitions.0", ViolationCode.OUT_OF_RANGE),
            ("lifecycle_rules.s", ViolationCode.OUT_OF_RANGE),
            ("object_ownership", ViolationCode.INVALID_ENUM_VALUE),
        ]

    def test_wrongly_typed_required_field_reported_once(self) -> None:
        """Test that a required value of the wrong type is not also reported as missing."""
        result = compile_bucket_spec({"name": 42})

        assert [(v.path, v.code) for v in result.violations] == [("name", ViolationCode.OUT_OF_RANGE)]

    def test_non_mapping_descriptor(self) -> None:
        """Test that a descriptor that is not a mapping is rejected, not raised."""
        result = compile_bucket_spec(["test-bucket"])

        assert result.state is PipelineState.REJECTED
        assert result.violations[0].message == "expected a mapping, got list"


class TestRejectedResults:
    """Test descriptors that are rejected."""

    def test_object_lock_without_versioning(self) -> None:
        """Test that object lock with versioning off is rejected at versioning."""
        result = compile_bucket_spec({"name": "test-bucket", "enables_object_lock": True, "versioning_enabled": False})

        assert result.state is PipelineState.REJECTED
        assert [(v.path, v.code) for v in result.violations] == [
            ("versioning_enabled", ViolationCode.REQUIRES_FIELD)
        ]
        assert result.states == (PipelineState.RECEIVED, PipelineState.VALIDATING, PipelineState.REJECTED)

    def test_website_both_variants(self) -> None:
        """Test that both website variants yield exactly one violation."""
        result = compile_bucket_spec(
            {
                "name": "test-bucket",
                "website": {
                    "redirect_requests_for_an_object": {"host_name": "example.com"},
                    "static_website": {"index_document": "index.html"},
                },
            }
        )

        assert [v.code for v in result.violations] == [ViolationCode.MUTUALLY_EXCLUSIVE]

    def test_website_both_variants_with_invalid_fields(self) -> None:
        """Test that nested problems are not reported when both variants are set."""
        result = compile_bucket_spec(
            {
                "name": "test-bucket",
                "website": {
                    "redirect_requests_for_an_object": {"protocol": "ftp"},
                    "static_website": {
                        "index_document": "pages/index.html",
                        "routing_rules": [{"replace_key_prefix_with": "a/", "replace_key_with": "b"}],
                    },
                },
            }
        )

        assert [(v.path, v.code) for v in result.violations] == [("website", ViolationCode.MUTUALLY_EXCLUSIVE)]

    def test_two_queues(self) -> None:
        """Test that two queue destinations yield exactly one violation."""
        result = compile_bucket_spec(
            {
                "name": "test-bucket",
                "notifications": {
                    "destinations": {
                        "arn:aws:sqs:us-east-1:123456789012:a": {"events": ["s3:ObjectCreated:*"]},
                        "arn:aws:sqs:us-east-1:123456789012:b": {"events": ["s3:ObjectCreated:*"]},
                    }
                },
            }
        )

        assert result.state is PipelineState.REJECTED
        assert len(result.violations) == 1
        assert result.states[-2:] == (PipelineState.COMPILING, PipelineState.REJECTED)

    def test_duplicate_priority(self) -> None:
        """Test that a shared replication priority yields one violation naming both rules."""
        result = compile_bucket_spec(
            {
                "name": "test-bucket",
                "replication": {
                    "role": ROLE,
                    "rules": {
                        "first": {"destination_bucket": "backup", "priority": 1},
                        "second": {"destination_bucket": "backup", "priority": 1},
                    },
                },
            }
        )

        assert result.state is PipelineState.REJECTED
        assert len(result.violations) == 1
        violation = result.violations[0]
        assert violation.code is ViolationCode.DUPLICATE_KEY
        assert "'first'" in violation.message
        assert "'second'" in violation.message

    def test_raise_for_violations(self) -> None:
        """Test the exception form of a rejected result."""
        result = compile_bucket_spec({"name": "test-bucket", "object_ownership": "Everyone"})

        with pytest.raises(CompilationRejected) as exc_info:
            result.raise_for_violations()
        assert exc_info.value.bucket_name == "test-bucket"
        assert "INVALID_ENUM_VALUE" in str(exc_info.value)

    def test_raise_for_violations_returns_bundle(self) -> None:
        """Test that a bundled result returns its bundle."""
        result = compile_bucket_spec({"name": "test-bucket"})

        assert result.raise_for_violations() is result.bundle


class TestStateMachine:
    """Test pipeline state transitions."""

    def test_compiler_is_single_use(self) -> None:
        """Test that running a compiler twice is an illegal transition."""
        compiler = BucketCompiler(create_descriptor_from_spec({"name": "test-bucket"}))
        result = compiler.run()

        assert isinstance(result, CompileResult)
        with pytest.raises(RuntimeError, match="Illegal pipeline transition"):
            compiler.run()
