"""Unit tests for the replication compiler."""

from __future__ import annotations

from typing import Any

from s3_bucket_compiler.builders.descriptor import create_descriptor_from_spec
from s3_bucket_compiler.bundle import CompiledReplication
from s3_bucket_compiler.compilers.replication import compile_replication
from s3_bucket_compiler.defaults import resolve_defaults
from s3_bucket_compiler.diagnostics import Diagnostics, ViolationCode

ROLE = "arn:aws:iam::123456789012:role/replication"


def compile_rules(rules: dict[str, Any]) -> tuple[CompiledReplication, Diagnostics]:
    descriptor = create_descriptor_from_spec(
        {"name": "test-bucket", "replication": {"role": ROLE, "rules": rules}}
    )
    diagnostics = Diagnostics()
    return compile_replication(resolve_defaults(descriptor), diagnostics), diagnostics


class TestPriorities:
    """Test priority uniqueness and ordering."""

    def test_rules_ordered_by_priority(self) -> None:
        """Test that the highest priority comes first."""
        replication, diagnostics = compile_rules(
            {
                "low": {"destination_bucket": "backup", "priority": 1},
                "high": {"destination_bucket": "backup", "priority": 10},
            }
        )

        assert len(diagnostics) == 0
        assert [rule.name for rule in replication.rules] == ["high", "low"]

    def test_duplicate_priority(self) -> None:
        """Test that a shared priority yields exactly one violation naming both rules."""
        _, diagnostics = compile_rules(
            {
                "a": {"destination_bucket": "backup", "priority": 1},
                "b": {"destination_bucket": "backup", "priority": 1},
            }
        )

        violations = diagnostics.sorted()
        assert len(violations) == 1
        assert violations[0].code is ViolationCode.DUPLICATE_KEY
        assert violations[0].path == "replication.rules.a.priority"
        assert "'a'" in violations[0].message
        assert "'b'" in violations[0].message

    def test_one_violation_per_shared_priority(self) -> None:
        """Test that each shared priority value is reported once."""
        _, diagnostics = compile_rules(
            {
                "a": {"destination_bucket": "backup", "priority": 1},
                "b": {"destination_bucket": "backup", "priority": 1},
                "c": {"destination_bucket": "backup", "priority": 1},
                "d": {"destination_bucket": "backup", "priority": 2},
                "e": {"destination_bucket": "backup", "priority": 2},
            }
        )

        assert [violation.path for violation in diagnostics.sorted()] == [
            "replication.rules.a.priority",
            "replication.rules.d.priority",
        ]


class TestRuleCompilation:
    """Test per-rule compilation."""

    def test_same_account_rule(self) -> None:
        """Test a plain rule."""
        replication, _ = compile_rules({"all": {"destination_bucket": "backup", "priority": 1}})

        rule = replication.rules[0]
        assert replication.role == ROLE
        assert rule.destination_bucket == "arn:aws:s3:::backup"
        assert rule.account_scope == "same-account"
        assert rule.requires_destination_grant is False
        assert rule.metrics is False
        assert rule.delete_marker_replication is False
        assert rule.filter.is_empty

    def test_destination_arn_kept(self) -> None:
        """Test that a destination given as an ARN is kept as is."""
        replication, _ = compile_rules({"all": {"destination_bucket": "arn:aws:s3:::backup", "priority": 1}})

        assert replication.rules[0].destination_bucket == "arn:aws:s3:::backup"

    def test_cross_account_rule(self) -> None:
        """Test that ownership transfer makes the rule cross-account."""
        replication, _ = compile_rules(
            {
                "all": {
                    "destination_bucket": "backup",
                    "priority": 1,
                    "change_object_ownership_to_destination_bucket_owner": {
                        "destination_account_id": " 210987654321 ",
                    },
                }
            }
        )

        rule = replication.rules[0]
        assert rule.account_scope == "cross-account"
        assert rule.requires_destination_grant is True
        assert rule.destination_account_id == "210987654321"

    def test_time_control_enables_metrics(self) -> None:
        """Test that replication time control turns on unset metrics."""
        replication, _ = compile_rules(
            {"all": {"destination_bucket": "backup", "priority": 1, "features": {"replication_time_control": True}}}
        )

        rule = replication.rules[0]
        assert rule.replication_time_control is True
        assert rule.metrics is True

    def test_size_filter_not_supported(self) -> None:
        """Test that size bounds are rejected for replication filters."""
        _, diagnostics = compile_rules(
            {
                "all": {
                    "destination_bucket": "backup",
                    "priority": 1,
                    "filter": {"object_size_greater_than": 10},
                }
            }
        )

        assert [(v.path, v.code) for v in diagnostics.sorted()] == [
            ("replication.rules.all.filter", ViolationCode.OUT_OF_RANGE)
        ]

    def test_no_replication(self) -> None:
        """Test that a descriptor without replication compiles to None."""
        descriptor = resolve_defaults(create_descriptor_from_spec({"name": "test-bucket"}))

        assert compile_replication(descriptor, Diagnostics()) is None
