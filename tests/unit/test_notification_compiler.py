"""Unit tests for the notification compiler."""

from __future__ import annotations

from typing import Any

from s3_bucket_compiler.builders.descriptor import create_descriptor_from_spec
from s3_bucket_compiler.bundle import CompiledNotifications
from s3_bucket_compiler.compilers.notification import compile_notifications
from s3_bucket_compiler.diagnostics import Diagnostics, Severity, ViolationCode
from s3_bucket_compiler.utils.addresses import classify_destination

QUEUE_A = "arn:aws:sqs:us-east-1:123456789012:queue-a"
QUEUE_B = "arn:aws:sqs:us-east-1:123456789012:queue-b"
TOPIC = "arn:aws:sns:us-east-1:123456789012:topic"
CREATED = {"events": ["s3:ObjectCreated:*"]}


def function(index: int) -> str:
    return f"arn:aws:lambda:us-east-1:123456789012:function:handler-{index}"


def compile_destinations(
    destinations: dict[str, Any],
    max_key_length: int = 1024,
) -> tuple[CompiledNotifications, Diagnostics]:
    descriptor = create_descriptor_from_spec(
        {"name": "test-bucket", "notifications": {"destinations": destinations}}
    )
    diagnostics = Diagnostics()
    return compile_notifications(descriptor, diagnostics, max_key_length), diagnostics


class TestClassification:
    """Test destination classification by address."""

    def test_classify(self) -> None:
        """Test each destination kind."""
        assert classify_destination(QUEUE_A) == "queue"
        assert classify_destination(TOPIC) == "topic"
        assert classify_destination(function(1)) == "function"
        assert classify_destination("https://example.com") is None


class TestDestinationArity:
    """Test per-kind destination limits."""

    def test_two_queues(self) -> None:
        """Test that two queue destinations yield exactly one violation."""
        _, diagnostics = compile_destinations({QUEUE_A: CREATED, QUEUE_B: CREATED})

        violations = diagnostics.sorted()
        assert len(violations) == 1
        assert violations[0].code is ViolationCode.OUT_OF_RANGE
        assert QUEUE_A in violations[0].message
        assert QUEUE_B in violations[0].message

    def test_many_functions(self) -> None:
        """Test that function destinations are unbounded."""
        notifications, diagnostics = compile_destinations({function(i): CREATED for i in range(5)})

        assert len(diagnostics) == 0
        assert len(notifications.by_kind("function")) == 5

    def test_one_of_each(self) -> None:
        """Test that one queue, one topic and a function are accepted together."""
        notifications, diagnostics = compile_destinations(
            {QUEUE_A: CREATED, TOPIC: CREATED, function(1): CREATED}
        )

        assert len(diagnostics) == 0
        assert [destination.kind for destination in notifications.destinations] == ["queue", "topic", "function"]


class TestSubscriptions:
    """Test subscription compilation."""

    def test_subscription_order_preserved(self) -> None:
        """Test that subscriptions keep their order and events are de-duplicated."""
        notifications, diagnostics = compile_destinations(
            {
                QUEUE_A: [
                    {"events": ["s3:ObjectRemoved:*", "s3:ObjectCreated:*", "s3:ObjectRemoved:*"]},
                    {"events": ["s3:ObjectRestore:*"], "filter_prefix": "archive/"},
                ]
            }
        )

        assert len(diagnostics) == 0
        subscriptions = notifications.destinations[0].subscriptions
        assert subscriptions[0].events == ("s3:ObjectRemoved:*", "s3:ObjectCreated:*")
        assert subscriptions[1].filter_prefix == "archive/"

    def test_unknown_event(self) -> None:
        """Test that unknown event types are reported."""
        _, diagnostics = compile_destinations({TOPIC: {"events": ["s3:ObjectTouched"]}})

        assert [(v.path, v.code) for v in diagnostics.sorted()] == [
            (f"notifications.destinations.{TOPIC}.0.events", ViolationCode.INVALID_ENUM_VALUE)
        ]

    def test_missing_events(self) -> None:
        """Test that a subscription needs events."""
        _, diagnostics = compile_destinations({TOPIC: {"filter_suffix": ".jpg"}})

        assert [(v.path, v.code) for v in diagnostics.sorted()] == [
            (f"notifications.destinations.{TOPIC}.0.events", ViolationCode.REQUIRES_FIELD)
        ]

    def test_empty_subscription_list(self) -> None:
        """Test that a destination needs at least one subscription."""
        _, diagnostics = compile_destinations({TOPIC: []})

        assert [(v.path, v.code) for v in diagnostics.sorted()] == [
            (f"notifications.destinations.{TOPIC}", ViolationCode.REQUIRES_FIELD)
        ]

    def test_unreachable_filter_warns(self) -> None:
        """Test that filters longer than any key only warn."""
        _, diagnostics = compile_destinations(
            {TOPIC: {"events": ["s3:ObjectCreated:*"], "filter_prefix": "a" * 8, "filter_suffix": "b" * 8}},
            max_key_length=10,
        )

        violations = diagnostics.sorted()
        assert len(violations) == 1
        assert violations[0].severity is Severity.WARNING
        assert violations[0].code is ViolationCode.OUT_OF_RANGE

    def test_unclassified_destination_skipped(self) -> None:
        """Test that unclassified destinations are left to the validators."""
        notifications, diagnostics = compile_destinations({"https://example.com": CREATED})

        assert len(diagnostics) == 0
        assert notifications.destinations == ()
