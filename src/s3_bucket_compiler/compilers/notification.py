"""Notification compiler."""

from __future__ import annotations

from ..bundle import CompiledDestination, CompiledNotifications, CompiledSubscription
from ..constants import (
    MAX_DESTINATIONS_PER_KIND,
    MAX_OBJECT_KEY_LENGTH,
    NOTIFICATION_EVENTS,
    SECTION_NOTIFICATION_DESTINATIONS,
)
from ..diagnostics import Diagnostics, DiagnosticScope, ViolationCode
from ..models import BucketDescriptor, EventSubscription
from ..utils.addresses import classify_destination


def compile_notifications(
    descriptor: BucketDescriptor,
    diagnostics: Diagnostics,
    max_key_length: int = MAX_OBJECT_KEY_LENGTH,
) -> CompiledNotifications | None:
    """Compile the destination to subscription map.

    Destinations are classified once and partitioned by kind. At most one
    queue and one topic destination are allowed; function destinations are
    unbounded. Destination and subscription order are preserved.

    Args:
        descriptor: Validated, defaulted descriptor
        diagnostics: Violation sink
        max_key_length: Longest possible object key, for filter reachability

    Returns:
        Compiled notifications, or None when the descriptor has none
    """
    notifications = descriptor.notifications
    if notifications is None:
        return None

    kinds = {address: classify_destination(address) for address in notifications.destinations}

    partitions: dict[str, list[str]] = {}
    for address, kind in kinds.items():
        if kind is not None:
            partitions.setdefault(kind, []).append(address)

    for kind, limit in MAX_DESTINATIONS_PER_KIND.items():
        addresses = partitions.get(kind, [])
        if len(addresses) > limit:
            diagnostics.scope(SECTION_NOTIFICATION_DESTINATIONS, addresses[0]).error(
                "",
                ViolationCode.OUT_OF_RANGE,
                f"at most {limit} {kind} destination(s) allowed, got {len(addresses)}: " + ", ".join(addresses),
            )

    destinations = []
    for address, subscriptions in notifications.destinations.items():
        kind = kinds[address]
        if kind is None:
            # Reported by validate_notifications
            continue
        scope = diagnostics.scope(SECTION_NOTIFICATION_DESTINATIONS, address)
        if not subscriptions:
            scope.error("", ViolationCode.REQUIRES_FIELD, "destination requires at least one subscription")
        compiled = tuple(
            _compile_subscription(subscription, scope, str(index), max_key_length)
            for index, subscription in enumerate(subscriptions)
        )
        destinations.append(CompiledDestination(address=address, kind=kind, subscriptions=compiled))

    return CompiledNotifications(destinations=tuple(destinations), eventbridge=bool(notifications.eventbridge))


def _compile_subscription(
    subscription: EventSubscription,
    scope: DiagnosticScope,
    field: str,
    max_key_length: int,
) -> CompiledSubscription:
    if scope.require(subscription.events, f"{field}.events", "subscription requires at least one event type"):
        for event in subscription.events:
            scope.one_of(event, NOTIFICATION_EVENTS, f"{field}.events")

    prefix = subscription.filter_prefix or ""
    suffix = subscription.filter_suffix or ""
    if len(prefix) + len(suffix) > max_key_length:
        scope.warning(
            field,
            ViolationCode.OUT_OF_RANGE,
            f"filter_prefix and filter_suffix together exceed {max_key_length} characters; "
            "no object key can match this subscription",
        )

    return CompiledSubscription(
        events=tuple(dict.fromkeys(subscription.events)),
        filter_prefix=subscription.filter_prefix,
        filter_suffix=subscription.filter_suffix,
    )
