"""Address helpers shared by validators and compilers."""

from __future__ import annotations

from ..constants import DESTINATION_MARKERS, S3_ARN_PREFIX


def classify_destination(address: str) -> str | None:
    """Classify a notification destination by the shape of its address.

    Args:
        address: Destination ARN (function, queue or topic)

    Returns:
        "function", "queue" or "topic", or None if the address matches none of them
    """
    for marker, kind in DESTINATION_MARKERS:
        if marker in address:
            return kind
    return None


def bucket_arn(bucket: str) -> str:
    """Normalize a bucket name or ARN to ARN form."""
    if bucket.startswith("arn:"):
        return bucket
    return f"{S3_ARN_PREFIX}{bucket}"
