"""Exception types and message sanitization."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..diagnostics import Violation


# Patterns that might expose account or key material in logs
SENSITIVE_PATTERNS = [
    (r"arn:aws(?:-[a-z]+)*:kms:[a-z0-9\-]*:\d{12}:(?:key|alias)/[A-Za-z0-9\-_/]+", "arn:aws:kms:[REDACTED]"),
    (r"arn:aws(?:-[a-z]+)*:iam::\d{12}:role/[A-Za-z0-9+=,.@\-_/]+", "arn:aws:iam::[REDACTED]"),
    (r"(?<!\d)\d{12}(?!\d)", "[REDACTED]"),
]

# Fields to redact completely
SENSITIVE_FIELDS = {
    "token",
    "kms_master_key_id",
    "replica_kms_key_id",
    "kms_key_id",
}


class DescriptorError(ValueError):
    """Raised when raw input cannot be shaped into a descriptor."""

    def __init__(self, path: str, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path


class CompilationRejected(Exception):
    """Raised by callers that want an exception instead of a result object."""

    def __init__(self, bucket_name: str | None, violations: tuple[Violation, ...]):
        errors = [violation for violation in violations if violation.is_error]
        summary = "; ".join(f"{v.path}: {v.code.value}" for v in errors[:5])
        if len(errors) > 5:
            summary += f"; and {len(errors) - 5} more"
        super().__init__(f"Bucket {bucket_name or '<unnamed>'} rejected with {len(errors)} error(s): {summary}")
        self.bucket_name = bucket_name
        self.violations = violations


def sanitize_error_message(message: str) -> str:
    """Sanitize a message to remove account ids and key references.

    Args:
        message: Original message

    Returns:
        Sanitized message with sensitive data redacted
    """
    sanitized = message

    for pattern, replacement in SENSITIVE_PATTERNS:
        sanitized = re.sub(pattern, replacement, sanitized)

    for field in SENSITIVE_FIELDS:
        sanitized = re.sub(
            rf"\b{field}[=:\s]+([^\s,;\)]+)",
            rf"{field}: [REDACTED]",
            sanitized,
            flags=re.IGNORECASE,
        )

    return sanitized


def sanitize_exception(error: Exception) -> str:
    """Sanitize exception message.

    Args:
        error: Exception object

    Returns:
        Sanitized error message
    """
    return sanitize_error_message(f"{type(error).__name__}: {error}")
