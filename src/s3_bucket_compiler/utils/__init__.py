"""Utility functions for the S3 Bucket Compiler."""

from .addresses import bucket_arn, classify_destination
from .errors import (
    CompilationRejected,
    DescriptorError,
    sanitize_error_message,
    sanitize_exception,
)

__all__ = [
    "classify_destination",
    "bucket_arn",
    "DescriptorError",
    "CompilationRejected",
    "sanitize_error_message",
    "sanitize_exception",
]
