"""Compiler options."""

from __future__ import annotations

from dataclasses import dataclass

from .constants import MAX_OBJECT_KEY_LENGTH


@dataclass(frozen=True)
class CompilerOptions:
    """Options controlling a compilation.

    Attributes:
        warnings_as_errors: Reject descriptors that only produce warnings
        max_object_key_length: Longest object key the storage service accepts,
            used to detect notification filters no key can match
    """

    warnings_as_errors: bool = False
    max_object_key_length: int = MAX_OBJECT_KEY_LENGTH
