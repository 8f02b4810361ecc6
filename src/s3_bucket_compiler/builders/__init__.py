"""Builders for bucket descriptors."""

from .descriptor import create_descriptor_from_spec

__all__ = ["create_descriptor_from_spec"]
