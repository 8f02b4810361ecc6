"""AWS S3 control-plane request rendering."""

from .requests import (
    ControlPlaneRequest,
    render_filter,
    render_requests,
    validate_request,
    validate_requests,
)

__all__ = [
    "ControlPlaneRequest",
    "render_filter",
    "render_requests",
    "validate_request",
    "validate_requests",
]
