"""Pydantic schemas for settings and API responses."""
from .settings import AlertSettings
from .status import (
    CycleResponse,
    ChannelStatus,
    AlertTestResponse,
)

__all__ = [
    "AlertSettings",
    "CycleResponse",
    "ChannelStatus",
    "AlertTestResponse",
]
