"""Response schemas for the internal trigger API."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class CycleResponse(BaseModel):
    """Outcome of one check cycle invocation."""
    ok: bool = True
    checked: int
    total_enabled: int
    busy: bool = False  # another cycle was already running; nothing was done
    at: datetime


class ChannelStatus(BaseModel):
    """Delivery result for one alert channel."""
    sent: bool
    status: Optional[int] = None
    error: Optional[str] = None


class AlertTestResponse(BaseModel):
    """Per-channel results of a test alert."""
    ok: bool = True
    webhook: ChannelStatus
    discord: ChannelStatus
    telegram: ChannelStatus
    email: ChannelStatus
    any_sent: bool
