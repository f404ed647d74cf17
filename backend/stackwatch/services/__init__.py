"""Services for probing, health tracking, incidents, alerting, and scheduling."""
from .checker import CheckerService, CheckOutcome, MonitorType
from .health import HealthState, Thresholds, evaluate
from .alerter import AlerterService, AlertEvent
from .incidents import IncidentManager
from .orchestrator import CheckOrchestrator
from .rate_limiter import RateLimiter
from .scheduler import SchedulerService

__all__ = [
    "CheckerService",
    "CheckOutcome",
    "MonitorType",
    "HealthState",
    "Thresholds",
    "evaluate",
    "AlerterService",
    "AlertEvent",
    "IncidentManager",
    "CheckOrchestrator",
    "RateLimiter",
    "SchedulerService",
]
