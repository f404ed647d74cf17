"""Database models."""
from .settings import AlertSettingsRow, SETTINGS_ROW_ID
from .monitor import Monitor
from .check_result import CheckResult
from .incident import Incident
from .host_stats import HostStats
from .alert_log import AlertLog

__all__ = ["AlertSettingsRow", "SETTINGS_ROW_ID", "Monitor", "CheckResult", "Incident", "HostStats", "AlertLog"]
