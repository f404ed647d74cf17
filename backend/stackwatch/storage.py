"""Storage gateway used by the check engine.

Wraps one AsyncSession and exposes the narrow set of reads and writes the
engine needs. Nothing here commits implicitly; callers decide when a unit
of work is complete via ``commit()``. Database errors propagate.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    AlertLog,
    AlertSettingsRow,
    CheckResult,
    HostStats,
    Incident,
    Monitor,
    SETTINGS_ROW_ID,
)
from .schemas.settings import AlertSettings

logger = logging.getLogger(__name__)


class Storage:
    """Persistence operations for monitors, results, incidents and settings."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_enabled_monitors(self) -> List[Monitor]:
        result = await self.session.execute(
            select(Monitor).where(Monitor.enabled.is_(True)).order_by(Monitor.id.asc())
        )
        return list(result.scalars().all())

    async def last_check_result_time(self, monitor_id: int) -> Optional[datetime]:
        result = await self.session.execute(
            select(func.max(CheckResult.checked_at)).where(CheckResult.monitor_id == monitor_id)
        )
        return result.scalar_one_or_none()

    async def insert_check_result(self, monitor_id: int, outcome) -> CheckResult:
        """Persist a probe outcome as a new check result row."""
        row = CheckResult(
            monitor_id=monitor_id,
            ok=outcome.ok,
            status_code=outcome.status_code,
            latency_ms=outcome.latency_ms,
            error=outcome.error,
            checked_at=outcome.checked_at,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def update_monitor_streaks(
        self,
        monitor_id: int,
        fail_streak: int,
        ok_streak: int,
        last_ok: Optional[bool],
        health_state: str,
    ):
        await self.session.execute(
            update(Monitor)
            .where(Monitor.id == monitor_id)
            .values(
                fail_streak=fail_streak,
                ok_streak=ok_streak,
                last_state_ok=last_ok,
                health_state=health_state,
            )
        )

    async def find_open_incident(self, monitor_id: int) -> Optional[Incident]:
        result = await self.session.execute(
            select(Incident)
            .where(Incident.monitor_id == monitor_id, Incident.ended_at.is_(None))
            .order_by(Incident.started_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def insert_incident(self, monitor_id: int, started_at: datetime, summary: str) -> Incident:
        incident = Incident(monitor_id=monitor_id, started_at=started_at, summary=summary)
        self.session.add(incident)
        await self.session.flush()
        return incident

    async def close_incident(self, incident_id: int, ended_at: datetime):
        await self.session.execute(
            update(Incident).where(Incident.id == incident_id).values(ended_at=ended_at)
        )

    async def insert_stats_snapshot(self, snapshot) -> HostStats:
        row = HostStats(
            cpu_percent=snapshot.cpu_percent,
            mem_used_mb=snapshot.mem_used_mb,
            mem_avail_mb=snapshot.mem_avail_mb,
            disk_used_percent=snapshot.disk_used_percent,
            load1=snapshot.load1,
            load5=snapshot.load5,
            load15=snapshot.load15,
            net_rx_bytes=snapshot.net_rx_bytes,
            net_tx_bytes=snapshot.net_tx_bytes,
            uptime_sec=snapshot.uptime_sec,
            checked_at=snapshot.checked_at,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_alert_settings(self) -> AlertSettings:
        """Load the settings singleton. A missing row means nothing is configured."""
        row = await self.session.get(AlertSettingsRow, SETTINGS_ROW_ID)
        if row is None:
            return AlertSettings()

        return AlertSettings(
            webhook_url=row.webhook_url or "",
            alert_email=row.alert_email or "",
            discord_webhook_url=row.discord_webhook_url or "",
            telegram_bot_token=row.telegram_bot_token or "",
            telegram_chat_id=row.telegram_chat_id or "",
            smtp_host=row.smtp_host or "",
            smtp_port=row.smtp_port or 587,
            smtp_secure=bool(row.smtp_secure),
            smtp_user=row.smtp_user or "",
            smtp_pass=row.smtp_pass or "",
            smtp_from=row.smtp_from or "",
            # Fall back to the legacy alert email when no SMTP recipient is set
            smtp_to=row.smtp_to or row.alert_email or "",
        )

    async def record_alert(
        self,
        event: str,
        channel: str,
        sent: bool,
        status: Optional[int] = None,
        error: Optional[str] = None,
        monitor_id: Optional[int] = None,
    ):
        self.session.add(AlertLog(
            monitor_id=monitor_id,
            event=event,
            channel=channel,
            sent=sent,
            status=status,
            error=error,
        ))

    async def purge_older_than(self, cutoff: datetime) -> int:
        """Delete check results and host stats recorded before cutoff."""
        results = await self.session.execute(
            delete(CheckResult).where(CheckResult.checked_at < cutoff)
        )
        stats = await self.session.execute(
            delete(HostStats).where(HostStats.checked_at < cutoff)
        )
        return (results.rowcount or 0) + (stats.rowcount or 0)

    async def commit(self):
        await self.session.commit()
