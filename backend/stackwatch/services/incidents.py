"""Incident lifecycle - opens and closes outage records on health transitions."""
import logging
from datetime import datetime
from typing import Optional

from ..models import Incident, Monitor
from .alerter import AlertEvent, AlerterService, alerter_service

logger = logging.getLogger(__name__)


class IncidentManager:
    """Keeps at most one open incident per monitor and alerts on open/close.

    Both operations are idempotent: opening when an incident is already
    open, or closing when none is, does nothing and sends no alert. The
    incident row is committed before the alert goes out so a slow or
    failing channel can never lose the record.
    """

    def __init__(self, alerter: Optional[AlerterService] = None):
        self.alerter = alerter or alerter_service

    async def open_if_needed(self, storage, monitor: Monitor) -> Optional[Incident]:
        """Open an incident for monitor unless one is already open.

        Returns the new incident, or None if nothing changed.
        """
        if await storage.find_open_incident(monitor.id) is not None:
            logger.debug(f"Monitor {monitor.name} already has an open incident")
            return None

        summary = f"{monitor.name} is DOWN"
        incident = await storage.insert_incident(monitor.id, datetime.utcnow(), summary)
        await storage.commit()
        logger.info(f"Incident {incident.id} opened: {summary}")

        await self.alerter.send_alert(storage, AlertEvent(
            event="incident_opened",
            monitor_id=monitor.id,
            monitor_name=monitor.name,
            target=monitor.target,
            summary=summary,
            started_at=incident.started_at,
        ))
        return incident

    async def close_if_needed(self, storage, monitor: Monitor) -> Optional[Incident]:
        """Close the monitor's open incident, if there is one."""
        incident = await storage.find_open_incident(monitor.id)
        if incident is None:
            return None

        ended_at = datetime.utcnow()
        started_at = incident.started_at
        await storage.close_incident(incident.id, ended_at)
        await storage.commit()
        logger.info(f"Incident {incident.id} closed: {monitor.name} recovered")

        await self.alerter.send_alert(storage, AlertEvent(
            event="incident_closed",
            monitor_id=monitor.id,
            monitor_name=monitor.name,
            target=monitor.target,
            summary=f"{monitor.name} recovered",
            started_at=started_at,
            ended_at=ended_at,
        ))
        return incident


# Global instance
incident_manager = IncidentManager()
