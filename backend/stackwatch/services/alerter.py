"""Alerter service - fans incident events out to webhook, Discord, Telegram, and email."""
import asyncio
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

import httpx

from ..config import settings as app_settings
from ..schemas.settings import AlertSettings
from .email_sender import email_sender_service, EmailConfig, EmailSenderService

logger = logging.getLogger(__name__)

ALERT_SOURCE = "stackwatch"
NOT_CONFIGURED = "not_configured"

CHANNELS = ("webhook", "discord", "telegram", "email")

EVENT_KINDS = ("incident_opened", "incident_closed", "test")


def _iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat() + "Z" if value.tzinfo is None else value.isoformat()


@dataclass
class AlertEvent:
    """Something worth telling an operator about."""
    event: str  # incident_opened, incident_closed, test
    summary: str
    monitor_id: Optional[int] = None
    monitor_name: Optional[str] = None
    target: Optional[str] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None

    def __post_init__(self):
        if self.event not in EVENT_KINDS:
            raise ValueError(f"Unknown alert event: {self.event}")

    def to_payload(self) -> Dict[str, Any]:
        """JSON body for the generic webhook, without unset fields."""
        payload = {
            "event": self.event,
            "monitorId": self.monitor_id,
            "monitorName": self.monitor_name,
            "target": self.target,
            "summary": self.summary,
            "startedAt": _iso(self.started_at),
            "endedAt": _iso(self.ended_at),
        }
        return {key: value for key, value in payload.items() if value is not None}


@dataclass
class ChannelResult:
    """Delivery result for one channel."""
    sent: bool
    status: Optional[int] = None
    error: Optional[str] = None


@dataclass
class DispatchResult:
    """Per-channel results of one dispatch."""
    webhook: ChannelResult
    discord: ChannelResult
    telegram: ChannelResult
    email: ChannelResult
    channels: Dict[str, ChannelResult] = field(init=False, repr=False)

    def __post_init__(self):
        self.channels = {
            "webhook": self.webhook,
            "discord": self.discord,
            "telegram": self.telegram,
            "email": self.email,
        }

    @property
    def any_sent(self) -> bool:
        return any(result.sent for result in self.channels.values())

    def to_dict(self) -> Dict[str, Any]:
        data = {name: asdict(result) for name, result in self.channels.items()}
        data["any_sent"] = self.any_sent
        return data


def _detail_lines(event: AlertEvent, sent_at: str) -> list:
    lines = [
        f"Summary: {event.summary}",
        f"Monitor: {event.monitor_name}" if event.monitor_name else "",
        f"Monitor ID: {event.monitor_id}" if event.monitor_id else "",
        f"Target: {event.target}" if event.target else "",
        f"Started: {_iso(event.started_at)}" if event.started_at else "",
        f"Ended: {_iso(event.ended_at)}" if event.ended_at else "",
        f"Sent: {sent_at}",
    ]
    return [line for line in lines if line]


class AlerterService:
    """Service for dispatching alert events to every configured channel."""

    def __init__(
        self,
        email_sender: Optional[EmailSenderService] = None,
        http_timeout: float = 10,
        telegram_api_base: str = "https://api.telegram.org",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.email_sender = email_sender or email_sender_service
        self.http_timeout = http_timeout
        self.telegram_api_base = telegram_api_base.rstrip("/")
        # Injected in tests; None means real network I/O
        self._transport = transport

    def _build_discord_content(self, event: AlertEvent) -> str:
        lines = [
            f"**StackWatch {event.event}**",
            event.summary,
            f"Monitor: {event.monitor_name}" if event.monitor_name else "",
            f"Target: {event.target}" if event.target else "",
        ]
        return "\n".join(line for line in lines if line)

    def _build_telegram_text(self, event: AlertEvent, sent_at: str) -> str:
        return "\n".join([f"StackWatch alert: {event.event}"] + _detail_lines(event, sent_at))

    def _build_email_subject(self, event: AlertEvent) -> str:
        return f"[StackWatch] {event.event}: {event.summary}"

    def _build_email_body(self, event: AlertEvent, sent_at: str) -> str:
        lines = [f"Event: {event.event}"] + _detail_lines(event, sent_at)
        lines.append("")
        lines.append("--")
        lines.append("StackWatch Monitoring System")
        return "\n".join(lines)

    async def _post_json(self, url: str, body: Dict[str, Any]) -> ChannelResult:
        """POST a JSON body; sent means a 2xx response."""
        try:
            async with httpx.AsyncClient(timeout=self.http_timeout, transport=self._transport) as client:
                response = await client.post(url, json=body)
        except Exception as e:
            logger.error(f"Failed to POST alert: {type(e).__name__}: {e}")
            return ChannelResult(sent=False, error=str(e) or type(e).__name__)

        if response.is_success:
            return ChannelResult(sent=True, status=response.status_code)

        logger.warning(f"Alert endpoint returned {response.status_code}")
        return ChannelResult(sent=False, status=response.status_code, error=f"HTTP {response.status_code}")

    async def _send_webhook(self, settings: AlertSettings, event: AlertEvent, sent_at: str) -> ChannelResult:
        if not settings.webhook_configured:
            return ChannelResult(sent=False, error=NOT_CONFIGURED)

        payload = event.to_payload()
        payload["sentAt"] = sent_at
        payload["source"] = ALERT_SOURCE
        return await self._post_json(settings.webhook_url, payload)

    async def _send_discord(self, settings: AlertSettings, event: AlertEvent, sent_at: str) -> ChannelResult:
        if not settings.discord_configured:
            return ChannelResult(sent=False, error=NOT_CONFIGURED)

        return await self._post_json(settings.discord_webhook_url, {"content": self._build_discord_content(event)})

    async def _send_telegram(self, settings: AlertSettings, event: AlertEvent, sent_at: str) -> ChannelResult:
        if not settings.telegram_configured:
            return ChannelResult(sent=False, error=NOT_CONFIGURED)

        url = f"{self.telegram_api_base}/bot{settings.telegram_bot_token}/sendMessage"
        return await self._post_json(url, {
            "chat_id": settings.telegram_chat_id,
            "text": self._build_telegram_text(event, sent_at),
        })

    async def _send_email(self, settings: AlertSettings, event: AlertEvent, sent_at: str) -> ChannelResult:
        if not settings.email_configured:
            return ChannelResult(sent=False, error=NOT_CONFIGURED)

        config = EmailConfig(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_user,
            password=settings.smtp_pass,
            secure=settings.smtp_secure,
            from_address=settings.smtp_from,
            to_address=settings.smtp_to,
        )
        result = await self.email_sender.send_email(
            config,
            self._build_email_subject(event),
            self._build_email_body(event, sent_at),
        )
        return ChannelResult(sent=result.sent, error=result.error)

    async def dispatch(self, event: AlertEvent, settings: AlertSettings) -> DispatchResult:
        """Attempt every channel concurrently and collect their results.

        No channel can block or fail another; a failure is only reported.
        """
        sent_at = _iso(datetime.utcnow())
        senders = (self._send_webhook, self._send_discord, self._send_telegram, self._send_email)

        outcomes = await asyncio.gather(
            *[sender(settings, event, sent_at) for sender in senders],
            return_exceptions=True,
        )

        results = {}
        for name, outcome in zip(CHANNELS, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Alert channel {name} raised: {type(outcome).__name__}: {outcome}")
                outcome = ChannelResult(sent=False, error=str(outcome) or type(outcome).__name__)
            results[name] = outcome

        result = DispatchResult(**results)
        sent_to = [name for name, r in result.channels.items() if r.sent]
        if sent_to:
            logger.info(f"Alert {event.event} sent via {', '.join(sent_to)}: {event.summary}")
        else:
            logger.warning(f"Alert {event.event} was not delivered on any channel: {event.summary}")
        return result

    async def send_alert(self, storage, event: AlertEvent) -> DispatchResult:
        """Load current settings, dispatch, and log each channel's result."""
        settings = await storage.get_alert_settings()
        result = await self.dispatch(event, settings)

        for name, channel in result.channels.items():
            if channel.error == NOT_CONFIGURED:
                continue
            await storage.record_alert(
                event=event.event,
                channel=name,
                sent=channel.sent,
                status=channel.status,
                error=channel.error,
                monitor_id=event.monitor_id,
            )
        await storage.commit()
        return result


# Global instance
alerter_service = AlerterService(
    http_timeout=app_settings.alert_http_timeout_seconds,
    telegram_api_base=app_settings.telegram_api_base,
)
