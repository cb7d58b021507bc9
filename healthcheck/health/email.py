"""Email escalation — composes incident emails and hands them to a transport."""

from __future__ import annotations

import abc
import asyncio
import smtplib
from collections.abc import Mapping, Sequence
from email.message import EmailMessage

import structlog

from healthcheck.core.config import EmailConfig
from healthcheck.core.logging import DECISION_LOGGER
from healthcheck.core.types import CheckResult, HealthState, TargetKind, worst
from healthcheck.health.exceptions import DeliveryError

decision_logger = structlog.get_logger(DECISION_LOGGER)

logger = structlog.get_logger(__name__)

SUBJECT_TAG = "[healthcheck]"

_HOST_SEVERITY_LABEL: dict[HealthState, str] = {
    HealthState.WARN: "Warning",
    HealthState.ALARM: "Alarm",
}


class MailTransport(abc.ABC):
    """Outbound mail delivery."""

    @abc.abstractmethod
    async def send(self, to: Sequence[str], subject: str, body: str) -> bool:
        """Deliver one message. Returns True on success."""

    async def close(self) -> None:
        """Release resources. No-op by default."""


class SmtpMailTransport(MailTransport):
    """Delivers mail over SMTP; the blocking client runs in a worker thread."""

    def __init__(self, config: EmailConfig) -> None:
        self._config = config

    def _build(self, to: Sequence[str], subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self._config.sender
        msg["To"] = ", ".join(to)
        msg["Subject"] = subject
        msg.set_content(body)
        return msg

    def _deliver(self, msg: EmailMessage) -> None:
        cfg = self._config
        with smtplib.SMTP(cfg.smtp_host, cfg.smtp_port, timeout=cfg.timeout_secs) as smtp:
            if cfg.use_tls:
                smtp.starttls()
            if cfg.username:
                smtp.login(cfg.username, cfg.password.get_secret_value())
            smtp.send_message(msg)

    async def send(self, to: Sequence[str], subject: str, body: str) -> bool:
        if not to:
            logger.warning("email_no_recipients", subject=subject)
            return False
        msg = self._build(to, subject, body)
        try:
            await asyncio.to_thread(self._deliver, msg)
        except (smtplib.SMTPException, OSError):
            logger.exception(
                "smtp_send_error",
                host=self._config.smtp_host,
                port=self._config.smtp_port,
            )
            return False
        return True


def build_subject(kind: TargetKind, target_id: str, state: HealthState) -> str:
    """Host subjects carry Warning/Alarm; provider subjects the raw state."""
    if kind == TargetKind.HOST:
        label = _HOST_SEVERITY_LABEL.get(state, state.value)
        return f"{SUBJECT_TAG} Host {label}"
    return f"{SUBJECT_TAG} Provider {target_id} {state.value}"


def build_body(
    kind: TargetKind,
    target_id: str,
    results: Mapping[str, CheckResult],
    streak: int,
    max_attempts: int,
) -> str:
    """List every currently non-ok metric with its field and value."""
    label = "Host" if kind == TargetKind.HOST else f"Provider {target_id}"
    lines = [
        f"{label} has failed {streak} consecutive checks"
        f" (threshold {max_attempts}).",
        "",
    ]
    for result in results.values():
        if result.state == HealthState.OK:
            continue
        lines.append(
            f"  {result.metric}.{result.field}: {result.value:g}"
            f" ({result.state.value})"
        )
    return "\n".join(lines)


class EmailEscalator:
    """Sends at most one email per incident, on escalation only.

    The caller decides *when* to escalate (see ``FailureDebouncer``); this
    class only composes the message and reports whether delivery worked so
    the caller can set the sent flag.
    """

    def __init__(
        self,
        transport: MailTransport,
        default_recipients: Sequence[str] = (),
    ) -> None:
        self._transport = transport
        self._default_recipients = tuple(default_recipients)

    @property
    def transport(self) -> MailTransport:
        return self._transport

    async def escalate(
        self,
        kind: TargetKind,
        target_id: str,
        results: Mapping[str, CheckResult],
        streak: int,
        max_attempts: int,
        recipients: Sequence[str] = (),
    ) -> None:
        """Compose and deliver the incident email.

        Raises:
            DeliveryError: the transport reported failure or raised.
        """
        to = tuple(recipients) or self._default_recipients
        state = worst(r.state for r in results.values())
        subject = build_subject(kind, target_id, state)
        body = build_body(kind, target_id, results, streak, max_attempts)

        try:
            delivered = await self._transport.send(to, subject, body)
        except Exception as exc:
            raise DeliveryError(f"{target_id}: {exc}") from exc
        if not delivered:
            raise DeliveryError(f"{target_id}: transport rejected message")

        decision_logger.info(
            "decision",
            action="email_sent",
            target_id=target_id,
            kind=kind.value,
            state=state.value,
            subject=subject,
            recipients=list(to),
            streak=streak,
        )
