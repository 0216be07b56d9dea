"""Outbound notifications (email) and event publication.

Both are best-effort side effects: a failure is logged and swallowed and never
turns a successful credential or contact operation into an error.
"""

from __future__ import annotations

import logging
import smtplib
import ssl
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from email.message import EmailMessage
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from addressbook.core.config import Settings

logger = logging.getLogger(__name__)


def redact_email(email: str) -> str:
    """Redact an email address for logging to avoid PII leakage."""
    if "@" not in email:
        return "redacted"
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"


class Notifier(Protocol):
    def notify(self, identity: str, subject: str, body: str) -> None: ...


class EventPublisher(Protocol):
    def publish(self, event: str) -> None: ...


class LoggingNotifier:
    """Dev fallback when SMTP is not configured: log instead of sending."""

    def notify(self, identity: str, subject: str, body: str) -> None:
        logger.info(
            "Notification (not sent, SMTP not configured): to=%s subject=%s",
            redact_email(identity),
            subject,
        )


class SmtpNotifier:
    """Send notifications as plain-text email over SMTP."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        *,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        from_email: str | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_email = from_email or username or "no-reply@localhost"
        self.timeout = timeout

    def notify(self, identity: str, subject: str, body: str) -> None:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.from_email
        msg["To"] = identity
        msg.set_content(body)

        context = ssl.create_default_context()
        if self.use_tls:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                server.starttls(context=context)
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(msg)
        else:
            with smtplib.SMTP_SSL(
                self.host, self.port, context=context, timeout=self.timeout
            ) as server:
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(msg)
        logger.info("Email sent: to=%s subject=%s", redact_email(identity), subject)


class LoggingEventPublisher:
    """Record occurrences (registration, login) in the application log."""

    def publish(self, event: str) -> None:
        logger.info("Event: %s", event)


class BestEffortDispatcher:
    """
    Runs notifier/publisher calls inline or on a worker pool.
    Exceptions are logged and never propagated to the caller.
    """

    def __init__(
        self,
        notifier: Notifier,
        publisher: EventPublisher,
        executor: ThreadPoolExecutor | None = None,
    ) -> None:
        self.notifier = notifier
        self.publisher = publisher
        self.executor = executor

    def notify(self, identity: str, subject: str, body: str) -> None:
        self._dispatch(self.notifier.notify, identity, subject, body)

    def publish(self, event: str) -> None:
        self._dispatch(self.publisher.publish, event)

    def _dispatch(self, fn: Callable[..., None], *args: Any) -> None:
        if self.executor is None:
            _run_logged(fn, *args)
            return
        try:
            future = self.executor.submit(_run_logged, fn, *args)
        except RuntimeError as e:
            # Executor already shut down
            logger.warning("Dropped side effect %s: %s", _name(fn), e)
            return
        future.add_done_callback(_log_future_error)

    def shutdown(self) -> None:
        if self.executor is not None:
            self.executor.shutdown(wait=True)


def _name(fn: Callable[..., Any]) -> str:
    return getattr(fn, "__qualname__", repr(fn))


def _run_logged(fn: Callable[..., None], *args: Any) -> None:
    try:
        fn(*args)
    except Exception as e:
        logger.warning("Side effect %s failed: %s", _name(fn), e)


def _log_future_error(future: Future) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.warning("Side effect task failed: %s", exc)


def build_dispatcher(settings: Settings) -> BestEffortDispatcher:
    """Create the dispatcher from SMTP_* and NOTIFY_* settings."""
    notifier: Notifier
    if settings.SMTP_HOST:
        notifier = SmtpNotifier(
            settings.SMTP_HOST,
            settings.SMTP_PORT,
            username=settings.SMTP_USER,
            password=(
                settings.SMTP_PASSWORD.get_secret_value()
                if settings.SMTP_PASSWORD is not None
                else None
            ),
            use_tls=settings.SMTP_USE_TLS,
            from_email=settings.MAIL_FROM,
        )
    else:
        notifier = LoggingNotifier()
    executor = (
        ThreadPoolExecutor(
            max_workers=settings.NOTIFY_WORKERS, thread_name_prefix="notify"
        )
        if settings.NOTIFY_ASYNC
        else None
    )
    return BestEffortDispatcher(notifier, LoggingEventPublisher(), executor)
