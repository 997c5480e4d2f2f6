"""
Manager notifications for Non-Conformity records.

Committed creates and material updates are published as RecordEvent objects
to a NotificationQueue; its consumer task hands each event to the
NotificationDispatcher, which re-reads the record, renders the e-mail and
delivers it through the mail transport.

Notification failures are logged and dropped. They never reach the code
that saved the record.
"""
import asyncio
import contextlib
import html
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Iterable, Optional

from schemas.nonconformity import (
    NOTIFICATION_COLUMNS,
    NOTIFICATION_FIELDS,
    NonConformityRecord,
)
from constructsafe.config.settings import settings
from constructsafe.connectors.mail_transport import MailTransport
from constructsafe.stores.base_store import RecordStore
from constructsafe.utils.helpers import is_blank

logger = logging.getLogger(__name__)

NOT_AVAILABLE = 'N/A'
NOT_SPECIFIED = 'Not specified'


class NotificationTrigger(str, Enum):
    """What happened to the record."""
    CREATED = 'Created'
    UPDATED = 'Updated'

    @property
    def action(self) -> str:
        return 'NEW' if self is NotificationTrigger.CREATED else 'UPDATED'


@dataclass(frozen=True)
class RecordEvent:
    """Post-commit event published by the service."""
    record_id: str
    trigger: NotificationTrigger
    changed_fields: FrozenSet[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class NotificationMessage:
    """Rendered e-mail."""
    subject: str
    html_body: str


def should_notify(trigger: NotificationTrigger, changed_fields: Iterable[str] = ()) -> bool:
    """Creates always notify; updates only when a material field changed."""
    if NotificationTrigger(trigger) is NotificationTrigger.CREATED:
        return True
    return bool(NOTIFICATION_FIELDS.intersection(changed_fields))


def _label(value) -> str:
    if isinstance(value, Enum):
        return value.value
    return NOT_AVAILABLE if value is None else str(value)


def compose_notification(
    record: NonConformityRecord,
    trigger: NotificationTrigger,
    system_name: Optional[str] = None,
) -> NotificationMessage:
    """
    Render the subject and HTML body for a record.

    The output depends only on the arguments.
    """
    system_name = system_name or settings.SYSTEM_NAME
    action = NotificationTrigger(trigger).action
    ticket_number = record.ticket_number or ''
    name = NOT_AVAILABLE if is_blank(record.name) else record.name
    location = NOT_SPECIFIED if is_blank(record.location) else record.location

    subject = f'[{system_name}] {action}: Non-Conformity {ticket_number} - {name}'

    rows = [
        ('Ticket', ticket_number),
        ('Name', name),
        ('Type', _label(record.type)),
        ('Severity', _label(record.severity)),
        ('Status', _label(record.status)),
        ('Location', location),
    ]
    cell = 'padding: 8px; border: 1px solid #dee2e6;'
    table_rows = '\n'.join(
        f"        <tr>\n"
        f"            <td style='{cell} font-weight: bold;'>{label}</td>\n"
        f"            <td style='{cell}'>{html.escape(value)}</td>\n"
        f"        </tr>"
        for label, value in rows
    )
    html_body = (
        "<html>\n"
        "<body style='font-family: Segoe UI, Arial, sans-serif; color: #333;'>\n"
        f"    <h2 style='color: #c0392b;'>Non-Conformity {action}</h2>\n"
        "    <table style='border-collapse: collapse; width: 100%; max-width: 600px;'>\n"
        f"{table_rows}\n"
        "    </table>\n"
        "    <p>Please review and take appropriate action.</p>\n"
        f"    <p style='color: #888; font-size: 12px;'>This notification was generated "
        f"automatically by {html.escape(system_name)}.</p>\n"
        "</body>\n"
        "</html>"
    )
    return NotificationMessage(subject=subject, html_body=html_body)


class NotificationDispatcher:
    """Delivers one notification per event to the record's assigned manager."""

    def __init__(
        self,
        store: RecordStore,
        transport: MailTransport,
        sender: Optional[str] = None,
        system_name: Optional[str] = None,
        store_timeout: Optional[float] = None,
        mail_timeout: Optional[float] = None,
    ):
        self.store = store
        self.transport = transport
        self.sender = sender or settings.MAIL_FROM
        self.system_name = system_name or settings.SYSTEM_NAME
        self.store_timeout = store_timeout or settings.NOTIFY_STORE_TIMEOUT
        self.mail_timeout = mail_timeout or settings.NOTIFY_MAIL_TIMEOUT

    async def dispatch(self, record_id: str, trigger: NotificationTrigger) -> Optional[str]:
        """
        Notify the assigned manager about a record.

        Returns:
            The sent message id, or None when nothing was sent
        """
        try:
            trigger = NotificationTrigger(trigger)
        except ValueError:
            logger.error(f'Unknown notification trigger {trigger!r} for {record_id}; dropped')
            return None

        try:
            record = await asyncio.wait_for(
                asyncio.to_thread(self.store.retrieve, record_id, NOTIFICATION_COLUMNS),
                timeout=self.store_timeout,
            )
            if not record.assigned_manager:
                logger.info(f'No assigned manager on {record_id}; skipping notification')
                return None

            message = compose_notification(record, trigger, self.system_name)
            message_id = await asyncio.wait_for(
                asyncio.to_thread(
                    self.transport.create_message,
                    self.sender,
                    record.assigned_manager,
                    message.subject,
                    message.html_body,
                ),
                timeout=self.mail_timeout,
            )
            await asyncio.wait_for(
                asyncio.to_thread(self.transport.send, message_id),
                timeout=self.mail_timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f'Notification for {record_id} ({trigger.value}) timed out; dropped')
            return None
        except Exception as e:
            logger.error(f'Notification for {record_id} ({trigger.value}) failed: {str(e)}')
            return None

        logger.info(
            f'Notification {message_id} sent to {record.assigned_manager} '
            f'for {record.ticket_number}'
        )
        return message_id


class NotificationQueue:
    """
    In-process queue between committed saves and the dispatcher.

    publish() never blocks and never raises dispatch errors. Use as an async
    context manager, or call start()/drain()/stop() explicitly.
    """

    def __init__(self, dispatcher: NotificationDispatcher):
        self.dispatcher = dispatcher
        self._queue: asyncio.Queue = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None
        self.dispatched = 0
        self.sent = 0

    def publish(self, event: RecordEvent) -> None:
        self._queue.put_nowait(event)
        logger.debug(f'Queued {event.trigger.value} notification for {event.record_id}')

    def start(self) -> None:
        """Start the consumer task on the running loop."""
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._consume())

    async def drain(self) -> None:
        """Wait until every published event has been handled."""
        await self._queue.join()

    async def stop(self) -> None:
        if self._worker is not None:
            self._worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._worker
            self._worker = None

    async def _consume(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                message_id = await self.dispatcher.dispatch(event.record_id, event.trigger)
                self.dispatched += 1
                if message_id is not None:
                    self.sent += 1
            finally:
                self._queue.task_done()

    async def __aenter__(self) -> 'NotificationQueue':
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.drain()
        await self.stop()
