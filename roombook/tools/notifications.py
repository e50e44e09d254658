"""
Notification events, template rendering and a retrying delivery queue.

The reservation service only decides *whether* an event fires and *which*
kind it is. The NotificationDispatcher turns an event into an
EmailMessage (plain placeholder substitution), and the NotificationQueue
hands it to a NotificationSender with bounded retries. Delivery is fire
and forget relative to the state change that caused it: failures are
logged, never raised to the caller.
"""

import heapq
import itertools
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol

from roombook.config import settings
from roombook.schemas.reservation_schema import Reservation
from roombook.schemas.settings_schema import EmailSettings, SystemSettings
from roombook.scheduling.state_machine import Actor, NotificationKind
from roombook.utils import format_display_date

logger = logging.getLogger(__name__)

# (priority, max_attempts) per kind; lower priority value is sent first
DELIVERY_POLICY: dict[NotificationKind, tuple[int, int]] = {
    NotificationKind.SUBMISSION: (0, 3),
    NotificationKind.APPROVAL: (0, 3),
    NotificationKind.REJECTION: (0, 3),
    NotificationKind.ADMIN_NOTIFICATION: (1, 2),
    NotificationKind.CANCELLATION: (1, 2),
}

SUBJECTS: dict[NotificationKind, str] = {
    NotificationKind.SUBMISSION: "Reservation Request Received",
    NotificationKind.APPROVAL: "Reservation Approved",
    NotificationKind.REJECTION: "Reservation Rejected",
    NotificationKind.CANCELLATION: "Reservation Cancelled",
    NotificationKind.ADMIN_NOTIFICATION: "New Reservation Request",
}

USER_REBOOK_HINT = (
    "If you need to make a new reservation, you can submit a new request at any time."
)
ADMIN_CANCEL_NOTE = "This cancellation was processed by an administrator."


@dataclass(frozen=True)
class NotificationEvent:
    """Domain event emitted after a successful creation or transition."""

    kind: NotificationKind
    reservation: Reservation
    actor: Optional[Actor] = None
    reason: Optional[str] = None


@dataclass(frozen=True)
class EmailMessage:
    to: tuple[str, ...]
    subject: str
    body: str
    kind: NotificationKind
    reservation_id: str


class NotificationSender(Protocol):
    """Delivery backend. Raise on failure; the queue retries."""

    def send(self, message: EmailMessage) -> None:
        ...


class LoggingNotificationSender:
    """Logs messages instead of sending them and keeps them for inspection."""

    def __init__(self) -> None:
        self.sent: list[EmailMessage] = []

    def send(self, message: EmailMessage) -> None:
        self.sent.append(message)
        logger.info(
            "Email [%s] to %s: %s", message.kind.value, ", ".join(message.to), message.subject
        )


def render_template(template: str, reservation: Reservation) -> str:
    """Replace ``{placeholder}`` tokens with reservation values."""
    values = {
        "name": reservation.name,
        "email": reservation.email,
        "date": format_display_date(reservation.date) + f", {reservation.date.year}",
        "startTime": reservation.start_time,
        "endTime": reservation.end_time,
        "purpose": reservation.purpose,
        "attendees": str(reservation.attendees),
        "type": reservation.reservation_type,
        "notes": reservation.notes or "",
        "id": reservation.id,
        "status": reservation.status.value,
    }
    for key, value in values.items():
        template = template.replace("{" + key + "}", value)
    return template


Scheduler = Callable[[float, Callable[[], None]], None]


def start_timer(delay: float, callback: Callable[[], None]) -> None:
    """Run ``callback`` on a daemon timer thread after ``delay`` seconds."""
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()


@dataclass(order=True)
class _Task:
    due_at: float
    priority: int
    seq: int
    message: EmailMessage = field(compare=False)
    attempts: int = field(default=0, compare=False)
    max_attempts: int = field(default=3, compare=False)


class NotificationQueue:
    """Priority queue with exponential-backoff retries.

    ``drain()`` delivers everything currently due; tasks that fail are
    rescheduled ``retry_delay * 2 ** (attempt - 1)`` seconds later until
    their attempts run out, then discarded with an error log.

    Whenever a drain leaves work behind, ``scheduler`` is asked to drain
    again when the earliest task falls due, so retries fire without
    further traffic. Only one wake-up is outstanding at a time unless an
    earlier one is needed.
    """

    def __init__(
        self,
        sender: NotificationSender,
        retry_delay_sec: Optional[float] = None,
        max_per_drain: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
        scheduler: Scheduler = start_timer,
    ) -> None:
        cfg = settings.notifications
        self._sender = sender
        self._retry_delay = cfg.retry_delay_sec if retry_delay_sec is None else retry_delay_sec
        self._max_per_drain = max_per_drain or cfg.max_concurrent
        self._clock = clock
        self._scheduler = scheduler
        self._heap: list[_Task] = []
        self._seq = itertools.count()
        self._lock = threading.Lock()
        self._wakeup_at: Optional[float] = None
        self.delivered = 0
        self.discarded = 0

    def enqueue(self, message: EmailMessage) -> None:
        priority, max_attempts = DELIVERY_POLICY[message.kind]
        task = _Task(
            due_at=self._clock(),
            priority=priority,
            seq=next(self._seq),
            message=message,
            max_attempts=max_attempts,
        )
        with self._lock:
            heapq.heappush(self._heap, task)

    def _pop_due(self) -> Optional[_Task]:
        with self._lock:
            if self._heap and self._heap[0].due_at <= self._clock():
                return heapq.heappop(self._heap)
            return None

    def drain(self) -> int:
        """Deliver due messages (bounded per call); returns how many succeeded."""
        sent = 0
        for _ in range(self._max_per_drain):
            task = self._pop_due()
            if task is None:
                break
            try:
                self._sender.send(task.message)
            except Exception:
                task.attempts += 1
                logger.exception(
                    "Failed to send %s for %s (attempt %d/%d)",
                    task.message.kind.value, task.message.reservation_id,
                    task.attempts, task.max_attempts,
                )
                if task.attempts < task.max_attempts:
                    task.due_at = self._clock() + self._retry_delay * 2 ** (task.attempts - 1)
                    task.seq = next(self._seq)
                    with self._lock:
                        heapq.heappush(self._heap, task)
                else:
                    self.discarded += 1
                    logger.error(
                        "Notification %s for %s exceeded max attempts and was discarded",
                        task.message.kind.value, task.message.reservation_id,
                    )
                continue
            sent += 1
            self.delivered += 1
        self._arm_wakeup()
        return sent

    def _arm_wakeup(self) -> None:
        with self._lock:
            if not self._heap:
                return
            due_at = self._heap[0].due_at
            if self._wakeup_at is not None and self._wakeup_at <= due_at:
                return
            self._wakeup_at = due_at
        delay = max(0.0, due_at - self._clock())
        logger.debug("Next notification drain in %.1fs", delay)
        self._scheduler(delay, self._on_wakeup)

    def _on_wakeup(self) -> None:
        with self._lock:
            self._wakeup_at = None
        self.drain()

    def __len__(self) -> int:
        with self._lock:
            return len(self._heap)

    def clear(self) -> None:
        with self._lock:
            self._heap.clear()
            self._wakeup_at = None


class NotificationDispatcher:
    """Decides whether an event produces mail and queues it."""

    def __init__(self, queue: NotificationQueue) -> None:
        self._queue = queue

    @property
    def queue(self) -> NotificationQueue:
        return self._queue

    def build_message(
        self,
        event: NotificationEvent,
        email_settings: EmailSettings,
        system_settings: SystemSettings,
    ) -> Optional[EmailMessage]:
        """Return the message for ``event``, or None when it should not be sent."""
        reservation = event.reservation
        templates = email_settings.templates

        if event.kind == NotificationKind.ADMIN_NOTIFICATION:
            recipients = tuple(email_settings.notification_recipients) or (
                (system_settings.contact_email,) if system_settings.contact_email else ()
            )
            if not email_settings.send_admin_emails or not recipients:
                logger.debug("Admin emails disabled or no recipient; skipping")
                return None
            body = render_template(templates.notification, reservation)
            return EmailMessage(
                to=recipients,
                subject=SUBJECTS[event.kind],
                body=body,
                kind=event.kind,
                reservation_id=reservation.id,
            )

        if not email_settings.send_user_emails:
            logger.debug("User emails disabled; skipping %s", event.kind.value)
            return None

        template = getattr(templates, event.kind.value)
        body = render_template(template, reservation)
        subject = SUBJECTS[event.kind]
        if event.kind == NotificationKind.SUBMISSION and templates.confirmation_subject:
            subject = templates.confirmation_subject
        if event.reason:
            label = "Cancellation reason" if event.kind == NotificationKind.CANCELLATION else "Reason"
            body += f"\n\n{label}: {event.reason}"
        if event.kind == NotificationKind.CANCELLATION:
            body += "\n\n" + (USER_REBOOK_HINT if event.actor == Actor.USER else ADMIN_CANCEL_NOTE)

        return EmailMessage(
            to=(reservation.email,),
            subject=subject,
            body=body,
            kind=event.kind,
            reservation_id=reservation.id,
        )

    def emit(
        self,
        event: NotificationEvent,
        email_settings: EmailSettings,
        system_settings: SystemSettings,
    ) -> bool:
        """Queue the message for ``event``; never raises. Returns True if queued."""
        try:
            message = self.build_message(event, email_settings, system_settings)
            if message is None:
                return False
            self._queue.enqueue(message)
            logger.info(
                "Queued %s notification for reservation %s",
                event.kind.value, event.reservation.id,
            )
            return True
        except Exception:
            logger.exception(
                "Failed to queue %s notification for %s",
                event.kind.value, event.reservation.id,
            )
            return False
