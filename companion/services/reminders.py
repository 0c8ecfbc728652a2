# companion/services/reminders.py
"""
Appointment reminder batches (email and WhatsApp).

A run scans every owner's open appointments from today through
REMINDER_LOOKAHEAD_DAYS and sends one message per appointment. Failures are
logged and counted; nothing is retried.
"""
from __future__ import annotations

import html
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Awaitable, Callable, Optional, Sequence

from companion.core.config import settings
from companion.core.logging import get_logger
from companion.repositories.base import PracticeRepository, ReminderCandidate
from companion.services import notifications
from companion.services.notifications import DeliveryResult

logger = get_logger(__name__)

REMINDER_SUBJECT = "Lembrete de Consulta"

_NON_DIGITS = re.compile(r"\D")


@dataclass
class ReminderReport:
    sent: int = 0
    skipped: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.sent + self.skipped + self.failed


@dataclass(frozen=True)
class ReminderEmail:
    subject: str
    text: str
    html: str


def _fmt_date(d: date) -> str:
    return d.isoformat()


def _fmt_time(t: time) -> str:
    return t.strftime("%H:%M")


def build_reminder_message(patient_name: str, on_date: date, at_time: time) -> str:
    return (
        f"Olá {patient_name}, este é um lembrete da sua consulta agendada para "
        f"{_fmt_date(on_date)} às {_fmt_time(at_time)}. Qualquer dúvida, estou à disposição!"
    )


def build_reminder_email(patient_name: str, on_date: date, at_time: time) -> ReminderEmail:
    d, t = _fmt_date(on_date), _fmt_time(at_time)
    return ReminderEmail(
        subject=REMINDER_SUBJECT,
        text=build_reminder_message(patient_name, on_date, at_time),
        html=(
            f"<p>Olá <b>{html.escape(patient_name)}</b>, este é um lembrete da sua consulta agendada para "
            f"<b>{d}</b> às <b>{t}</b>.<br>Qualquer dúvida, estou à disposição!</p>"
        ),
    )


def format_whatsapp_address(phone: str, country_code: str = "55") -> str:
    """
    Digits only, then:
      - 13-digit Brazilian mobile (55 + area + 9 + 8 digits): drop the leading 9
      - no country prefix: prepend country_code
    """
    num = _NON_DIGITS.sub("", phone or "")
    if country_code == "55" and num.startswith("55") and len(num) == 13:
        num = "55" + num[2:4] + num[5:]
    if not num.startswith(country_code):
        num = country_code + num
    return f"whatsapp:+{num}"


def reminder_window(now: datetime, lookahead_days: Optional[int] = None) -> tuple[date, date]:
    days = settings.REMINDER_LOOKAHEAD_DAYS if lookahead_days is None else lookahead_days
    today = now.date()
    return today, today + timedelta(days=days)


Sender = Callable[[ReminderCandidate], Awaitable[Optional[DeliveryResult]]]


async def _run_batch(channel: str, candidates: Sequence[ReminderCandidate], send: Sender) -> ReminderReport:
    report = ReminderReport()
    for candidate in candidates:
        appt = candidate.appointment
        try:
            result = await send(candidate)
        except Exception as e:
            logger.error(f"{channel}_reminder_failed", appointment_id=appt.id, error=str(e))
            report.failed += 1
            report.errors.append(f"{appt.id}: {e}")
            continue

        if result is None:
            report.skipped += 1
        elif result.ok:
            report.sent += 1
        else:
            logger.error(f"{channel}_reminder_failed", appointment_id=appt.id, error=result.detail)
            report.failed += 1
            report.errors.append(f"{appt.id}: {result.detail}")

    logger.info(f"{channel}_reminders_done", sent=report.sent, skipped=report.skipped, failed=report.failed)
    return report


async def send_email_reminders(
    repository: PracticeRepository,
    now: Optional[datetime] = None,
    *,
    sender: Callable[..., Awaitable[DeliveryResult]] = notifications.send_email,
) -> ReminderReport:
    start, end = reminder_window(now or datetime.now())
    candidates = await repository.list_reminder_candidates(start, end)
    logger.info("email_reminders_start", start=str(start), end=str(end), candidates=len(candidates))

    async def send(candidate: ReminderCandidate) -> Optional[DeliveryResult]:
        patient = candidate.patient
        if patient is None or not patient.name or not patient.email:
            return None
        appt = candidate.appointment
        email = build_reminder_email(patient.name, appt.date, appt.time)
        return await sender(patient.email, email.subject, email.text, email.html)

    return await _run_batch("email", candidates, send)


async def send_whatsapp_reminders(
    repository: PracticeRepository,
    now: Optional[datetime] = None,
    *,
    sender: Callable[..., Awaitable[DeliveryResult]] = notifications.send_whatsapp,
) -> ReminderReport:
    start, end = reminder_window(now or datetime.now())
    candidates = await repository.list_reminder_candidates(start, end)
    logger.info("whatsapp_reminders_start", start=str(start), end=str(end), candidates=len(candidates))

    async def send(candidate: ReminderCandidate) -> Optional[DeliveryResult]:
        patient = candidate.patient
        if patient is None or not patient.name or not patient.phone:
            return None
        appt = candidate.appointment
        to = format_whatsapp_address(patient.phone, settings.WHATSAPP_COUNTRY_CODE)
        return await sender(to, build_reminder_message(patient.name, appt.date, appt.time))

    return await _run_batch("whatsapp", candidates, send)
