# companion/services/views.py
"""
View routing: which read-only projection of the CollectionStore is showing.

Projections hold references to the store's own Patient/Appointment objects,
so an optimistic update is visible in every projection immediately.
"""
from __future__ import annotations

import calendar
import enum
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Union

from companion.schemas.practice import Appointment, AppointmentStatus, Patient
from companion.services.store import CollectionStore


class View(str, enum.Enum):
    DASHBOARD = "dashboard"
    PATIENTS = "patients"
    CALENDAR = "calendar"


@dataclass(frozen=True)
class LoadingProjection:
    view: View


@dataclass(frozen=True)
class DashboardProjection:
    today: date
    todays_appointments: list[Appointment]
    active_patients: int
    next_appointment: Optional[Appointment]

    @property
    def sessions_today(self) -> int:
        return len(self.todays_appointments)


@dataclass(frozen=True)
class PatientsProjection:
    patients: list[Patient]


@dataclass(frozen=True)
class CalendarProjection:
    year: int
    month: int
    today: date
    leading_blanks: int          # Sunday-first grid
    days_in_month: int
    trailing_blanks: int
    days: dict[date, list[Appointment]] = field(default_factory=dict)

    @property
    def month_name(self) -> str:
        return calendar.month_name[self.month]

    def appointments_on(self, day: date) -> list[Appointment]:
        return self.days.get(day, [])


Projection = Union[LoadingProjection, DashboardProjection, PatientsProjection, CalendarProjection]


def _sunday_index(d: date) -> int:
    # date.weekday(): Monday=0 ... Sunday=6
    return (d.weekday() + 1) % 7


def project_dashboard(store: CollectionStore, today: date) -> DashboardProjection:
    todays = [a for a in store.appointments if a.date == today]
    next_appt = next((a for a in todays if a.status == AppointmentStatus.SCHEDULED), None)
    return DashboardProjection(
        today=today,
        todays_appointments=todays,
        active_patients=len(store.patients),
        next_appointment=next_appt,
    )


def project_calendar(store: CollectionStore, today: date, year: Optional[int] = None,
                     month: Optional[int] = None) -> CalendarProjection:
    year = year or today.year
    month = month or today.month
    days_in_month = calendar.monthrange(year, month)[1]
    first = date(year, month, 1)
    last = date(year, month, days_in_month)

    days: dict[date, list[Appointment]] = {}
    for appt in store.appointments:
        if first <= appt.date <= last:
            days.setdefault(appt.date, []).append(appt)

    return CalendarProjection(
        year=year,
        month=month,
        today=today,
        leading_blanks=_sunday_index(first),
        days_in_month=days_in_month,
        trailing_blanks=6 - _sunday_index(last),
        days=days,
    )


class ViewRouter:
    def __init__(self, initial: View = View.DASHBOARD):
        self.current = initial

    def navigate(self, view: Union[View, str]) -> View:
        self.current = View(view)  # ValueError on unknown names
        return self.current

    def reset(self) -> None:
        self.current = View.DASHBOARD

    def render(self, store: CollectionStore, today: Optional[date] = None, *,
               year: Optional[int] = None, month: Optional[int] = None) -> Projection:
        today = today or date.today()
        if store.loading:
            return LoadingProjection(view=self.current)
        if self.current == View.DASHBOARD:
            return project_dashboard(store, today)
        if self.current == View.PATIENTS:
            return PatientsProjection(patients=store.patients)
        return project_calendar(store, today, year, month)
