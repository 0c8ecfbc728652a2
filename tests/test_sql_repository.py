"""
SqlRepository against SQLite (aiosqlite): ownership scoping, joined patient
names, update write-back and reminder candidates.
"""
from datetime import date, time, timedelta

import pytest

from companion.core.errors import NotFoundError
from companion.repositories.base import PracticeRepository
from companion.repositories.sql import SqlRepository
from companion.schemas.practice import (
    AppointmentCreate,
    AppointmentStatus,
    AppointmentType,
    PatientCreate,
    UserRole,
)

pytestmark = pytest.mark.integration


@pytest.fixture
async def sql_repo(sql_session_factory):
    repo = SqlRepository(sql_session_factory)
    await repo.create_account(email="alice@example.com", full_name="Dr. Alice", password_hash="h")
    await repo.create_account(email="bob@example.com", full_name="Dr. Bob", password_hash="h")
    return repo


async def _ids(repo):
    alice = await repo.find_account("alice@example.com")
    bob = await repo.find_account("bob@example.com")
    return alice.profile.id, bob.profile.id


async def test_satisfies_repository_protocol(sql_repo):
    assert isinstance(sql_repo, PracticeRepository)


async def test_accounts(sql_repo):
    account = await sql_repo.find_account("ALICE@example.com")
    assert account.profile.full_name == "Dr. Alice"
    assert account.profile.role == UserRole.PSYCHOLOGIST
    assert account.password_hash == "h"

    assert await sql_repo.find_account("nobody@example.com") is None
    assert (await sql_repo.fetch_profile(account.profile.id)).email == "alice@example.com"
    assert await sql_repo.fetch_profile("missing") is None
    assert [p.full_name for p in await sql_repo.list_profiles()] == ["Dr. Alice", "Dr. Bob"]


async def test_duplicate_account_raises_value_error(sql_repo):
    with pytest.raises(ValueError):
        await sql_repo.create_account(email="alice@example.com", full_name="Again", password_hash="h")


async def test_confirm_account(sql_repo):
    profile = await sql_repo.create_account(
        email="new@example.com", full_name="New", password_hash="h", email_confirmed=False
    )
    assert (await sql_repo.find_account("new@example.com")).email_confirmed is False
    assert await sql_repo.confirm_account(profile.id) is True
    assert (await sql_repo.find_account("new@example.com")).email_confirmed is True


async def test_patients_are_scoped_to_owner(sql_repo):
    alice, bob = await _ids(sql_repo)
    await sql_repo.create_patient(alice, PatientCreate(name="Zoe", email="zoe@example.com"))
    await sql_repo.create_patient(alice, PatientCreate(name="Ana"))
    await sql_repo.create_patient(bob, PatientCreate(name="Bruno"))

    assert [p.name for p in await sql_repo.list_patients(alice)] == ["Ana", "Zoe"]
    assert [p.name for p in await sql_repo.list_patients(bob)] == ["Bruno"]


async def test_appointments_join_patient_name_and_sort(sql_repo):
    alice, bob = await _ids(sql_repo)
    ana = await sql_repo.create_patient(alice, PatientCreate(name="Ana"))
    day = date.today() + timedelta(days=1)

    late = await sql_repo.create_appointment(alice, AppointmentCreate(patient_id=ana.id, date=day, time=time(14, 0)))
    early = await sql_repo.create_appointment(
        alice, AppointmentCreate(patient_id=ana.id, date=day, time=time(10, 0), type=AppointmentType.IN_PERSON)
    )

    listed = await sql_repo.list_appointments(alice)
    assert [a.id for a in listed] == [early.id, late.id]
    assert all(a.patient_name == "Ana" for a in listed)
    assert listed[0].type == AppointmentType.IN_PERSON
    assert listed[0].status == AppointmentStatus.SCHEDULED
    assert await sql_repo.list_appointments(bob) == []

    patients = await sql_repo.list_patients(alice)
    assert patients[0].next_session == day


async def test_update_returns_stored_row(sql_repo):
    alice, _ = await _ids(sql_repo)
    ana = await sql_repo.create_patient(alice, PatientCreate(name="Ana"))
    appt = await sql_repo.create_appointment(
        alice, AppointmentCreate(patient_id=ana.id, date=date.today() + timedelta(days=1), time=time(9, 0))
    )

    saved = await sql_repo.update_appointment(
        alice, appt.model_copy(update={"status": AppointmentStatus.COMPLETED, "summary": "Went well."})
    )

    assert saved.status == AppointmentStatus.COMPLETED
    assert saved.summary == "Went well."
    assert saved.patient_name == "Ana"


async def test_update_of_another_owners_appointment_is_not_found(sql_repo):
    alice, bob = await _ids(sql_repo)
    ana = await sql_repo.create_patient(alice, PatientCreate(name="Ana"))
    appt = await sql_repo.create_appointment(
        alice, AppointmentCreate(patient_id=ana.id, date=date.today() + timedelta(days=1), time=time(9, 0))
    )

    with pytest.raises(NotFoundError):
        await sql_repo.update_appointment(bob, appt.model_copy(update={"notes": "hijack"}))


async def test_appointment_for_another_owners_patient_is_refused(sql_repo):
    alice, bob = await _ids(sql_repo)
    secret = await sql_repo.create_patient(bob, PatientCreate(name="B Secret"))

    with pytest.raises(NotFoundError):
        await sql_repo.create_appointment(
            alice, AppointmentCreate(patient_id=secret.id, date=date.today() + timedelta(days=1), time=time(9, 0))
        )

    assert await sql_repo.list_appointments(alice) == []
    assert await sql_repo.list_appointments(bob) == []


async def test_reminder_candidates_cover_all_owners_in_window(sql_repo):
    alice, bob = await _ids(sql_repo)
    today = date.today()
    ana = await sql_repo.create_patient(alice, PatientCreate(name="Ana", email="ana@example.com"))
    bruno = await sql_repo.create_patient(bob, PatientCreate(name="Bruno", phone="+55 11 98765-4321"))

    await sql_repo.create_appointment(alice, AppointmentCreate(patient_id=ana.id, date=today, time=time(9, 0)))
    await sql_repo.create_appointment(bob, AppointmentCreate(patient_id=bruno.id, date=today + timedelta(days=2), time=time(9, 0)))
    await sql_repo.create_appointment(alice, AppointmentCreate(patient_id=ana.id, date=today + timedelta(days=20), time=time(9, 0)))
    cancelled = await sql_repo.create_appointment(
        bob, AppointmentCreate(patient_id=bruno.id, date=today + timedelta(days=1), time=time(9, 0))
    )
    await sql_repo.update_appointment(bob, cancelled.model_copy(update={"status": AppointmentStatus.CANCELLED}))

    candidates = await sql_repo.list_reminder_candidates(today, today + timedelta(days=7))

    assert [c.patient.name for c in candidates] == ["Ana", "Bruno"]
    assert candidates[0].patient.email == "ana@example.com"
    assert candidates[1].appointment.patient_name == "Bruno"
