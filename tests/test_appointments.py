"""
Tests for the appointment lifecycle.

Covers:
  - slot conflicts on create and reschedule
  - canceling frees the slot
  - no-op updates write nothing
  - confirm idempotence and decline
  - ownership checks on patient actions
"""

from datetime import datetime, timedelta, timezone

import pytest

from app.core.errors import AppointmentConflictError, AppointmentNotFoundError
from app.modules.appointments.models import AppointmentStatus, AppointmentType
from app.modules.appointments.schemas import AppointmentCreate, AppointmentUpdate, AppointmentListFilters
from app.modules.appointments.service import AppointmentService, normalize_starts_at

from conftest import FakeAppointmentRepository, T0


SLOT = T0 + timedelta(days=1)


def _create_payload(**overrides) -> AppointmentCreate:
    data = dict(patient_id=7, professional_id=3, starts_at=SLOT, type=AppointmentType.treatment)
    data.update(overrides)
    return AppointmentCreate(**data)


@pytest.fixture
def repo():
    return FakeAppointmentRepository()


@pytest.fixture
def service(repo, audit):
    return AppointmentService(repo, audit)


class TestCreate:

    async def test_create_trims_notes_and_audits(self, service, repo, audit):
        appt = await service.create_appointment(_create_payload(notes="  trazer exames  "), professional_id=3)

        assert appt.notes == "trazer exames"
        assert appt.status == AppointmentStatus.scheduled
        action, entity_id, details = audit.entries[0]
        assert action == "APPOINTMENT_CREATED"
        assert entity_id == appt.id
        assert details["patientId"] == 7
        assert details["startsAt"] == SLOT

    async def test_blank_notes_become_null(self, service):
        appt = await service.create_appointment(_create_payload(notes="   "), professional_id=3)
        assert appt.notes is None

    async def test_double_booking_is_rejected(self, service, repo, audit):
        await service.create_appointment(_create_payload(), professional_id=3)

        with pytest.raises(AppointmentConflictError):
            await service.create_appointment(_create_payload(patient_id=8), professional_id=3)
        assert len(repo.rows) == 1
        assert audit.actions() == ["APPOINTMENT_CREATED"]

    async def test_same_time_other_professional_is_allowed(self, service, repo):
        await service.create_appointment(_create_payload(), professional_id=3)
        await service.create_appointment(_create_payload(professional_id=4), professional_id=4)
        assert len(repo.rows) == 2

    async def test_sub_second_difference_is_same_slot(self, service):
        await service.create_appointment(_create_payload(), professional_id=3)
        with pytest.raises(AppointmentConflictError):
            await service.create_appointment(_create_payload(starts_at=SLOT + timedelta(microseconds=400)),
                                             professional_id=3)

    async def test_cancel_frees_the_slot(self, service, repo):
        first = await service.create_appointment(_create_payload(), professional_id=3)
        await service.cancel_appointment(first.id, professional_id=3)

        second = await service.create_appointment(_create_payload(patient_id=8), professional_id=3)
        assert second.id != first.id
        assert repo.rows[first.id].status == AppointmentStatus.canceled


class TestUpdate:

    async def test_reschedule_into_occupied_slot_conflicts(self, service, repo):
        repo.add(patient_id=7, professional_id=3, starts_at=SLOT, type=AppointmentType.triage)
        other = repo.add(patient_id=8, professional_id=3, starts_at=SLOT + timedelta(hours=1),
                         type=AppointmentType.triage)

        with pytest.raises(AppointmentConflictError):
            await service.update_appointment(other.id, AppointmentUpdate(starts_at=SLOT), professional_id=3)
        assert repo.update_calls == []

    async def test_unchanged_fields_are_a_no_op(self, service, repo, audit):
        appt = repo.add(patient_id=7, professional_id=3, starts_at=SLOT, type=AppointmentType.triage, notes="x")

        result = await service.update_appointment(
            appt.id, AppointmentUpdate(starts_at=SLOT, type=AppointmentType.triage, notes=" x "), professional_id=3)

        assert result is appt
        assert repo.update_calls == []
        assert audit.entries == []

    async def test_keeping_own_slot_does_not_conflict(self, service, repo, audit):
        appt = repo.add(patient_id=7, professional_id=3, starts_at=SLOT, type=AppointmentType.triage)

        updated = await service.update_appointment(
            appt.id, AppointmentUpdate(starts_at=SLOT, type=AppointmentType.treatment), professional_id=3)

        assert updated.type == AppointmentType.treatment
        assert repo.update_calls == [(appt.id, {"type": AppointmentType.treatment})]
        assert audit.entries[0][2]["changes"] == ["type"]

    async def test_explicit_null_clears_notes(self, service, repo):
        appt = repo.add(patient_id=7, professional_id=3, starts_at=SLOT, type=AppointmentType.triage, notes="old")

        await service.update_appointment(appt.id, AppointmentUpdate(notes=None), professional_id=3)
        assert appt.notes is None

    async def test_reschedule_reports_changed_fields(self, service, repo, audit):
        appt = repo.add(patient_id=7, professional_id=3, starts_at=SLOT, type=AppointmentType.triage)

        await service.update_appointment(appt.id, AppointmentUpdate(starts_at=SLOT + timedelta(hours=2)),
                                         professional_id=3)

        action, _, details = audit.entries[0]
        assert action == "APPOINTMENT_UPDATED"
        assert details["changes"] == ["startsAt"]

    async def test_missing_appointment(self, service):
        with pytest.raises(AppointmentNotFoundError):
            await service.update_appointment(404, AppointmentUpdate(notes="x"), professional_id=3)


class TestStatus:

    async def test_cancel_keeps_notes_without_reason(self, service, repo, audit):
        appt = repo.add(patient_id=7, professional_id=3, starts_at=SLOT, type=AppointmentType.triage, notes="keep")

        await service.cancel_appointment(appt.id, professional_id=3)

        assert appt.status == AppointmentStatus.canceled
        assert appt.notes == "keep"
        assert audit.actions() == ["APPOINTMENT_CANCELED"]

    async def test_cancel_with_reason_overwrites_notes(self, service, repo):
        appt = repo.add(patient_id=7, professional_id=3, starts_at=SLOT, type=AppointmentType.triage, notes="keep")
        await service.cancel_appointment(appt.id, professional_id=3, reason="  paciente internado ")
        assert appt.notes == "paciente internado"

    async def test_status_update_on_terminal_row_is_allowed(self, service, repo, audit):
        appt = repo.add(patient_id=7, professional_id=3, starts_at=SLOT, type=AppointmentType.triage,
                        status=AppointmentStatus.completed)

        await service.update_appointment_status(appt.id, AppointmentStatus.no_show, professional_id=3)

        assert appt.status == AppointmentStatus.no_show
        assert audit.entries[0][0] == "APPOINTMENT_STATUS_UPDATED"

    async def test_status_update_missing(self, service):
        with pytest.raises(AppointmentNotFoundError):
            await service.update_appointment_status(99, AppointmentStatus.completed, professional_id=3)


class TestPatientActions:

    async def test_confirm_is_idempotent(self, service, repo, audit):
        appt = repo.add(patient_id=7, professional_id=3, starts_at=SLOT, type=AppointmentType.triage)

        assert await service.confirm_attendance(appt.id, patient_id=7) == AppointmentStatus.confirmed
        assert await service.confirm_attendance(appt.id, patient_id=7) == AppointmentStatus.confirmed

        assert repo.status_writes == [(appt.id, AppointmentStatus.confirmed, None)]
        assert audit.actions() == ["APPOINTMENT_CONFIRMED"]

    async def test_confirm_completed_returns_current_status(self, service, repo, audit):
        appt = repo.add(patient_id=7, professional_id=3, starts_at=SLOT, type=AppointmentType.triage,
                        status=AppointmentStatus.completed)

        assert await service.confirm_attendance(appt.id, patient_id=7) == AppointmentStatus.completed
        assert repo.status_writes == []
        assert audit.entries == []

    async def test_decline_marks_no_show(self, service, repo, audit):
        appt = repo.add(patient_id=7, professional_id=3, starts_at=SLOT, type=AppointmentType.triage)

        await service.decline_appointment(appt.id, patient_id=7, reason=" viagem ")

        assert appt.status == AppointmentStatus.no_show
        assert appt.notes == "viagem"
        action, _, details = audit.entries[0]
        assert action == "APPOINTMENT_DECLINED"
        assert details["reason"] == "viagem"

    @pytest.mark.parametrize("action", ["confirm_attendance", "decline_appointment"])
    async def test_other_patients_appointment_looks_missing(self, service, repo, audit, action):
        appt = repo.add(patient_id=7, professional_id=3, starts_at=SLOT, type=AppointmentType.triage)

        with pytest.raises(AppointmentNotFoundError):
            await getattr(service, action)(appt.id, 8)
        with pytest.raises(AppointmentNotFoundError):
            await getattr(service, action)(999, 8)

        assert appt.status == AppointmentStatus.scheduled
        assert repo.status_writes == []
        assert audit.entries == []


async def test_list_returns_page_and_total(service, repo):
    for hours in range(3):
        repo.add(patient_id=7, professional_id=3, starts_at=SLOT + timedelta(hours=hours),
                 type=AppointmentType.triage)

    result = await service.list_appointments(AppointmentListFilters(patient_id=7, limit=2))

    assert result.total == 3
    assert [a.starts_at for a in result.data] == [SLOT + timedelta(hours=2), SLOT + timedelta(hours=1)]


def test_normalize_starts_at_assumes_utc_and_drops_microseconds():
    naive = datetime(2025, 3, 11, 9, 30, 15, 999999)
    assert normalize_starts_at(naive) == datetime(2025, 3, 11, 9, 30, 15, tzinfo=timezone.utc)
    brt = timezone(timedelta(hours=-3))
    assert normalize_starts_at(datetime(2025, 3, 11, 6, 30, tzinfo=brt)) == datetime(2025, 3, 11, 9, 30, tzinfo=timezone.utc)
