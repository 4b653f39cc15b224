"""
Repository tests: transactions, conditional transitions, windowed timer inputs.
"""
import sqlite3
import threading
from datetime import date, datetime, timedelta, timezone

import pytest

from models import LaborStatus
from repositories import Database, PatientRepository
from core.exceptions import DatabaseError

T0 = datetime(2025, 3, 1, 8, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def patient_id(patient_repo):
    return patient_repo.add(
        full_name="Maria Ivanova",
        admission_date=date(2025, 3, 1),
        created_at=T0,
    ).id


def add(measurement_repo, patient_id, minutes, dilation=None, **payload):
    return measurement_repo.add(
        patient_id=patient_id,
        time=T0 + timedelta(minutes=minutes),
        created_at=T0,
        cervical_dilation=dilation,
        payload=payload,
    )


# =============================================================================
# PATIENTS
# =============================================================================

def test_add_patient_starts_not_started(patient_repo, patient_id):
    patient = patient_repo.get(patient_id)
    assert patient.status == LaborStatus.NOT_STARTED
    assert patient.labor_start is None
    assert patient.created_at == T0


def test_start_labor_only_once(patient_repo, patient_id):
    assert patient_repo.start_labor(patient_id, T0) is True
    assert patient_repo.start_labor(patient_id, T0 + timedelta(minutes=5)) is False

    patient = patient_repo.get(patient_id)
    assert patient.status == LaborStatus.IN_PROGRESS
    assert patient.labor_start == T0


def test_complete_labor_requires_in_progress(patient_repo, patient_id):
    assert patient_repo.complete_labor(patient_id) is False
    patient_repo.start_labor(patient_id, T0)
    assert patient_repo.complete_labor(patient_id) is True
    assert patient_repo.complete_labor(patient_id) is False
    assert patient_repo.get(patient_id).status == LaborStatus.COMPLETED


def test_status_and_labor_start_constraint(temp_db, patient_id):
    """The schema refuses in_progress without labor_start."""
    with pytest.raises(DatabaseError):
        with temp_db.transaction() as conn:
            conn.execute("UPDATE patients SET status = 'in_progress' WHERE id = ?", (patient_id,))


def test_transaction_rolls_back_on_error(temp_db, patient_repo, patient_id):
    with pytest.raises(RuntimeError):
        with temp_db.transaction() as conn:
            patient_repo.start_labor(patient_id, T0, conn=conn)
            raise RuntimeError("boom")

    assert patient_repo.get(patient_id).status == LaborStatus.NOT_STARTED


def test_concurrent_first_measurements_start_labor_once(labor_service, patient_repo, patient_id):
    results = []
    errors = []

    def worker(dilation):
        try:
            results.append(labor_service.record_measurement(patient_id, {"cervical_dilation": dilation}))
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(d,)) for d in (3, 4, 5, 6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(results) == 4
    assert patient_repo.get(patient_id).labor_start == T0
    assert all(r.status == LaborStatus.IN_PROGRESS for r in results)


# =============================================================================
# MEASUREMENTS
# =============================================================================

def test_payload_round_trip(measurement_repo, patient_id):
    stored = add(measurement_repo, patient_id, 0, 6, fetal_heart_rate=140, caput="+")
    fetched = measurement_repo.get(stored.id, patient_id)
    assert fetched.payload == {"fetal_heart_rate": 140, "caput": "+"}
    assert fetched.cervical_dilation == 6
    assert fetched.time == T0


def test_get_measurement_wrong_patient(measurement_repo, patient_repo, patient_id):
    other = patient_repo.add(full_name="Other", admission_date=date(2025, 3, 1), created_at=T0).id
    stored = add(measurement_repo, patient_id, 0, 6)
    assert measurement_repo.get(stored.id, other) is None
    assert measurement_repo.delete(stored.id, other) is False


def test_list_for_patient_ties_broken_by_id(measurement_repo, patient_id):
    first = add(measurement_repo, patient_id, 10, 4)
    second = add(measurement_repo, patient_id, 10, 5)
    earlier = add(measurement_repo, patient_id, 0, 3)

    ids = [m.id for m in measurement_repo.list_for_patient(patient_id)]

    assert ids == [second.id, first.id, earlier.id]


def test_latest_time(measurement_repo, patient_id):
    assert measurement_repo.latest_time(patient_id) is None
    add(measurement_repo, patient_id, 20)
    add(measurement_repo, patient_id, 5)
    assert measurement_repo.latest_time(patient_id) == T0 + timedelta(minutes=20)


def test_latest_timer_inputs(measurement_repo, patient_repo, patient_id):
    other = patient_repo.add(full_name="Other", admission_date=date(2025, 3, 1), created_at=T0).id
    empty = patient_repo.add(full_name="Empty", admission_date=date(2025, 3, 1), created_at=T0).id

    add(measurement_repo, patient_id, 0, 8)
    dilation = add(measurement_repo, patient_id, 10, 10)
    latest = add(measurement_repo, patient_id, 20, None, fetal_heart_rate=150)
    only = add(measurement_repo, other, 5, 4)

    inputs = measurement_repo.latest_timer_inputs()

    assert {m.id for m in inputs[patient_id]} == {dilation.id, latest.id}
    assert [m.id for m in inputs[other]] == [only.id]
    assert empty not in inputs


def test_latest_timer_inputs_single_patient(measurement_repo, patient_repo, patient_id):
    other = patient_repo.add(full_name="Other", admission_date=date(2025, 3, 1), created_at=T0).id
    add(measurement_repo, patient_id, 0, 8)
    add(measurement_repo, other, 0, 9)

    inputs = measurement_repo.latest_timer_inputs(patient_id)

    assert list(inputs) == [patient_id]


def test_delete_patient_cascades(patient_repo, measurement_repo, patient_id):
    add(measurement_repo, patient_id, 0, 4)
    assert patient_repo.delete(patient_id) is True
    assert measurement_repo.list_for_patient(patient_id) == []


def test_older_database_gains_labor_timestamp_columns(tmp_path):
    path = tmp_path / "older.db"
    conn = sqlite3.connect(path)
    conn.execute(
        """
        CREATE TABLE patients (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            full_name TEXT NOT NULL,
            admission_date TEXT NOT NULL,
            history_number TEXT,
            age INTEGER,
            parity INTEGER,
            gestational_age INTEGER,
            risk_factors TEXT,
            notes TEXT,
            status TEXT NOT NULL DEFAULT 'not_started',
            labor_start TEXT,
            created_at TEXT NOT NULL
        )
        """
    )
    conn.execute(
        "INSERT INTO patients (full_name, admission_date, created_at) VALUES (?, ?, ?)",
        ("Anna Smirnova", "2025-02-28", "2025-02-28T10:00:00Z"),
    )
    conn.commit()
    conn.close()

    repo = PatientRepository(db=Database(db_path=str(path)))

    existing = repo.get(1)
    assert existing.full_name == "Anna Smirnova"
    assert existing.membrane_rupture is None

    added = repo.add(
        full_name="Maria Ivanova",
        admission_date=date(2025, 3, 1),
        created_at=T0,
        membrane_rupture=T0 - timedelta(hours=1),
        active_phase_start=T0 - timedelta(minutes=30),
    )
    stored = repo.get(added.id)
    assert stored.membrane_rupture == T0 - timedelta(hours=1)
    assert stored.active_phase_start == T0 - timedelta(minutes=30)
