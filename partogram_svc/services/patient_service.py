"""
Service layer for patient operations.

Architecture:
    API Layer (routers) → PatientService → PatientRepository → Database

Dependency Injection:
    PatientService receives its repository and clock via constructor injection.
    Use core.dependencies.get_patient_service() in routers with Depends().
"""
import logging
from typing import List, Optional

from repositories import PatientRepository
from schemas import PatientCreate, PatientResponse
from core.clock import SystemClock
from core.exceptions import PatientNotFoundError

logger = logging.getLogger(__name__)


class PatientService:
    """
    Service layer for patient admission, lookup and removal.

    Labor status is never changed here; see LaborService.
    """

    def __init__(self, patient_repository: PatientRepository, clock: SystemClock):
        """
        Initialize the patient service.

        Args:
            patient_repository: PatientRepository instance for data access.
            clock: Source of "now" for admission timestamps.
        """
        self._repo = patient_repository
        self._clock = clock

    def add_patient(self, patient: PatientCreate) -> PatientResponse:
        """
        Admit a patient with labor status not_started.

        Args:
            patient: Validated admission data.

        Returns:
            PatientResponse: The created patient.
        """
        now = self._clock.now()
        logger.info(f"Admitting patient: {patient.full_name}")

        created = self._repo.add(
            full_name=patient.full_name,
            admission_date=patient.admission_date or now.date(),
            created_at=now,
            history_number=patient.history_number,
            age=patient.age,
            parity=patient.parity,
            gestational_age=patient.gestational_age,
            risk_factors=patient.risk_factors,
            notes=patient.notes,
            membrane_rupture=patient.membrane_rupture,
            active_phase_start=patient.active_phase_start,
        )

        logger.info(f"Patient admitted: {created.full_name} (id={created.id})")
        return PatientResponse.from_patient(created)

    def get_patients(self, limit: Optional[int] = None) -> List[PatientResponse]:
        """
        Get patients, newest admission first.

        Args:
            limit: Maximum number of patients to return.
        """
        return [PatientResponse.from_patient(p) for p in self._repo.get_all(limit=limit)]

    def get_patient(self, patient_id: int) -> PatientResponse:
        """
        Get a patient by id.

        Raises:
            PatientNotFoundError: If no such patient exists.
        """
        patient = self._repo.get(patient_id)
        if patient is None:
            raise PatientNotFoundError(patient_id=patient_id)
        return PatientResponse.from_patient(patient)

    def delete_patient(self, patient_id: int) -> None:
        """
        Delete a patient together with all of their measurements.

        Raises:
            PatientNotFoundError: If no such patient exists.
        """
        if not self._repo.delete(patient_id):
            raise PatientNotFoundError(patient_id=patient_id)
        logger.info(f"Patient deleted (id={patient_id})")
