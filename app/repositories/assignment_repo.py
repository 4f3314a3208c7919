# repositories/assignment_repo.py
from typing import Optional

from sqlalchemy.orm import Session

from app.models.ids import GroupId, PatientId
from app.models.orm.assignment import PatientAssignmentORM


class PatientAssignmentRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_assignment(self, patient_id: PatientId) -> Optional[PatientAssignmentORM]:
        """Retrieves the permanent assignment for a patient, if there is one."""
        return (
            self.db.query(PatientAssignmentORM)
            .filter(PatientAssignmentORM.patient_id == patient_id)
            .one_or_none()
        )

    def add_assignment(
        self, patient_id: PatientId, group_id: GroupId
    ) -> PatientAssignmentORM:
        """
        Stages a new assignment record.
        Note: The RandomizationService must ensure this isn't a duplicate.
        """
        db_assignment = PatientAssignmentORM(patient_id=patient_id, group_id=group_id)
        self.db.add(db_assignment)
        self.db.flush()

        return db_assignment
