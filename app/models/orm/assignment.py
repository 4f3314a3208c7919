from sqlalchemy import Column, ForeignKey, String
from sqlalchemy.orm import relationship

from .base import Base


class PatientAssignmentORM(Base):
    __tablename__ = "patient_assignments"

    # One row per patient, ever
    patient_id = Column(String, primary_key=True, index=True)
    group_id = Column(
        String, ForeignKey("treatment_groups.group_id"), nullable=False, index=True
    )

    group = relationship("TreatmentGroupORM", back_populates="assignments")
