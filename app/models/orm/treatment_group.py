from sqlalchemy import CheckConstraint, Column, Integer, String, Text
from sqlalchemy.orm import relationship

from .base import Base


class TreatmentGroupORM(Base):
    __tablename__ = "treatment_groups"

    group_id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")

    # --- Capacity ---
    max_patients = Column(Integer, nullable=False)
    current_count = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("max_patients > 0", name="ck_group_capacity_positive"),
        CheckConstraint(
            "current_count >= 0 AND current_count <= max_patients",
            name="ck_group_count_within_capacity",
        ),
    )

    # One group has many patient assignments
    assignments = relationship("PatientAssignmentORM", back_populates="group")

    def has_capacity(self) -> bool:
        return self.current_count < self.max_patients
