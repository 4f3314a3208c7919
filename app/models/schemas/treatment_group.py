from typing import List

from pydantic import BaseModel, ConfigDict, Field


class TreatmentGroupCreateModel(BaseModel):
    """Schema for creating a new treatment group (API Input)."""

    group_id: str = Field(..., min_length=1, description="Unique ID for the group.")
    name: str
    description: str = ""
    max_patients: int = Field(
        ..., gt=0, description="Maximum number of patients the group accepts."
    )


class TreatmentGroupModel(BaseModel):
    """Data model for a persistent treatment group record."""

    group_id: str
    name: str
    description: str
    max_patients: int
    current_count: int = Field(
        ..., ge=0, description="Patients assigned so far, never above max_patients."
    )

    model_config = ConfigDict(from_attributes=True)


class TreatmentGroupListModel(BaseModel):
    groups: List[TreatmentGroupModel]
