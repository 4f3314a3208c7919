from typing import List

from pydantic import BaseModel, ConfigDict, Field


class PatientAssignmentModel(BaseModel):
    """Data model for a persistent patient assignment record."""

    patient_id: str
    group_id: str = Field(..., description="The group the patient was assigned to.")

    model_config = ConfigDict(from_attributes=True)


class AssignPatientModel(BaseModel):
    """Schema for an explicit assignment request."""

    group_id: str


class RandomizePatientModel(BaseModel):
    """Schema for a randomized assignment request."""

    # An empty list is accepted here so the service can reject it with 400
    candidate_group_ids: List[str] = Field(
        ..., description="Groups the patient may be randomized into."
    )


class RandomizationResultModel(BaseModel):
    patient_id: str
    group_id: str = Field(..., description="The group selected for the patient.")
