import logging
from contextlib import asynccontextmanager
from typing import TypeVar

from fastapi import FastAPI, Depends, HTTPException, Path
import uvicorn
from sqlalchemy.orm import Session
from starlette import status

from app.core.auth import get_caller_identity
from app.core.clock import Clock, get_clock
from app.core.db import SessionLocal, engine, get_db
from app.core.settings import config_settings
from app.models.ids import GroupId, PatientId
from app.models.orm.assignment import PatientAssignmentORM  # noqa: F401 (registers table)
from app.models.orm.base import Base
from app.models.orm.registry_state import RegistryStateORM  # noqa: F401 (registers table)
from app.models.orm.treatment_group import TreatmentGroupORM  # noqa: F401 (registers table)
from app.models.result import Err, Result
from app.models.schemas.admin import AcknowledgementModel, AdminModel, AdminTransferModel
from app.models.schemas.assignment import (
    AssignPatientModel,
    PatientAssignmentModel,
    RandomizationResultModel,
    RandomizePatientModel,
)
from app.models.schemas.treatment_group import (
    TreatmentGroupCreateModel,
    TreatmentGroupListModel,
    TreatmentGroupModel,
)
from app.services.randomization_service import RandomizationService

logging.basicConfig(level=config_settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

T = TypeVar("T")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Creating registry tables if missing")
    Base.metadata.create_all(bind=engine)

    # Create the state row once here so first requests do not race to insert it
    db = SessionLocal()
    try:
        RandomizationService(db, get_clock()).ensure_state()
    finally:
        db.close()
    yield


app = FastAPI(
    title="Treatment randomization registry",
    description="Admin-gated registry of treatment groups and patient assignments",
    version="0.1.0",
    lifespan=lifespan,
)


def unwrap(result: Result[T]) -> T:
    """Returns the success payload, or raises the matching HTTP error."""
    if isinstance(result, Err):
        raise HTTPException(status_code=int(result.code), detail=result.detail)
    return result.value


# --- Treatment groups ---


@app.post(
    "/groups",
    response_model=AcknowledgementModel,
    status_code=status.HTTP_201_CREATED,
    summary="Create a treatment group",
)
def post_groups(
    group_data: TreatmentGroupCreateModel,
    caller: str = Depends(get_caller_identity),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    randomization_service = RandomizationService(db, clock)
    unwrap(
        randomization_service.create_group(
            caller,
            GroupId(group_data.group_id),
            group_data.name,
            group_data.description,
            group_data.max_patients,
        )
    )
    return AcknowledgementModel()


@app.get(
    "/groups",
    response_model=TreatmentGroupListModel,
    status_code=status.HTTP_200_OK,
)
def get_groups(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)):
    randomization_service = RandomizationService(db, clock)
    groups = randomization_service.list_groups()
    return TreatmentGroupListModel(
        groups=[TreatmentGroupModel.model_validate(group) for group in groups]
    )


@app.get(
    "/groups/{group_id}",
    response_model=TreatmentGroupModel,
    status_code=status.HTTP_200_OK,
)
def get_group(
    group_id: str = Path(..., description="The ID of the treatment group."),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    randomization_service = RandomizationService(db, clock)
    group = randomization_service.get_group(GroupId(group_id))
    if group is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Group {group_id} not found.",
        )
    return TreatmentGroupModel.model_validate(group)


# --- Patient assignments ---


@app.get(
    "/patients/{patient_id}/assignment",
    response_model=PatientAssignmentModel,
    status_code=status.HTTP_200_OK,
    summary="Get patient assignment",
)
def get_patient_assignment(
    patient_id: str = Path(..., description="The ID of the patient."),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    randomization_service = RandomizationService(db, clock)
    assignment = randomization_service.get_patient_assignment(PatientId(patient_id))
    if assignment is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Patient {patient_id} has no assignment.",
        )
    return PatientAssignmentModel.model_validate(assignment)


@app.post(
    "/patients/{patient_id}/assignment",
    response_model=AcknowledgementModel,
    status_code=status.HTTP_201_CREATED,
    summary="Assign a patient to a chosen group",
)
def post_patient_assignment(
    assignment_data: AssignPatientModel,
    patient_id: str = Path(..., description="The ID of the patient."),
    caller: str = Depends(get_caller_identity),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    randomization_service = RandomizationService(db, clock)
    unwrap(
        randomization_service.assign_patient(
            caller, PatientId(patient_id), GroupId(assignment_data.group_id)
        )
    )
    return AcknowledgementModel()


@app.post(
    "/patients/{patient_id}/randomization",
    response_model=RandomizationResultModel,
    status_code=status.HTTP_201_CREATED,
    summary="Randomize a patient into one of the candidate groups",
)
def post_patient_randomization(
    randomization_data: RandomizePatientModel,
    patient_id: str = Path(..., description="The ID of the patient."),
    caller: str = Depends(get_caller_identity),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    randomization_service = RandomizationService(db, clock)
    group_id = unwrap(
        randomization_service.randomize_patient(
            caller,
            PatientId(patient_id),
            [GroupId(g) for g in randomization_data.candidate_group_ids],
        )
    )
    return RandomizationResultModel(patient_id=patient_id, group_id=group_id)


# --- Admin ---


@app.get("/admin", response_model=AdminModel, status_code=status.HTTP_200_OK)
def get_admin(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)):
    randomization_service = RandomizationService(db, clock)
    return AdminModel(admin=randomization_service.get_admin())


@app.put(
    "/admin",
    response_model=AcknowledgementModel,
    status_code=status.HTTP_200_OK,
    summary="Transfer admin rights",
)
def put_admin(
    transfer_data: AdminTransferModel,
    caller: str = Depends(get_caller_identity),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    randomization_service = RandomizationService(db, clock)
    unwrap(randomization_service.set_admin(caller, transfer_data.new_admin))
    return AcknowledgementModel()


# Entry point for running the application directly during local development
if __name__ == "__main__":
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True)
