# services/randomization_service.py

import logging
from typing import Optional, Sequence

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.clock import Clock
from app.core.settings import config_settings
from app.models.ids import GroupId, PatientId
from app.models.orm.assignment import PatientAssignmentORM
from app.models.orm.treatment_group import TreatmentGroupORM
from app.models.result import Err, ErrorCode, Ok, Result
from app.repositories.assignment_repo import PatientAssignmentRepository
from app.repositories.group_repo import TreatmentGroupRepository
from app.repositories.registry_state_repo import RegistryStateRepository

logger = logging.getLogger(__name__)


class RandomizationService:
    """
    Treatment group registry and patient assignment engine.

    Each public mutating method is one unit of work on the session it was
    built with: every check runs before the single commit, and a failed
    check leaves no staged changes behind. The one exception is
    randomize_patient, whose seed draw is committed before the selected
    group is validated.

    Domain failures are returned as Err values; only persistence errors
    raise.
    """

    def __init__(
        self,
        db: Session,
        clock: Clock,
        initial_admin: str = config_settings.INITIAL_ADMIN,
    ):
        self.db = db
        self.clock = clock
        self.group_repo = TreatmentGroupRepository(db)
        self.assignment_repo = PatientAssignmentRepository(db)
        self.state_repo = RegistryStateRepository(db, initial_admin)

    # --- Authorization ---

    def is_admin(self, caller: str, for_update: bool = False) -> bool:
        return caller == self.state_repo.get_state(for_update=for_update).admin

    def _require_admin(self, caller: str) -> Optional[Err]:
        # Locks the state row so mutating calls serialize behind each other
        if not self.is_admin(caller, for_update=True):
            return self._reject(
                Err(ErrorCode.UNAUTHORIZED, "Caller is not the registry admin.")
            )
        return None

    def ensure_state(self) -> None:
        """Creates and commits the registry state row if it does not exist yet."""
        self.state_repo.get_state()
        self._commit()

    def get_admin(self) -> str:
        return self.state_repo.get_state().admin

    def set_admin(self, caller: str, new_admin: str) -> Result[bool]:
        if err := self._require_admin(caller):
            return err

        self.state_repo.set_admin(new_admin)
        self._commit()

        logger.info("Registry admin transferred from %s to %s", caller, new_admin)
        return Ok(True)

    # --- Group registry ---

    def get_group(self, group_id: GroupId) -> Optional[TreatmentGroupORM]:
        return self.group_repo.get_group(group_id)

    def list_groups(self) -> list[TreatmentGroupORM]:
        return self.group_repo.list_groups()

    def create_group(
        self,
        caller: str,
        group_id: GroupId,
        name: str,
        description: str,
        max_patients: int,
    ) -> Result[bool]:
        if err := self._require_admin(caller):
            return err

        # An existing id is a conflict whatever the other arguments are
        if self.group_repo.get_group(group_id) is not None:
            return self._reject(
                Err(ErrorCode.CONFLICT, f"Group {group_id} already exists.")
            )

        if max_patients < 1:
            return self._reject(
                Err(ErrorCode.BAD_REQUEST, "max_patients must be a positive integer.")
            )

        try:
            self.group_repo.add_group(group_id, name, description, max_patients)
            self.db.commit()
        except IntegrityError as e:
            # Lost a race against another creator of the same id
            self.db.rollback()
            logger.warning("Integrity error creating group %s: %s", group_id, e.orig)
            return self._reject(
                Err(ErrorCode.CONFLICT, f"Group {group_id} already exists.")
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Database error creating group %s: %s", group_id, e)
            raise

        logger.info("Created group %s (%s) with capacity %d", group_id, name, max_patients)
        return Ok(True)

    # --- Patient assignments ---

    def get_patient_assignment(
        self, patient_id: PatientId
    ) -> Optional[PatientAssignmentORM]:
        return self.assignment_repo.get_assignment(patient_id)

    def assign_patient(
        self, caller: str, patient_id: PatientId, group_id: GroupId
    ) -> Result[bool]:
        """
        Assigns a patient to a caller-chosen group.

        1. Caller must be the admin.
        2. The group must exist.
        3. The patient must not already be assigned.
        4. The group must have room.
        5. Increment the group's count and record the assignment together.
        """
        if err := self._require_admin(caller):
            return err

        group = self.group_repo.get_group(group_id, for_update=True)
        if group is None:
            return self._reject(Err(ErrorCode.NOT_FOUND, f"Group {group_id} not found."))

        if err := self._check_unassigned(patient_id):
            return err

        if err := self._check_capacity(group):
            return err

        if err := self._commit_assignment(patient_id, group):
            return err

        return Ok(True)

    def randomize_patient(
        self, caller: str, patient_id: PatientId, candidate_group_ids: Sequence[GroupId]
    ) -> Result[GroupId]:
        """
        Assigns a patient to a group drawn from candidate_group_ids.

        The draw advances the stored seed and is committed immediately, so a
        draw that lands on a missing or full group still consumes the seed.
        Callers cannot replay the same draw by repeatedly failing validation.
        """
        if err := self._require_admin(caller):
            return err

        if len(candidate_group_ids) == 0:
            return self._reject(
                Err(ErrorCode.BAD_REQUEST, "At least one candidate group is required.")
            )

        if err := self._check_unassigned(patient_id):
            return err

        index = self.next_index(len(candidate_group_ids))
        group_id = candidate_group_ids[index]
        logger.info(
            "Randomization drew index %d (%s) for patient %s", index, group_id, patient_id
        )

        group = self.group_repo.get_group(group_id, for_update=True)
        if group is None:
            return self._reject(Err(ErrorCode.NOT_FOUND, f"Group {group_id} not found."))

        if err := self._check_capacity(group):
            return err

        if err := self._commit_assignment(patient_id, group):
            return err

        return Ok(group_id)

    # --- Pseudo-random selection ---

    def next_index(self, bound: int) -> int:
        """
        Draws an index in [0, bound) from the evolving seed.

        The new seed is the stored seed plus the current clock reading. It is
        stored and committed before the modulo is taken. Not suitable where
        unpredictability matters: the sequence can be recomputed from the
        seed and the clock readings.
        """
        if bound <= 0:
            raise ValueError(f"bound must be positive, got {bound}")

        state = self.state_repo.get_state(for_update=True)
        new_seed = state.random_seed + self.clock.now()
        self.state_repo.set_seed(state, new_seed)
        self._commit()

        return new_seed % bound

    # --- Helpers ---

    def _check_unassigned(self, patient_id: PatientId) -> Optional[Err]:
        existing = self.assignment_repo.get_assignment(patient_id)
        if existing is not None:
            return self._reject(
                Err(
                    ErrorCode.CONFLICT,
                    f"Patient {patient_id} is already assigned to group {existing.group_id}.",
                )
            )
        return None

    def _check_capacity(self, group: TreatmentGroupORM) -> Optional[Err]:
        if not group.has_capacity():
            return self._reject(
                Err(
                    ErrorCode.FULL,
                    f"Group {group.group_id} is full ({group.current_count}/{group.max_patients}).",
                )
            )
        return None

    def _commit_assignment(
        self, patient_id: PatientId, group: TreatmentGroupORM
    ) -> Optional[Err]:
        group_id = group.group_id
        try:
            self.group_repo.increment_count(group)
            self.assignment_repo.add_assignment(patient_id, group_id)
            self.db.commit()
        except IntegrityError as e:
            # A concurrent call assigned this patient first
            self.db.rollback()
            logger.warning(
                "Integrity error assigning patient %s to group %s: %s",
                patient_id,
                group_id,
                e.orig,
            )
            return self._reject(
                Err(ErrorCode.CONFLICT, f"Patient {patient_id} is already assigned.")
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                "Database error assigning patient %s to group %s: %s", patient_id, group_id, e
            )
            raise

        logger.info("Assigned patient %s to group %s", patient_id, group_id)
        return None

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Database error committing registry state: %s", e)
            raise

    def _reject(self, err: Err) -> Err:
        # Drop anything staged by the failed call and release row locks
        self.db.rollback()
        logger.warning("Registry operation rejected (%d): %s", err.code, err.detail)
        return err
