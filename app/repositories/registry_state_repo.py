# repositories/registry_state_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.orm.registry_state import REGISTRY_STATE_ID, RegistryStateORM


class RegistryStateRepository:
    def __init__(self, db: Session, initial_admin: str):
        """
        Initializes the repository with a database session.

        initial_admin is only used when the state row does not exist yet.
        """
        self.db = db
        self.initial_admin = initial_admin

    def get_state(self, for_update: bool = False) -> RegistryStateORM:
        """
        Fetches the singleton state row, creating it on first use.

        With for_update the row is locked for the rest of the transaction on
        databases that support SELECT ... FOR UPDATE.
        """
        stmt = select(RegistryStateORM).where(RegistryStateORM.id == REGISTRY_STATE_ID)
        if for_update:
            stmt = stmt.with_for_update()

        state = self.db.scalars(stmt).one_or_none()
        if state is None:
            state = RegistryStateORM(
                id=REGISTRY_STATE_ID, admin=self.initial_admin, random_seed=0
            )
            self.db.add(state)
            self.db.flush()

        return state

    def set_admin(self, new_admin: str) -> RegistryStateORM:
        state = self.get_state(for_update=True)
        state.admin = new_admin
        self.db.flush()

        return state

    def set_seed(self, state: RegistryStateORM, new_seed: int) -> RegistryStateORM:
        state.random_seed = new_seed
        self.db.flush()

        return state
