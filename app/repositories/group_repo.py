# repositories/group_repo.py
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.ids import GroupId
from app.models.orm.treatment_group import TreatmentGroupORM


class TreatmentGroupRepository:
    def __init__(self, db: Session):
        """Initializes the repository with a database session."""
        self.db = db

    def get_group(
        self, group_id: GroupId, for_update: bool = False
    ) -> Optional[TreatmentGroupORM]:
        """
        Retrieves a treatment group by its ID.

        Pass for_update when the group's count is about to change, so the
        row stays locked until the transaction ends.
        """
        query = self.db.query(TreatmentGroupORM).filter(
            TreatmentGroupORM.group_id == group_id
        )
        if for_update:
            query = query.with_for_update()

        return query.one_or_none()

    def list_groups(self) -> list[TreatmentGroupORM]:
        stmt = select(TreatmentGroupORM).order_by(TreatmentGroupORM.group_id)

        return list(self.db.scalars(stmt).all())

    def add_group(
        self, group_id: GroupId, name: str, description: str, max_patients: int
    ) -> TreatmentGroupORM:
        """
        Stages a new group with an empty roster.
        Note: the caller commits, and must ensure the ID is not taken.
        """
        db_group = TreatmentGroupORM(
            group_id=group_id,
            name=name,
            description=description,
            max_patients=max_patients,
            current_count=0,
        )
        self.db.add(db_group)
        self.db.flush()

        return db_group

    def increment_count(self, group: TreatmentGroupORM) -> TreatmentGroupORM:
        group.current_count = group.current_count + 1
        self.db.flush()

        return group
