from sqlalchemy import BigInteger, Column, Integer, String

from .base import Base

REGISTRY_STATE_ID = 1


class RegistryStateORM(Base):
    """Singleton row holding the registry's scalar state."""

    __tablename__ = "registry_state"

    id = Column(Integer, primary_key=True, default=REGISTRY_STATE_ID)
    admin = Column(String, nullable=False)
    random_seed = Column(BigInteger, nullable=False, default=0)
