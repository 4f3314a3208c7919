from pydantic import BaseModel


class AdminModel(BaseModel):
    admin: str


class AdminTransferModel(BaseModel):
    new_admin: str


class AcknowledgementModel(BaseModel):
    """Response body for operations whose only payload is success."""

    ok: bool = True
