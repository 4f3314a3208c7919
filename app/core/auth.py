from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

# tokenUrl is where clients would request a token; the registry itself does
# not issue them.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token")


def get_caller_identity(token: Annotated[str, Depends(oauth2_scheme)]) -> str:
    """
    Dependency that resolves the identity of the current caller.

    The bearer token is taken as the caller's principal. Whether that
    principal may mutate the registry is decided by the service, which
    compares it against the stored admin identity.

    If no token is provided, OAuth2PasswordBearer raises 401 before this
    function runs. The token is compared verbatim, the same way set_admin
    stores the new admin.
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return token
