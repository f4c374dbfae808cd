"""FastAPI dependencies: get_current_user_id, require_admin.

Identity is established upstream by the gateway in front of this service,
which forwards the caller's id in the X-User-Id header. This service never
issues or verifies credentials.

Usage in any protected router:
    from src.pm_gateway.auth.dependencies import get_current_user_id

    @router.get("/protected")
    async def protected(user_id: str = Depends(get_current_user_id)):
        ...
"""

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_clearing.domain.repository import LedgerRepositoryProtocol
from src.pm_clearing.infrastructure.ledger import LedgerRepository
from src.pm_common.database import get_db_session
from src.pm_common.errors import AccountNotFoundError, AdminRequiredError

_MAX_USER_ID_LENGTH = 64

# Reusable 401 for a missing or malformed identity header
_IDENTITY_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Missing or invalid X-User-Id header",
)

_ledger = LedgerRepository()


def get_ledger() -> LedgerRepositoryProtocol:
    return _ledger


async def get_current_user_id(
    x_user_id: str | None = Header(None, alias="X-User-Id"),
) -> str:
    """Return the caller's user id from the forwarded identity header.

    Raises HTTP 401 if the header is absent, blank, or too long.
    """
    if x_user_id is None:
        raise _IDENTITY_EXCEPTION
    user_id = x_user_id.strip()
    if not user_id or len(user_id) > _MAX_USER_ID_LENGTH:
        raise _IDENTITY_EXCEPTION
    return user_id


async def require_admin(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    ledger: LedgerRepositoryProtocol = Depends(get_ledger),
) -> str:
    """Verify the caller's account carries the admin flag.

    Raises AccountNotFoundError (2002) if the caller has no account and
    AdminRequiredError (2003) if the account is not an administrator.
    """
    account = await ledger.get_account(db, user_id)
    if account is None:
        raise AccountNotFoundError(user_id)
    if not account.is_admin:
        raise AdminRequiredError()
    return user_id
