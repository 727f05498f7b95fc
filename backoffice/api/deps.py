import logging
from typing import AsyncIterator, Optional

from fastapi import Depends, Header, HTTPException

from backoffice.config import settings
from backoffice.database import db
from backoffice.errors import (
    ApiError, BackofficeError, ExpenseNotFound, InvalidTransition, ToggleWindowExpired, ValidationError,
)
from backoffice.repositories.access import AccessStore, InMemoryAccessStore
from backoffice.services.expense_service import ExpenseDecisionService
from backoffice.tools.api_client import BackofficeApiClient

logger = logging.getLogger(__name__)

# Used when MongoDB is not connected (local runs, tests)
local_access_store = InMemoryAccessStore(settings.TENANT_ID)

STATUS_CODES = [
    (ValidationError, 422),
    (ToggleWindowExpired, 409),
    (InvalidTransition, 409),
    (ExpenseNotFound, 404),
]


def http_error(exc: BackofficeError) -> HTTPException:
    """Map a service error onto the HTTP status the dashboard expects."""
    for exc_type, status_code in STATUS_CODES:
        if isinstance(exc, exc_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    if isinstance(exc, ApiError):
        if exc.status_code in (401, 403):
            return HTTPException(status_code=exc.status_code, detail=exc.message)
        return HTTPException(status_code=502, detail=exc.message)
    logger.error(f"Unmapped error: {exc!r}")
    return HTTPException(status_code=500, detail=str(exc))


async def get_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    """Bearer token forwarded as-is to the remote API."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(status_code=401, detail="Invalid authorization header")
    return token.strip()


async def get_actor_id(x_user_id: Optional[str] = Header(None)) -> Optional[str]:
    return x_user_id


async def get_access_store() -> AccessStore:
    return db.access or local_access_store


async def get_api_client(token: Optional[str] = Depends(get_token)) -> AsyncIterator[BackofficeApiClient]:
    async with BackofficeApiClient(token=token) as client:
        yield client


async def get_expense_service(api: BackofficeApiClient = Depends(get_api_client),
                              access_store: AccessStore = Depends(get_access_store)) -> ExpenseDecisionService:
    service = ExpenseDecisionService(api, access_store=access_store)
    try:
        await service.load()
    except BackofficeError as e:
        raise http_error(e)
    return service
