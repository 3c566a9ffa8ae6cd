"""
Shared FastAPI dependencies
"""

from typing import AsyncGenerator, Optional
from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from core.config import settings
from core.database import async_session_maker
from core.exceptions import AuthenticationError
from episode_sync.runner import SyncOrchestrator
import logging

logger = logging.getLogger(__name__)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a request-scoped database session"""
    async with async_session_maker() as session:
        yield session


def _extract_key(x_api_key: Optional[str], authorization: Optional[str]) -> Optional[str]:
    if x_api_key:
        return x_api_key
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip()
    return None


async def verify_api_key(
    x_api_key: Optional[str] = Header(None),
    authorization: Optional[str] = Header(None)
):
    """
    Guard operator endpoints.

    Enforced only when API_KEY is set. The key is accepted from the
    X-API-Key header or as a bearer token.
    """
    if not settings.API_KEY:
        return

    provided = _extract_key(x_api_key, authorization)
    if provided != settings.API_KEY:
        error = AuthenticationError(
            "Invalid or missing API key",
            context={"header_present": provided is not None}
        )
        logger.warning(error.message, extra={"error_context": error.to_dict()})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=error.message,
            headers={"WWW-Authenticate": "Bearer"}
        )


def get_orchestrator(db: AsyncSession = Depends(get_db)) -> SyncOrchestrator:
    """Build a sync orchestrator bound to the request session"""
    return SyncOrchestrator(db)
