"""
FastAPI dependencies.

Shared-secret checks for the two inbound surfaces:
- the Zalo webhook sends `X-Bot-Api-Secret-Token` (403 on mismatch)
- admin callers send `X-Admin-Authentication-Key` (401 on mismatch)
"""

import hmac
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from studybot.context import AppContext


def get_context(request: Request) -> AppContext:
    return request.app.state.context


Context = Annotated[AppContext, Depends(get_context)]


async def get_db(context: Context) -> AsyncGenerator[AsyncSession, None]:
    """Yield a unit-of-work session that commits when the request succeeds."""
    async with context.database.session() as session:
        yield session


DbSession = Annotated[AsyncSession, Depends(get_db)]


def _secret_matches(provided: str | None, expected: str) -> bool:
    # An unset secret never matches
    if not expected or provided is None:
        return False
    return hmac.compare_digest(provided.encode(), expected.encode())


async def verify_webhook_secret(
    context: Context,
    x_bot_api_secret_token: Annotated[str | None, Header()] = None,
) -> None:
    if not _secret_matches(x_bot_api_secret_token, context.settings.webhook_secret):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized")


async def require_admin(
    context: Context,
    x_admin_authentication_key: Annotated[str | None, Header()] = None,
) -> None:
    if not _secret_matches(x_admin_authentication_key, context.settings.admin_authentication_key):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
