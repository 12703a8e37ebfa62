"""
Authentication REST endpoints.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from groundcontrol.auth.dependencies import CurrentUserDep
from groundcontrol.auth.jwt import JWTService
from groundcontrol.auth.schemas import CurrentUser, LoginRequest, TokenResponse
from groundcontrol.auth.service import AuthService
from groundcontrol.bsd import BSDClient
from groundcontrol.config import Settings, get_settings
from groundcontrol.dependencies import get_bsd_client
from groundcontrol.shared.database import get_db_session

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    session: Annotated[AsyncSession, Depends(get_db_session)],
    bsd: Annotated[BSDClient, Depends(get_bsd_client)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TokenResponse:
    return await AuthService(session, bsd, JWTService(settings)).login(body.email, body.password)


@router.get("/me", response_model=CurrentUser)
async def me(user: CurrentUserDep) -> CurrentUser:
    return CurrentUser.model_validate(user)
