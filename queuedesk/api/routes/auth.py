from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials

from queuedesk.api.schemas import LoginRequest, LoginResponse
from queuedesk.dependencies.auth import TokenRegistry, bearer_scheme, get_token_registry
from queuedesk.dependencies.dispatch import QueueService

router = APIRouter(prefix="/auth", tags=["auth"])

Tokens = Annotated[TokenRegistry, Depends(get_token_registry)]


@router.post("/login", response_model=LoginResponse, summary="Exchange staff credentials for a bearer token")
async def login(payload: LoginRequest, service: QueueService, tokens: Tokens) -> LoginResponse:
    member = service.staff.authenticate(payload.staff_id, payload.password)
    if member is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return LoginResponse(access_token=tokens.issue(member), staff_id=member.id, kind=member.kind.value)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)],
    tokens: Tokens,
) -> None:
    if credentials is None or not tokens.revoke(credentials.credentials):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid authentication credentials")
