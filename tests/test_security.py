"""Tests for bearer token handling."""

from datetime import timedelta

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from app.core.security import create_access_token, decode_access_token
from app.dependencies import get_current_user_id
from tests.conftest import PATIENT_USER_ID


def credentials(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


def test_token_round_trip():
    token = create_access_token({"sub": str(PATIENT_USER_ID)})
    payload = decode_access_token(token)

    assert payload["sub"] == str(PATIENT_USER_ID)
    assert payload["type"] == "access"


def test_expired_token_is_rejected():
    token = create_access_token({"sub": str(PATIENT_USER_ID)}, timedelta(minutes=-1))
    assert decode_access_token(token) is None


def test_garbage_token_is_rejected():
    assert decode_access_token("not-a-jwt") is None


@pytest.mark.asyncio
async def test_current_user_id_from_token():
    token = create_access_token({"sub": str(PATIENT_USER_ID)})
    assert await get_current_user_id(credentials(token)) == PATIENT_USER_ID


@pytest.mark.asyncio
@pytest.mark.parametrize("claims", [{}, {"sub": "not-a-uuid"}])
async def test_current_user_id_rejects_bad_subject(claims):
    token = create_access_token(claims)

    with pytest.raises(HTTPException) as exc_info:
        await get_current_user_id(credentials(token))

    assert exc_info.value.status_code == 401
