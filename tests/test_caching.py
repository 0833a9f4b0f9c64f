"""Tests for Redis caching of users and doctors."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
import redis

from app.core.redis_client import CacheManager
from app.services.doctor_service import DoctorService
from app.services.user_service import UserService
from tests.conftest import DOCTOR_ID, DOCTOR_USER_ID


def test_cache_manager_get_json():
    """Test CacheManager get_json method."""
    mock_redis = MagicMock()
    cache_manager = CacheManager(redis_client=mock_redis)

    # Test cache miss
    mock_redis.get.return_value = None
    result = cache_manager.get_json("test_key")
    assert result is None
    mock_redis.get.assert_called_once_with("test_key")

    # Test cache hit
    mock_redis.reset_mock()
    mock_redis.get.return_value = '{"name": "Test", "value": 123}'
    result = cache_manager.get_json("test_key")
    assert result == {"name": "Test", "value": 123}


def test_cache_manager_set_json():
    """Test CacheManager set_json method."""
    mock_redis = MagicMock()
    cache_manager = CacheManager(redis_client=mock_redis)

    # UUIDs are stored as strings
    assert cache_manager.set_json("test_key", {"id": DOCTOR_ID}) is True
    mock_redis.set.assert_called_once_with("test_key", f'{{"id": "{DOCTOR_ID}"}}')

    mock_redis.reset_mock()
    assert cache_manager.set_json("test_key", {"value": 1}, ttl=300) is True
    mock_redis.setex.assert_called_once_with("test_key", 300, '{"value": 1}')


def test_cache_errors_behave_as_misses():
    mock_redis = MagicMock()
    mock_redis.get.side_effect = redis.ConnectionError("down")
    mock_redis.setex.side_effect = redis.ConnectionError("down")
    cache_manager = CacheManager(redis_client=mock_redis)

    assert cache_manager.get_json("key") is None
    assert cache_manager.set_json("key", {"a": 1}, ttl=60) is False


def doctor_row() -> dict:
    return {
        "id": DOCTOR_ID,
        "user_id": DOCTOR_USER_ID,
        "name": "Greg House",
        "is_accepting_patients": True,
        "license_verified": True,
        "consultation_fee": "150.00",
        "specializations": None,
        "clinic_name": "Princeton Clinic",
        "clinic_address": None,
    }


@pytest.mark.asyncio
async def test_doctor_view_read_through_cache():
    db = AsyncMock()
    result = MagicMock()
    result.mappings.return_value.first.return_value = doctor_row()
    db.execute.return_value = result

    cache = MagicMock()
    cache.get_json.return_value = None

    doctor = await DoctorService(db, cache).get_doctor(DOCTOR_ID)

    assert doctor.name == "Greg House"
    assert doctor.specializations == []
    cache.set_json.assert_called_once()
    key, payload = cache.set_json.call_args.args
    assert key == f"doctor:{DOCTOR_ID}"
    assert payload["consultation_fee"] == 150.0
    assert cache.set_json.call_args.kwargs["ttl"] == DoctorService.DOCTOR_CACHE_TTL == 60


@pytest.mark.asyncio
async def test_doctor_view_cache_hit_skips_database():
    db = AsyncMock()
    cache = MagicMock()
    cache.get_json.return_value = {**doctor_row(), "id": str(DOCTOR_ID), "specializations": []}

    doctor = await DoctorService(db, cache).get_doctor(DOCTOR_ID)

    assert doctor.id == DOCTOR_ID
    db.execute.assert_not_awaited()


@pytest.mark.asyncio
async def test_unknown_doctor_is_not_cached():
    db = AsyncMock()
    result = MagicMock()
    result.mappings.return_value.first.return_value = None
    db.execute.return_value = result
    cache = MagicMock()
    cache.get_json.return_value = None

    assert await DoctorService(db, cache).get_doctor(uuid4()) is None
    cache.set_json.assert_not_called()


@pytest.mark.asyncio
async def test_user_lookup_is_cached():
    user_id = uuid4()
    db = AsyncMock()
    result = MagicMock()
    result.mappings.return_value.first.return_value = {
        "id": user_id,
        "email": "pat@example.com",
        "full_name": "Pat Lee",
        "role": "PATIENT",
        "is_active": True,
    }
    db.execute.return_value = result
    cache = MagicMock()
    cache.get_json.return_value = None

    user = await UserService(cache).get_user_by_id(db, user_id)

    assert user["email"] == "pat@example.com"
    cache.set_json.assert_called_once_with(
        f"user:{user_id}", user, ttl=UserService.USER_CACHE_TTL
    )
