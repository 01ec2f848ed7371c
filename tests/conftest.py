import asyncio
import os
import uuid
from datetime import datetime

# Cheap password hashes for the whole test run (read when the app is built)
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from weather_api.main import create_app
from weather_api.models import WeatherReading
from weather_api.services import ReadingCatalog, UserDirectory, WeatherStore


def run(coro):
    """Run a coroutine from a synchronous test."""
    return asyncio.run(coro)


@pytest.fixture()
def store():
    return WeatherStore(AsyncMongoMockClient(), f"weather-test-{uuid.uuid4().hex[:8]}")


@pytest.fixture()
def directory(store):
    return UserDirectory(store, bcrypt_rounds=4)


@pytest.fixture()
def catalog(store):
    return ReadingCatalog(store)


@pytest.fixture()
def app(store):
    return create_app(store)


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def make_user(directory):
    """
    Create a user straight in the store.

    Returns (user, token). The token is None when logged_in=False.
    Extra keyword arguments are patched onto the stored document.
    """
    def _make(role="student", email=None, password="secret", logged_in=True, **fields):
        email = email or f"{role}-{uuid.uuid4().hex[:8]}@example.com"
        user, _ = run(directory.create_user(f"{role}-user", email, password, role))
        token = run(directory.start_session(user)) if logged_in else None
        if fields:
            run(directory.update_user(user.id, fields))
        return run(directory.get_by_id(user.id)), token

    return _make


@pytest.fixture()
def teacher_headers(make_user):
    _, token = make_user("teacher")
    return {"Auth-Key": token}


@pytest.fixture()
def station_headers(make_user):
    _, token = make_user("station")
    return {"Auth-Key": token}


@pytest.fixture()
def make_reading(catalog):
    """Insert a reading and return it."""
    def _make(device_name="Woodford_Sensor", time=datetime(2024, 3, 14, 10, 30), **measurements):
        reading = WeatherReading(device_name=device_name, time=time, **measurements)
        run(catalog.insert_reading(reading))
        return reading

    return _make
