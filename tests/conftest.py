"""
This file contains shared fixtures and configuration for the test suite.

Pytest will automatically discover and use the fixtures defined in this file.

The application reads its configuration at import time, so the environment
is prepared here before anything from ``taskboard`` or ``main`` is imported.
Every test gets freshly created tables in a throwaway SQLite file and a
fresh application instance (with fresh rate-limit counters).
"""

import asyncio
import os
import tempfile
from collections.abc import Callable

_TEST_DIR = tempfile.mkdtemp(prefix="taskboard-tests-")
os.environ["ENVIRONMENT"] = "test"
os.environ["TASKBOARD_DATABASE_URL"] = (
    f"sqlite+aiosqlite:///{os.path.join(_TEST_DIR, 'taskboard.db')}"
)
os.environ["JWT_SECRET"] = "test-secret-for-the-suite"
os.environ["AUTH_RATE_LIMIT_MAX"] = "10000"
os.environ["GENERAL_RATE_LIMIT_MAX"] = "10000"
os.environ["LOG_DIR"] = os.path.join(_TEST_DIR, "logs")

import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from taskboard.db import drop_db, init_db  # noqa: E402
from taskboard.utils.auth import token_blacklist  # noqa: E402
from taskboard.utils.security_logger import security_logger  # noqa: E402

DEFAULT_PASSWORD = "Passw0rd!"


@pytest.fixture(autouse=True)
def reset_state():
    """
    Recreate all tables and clear process-wide in-memory state for every test.
    """
    asyncio.run(drop_db())
    asyncio.run(init_db())
    token_blacklist.clear()
    security_logger.failed_attempts.clear()
    yield


@pytest.fixture
def app() -> FastAPI:
    """
    Create a new application instance for each test.
    """
    # Import the factory function here so settings overrides made by a test apply.
    from main import create_app

    return create_app()


@pytest.fixture
def client(app: FastAPI):
    """
    Fixture to get a test client for making API requests.
    The TestClient handles the application's lifespan events (startup/shutdown).
    """
    with TestClient(app) as c:
        yield c


@pytest.fixture
def register(client: TestClient) -> Callable[..., dict]:
    """Register a user and return the response body (id, name, email, token)."""
    counter = {"n": 0}

    def _register(name: str | None = None, email: str | None = None, password: str = DEFAULT_PASSWORD):
        counter["n"] += 1
        name = name or f"user{counter['n']}"
        email = email or f"{name}@example.com"
        response = client.post(
            "/api/auth/register",
            json={"name": name, "email": email, "password": password},
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _register


def _auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers() -> Callable[[str], dict[str, str]]:
    return _auth_headers


@pytest.fixture
def user(register) -> dict:
    body = register(name="alice", email="alice@example.com")
    return {**body, "headers": _auth_headers(body["token"])}


@pytest.fixture
def other_user(register) -> dict:
    body = register(name="mallory", email="mallory@example.com")
    return {**body, "headers": _auth_headers(body["token"])}


@pytest.fixture
def create_project(client: TestClient) -> Callable[..., dict]:
    def _create_project(headers: dict, name: str = "Project One", description: str = ""):
        response = client.post(
            "/api/projects",
            json={"name": name, "description": description},
            headers=headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _create_project


@pytest.fixture
def create_task(client: TestClient) -> Callable[..., dict]:
    def _create_task(headers: dict, project_id: str, title: str = "A task", **fields):
        response = client.post(
            "/api/tasks",
            json={"projectId": project_id, "title": title, **fields},
            headers=headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _create_task
