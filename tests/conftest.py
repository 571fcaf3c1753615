import asyncio
import os
import tempfile
from pathlib import Path

# Settings and the engine are built at import time, so the environment
# has to be in place before anything under backend.app is imported.
_TEST_DIR = Path(tempfile.mkdtemp(prefix="youandme-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR / 'test.db'}"
os.environ["SECRET_KEY"] = "test-secret-key-not-used-anywhere-else"
os.environ["ENVIRONMENT"] = "test"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["CORS_ORIGINS"] = ""

import pytest
from fastapi.testclient import TestClient

from backend.app.db import init_models
from backend.app.db.session import AsyncSessionLocal
from backend.app.main import app
from backend.app.services.mailer import get_mailer

API = "/api/v1"
PASSWORD = "correct horse battery"


class RecordingMailer:
    """Keeps every outgoing message so tests can pick up the tokens."""

    def __init__(self):
        self.outbox = []

    async def send(self, message):
        self.outbox.append(message)

    def last(self, kind, to_email=None):
        for message in reversed(self.outbox):
            if message.kind == kind and (to_email is None or message.to_email == to_email):
                return message
        raise AssertionError(f"no {kind} email sent to {to_email or 'anyone'}")

    def count(self, kind):
        return sum(1 for message in self.outbox if message.kind == kind)


def run_sync(coro):
    # Private loop, so the loop pytest-asyncio installs is left alone
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def run_statement(statement):
    """Execute one SQL statement in its own session, e.g. to age a timestamp."""

    async def _run():
        async with AsyncSessionLocal() as session:
            await session.execute(statement)
            await session.commit()

    run_sync(_run())


class Api:
    """Small wrapper around TestClient for the common account flows."""

    def __init__(self, client, mailer):
        self.client = client
        self.mailer = mailer

    def register(self, email, password=PASSWORD, display_name=None):
        payload = {"email": email, "password": password}
        if display_name:
            payload["display_name"] = display_name
        return self.client.post(f"{API}/auth/register", json=payload)

    def signup(self, email, password=PASSWORD, display_name=None):
        """Register and confirm; returns the user as JSON."""
        res = self.register(email, password, display_name)
        assert res.status_code == 201, res.text
        user = res.json()

        token = self.mailer.last("confirm_email", email).token
        res = self.client.post(
            f"{API}/auth/confirm-email", json={"user_id": user["id"], "token": token}
        )
        assert res.status_code == 200, res.text
        return user

    def login(self, email, password=PASSWORD):
        return self.client.post(f"{API}/auth/login", json={"email": email, "password": password})

    def tokens(self, email, password=PASSWORD):
        res = self.login(email, password)
        assert res.status_code == 200, res.text
        return res.json()

    def headers(self, email, password=PASSWORD):
        return {"Authorization": f"Bearer {self.tokens(email, password)['access_token']}"}

    def user(self, email, password=PASSWORD, display_name=None):
        """Confirmed account, returns auth headers."""
        self.signup(email, password, display_name)
        return self.headers(email, password)

    def invite(self, headers, email):
        return self.client.post(f"{API}/partnership/invitations", json={"email": email}, headers=headers)

    def accept(self, headers, token):
        return self.client.post(
            f"{API}/partnership/invitations/accept", json={"token": token}, headers=headers
        )

    def partner(self, inviter_headers, invitee_email, invitee_headers):
        res = self.invite(inviter_headers, invitee_email)
        assert res.status_code == 202, res.text
        token = self.mailer.last("partnership_invitation", invitee_email).token
        res = self.accept(invitee_headers, token)
        assert res.status_code == 201, res.text
        return res.json()


@pytest.fixture(autouse=True)
def database():
    run_sync(init_models(drop_existing=True))
    yield


@pytest.fixture()
def mailer():
    recording = RecordingMailer()
    app.dependency_overrides[get_mailer] = lambda: recording
    yield recording
    app.dependency_overrides.pop(get_mailer, None)


@pytest.fixture()
def client(mailer):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def api(client, mailer):
    return Api(client, mailer)


@pytest.fixture()
async def db():
    async with AsyncSessionLocal() as session:
        yield session
