from datetime import datetime, timedelta, timezone

from sqlalchemy import select, update

from backend.app.models import RefreshToken
from backend.app.security import jwt
from backend.app.services import identity
from conftest import API, run_statement


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


def test_expired_access_token_rejected(api, client):
    user = api.signup("alice@example.com")
    token = jwt.create_access_token({"sub": str(user["id"])}, expires_delta=timedelta(seconds=-1))

    res = client.get(f"{API}/auth/me", headers=_bearer(token))
    assert res.status_code == 401
    assert res.json()["code"] == "invalid_token"


def test_access_token_claims(api):
    user = api.signup("alice@example.com")
    tokens = api.tokens("alice@example.com")

    payload = jwt.decode_token(tokens["access_token"])
    assert payload.sub == str(user["id"])
    assert payload.typ == jwt.ACCESS_TOKEN_TYPE
    assert payload.jti
    assert payload.sid
    assert payload.exp > payload.iat


def test_tampered_access_token_rejected(api, client):
    api.signup("alice@example.com")
    access = api.tokens("alice@example.com")["access_token"]
    header, payload, signature = access.split(".")
    tampered = ".".join([header, payload, signature[::-1]])

    assert client.get(f"{API}/auth/me", headers=_bearer(tampered)).status_code == 401


def test_pending_token_is_not_an_access_token(api, client):
    user = api.signup("alice@example.com")
    pending = jwt.create_access_token(
        {"sub": str(user["id"])}, token_type=jwt.TWO_FACTOR_PENDING_TYPE
    )

    assert client.get(f"{API}/auth/me", headers=_bearer(pending)).status_code == 401


def test_access_token_is_not_a_pending_token(api, client):
    access = api.tokens(api.signup("alice@example.com")["email"])["access_token"]

    res = client.post(f"{API}/auth/2fa/verify", json={"pending_token": access, "code": "123456"})
    assert res.status_code == 401


def test_refresh_rotates_tokens(api, client):
    api.signup("alice@example.com")
    first = api.tokens("alice@example.com")

    res = client.post(f"{API}/auth/refresh", json={"refresh_token": first["refresh_token"]})
    assert res.status_code == 200, res.text
    second = res.json()
    assert second["refresh_token"] != first["refresh_token"]
    assert client.get(f"{API}/auth/me", headers=_bearer(second["access_token"])).status_code == 200

    res = client.post(f"{API}/auth/refresh", json={"refresh_token": second["refresh_token"]})
    assert res.status_code == 200


def test_refresh_replay_revokes_every_session(api, client):
    api.signup("alice@example.com")
    first = api.tokens("alice@example.com")
    other_device = api.tokens("alice@example.com")

    second = client.post(f"{API}/auth/refresh", json={"refresh_token": first["refresh_token"]}).json()

    # The rotated token shows up again
    res = client.post(f"{API}/auth/refresh", json={"refresh_token": first["refresh_token"]})
    assert res.status_code == 401

    for token in (second["refresh_token"], other_device["refresh_token"]):
        assert client.post(f"{API}/auth/refresh", json={"refresh_token": token}).status_code == 401


def test_expired_refresh_token_rejected(api, client):
    api.signup("alice@example.com")
    tokens = api.tokens("alice@example.com")
    run_statement(
        update(RefreshToken).values(expires_at=datetime.now(timezone.utc) - timedelta(seconds=1))
    )

    res = client.post(f"{API}/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert res.status_code == 401


def test_unknown_refresh_token_rejected(client):
    res = client.post(f"{API}/auth/refresh", json={"refresh_token": "made-up"})
    assert res.status_code == 401


def test_logout_revokes_refresh_token_and_is_idempotent(api, client):
    api.signup("alice@example.com")
    tokens = api.tokens("alice@example.com")

    for _ in range(2):
        res = client.post(f"{API}/auth/logout", json={"refresh_token": tokens["refresh_token"]})
        assert res.status_code == 200

    res = client.post(f"{API}/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert res.status_code == 401


async def test_refresh_stores_only_hashes(api, db):
    api.signup("alice@example.com")
    tokens = api.tokens("alice@example.com")

    stored = (await db.execute(select(RefreshToken))).scalars().all()
    assert len(stored) == 1
    assert stored[0].token_hash != tokens["refresh_token"]
    assert len(stored[0].token_hash) == 64


async def test_refresh_marks_replacement(api, db):
    api.signup("alice@example.com")
    tokens = api.tokens("alice@example.com")

    pair = await identity.refresh_session(db, tokens["refresh_token"])
    assert pair.refresh_token != tokens["refresh_token"]

    rows = (await db.execute(select(RefreshToken).order_by(RefreshToken.id))).scalars().all()
    old, new = rows
    await db.refresh(old)
    await db.refresh(new)
    assert old.revoked_at is not None
    assert old.replaced_by_id == new.id
    assert new.revoked_at is None


def test_logout_ends_the_access_token_too(api, client):
    api.signup("alice@example.com")
    tokens = api.tokens("alice@example.com")
    other_device = api.tokens("alice@example.com")
    assert client.get(f"{API}/auth/me", headers=_bearer(tokens["access_token"])).status_code == 200

    client.post(f"{API}/auth/logout", json={"refresh_token": tokens["refresh_token"]})

    res = client.get(f"{API}/auth/me", headers=_bearer(tokens["access_token"]))
    assert res.status_code == 401
    assert res.json()["detail"] == "Session expired or revoked"
    # Only that session ended
    assert client.get(f"{API}/auth/me", headers=_bearer(other_device["access_token"])).status_code == 200


def test_logout_with_rotated_token_ends_the_session(api, client):
    api.signup("alice@example.com")
    first = api.tokens("alice@example.com")
    second = client.post(f"{API}/auth/refresh", json={"refresh_token": first["refresh_token"]}).json()

    # Same session before and after rotation
    assert jwt.decode_token(first["access_token"]).sid == jwt.decode_token(second["access_token"]).sid
    assert client.get(f"{API}/auth/me", headers=_bearer(first["access_token"])).status_code == 200

    client.post(f"{API}/auth/logout", json={"refresh_token": second["refresh_token"]})
    for token in (first["access_token"], second["access_token"]):
        assert client.get(f"{API}/auth/me", headers=_bearer(token)).status_code == 401


def test_refresh_replay_ends_access_tokens(api, client):
    api.signup("alice@example.com")
    first = api.tokens("alice@example.com")
    second = client.post(f"{API}/auth/refresh", json={"refresh_token": first["refresh_token"]}).json()

    client.post(f"{API}/auth/refresh", json={"refresh_token": first["refresh_token"]})

    assert client.get(f"{API}/auth/me", headers=_bearer(second["access_token"])).status_code == 401


def test_access_token_without_session_rejected(api, client):
    user = api.signup("alice@example.com")
    token = jwt.create_access_token({"sub": str(user["id"])})

    assert client.get(f"{API}/auth/me", headers=_bearer(token)).status_code == 401


def test_access_token_with_unknown_session_rejected(api, client):
    user = api.signup("alice@example.com")
    api.tokens("alice@example.com")
    token = jwt.create_access_token({"sub": str(user["id"]), "sid": "0" * 32})

    assert client.get(f"{API}/auth/me", headers=_bearer(token)).status_code == 401


def test_session_of_another_user_rejected(api, client):
    api.signup("alice@example.com")
    bob = api.signup("bob@example.com")
    alice_sid = jwt.decode_token(api.tokens("alice@example.com")["access_token"]).sid
    token = jwt.create_access_token({"sub": str(bob["id"]), "sid": alice_sid})

    assert client.get(f"{API}/auth/me", headers=_bearer(token)).status_code == 401
