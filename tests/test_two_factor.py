import time
from datetime import timedelta

import pyotp
import pytest

from backend.app.security import jwt, totp
from conftest import API, PASSWORD


@pytest.fixture()
def two_factor_user(api, client):
    """Confirmed account with two-factor on. Returns (headers, secret, backup codes)."""
    headers = api.user("alice@example.com")

    res = client.post(f"{API}/auth/2fa/setup", headers=headers)
    assert res.status_code == 200, res.text
    setup = res.json()
    assert setup["otpauth_uri"].startswith("otpauth://totp/")
    assert setup["qr_code_base64"]

    code = pyotp.TOTP(setup["secret"]).now()
    res = client.post(f"{API}/auth/2fa/enable", json={"code": code}, headers=headers)
    assert res.status_code == 200, res.text
    codes = res.json()["codes"]
    return headers, setup["secret"], codes


def _pending(api):
    res = api.login("alice@example.com")
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["requires_two_factor"] is True
    assert "access_token" not in body
    return body["pending_token"]


def test_enable_returns_ten_backup_codes(two_factor_user):
    _, _, codes = two_factor_user
    assert len(codes) == 10
    assert len(set(codes)) == 10
    for code in codes:
        left, right = code.split("-")
        assert len(left) == len(right) == 8


def test_enable_rejects_wrong_code(api, client):
    headers = api.user("alice@example.com")
    client.post(f"{API}/auth/2fa/setup", headers=headers)

    res = client.post(f"{API}/auth/2fa/enable", json={"code": "000000"}, headers=headers)
    assert res.status_code == 400
    assert res.json()["code"] == "invalid_two_factor_code"


def test_login_with_totp(api, client, two_factor_user):
    _, secret, _ = two_factor_user
    pending = _pending(api)

    res = client.post(
        f"{API}/auth/2fa/verify",
        json={"pending_token": pending, "code": pyotp.TOTP(secret).now()},
    )
    assert res.status_code == 200, res.text
    assert res.json()["access_token"]


def test_expired_pending_token_rejected(api, client, two_factor_user):
    _, secret, _ = two_factor_user
    # Same subject as a genuine pending token, but its window has passed
    fresh = jwt.decode_token(_pending(api), expected_type=jwt.TWO_FACTOR_PENDING_TYPE)
    stale = jwt.create_access_token(
        {"sub": fresh.sub},
        expires_delta=timedelta(seconds=-1),
        token_type=jwt.TWO_FACTOR_PENDING_TYPE,
    )

    res = client.post(
        f"{API}/auth/2fa/verify",
        json={"pending_token": stale, "code": pyotp.TOTP(secret).now()},
    )
    assert res.status_code == 401
    assert res.json()["code"] == "invalid_token"


def test_pending_token_does_not_grant_access(api, client, two_factor_user):
    pending = _pending(api)
    res = client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {pending}"})
    assert res.status_code == 401


def test_backup_code_works_once(api, client, two_factor_user):
    _, _, codes = two_factor_user

    res = client.post(
        f"{API}/auth/2fa/verify", json={"pending_token": _pending(api), "code": codes[0].lower()}
    )
    assert res.status_code == 200, res.text

    res = client.post(
        f"{API}/auth/2fa/verify", json={"pending_token": _pending(api), "code": codes[0]}
    )
    assert res.status_code == 401

    res = client.post(
        f"{API}/auth/2fa/verify", json={"pending_token": _pending(api), "code": codes[1]}
    )
    assert res.status_code == 200


def test_wrong_codes_count_toward_lockout(api, client, two_factor_user):
    pending = _pending(api)
    for _ in range(5):
        res = client.post(f"{API}/auth/2fa/verify", json={"pending_token": pending, "code": "000000"})
        assert res.status_code == 401

    res = api.login("alice@example.com")
    assert res.status_code == 401
    assert res.json()["code"] == "account_locked"


def test_password_step_does_not_reset_failures(api, client, two_factor_user):
    # Alternating a correct password with wrong codes still ends in a lockout
    for _ in range(5):
        pending = _pending(api)
        client.post(f"{API}/auth/2fa/verify", json={"pending_token": pending, "code": "000000"})

    assert api.login("alice@example.com").json()["code"] == "account_locked"


def test_regenerate_backup_codes(api, client, two_factor_user):
    headers, secret, old_codes = two_factor_user

    res = client.post(
        f"{API}/auth/2fa/backup-codes", json={"code": pyotp.TOTP(secret).now()}, headers=headers
    )
    assert res.status_code == 200
    new_codes = res.json()["codes"]
    assert set(new_codes).isdisjoint(old_codes)

    res = client.post(
        f"{API}/auth/2fa/verify", json={"pending_token": _pending(api), "code": old_codes[0]}
    )
    assert res.status_code == 401


def test_disable_two_factor(api, client, two_factor_user):
    headers, _, _ = two_factor_user

    res = client.post(f"{API}/auth/2fa/disable", json={"password": "wrong password here"}, headers=headers)
    assert res.status_code == 401

    res = client.post(f"{API}/auth/2fa/disable", json={"password": PASSWORD}, headers=headers)
    assert res.status_code == 200
    assert "access_token" in api.login("alice@example.com").json()


def test_backup_code_helpers():
    codes, hashed = totp.generate_backup_codes(3)
    assert len(codes) == len(hashed) == 3
    assert codes[0] not in hashed

    remaining = totp.consume_backup_code(codes[1].replace("-", " ").lower(), hashed)
    assert remaining == [hashed[0], hashed[2]]
    assert totp.consume_backup_code(codes[1], remaining) is None
    assert totp.consume_backup_code("", hashed) is None


def test_verify_totp_accepts_one_step_of_drift():
    secret = totp.generate_totp_secret()
    generator = pyotp.TOTP(secret)
    previous = generator.at(time.time() - 30)

    assert totp.verify_totp(secret, generator.now())
    assert totp.verify_totp(secret, previous)
    assert not totp.verify_totp(secret, "12345")
    assert not totp.verify_totp(secret, "abcdef")
