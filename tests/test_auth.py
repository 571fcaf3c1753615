from datetime import datetime, timedelta, timezone

from sqlalchemy import update

from backend.app.models import User, UserToken
from conftest import API, PASSWORD, run_statement


def test_register_sends_confirmation(api, mailer):
    res = api.register("  Alice@Example.com ", display_name="Alice")
    assert res.status_code == 201, res.text
    body = res.json()
    assert body["email"] == "alice@example.com"
    assert body["display_name"] == "Alice"
    assert body["email_confirmed"] is False
    assert "hashed_password" not in body

    message = mailer.last("confirm_email", "alice@example.com")
    assert message.token
    assert message.token in message.body


def test_register_duplicate_email(api):
    assert api.register("alice@example.com").status_code == 201

    res = api.register("ALICE@example.com")
    assert res.status_code == 409
    assert res.json()["code"] == "duplicate_email"


def test_register_weak_password_lists_every_rule(api):
    res = api.register("alice@example.com", password="123456")
    assert res.status_code == 400
    body = res.json()
    assert body["code"] == "weak_password"
    messages = [error["message"] for error in body["errors"]]
    assert any("at least" in message for message in messages)
    assert any("breached" in message for message in messages)
    assert all(error["field"] == "password" for error in body["errors"])


def test_register_password_over_bcrypt_limit(api):
    res = api.register("alice@example.com", password="é" * 40)
    assert res.status_code == 400
    assert "bytes" in res.json()["detail"]


def test_register_invalid_email_is_400(api):
    res = api.register("not-an-email")
    assert res.status_code == 400
    assert res.json()["errors"][0]["field"] == "email"


def test_login_requires_confirmed_email(api):
    api.register("alice@example.com")

    res = api.login("alice@example.com")
    assert res.status_code == 401
    assert res.json()["code"] == "email_unconfirmed"


def test_confirm_then_login(api, client):
    api.signup("alice@example.com")

    tokens = api.tokens("alice@example.com")
    assert tokens["token_type"] == "bearer"
    assert tokens["refresh_token"]

    res = client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {tokens['access_token']}"})
    assert res.status_code == 200
    assert res.json()["email_confirmed"] is True


def test_confirmation_token_is_single_use(api, client, mailer):
    user = api.register("alice@example.com").json()
    token = mailer.last("confirm_email").token

    payload = {"user_id": user["id"], "token": token}
    assert client.post(f"{API}/auth/confirm-email", json=payload).status_code == 200
    res = client.post(f"{API}/auth/confirm-email", json=payload)
    assert res.status_code == 400
    assert res.json()["code"] == "invalid_or_expired_token"


def test_confirmation_token_spent_on_user_mismatch(api, client, mailer):
    alice = api.register("alice@example.com").json()
    bob = api.register("bob@example.com").json()
    token = mailer.last("confirm_email", "alice@example.com").token

    res = client.post(f"{API}/auth/confirm-email", json={"user_id": bob["id"], "token": token})
    assert res.status_code == 400

    res = client.post(f"{API}/auth/confirm-email", json={"user_id": alice["id"], "token": token})
    assert res.status_code == 400


def test_expired_confirmation_token(api, client, mailer):
    user = api.register("alice@example.com").json()
    token = mailer.last("confirm_email").token
    run_statement(
        update(UserToken).values(expires_at=datetime.now(timezone.utc) - timedelta(minutes=1))
    )

    res = client.post(f"{API}/auth/confirm-email", json={"user_id": user["id"], "token": token})
    assert res.status_code == 400


def test_resend_confirmation_replaces_token(api, client, mailer):
    user = api.register("alice@example.com").json()
    first = mailer.last("confirm_email").token

    res = client.post(f"{API}/auth/resend-confirmation", json={"email": "alice@example.com"})
    assert res.status_code == 200
    second = mailer.last("confirm_email").token
    assert second != first

    res = client.post(f"{API}/auth/confirm-email", json={"user_id": user["id"], "token": first})
    assert res.status_code == 400
    res = client.post(f"{API}/auth/confirm-email", json={"user_id": user["id"], "token": second})
    assert res.status_code == 200


def test_resend_confirmation_unknown_email_is_silent(client, mailer):
    res = client.post(f"{API}/auth/resend-confirmation", json={"email": "ghost@example.com"})
    assert res.status_code == 200
    assert mailer.outbox == []


def test_login_unknown_email_and_wrong_password_look_the_same(api):
    api.signup("alice@example.com")

    unknown = api.login("ghost@example.com")
    wrong = api.login("alice@example.com", "wrong password here")
    assert unknown.status_code == wrong.status_code == 401
    assert unknown.json() == wrong.json()
    assert unknown.headers["www-authenticate"] == "Bearer"


def test_lockout_after_max_failures(api):
    api.signup("alice@example.com")

    for _ in range(5):
        assert api.login("alice@example.com", "wrong password here").status_code == 401

    res = api.login("alice@example.com")
    assert res.status_code == 401
    body = res.json()
    assert body["code"] == "account_locked"
    assert "Try again in" in body["detail"]
    assert "5" not in body["detail"].split("Try again in")[0]
    assert int(res.headers["retry-after"]) > 0


def test_lockout_window_elapses(api):
    api.signup("alice@example.com")
    for _ in range(5):
        api.login("alice@example.com", "wrong password here")
    assert api.login("alice@example.com").status_code == 401

    run_statement(
        update(User).values(lockout_until=datetime.now(timezone.utc) - timedelta(seconds=1))
    )
    assert api.login("alice@example.com").status_code == 200


def test_successful_login_resets_failure_count(api):
    api.signup("alice@example.com")
    for _ in range(4):
        api.login("alice@example.com", "wrong password here")
    assert api.login("alice@example.com").status_code == 200

    for _ in range(4):
        api.login("alice@example.com", "wrong password here")
    assert api.login("alice@example.com").status_code == 200


def test_forgot_password_is_the_same_for_unknown_emails(api, client, mailer):
    api.signup("alice@example.com")

    known = client.post(f"{API}/auth/forgot-password", json={"email": "alice@example.com"})
    unknown = client.post(f"{API}/auth/forgot-password", json={"email": "ghost@example.com"})
    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()
    assert mailer.count("reset_password") == 1


def test_reset_password_flow(api, client, mailer):
    api.signup("alice@example.com")
    old = api.tokens("alice@example.com")
    old_refresh = old["refresh_token"]

    client.post(f"{API}/auth/forgot-password", json={"email": "alice@example.com"})
    token = mailer.last("reset_password").token

    new_password = "a brand new passphrase"
    res = client.post(f"{API}/auth/reset-password", json={"token": token, "new_password": new_password})
    assert res.status_code == 200, res.text

    assert api.login("alice@example.com").status_code == 401
    assert api.login("alice@example.com", new_password).status_code == 200
    # Every session from before the reset is gone
    assert client.post(f"{API}/auth/refresh", json={"refresh_token": old_refresh}).status_code == 401
    old_headers = {"Authorization": f"Bearer {old['access_token']}"}
    assert client.get(f"{API}/auth/me", headers=old_headers).status_code == 401

    res = client.post(f"{API}/auth/reset-password", json={"token": token, "new_password": new_password})
    assert res.status_code == 400


def test_reset_password_rejects_weak_password_without_spending_token(api, client, mailer):
    api.signup("alice@example.com")
    client.post(f"{API}/auth/forgot-password", json={"email": "alice@example.com"})
    token = mailer.last("reset_password").token

    res = client.post(f"{API}/auth/reset-password", json={"token": token, "new_password": "short"})
    assert res.status_code == 400
    assert res.json()["errors"][0]["field"] == "new_password"

    res = client.post(
        f"{API}/auth/reset-password", json={"token": token, "new_password": "a brand new passphrase"}
    )
    assert res.status_code == 200


def test_second_reset_request_invalidates_the_first(api, client, mailer):
    api.signup("alice@example.com")
    client.post(f"{API}/auth/forgot-password", json={"email": "alice@example.com"})
    first = mailer.last("reset_password").token
    client.post(f"{API}/auth/forgot-password", json={"email": "alice@example.com"})

    res = client.post(
        f"{API}/auth/reset-password", json={"token": first, "new_password": "a brand new passphrase"}
    )
    assert res.status_code == 400


def test_reset_clears_lockout(api, client, mailer):
    api.signup("alice@example.com")
    for _ in range(5):
        api.login("alice@example.com", "wrong password here")
    assert api.login("alice@example.com").json()["code"] == "account_locked"

    client.post(f"{API}/auth/forgot-password", json={"email": "alice@example.com"})
    token = mailer.last("reset_password").token
    client.post(f"{API}/auth/reset-password", json={"token": token, "new_password": "a brand new passphrase"})

    assert api.login("alice@example.com", "a brand new passphrase").status_code == 200


def test_change_password(api, client):
    headers = api.user("alice@example.com")

    res = client.post(
        f"{API}/auth/change-password",
        json={"current_password": "wrong password here", "new_password": "another good passphrase"},
        headers=headers,
    )
    assert res.status_code == 401

    res = client.post(
        f"{API}/auth/change-password",
        json={"current_password": PASSWORD, "new_password": "password"},
        headers=headers,
    )
    assert res.status_code == 400

    res = client.post(
        f"{API}/auth/change-password",
        json={"current_password": PASSWORD, "new_password": "another good passphrase"},
        headers=headers,
    )
    assert res.status_code == 200
    assert api.login("alice@example.com", "another good passphrase").status_code == 200
    # The access token used for the change belonged to a session that is now revoked
    res = client.get(f"{API}/auth/me", headers=headers)
    assert res.status_code == 401
    assert res.json()["detail"] == "Session expired or revoked"


def test_deactivate_blocks_login_and_existing_access(api, client):
    headers = api.user("alice@example.com")

    res = client.post(f"{API}/auth/deactivate", json={"password": PASSWORD}, headers=headers)
    assert res.status_code == 200

    assert client.get(f"{API}/auth/me", headers=headers).status_code == 401
    assert api.login("alice@example.com").status_code == 401


def test_me_requires_token(client):
    assert client.get(f"{API}/auth/me").status_code == 401
    res = client.get(f"{API}/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert res.status_code == 401
