import pytest
from pydantic import ValidationError

from backend.app.core.config import DEV_SECRET_KEY, Settings
from backend.app.core.exceptions import WeakPassword
from backend.app.security import hashing, passwords
from backend.app.security.tokens import generate_token, hash_token


def test_hash_and_verify():
    hashed = hashing.get_password_hash("correct horse battery")
    assert hashed != "correct horse battery"
    assert hashing.verify_password("correct horse battery", hashed)
    assert not hashing.verify_password("wrong horse battery", hashed)


def test_verify_rejects_garbage_hash():
    assert not hashing.verify_password("correct horse battery", "not-a-bcrypt-hash")


def test_burn_password_check_never_matches():
    assert hashing.burn_password_check("correct horse battery") is False


def test_password_policy():
    assert passwords.password_policy_violations("correct horse battery") == []
    assert passwords.is_breached("Password123")

    with pytest.raises(WeakPassword) as exc:
        passwords.validate_password_strength("abc", field="new_password")
    assert exc.value.errors == [
        {"field": "new_password", "message": "Password must be at least 8 characters long"}
    ]


def test_breach_corpus_file(tmp_path, monkeypatch):
    corpus = tmp_path / "breached.txt"
    corpus.write_text("Hunter2Hunter2\n\nsomething else entirely\n", encoding="utf-8")
    monkeypatch.setattr(passwords.settings, "PASSWORD_BREACH_CORPUS_PATH", str(corpus))

    assert passwords.is_breached("hunter2hunter2")
    assert passwords.is_breached("123456")
    assert not passwords.is_breached("correct horse battery")


def test_opaque_tokens_are_hashed():
    token = generate_token()
    assert len(token) >= 43
    assert hash_token(token) == hash_token(token)
    assert hash_token(token) != token
    assert generate_token() != token


@pytest.mark.parametrize(
    "url, expected",
    [
        ("postgres://u:p@db/app", "postgresql+asyncpg://u:p@db/app"),
        ("postgresql://u:p@db/app", "postgresql+asyncpg://u:p@db/app"),
        ("sqlite:///./local.db", "sqlite+aiosqlite:///./local.db"),
        ("sqlite+aiosqlite:///./local.db", "sqlite+aiosqlite:///./local.db"),
    ],
)
def test_database_url_normalized(url, expected):
    assert Settings(DATABASE_URL=url).DATABASE_URL == expected


def test_production_refuses_dev_secret():
    with pytest.raises(ValidationError):
        Settings(ENVIRONMENT="production", SECRET_KEY=DEV_SECRET_KEY)

    assert Settings(ENVIRONMENT="production", SECRET_KEY="x" * 40).is_production


def test_bcrypt_rounds_bounds():
    with pytest.raises(ValidationError):
        Settings(BCRYPT_ROUNDS=3)


def test_cors_origins_parsed():
    settings = Settings(CORS_ORIGINS=" https://a.example , https://b.example ,")
    assert settings.BACKEND_CORS_ORIGINS == ["https://a.example", "https://b.example"]
    assert Settings(CORS_ORIGINS="").BACKEND_CORS_ORIGINS == []
