# backend/app/security/totp.py
"""
Two-factor authentication helpers.

TOTP follows RFC 6238 (Google Authenticator, Authy, Aegis compatible):
- 6-digit codes
- 30-second time step, one step of clock drift accepted
- Base32 secret encoding

Backup codes are XXXXXXXX-XXXXXXXX hex strings. Only SHA-256 hashes of the
normalized code (no dash, upper-case) are stored, and each code works once.
"""
import base64
import hashlib
import io
import secrets
from typing import List, Optional, Tuple

import pyotp
import qrcode

from backend.app.core.config import settings


def generate_totp_secret() -> str:
    """New random Base32 secret (32 characters)."""
    return pyotp.random_base32()


def get_totp_uri(secret: str, email: str, issuer: Optional[str] = None) -> str:
    """
    otpauth://totp/{issuer}:{email}?secret={secret}&issuer={issuer}

    This is what gets encoded in the QR code.
    """
    totp = pyotp.TOTP(secret)
    return totp.provisioning_uri(name=email, issuer_name=issuer or settings.TOTP_ISSUER)


def generate_qr_code_base64(secret: str, email: str, issuer: Optional[str] = None) -> str:
    """
    QR code of the otpauth URI as a Base64 PNG.

    Frontend can display it directly: <img src="data:image/png;base64,{result}">
    """
    uri = get_totp_uri(secret, email, issuer)

    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        box_size=10,
        border=4,
    )
    qr.add_data(uri)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    buffer.seek(0)

    return base64.b64encode(buffer.read()).decode("utf-8")


def verify_totp(secret: str, code: str) -> bool:
    if not secret or not code:
        return False

    code = code.strip().replace(" ", "")
    if len(code) != 6 or not code.isdigit():
        return False

    return pyotp.TOTP(secret).verify(code, valid_window=1)


# ─────────────────────────────────────────────────────────────────────────────
# Backup recovery codes
# ─────────────────────────────────────────────────────────────────────────────
def _normalize_backup_code(code: str) -> str:
    return code.replace("-", "").replace(" ", "").strip().upper()


def hash_backup_code(code: str) -> str:
    digest = hashlib.sha256(_normalize_backup_code(code).encode("utf-8")).digest()
    return base64.b64encode(digest).decode("utf-8")


def generate_backup_codes(count: Optional[int] = None) -> Tuple[List[str], List[str]]:
    """
    Returns (plain_codes, hashed_codes).

    The plain codes are shown to the user exactly once; only the hashes are stored.
    """
    codes = []
    for _ in range(count or settings.BACKUP_CODE_COUNT):
        raw = secrets.token_hex(8).upper()
        codes.append(f"{raw[:8]}-{raw[8:]}")
    return codes, [hash_backup_code(code) for code in codes]


def consume_backup_code(code: str, hashed_codes: Optional[List[str]]) -> Optional[List[str]]:
    """
    Check a backup code against the stored hashes.

    Returns the remaining hashes with the used one removed, or None if the
    code does not match.
    """
    if not code or not hashed_codes:
        return None

    candidate = hash_backup_code(code)
    for stored in hashed_codes:
        if secrets.compare_digest(stored, candidate):
            remaining = list(hashed_codes)
            remaining.remove(stored)
            return remaining
    return None


def looks_like_totp(code: str) -> bool:
    cleaned = code.strip().replace(" ", "")
    return len(cleaned) == 6 and cleaned.isdigit()
