import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone

from jose import jwt

from skytour.core.config import settings

# Operator tokens are issued by the external auth service with the same shared secret.
ALGO = "HS256"
OPERATOR_TOKEN_MINUTES = 30


def create_operator_token(subject: str, role: str, email: str = "", expires_minutes: int | None = None) -> str:
    if expires_minutes is None:
        expires_minutes = OPERATOR_TOKEN_MINUTES
    exp = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    payload = {"sub": subject, "role": role, "email": email, "type": "access", "exp": exp}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGO)


def decode_token(token: str) -> dict:
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGO])


def make_mypage_token() -> str:
    # 64 bytes -> 128 hex chars
    return secrets.token_hex(64)


def sign_payload(body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_signature(body: bytes, signature: str | None, secret: str) -> bool:
    if not signature or not secret:
        return False
    expected = sign_payload(body, secret)
    return hmac.compare_digest(expected, signature.strip())
