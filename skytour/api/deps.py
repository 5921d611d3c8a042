import hmac
from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from sqlalchemy.orm import Session

from skytour.core.config import settings
from skytour.core.security import decode_token
from skytour.db.session import get_db
from skytour.services.email_service import Mailer
from skytour.services.payment_gateway import PaymentGatewayClient
from skytour.services.settings_service import OperatingHours, operating_hours_cache

bearer = HTTPBearer(auto_error=False)

OPERATOR_ROLES = ("admin", "staff", "viewer")


@dataclass(frozen=True)
class Operator:
    id: str
    role: str
    email: str = ""

    @property
    def name(self) -> str:
        return self.email or self.id


def get_current_operator(creds: HTTPAuthorizationCredentials | None = Depends(bearer)) -> Operator:
    if not creds:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        payload = decode_token(creds.credentials)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")
    role = payload.get("role")
    if not payload.get("sub") or role not in OPERATOR_ROLES:
        raise HTTPException(status_code=401, detail="Invalid token")
    return Operator(id=str(payload["sub"]), role=role, email=payload.get("email") or "")


def require_roles(*roles: str):
    def _guard(op: Operator = Depends(get_current_operator)) -> Operator:
        if op.role not in roles:
            raise HTTPException(status_code=403, detail="Forbidden")
        return op
    return _guard


def require_cron_secret(authorization: str | None = Header(default=None)) -> None:
    if not settings.CRON_SECRET:
        raise HTTPException(status_code=503, detail="CRON_SECRET is not configured")
    expected = f"Bearer {settings.CRON_SECRET}"
    if not authorization or not hmac.compare_digest(authorization, expected):
        raise HTTPException(status_code=401, detail="Unauthorized")


def get_operating_hours(db: Session = Depends(get_db)) -> OperatingHours:
    return operating_hours_cache.get(db)


def get_mailer() -> Mailer:
    return Mailer()


def get_payment_gateway() -> PaymentGatewayClient:
    return PaymentGatewayClient.from_settings()
