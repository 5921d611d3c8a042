import logging
from dataclasses import dataclass

import requests

from skytour.core.config import settings
from skytour.core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


@dataclass
class PaymentGatewayConfig:
    base_url: str           # e.g. https://payments.example.com/v1
    api_key: str
    timeout: int = 15
    sandbox: bool = False


@dataclass
class RefundResult:
    refund_id: str
    status: str


class PaymentGatewayClient:
    """Imperative side of the gateway: only the refund command is used by the core."""

    def __init__(self, cfg: PaymentGatewayConfig):
        self.cfg = cfg

    @classmethod
    def from_settings(cls) -> "PaymentGatewayClient":
        return cls(PaymentGatewayConfig(
            base_url=settings.PAYMENT_GATEWAY_URL.rstrip("/"),
            api_key=settings.PAYMENT_GATEWAY_API_KEY,
            timeout=settings.PAYMENT_TIMEOUT_SECONDS,
            sandbox=settings.PAYMENT_GATEWAY_SANDBOX,
        ))

    def request(self, method: str, path: str, payload: dict | None = None) -> dict:
        if not self.cfg.base_url:
            raise ExternalServiceError("payment", "Payment gateway is not configured", retryable=False)
        url = f"{self.cfg.base_url}{path}"
        try:
            r = requests.request(
                method=method.upper(),
                url=url,
                json=payload or {},
                headers={"Authorization": f"Bearer {self.cfg.api_key}", "Accept": "application/json"},
                timeout=self.cfg.timeout,
            )
        except requests.Timeout as e:
            raise ExternalServiceError("payment", f"Payment gateway timed out after {self.cfg.timeout}s") from e
        except requests.RequestException as e:
            raise ExternalServiceError("payment", f"Payment gateway unreachable: {e}") from e
        try:
            data = r.json() if r.text else {}
        except ValueError:
            data = {"raw": r.text}
        if r.status_code >= 400:
            # 4xx means the gateway refused the command; retrying the same request will not help
            retryable = r.status_code >= 500 or r.status_code == 429
            raise ExternalServiceError("payment", f"Payment gateway {r.status_code}: {data}", retryable=retryable)
        return data

    def refund(self, *, reservation_id: str, amount: int, reason: str = "") -> RefundResult:
        if self.cfg.sandbox:
            logger.info("Sandbox refund of %s for reservation %s", amount, reservation_id)
            return RefundResult(refund_id=f"sandbox-{reservation_id}", status="succeeded")
        data = self.request("POST", "/refunds", {
            "reservationId": reservation_id,
            "amount": int(amount),
            "reason": reason,
        })
        status = str(data.get("status") or "").lower()
        if status not in ("succeeded", "success", "completed"):
            raise ExternalServiceError("payment", f"Refund not completed (status={status or 'unknown'})", retryable=False)
        return RefundResult(refund_id=str(data.get("id") or ""), status=status)
