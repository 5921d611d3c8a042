"""
Cancellation fee and refund computation.

Pure functions only: callers pass ``now`` explicitly so the outcome never
depends on the wall clock.
"""

import math
from dataclasses import dataclass
from datetime import datetime

from skytour.models.enums import CancellationCause

# Not the customer's fault: always fully refunded
NO_FEE_CAUSES = frozenset({
    CancellationCause.WEATHER,
    CancellationCause.MECHANICAL,
    CancellationCause.OPERATOR,
})

SECONDS_PER_DAY = 86400


@dataclass(frozen=True)
class CancellationTier:
    min_days: int
    refund_percentage: int

    @property
    def fee_percentage(self) -> int:
        return 100 - self.refund_percentage


DEFAULT_TIERS = (
    CancellationTier(7, 100),
    CancellationTier(4, 70),
    CancellationTier(2, 50),
    CancellationTier(0, 0),
)


@dataclass(frozen=True)
class PolicyDecision:
    days_before_flight: int
    cause: CancellationCause
    fee_percentage: int
    refund_percentage: int


@dataclass(frozen=True)
class CancellationQuote:
    total_price: int
    fee_percentage: int
    refund_percentage: int
    cancellation_fee: int
    refund_amount: int
    days_before_flight: int


def parse_tiers(raw: str) -> tuple[CancellationTier, ...]:
    """Parse ``"7:100,4:70,2:50,0:0"`` into tiers sorted by lead time, longest first."""
    tiers = []
    for chunk in (raw or "").split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        days_s, pct_s = chunk.split(":", 1)
        days, pct = int(days_s), int(pct_s)
        if days < 0 or not 0 <= pct <= 100:
            raise ValueError(f"invalid cancellation tier: {chunk!r}")
        tiers.append(CancellationTier(days, pct))
    if not tiers:
        raise ValueError("at least one cancellation tier is required")
    return tuple(sorted(tiers, key=lambda t: t.min_days, reverse=True))


def days_before_flight(flight_at: datetime, now: datetime) -> int:
    return math.floor((flight_at - now).total_seconds() / SECONDS_PER_DAY)


def compute_amounts(total_price: int, decision: PolicyDecision) -> tuple[int, int]:
    """Return (fee, refund). The fee rounds down."""
    fee = math.floor(total_price * decision.fee_percentage / 100)
    return fee, total_price - fee


class CancellationPolicy:
    def __init__(self, tiers: tuple[CancellationTier, ...] = DEFAULT_TIERS):
        self.tiers = tuple(sorted(tiers, key=lambda t: t.min_days, reverse=True))

    @classmethod
    def from_config(cls, raw: str) -> "CancellationPolicy":
        return cls(parse_tiers(raw))

    def evaluate(self, days: int, cause: CancellationCause) -> PolicyDecision:
        cause = CancellationCause(cause)
        if cause in NO_FEE_CAUSES:
            refund = 100
        else:
            refund = 0
            for tier in self.tiers:
                if days >= tier.min_days:
                    refund = tier.refund_percentage
                    break
        return PolicyDecision(
            days_before_flight=days,
            cause=cause,
            fee_percentage=100 - refund,
            refund_percentage=refund,
        )

    def quote(self, total_price: int, flight_at: datetime, now: datetime, cause: CancellationCause) -> CancellationQuote:
        decision = self.evaluate(days_before_flight(flight_at, now), cause)
        fee, refund = compute_amounts(total_price, decision)
        return CancellationQuote(
            total_price=total_price,
            fee_percentage=decision.fee_percentage,
            refund_percentage=decision.refund_percentage,
            cancellation_fee=fee,
            refund_amount=refund,
            days_before_flight=decision.days_before_flight,
        )
