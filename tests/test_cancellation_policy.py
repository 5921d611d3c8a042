from datetime import datetime, timedelta, timezone

import pytest

from skytour.models.enums import CancellationCause
from skytour.services.cancellation_policy import (
    CancellationPolicy,
    CancellationTier,
    compute_amounts,
    days_before_flight,
    parse_tiers,
)

FLIGHT = datetime(2026, 6, 1, 1, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "days, refund",
    [(30, 100), (7, 100), (6, 70), (5, 70), (4, 70), (3, 50), (2, 50), (1, 0), (0, 0), (-1, 0), (-10, 0)],
)
def test_customer_tiers(days, refund):
    decision = CancellationPolicy().evaluate(days, CancellationCause.CUSTOMER)
    assert decision.refund_percentage == refund
    assert decision.fee_percentage + decision.refund_percentage == 100


@pytest.mark.parametrize("cause", [CancellationCause.WEATHER, CancellationCause.MECHANICAL, CancellationCause.OPERATOR])
@pytest.mark.parametrize("days", [10, 3, 0, -2])
def test_operator_side_causes_refund_everything(cause, days):
    decision = CancellationPolicy().evaluate(days, cause)
    assert decision.refund_percentage == 100
    assert decision.fee_percentage == 0


def test_other_cause_follows_tiers():
    assert CancellationPolicy().evaluate(5, CancellationCause.OTHER).refund_percentage == 70


def test_days_before_flight_floors_partial_days():
    assert days_before_flight(FLIGHT, FLIGHT - timedelta(days=5, hours=23)) == 5
    assert days_before_flight(FLIGHT, FLIGHT - timedelta(hours=1)) == 0
    assert days_before_flight(FLIGHT, FLIGHT + timedelta(hours=1)) == -1


def test_quote_splits_total_into_fee_and_refund():
    quote = CancellationPolicy().quote(22000, FLIGHT, FLIGHT - timedelta(days=5), CancellationCause.CUSTOMER)
    assert quote.fee_percentage == 30
    assert quote.cancellation_fee == 6600
    assert quote.refund_amount == 15400
    assert quote.days_before_flight == 5


def test_fee_rounds_down():
    policy = CancellationPolicy()
    fee, refund = compute_amounts(10001, policy.evaluate(3, CancellationCause.CUSTOMER))
    assert fee == 5000
    assert refund == 5001
    assert fee + refund == 10001


def test_quote_after_departure_keeps_everything():
    quote = CancellationPolicy().quote(33000, FLIGHT, FLIGHT + timedelta(days=1), CancellationCause.CUSTOMER)
    assert quote.refund_amount == 0
    assert quote.cancellation_fee == 33000


def test_parse_tiers_sorts_longest_lead_first():
    tiers = parse_tiers("0:0, 2:50,7:100,4:70")
    assert [t.min_days for t in tiers] == [7, 4, 2, 0]
    assert tiers[1] == CancellationTier(4, 70)


@pytest.mark.parametrize("raw", ["", "7:120", "-1:50", "abc"])
def test_parse_tiers_rejects_bad_config(raw):
    with pytest.raises(ValueError):
        parse_tiers(raw)


def test_custom_tiers_from_config():
    policy = CancellationPolicy.from_config("3:100,1:50")
    assert policy.evaluate(3, CancellationCause.CUSTOMER).refund_percentage == 100
    assert policy.evaluate(2, CancellationCause.CUSTOMER).refund_percentage == 50
    assert policy.evaluate(0, CancellationCause.CUSTOMER).refund_percentage == 0
