"""
Tests for balance aggregation over the points ledger.
"""
from datetime import timedelta

from restaurant_loyalty.clock import utcnow
from restaurant_loyalty.models.loyalty_point import BONUS, REDEEMED
from restaurant_loyalty.services.code_service import redeem_loyalty_code
from restaurant_loyalty.services.ledger_service import (
    get_available_points,
    get_customer_loyalty_balance,
    get_customer_point_history,
)

from factories import credit, make_code, make_restaurant


def test_available_is_total_minus_redeemed(db_session):
    restaurant = make_restaurant(db_session)
    credit(db_session, "cust-1", restaurant, 500)
    credit(db_session, "cust-1", restaurant, 150, type=BONUS)
    credit(db_session, "cust-1", restaurant, -200, type=REDEEMED)

    [balance] = get_customer_loyalty_balance(db_session, "cust-1")

    assert balance["total_points"] == 650
    assert balance["redeemed_points"] == 200
    assert balance["expired_points"] == 0
    assert balance["available_points"] == balance["total_points"] - balance["redeemed_points"] == 450


def test_available_is_never_negative(db_session):
    restaurant = make_restaurant(db_session)
    credit(db_session, "cust-1", restaurant, 100)
    credit(db_session, "cust-1", restaurant, -300, type=REDEEMED)

    [balance] = get_customer_loyalty_balance(db_session, "cust-1")

    assert balance["available_points"] == 0
    assert get_available_points(db_session, "cust-1", restaurant.id) == 0


def test_expired_entries_count_in_total_but_not_available(db_session):
    restaurant = make_restaurant(db_session)
    credit(db_session, "cust-1", restaurant, 300, expiry_date=utcnow() - timedelta(days=1))
    credit(db_session, "cust-1", restaurant, 200, expiry_date=utcnow() + timedelta(days=30))

    [balance] = get_customer_loyalty_balance(db_session, "cust-1")

    assert balance["total_points"] == 500
    assert balance["expired_points"] == 300
    assert balance["available_points"] == 200
    assert get_available_points(db_session, "cust-1", restaurant.id) == 200


def test_balances_are_grouped_per_restaurant(db_session):
    pizza = make_restaurant(db_session, name="Pizza Place")
    sushi = make_restaurant(db_session, name="Sushi Bar", owner_id="owner-2")
    credit(db_session, "cust-1", pizza, 100)
    credit(db_session, "cust-1", sushi, 40)
    credit(db_session, "cust-1", None, 10)
    credit(db_session, "cust-2", pizza, 999)

    balances = get_customer_loyalty_balance(db_session, "cust-1")

    by_name = {b["restaurant_name"]: b["available_points"] for b in balances}
    assert by_name == {"Pizza Place": 100, "Sushi Bar": 40, "General": 10}
    # global balance sorts last
    assert balances[-1]["restaurant_id"] is None


def test_recent_transactions_are_limited_and_newest_first(db_session):
    restaurant = make_restaurant(db_session)
    start = utcnow() - timedelta(hours=10)
    for i in range(7):
        credit(db_session, "cust-1", restaurant, i + 1, at=start + timedelta(hours=i))

    [balance] = get_customer_loyalty_balance(db_session, "cust-1")

    assert [t["points"] for t in balance["recent_transactions"]] == [7, 6, 5, 4, 3]


def test_history_filters_by_restaurant(db_session):
    pizza = make_restaurant(db_session, name="Pizza Place")
    sushi = make_restaurant(db_session, name="Sushi Bar", owner_id="owner-2")
    credit(db_session, "cust-1", pizza, 100, at=utcnow() - timedelta(minutes=5))
    credit(db_session, "cust-1", sushi, 40, at=utcnow() - timedelta(minutes=3))
    credit(db_session, "cust-1", pizza, -50, type=REDEEMED)

    everything = get_customer_point_history(db_session, "cust-1")
    pizza_only = get_customer_point_history(db_session, "cust-1", pizza.id)

    assert [e["points"] for e in everything] == [-50, 40, 100]
    assert [e["points"] for e in pizza_only] == [-50, 100]
    assert {e["restaurant_name"] for e in pizza_only} == {"Pizza Place"}


def test_customer_without_entries_has_no_balances(db_session):
    assert get_customer_loyalty_balance(db_session, "nobody") == []
    assert get_customer_point_history(db_session, "nobody") == []


def test_spent_points_are_not_expired_a_second_time(db_session):
    restaurant = make_restaurant(db_session)
    now = utcnow()
    credit(db_session, "cust-1", restaurant, 500, at=now - timedelta(days=400), expiry_date=now - timedelta(days=35))
    credit(db_session, "cust-1", restaurant, -300, type=REDEEMED, at=now - timedelta(days=100))

    [balance] = get_customer_loyalty_balance(db_session, "cust-1")
    assert balance["expired_points"] == 200
    assert balance["available_points"] == 0

    make_code(db_session, code="LP-NEW00001", point_value=200, restaurant_id=restaurant.id)
    before = get_available_points(db_session, "cust-1", restaurant.id)
    redeem_loyalty_code(db_session, "LP-NEW00001", "cust-1")
    after = get_available_points(db_session, "cust-1", restaurant.id)

    assert after - before == 200


def test_debit_after_lapse_draws_on_the_lapsed_batch(db_session):
    restaurant = make_restaurant(db_session)
    now = utcnow()
    credit(db_session, "cust-1", restaurant, 500, at=now - timedelta(days=400), expiry_date=now - timedelta(days=35))
    credit(db_session, "cust-1", restaurant, -300, type=REDEEMED)

    assert get_available_points(db_session, "cust-1", restaurant.id) == 0

    credit(db_session, "cust-1", restaurant, 200)

    assert get_available_points(db_session, "cust-1", restaurant.id) == 200


def test_debits_spend_live_batches_before_lapsed_ones(db_session):
    restaurant = make_restaurant(db_session)
    now = utcnow()
    credit(db_session, "cust-1", restaurant, 500, at=now - timedelta(days=400), expiry_date=now - timedelta(days=35))
    credit(db_session, "cust-1", restaurant, 200, at=now - timedelta(days=10))
    credit(db_session, "cust-1", restaurant, -200, type=REDEEMED, at=now - timedelta(days=5))

    [balance] = get_customer_loyalty_balance(db_session, "cust-1")

    assert balance["total_points"] == 700
    assert balance["expired_points"] == 500
    assert balance["redeemed_points"] == 200
    assert balance["available_points"] == 0


def test_soonest_expiring_batch_is_spent_first(db_session):
    restaurant = make_restaurant(db_session)
    now = utcnow()
    credit(db_session, "cust-1", restaurant, 100, at=now - timedelta(days=20))
    credit(db_session, "cust-1", restaurant, 300, at=now - timedelta(days=10), expiry_date=now + timedelta(days=3))
    credit(db_session, "cust-1", restaurant, -300, type=REDEEMED, at=now - timedelta(days=1))

    # once the 300 batch lapses nothing extra disappears, it was already spent
    later = now + timedelta(days=5)
    assert get_available_points(db_session, "cust-1", restaurant.id, now=now) == 100
    assert get_available_points(db_session, "cust-1", restaurant.id, now=later) == 100
