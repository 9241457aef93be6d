"""
End-to-end tests for the /Loyalty HTTP surface.
"""
import uuid

import pytest

from factories import credit, make_code, make_restaurant, make_reward


def _headers(user_id, role, restaurant_id=None):
    headers = {"X-User-Id": user_id, "X-User-Role": role}
    if restaurant_id is not None:
        headers["X-Restaurant-Id"] = str(restaurant_id)
    return headers


ADMIN = _headers("admin-1", "Admin")
OWNER = _headers("owner-1", "RestaurantOwner")
CUSTOMER = _headers("cust-1", "Customer")


@pytest.fixture
def restaurant(session_factory):
    db = session_factory()
    try:
        restaurant = make_restaurant(db, name="Trattoria Roma", owner_id="owner-1")
        db.expunge(restaurant)
        return restaurant
    finally:
        db.close()


@pytest.fixture
def seed(session_factory):
    """Run a factory in its own committed session."""

    def _seed(factory, *args, **kwargs):
        db = session_factory()
        try:
            obj = factory(db, *args, **kwargs)
            db.expunge(obj)
            return obj
        finally:
            db.close()

    return _seed


class TestAuthorization:
    def test_missing_identity_is_unauthenticated(self, client):
        response = client.get("/Loyalty/admin/codes")

        assert response.status_code == 401
        assert response.json()["code"] == "UNAUTHENTICATED"

    def test_wrong_role_is_forbidden(self, client):
        response = client.get("/Loyalty/admin/codes", headers=CUSTOMER)

        assert response.status_code == 403
        assert response.json()["code"] == "FORBIDDEN"

    def test_unknown_role_is_forbidden(self, client):
        response = client.get("/Loyalty/admin/codes", headers=_headers("x", "Wizard"))

        assert response.status_code == 403


class TestAdminCodes:
    def test_generate_list_and_deactivate(self, client, restaurant):
        response = client.post(
            "/Loyalty/admin/codes",
            json={"point_value": 500, "max_uses": 1, "restaurant_id": str(restaurant.id)},
            headers=ADMIN,
        )
        assert response.status_code == 200
        created = response.json()
        assert created["code"].startswith("LP-")
        assert created["is_active"] is True
        assert created["current_uses"] == 0

        listed = client.get("/Loyalty/admin/codes", headers=ADMIN).json()
        assert [c["id"] for c in listed] == [created["id"]]

        response = client.patch(f"/Loyalty/admin/codes/{created['id']}/deactivate", headers=ADMIN)
        assert response.status_code == 200
        assert response.json()["is_active"] is False

        # idempotent
        response = client.patch(f"/Loyalty/admin/codes/{created['id']}/deactivate", headers=ADMIN)
        assert response.status_code == 200

    def test_invalid_point_value_is_a_validation_error(self, client):
        response = client.post("/Loyalty/admin/codes", json={"point_value": 0}, headers=ADMIN)

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_expired_coupon_report(self, client):
        response = client.get("/Loyalty/admin/redemptions/expired", headers=ADMIN)

        assert response.status_code == 200
        assert response.json() == {"expired": 0}

    def test_unknown_code_id(self, client):
        response = client.get(f"/Loyalty/admin/codes/{uuid.uuid4()}", headers=ADMIN)

        assert response.status_code == 404
        assert response.json()["code"] == "CODE_NOT_FOUND"


class TestCustomerCodes:
    def test_redeem_code_and_read_balance(self, client, restaurant, seed):
        seed(make_code, code="LP-ABC123", point_value=500, max_uses=5, restaurant_id=restaurant.id)

        response = client.post("/Loyalty/customer/redeem-code", json={"code": "LP-ABC123"}, headers=CUSTOMER)
        assert response.status_code == 200
        body = response.json()
        assert body["points"] == 500
        assert body["restaurant_name"] == "Trattoria Roma"

        again = client.post("/Loyalty/customer/redeem-code", json={"code": "LP-ABC123"}, headers=CUSTOMER)
        assert again.status_code == 400
        assert again.json()["code"] == "CODE_ALREADY_REDEEMED"

        balances = client.get("/Loyalty/customer/balance", headers=CUSTOMER).json()
        assert len(balances) == 1
        assert balances[0]["available_points"] == 500
        assert balances[0]["total_points"] == 500
        assert balances[0]["redeemed_points"] == 0
        assert len(balances[0]["recent_transactions"]) == 1

        history = client.get(
            "/Loyalty/customer/history", params={"restaurantId": str(restaurant.id)}, headers=CUSTOMER
        ).json()
        assert [h["points"] for h in history] == [500]

    @pytest.mark.parametrize(
        "overrides, code",
        [
            ({"is_active": False}, "CODE_INACTIVE"),
            ({"max_uses": 1, "current_uses": 1}, "CODE_EXHAUSTED"),
        ],
    )
    def test_redeem_failures_are_distinct(self, client, seed, overrides, code):
        seed(make_code, code="LP-FAIL0001", **overrides)

        response = client.post("/Loyalty/customer/redeem-code", json={"code": "LP-FAIL0001"}, headers=CUSTOMER)

        assert response.status_code == 400
        assert response.json()["code"] == code

    def test_unknown_code(self, client):
        response = client.post("/Loyalty/customer/redeem-code", json={"code": "LP-NOPE"}, headers=CUSTOMER)

        assert response.status_code == 404
        assert response.json()["detail"] == "Invalid code"

    def test_restaurant_mismatch(self, client, restaurant, seed):
        seed(make_code, code="LP-SCOPED01", restaurant_id=restaurant.id)

        response = client.post(
            "/Loyalty/customer/redeem-code",
            json={"code": "LP-SCOPED01", "restaurantId": str(uuid.uuid4())},
            headers=CUSTOMER,
        )

        assert response.status_code == 400
        assert response.json()["code"] == "RESTAURANT_MISMATCH"


class TestRewards:
    def test_owner_manages_rewards(self, client, restaurant):
        response = client.post(
            "/Loyalty/owner/rewards",
            json={
                "restaurant_id": str(restaurant.id),
                "name": "10% off",
                "description": "Ten percent off the bill",
                "points_required": 150,
                "discount_percentage": 10,
            },
            headers=OWNER,
        )
        assert response.status_code == 200
        reward = response.json()

        response = client.put(
            f"/Loyalty/owner/rewards/{reward['id']}",
            json={"name": "15% off", "points_required": 200, "discount_percentage": 15, "is_active": True},
            headers=OWNER,
        )
        assert response.status_code == 200
        assert response.json()["name"] == "15% off"

        owned = client.get(f"/Loyalty/owner/restaurants/{restaurant.id}/rewards", headers=OWNER).json()
        assert [r["id"] for r in owned] == [reward["id"]]

        response = client.delete(f"/Loyalty/owner/rewards/{reward['id']}", headers=OWNER)
        assert response.json() == {"deleted": True}
        assert client.get(f"/Loyalty/rewards/{reward['id']}").status_code == 404

    def test_owner_of_other_restaurant_is_forbidden(self, client, restaurant):
        response = client.post(
            "/Loyalty/owner/rewards",
            json={"restaurant_id": str(restaurant.id), "name": "Nope", "points_required": 10},
            headers=_headers("owner-2", "RestaurantOwner"),
        )

        assert response.status_code == 403

    def test_public_listing_computes_can_redeem(self, client, restaurant, seed):
        seed(make_reward, restaurant, name="Free Drink", points_required=300)
        seed(make_reward, restaurant, name="Free Meal", points_required=1000)
        seed(credit, "cust-1", restaurant, 500)

        as_customer = client.get(f"/Loyalty/restaurants/{restaurant.id}/rewards", headers=CUSTOMER).json()
        anonymous = client.get(f"/Loyalty/restaurants/{restaurant.id}/rewards").json()

        assert {r["name"]: r["can_redeem"] for r in as_customer} == {"Free Drink": True, "Free Meal": False}
        assert {r["name"]: r["can_redeem"] for r in anonymous} == {"Free Drink": False, "Free Meal": False}

    def test_redeem_reward_then_use_coupon(self, client, restaurant, seed):
        reward = seed(make_reward, restaurant, points_required=300, max_redemptions=2, current_redemptions=1)
        seed(credit, "cust-1", restaurant, 500)

        response = client.post("/Loyalty/customer/redeem-reward", json={"rewardId": str(reward.id)}, headers=CUSTOMER)
        assert response.status_code == 200
        redemption = response.json()
        assert redemption["points_spent"] == 300
        assert redemption["coupon_code"].startswith("CPT-")

        balances = client.get("/Loyalty/customer/balance", headers=CUSTOMER).json()
        assert balances[0]["available_points"] == 200

        seed(credit, "cust-2", restaurant, 900)
        exhausted = client.post(
            "/Loyalty/customer/redeem-reward",
            json={"rewardId": str(reward.id)},
            headers=_headers("cust-2", "Customer"),
        )
        assert exhausted.status_code == 400
        assert exhausted.json()["code"] == "REWARD_EXHAUSTED"

        mine = client.get("/Loyalty/customer/redemptions", headers=CUSTOMER).json()
        assert [r["coupon_code"] for r in mine] == [redemption["coupon_code"]]

        used = client.patch(f"/Loyalty/owner/redemptions/{redemption['coupon_code']}/use", headers=OWNER)
        assert used.status_code == 200
        assert used.json()["is_used"] is True

        detail = client.get(f"/Loyalty/customer/redemptions/{redemption['id']}", headers=CUSTOMER).json()
        assert detail["is_used"] is True

    def test_insufficient_points(self, client, restaurant, seed):
        reward = seed(make_reward, restaurant, points_required=300)
        seed(credit, "cust-1", restaurant, 100)

        response = client.post("/Loyalty/customer/redeem-reward", json={"rewardId": str(reward.id)}, headers=CUSTOMER)

        assert response.status_code == 400
        assert response.json()["code"] == "INSUFFICIENT_POINTS"

    def test_unknown_reward(self, client):
        response = client.post(
            "/Loyalty/customer/redeem-reward", json={"rewardId": str(uuid.uuid4())}, headers=CUSTOMER
        )

        assert response.status_code == 404
        assert response.json()["code"] == "REWARD_NOT_FOUND"
