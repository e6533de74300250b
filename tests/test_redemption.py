"""
Tests for coupon verification and redemption.
"""
from datetime import timedelta

import pytest
from sqlalchemy import select, update

from restostar.core.errors import AlreadyRedeemed, Forbidden, InvalidCode, NotFound
from restostar.models.customer_coupon import CustomerCoupon
from restostar.models.review import Review
from restostar.services.coupon_policies import CouponPolicyService
from restostar.services.redemption import CouponRedemptionService
from restostar.services.reviews import ReviewService

from conftest import make_restaurant


@pytest.fixture
def issued_code(db, owner, restaurant, fixed_now) -> str:
    """A coupon issued for a 5 star review with a positive policy in place."""
    CouponPolicyService(db).set_policy(owner, restaurant.id, "positive", title="Thanks", reward="10% off")
    result = ReviewService(db).submit_review(
        restaurant.public_id, "joes-diner", stars=5, email="guest@example.com", now=fixed_now,
    )
    return result.coupon_code


class TestRedeemByCode:
    """Tests for the staff redemption at the counter."""

    def test_redeems_once(self, db, issued_code, fixed_now):
        redeemed_at = fixed_now + timedelta(hours=1)

        result = CouponRedemptionService(db).redeem_by_code(issued_code.lower(), now=redeemed_at)

        assert result.status == "redeemed"
        assert result.redeemed_at == redeemed_at
        assert result.offer.restaurant_name == "Joe's Diner"
        assert result.offer.sentiment_type == "positive"
        assert result.offer.offer_discount_value == "10% off"

    def test_replay_keeps_original_timestamp(self, db, issued_code, fixed_now):
        service = CouponRedemptionService(db)
        first = service.redeem_by_code(issued_code, now=fixed_now + timedelta(hours=1))

        second = service.redeem_by_code(issued_code, now=fixed_now + timedelta(hours=2))

        assert second.status == "already_redeemed"
        assert second.redeemed_at == first.redeemed_at

    def test_lost_race_reports_winner(self, db, issued_code, fixed_now):
        winner_at = fixed_now + timedelta(minutes=30)
        service = CouponRedemptionService(db)
        # Load the row so the session holds a not-yet-redeemed copy
        coupon = db.execute(select(CustomerCoupon)).scalar_one()
        assert coupon.is_redeemed is False

        db.execute(
            update(CustomerCoupon)
            .where(CustomerCoupon.id == coupon.id)
            .values(is_redeemed=True, redeemed_at=winner_at)
            .execution_options(synchronize_session=False)
        )

        result = service.redeem_by_code(issued_code, now=fixed_now + timedelta(hours=1))

        assert result.status == "already_redeemed"
        assert result.redeemed_at == winner_at

    def test_unknown_code(self, db, issued_code):
        with pytest.raises(NotFound):
            CouponRedemptionService(db).redeem_by_code("ZZZZ9999")

    @pytest.mark.parametrize("code", ["a b", "", "ABC"])
    def test_malformed_code(self, db, code):
        with pytest.raises(InvalidCode):
            CouponRedemptionService(db).redeem_by_code(code)

    def test_offer_missing_after_review_deleted(self, db, issued_code):
        coupon = db.execute(select(CustomerCoupon)).scalar_one()
        db.delete(db.get(Review, coupon.review_id))
        db.commit()

        result = CouponRedemptionService(db).redeem_by_code(issued_code)

        assert result.status == "redeemed"
        assert result.offer.restaurant_name == "Joe's Diner"
        assert result.offer.sentiment_type is None
        assert result.offer.offer_title is None


class TestVerifyForOwner:
    """Verification never raises; the outcome is a status."""

    def test_empty_code(self, db, owner):
        result = CouponRedemptionService(db).verify_for_owner(owner, "   ")

        assert result.status == "invalid"
        assert result.message == "Please enter a coupon code"

    def test_bad_format(self, db, owner):
        assert CouponRedemptionService(db).verify_for_owner(owner, "a b").status == "invalid"

    def test_not_found(self, db, owner):
        assert CouponRedemptionService(db).verify_for_owner(owner, "ZZZZ9999").status == "not_found"

    def test_other_owner(self, db, other_owner, issued_code):
        result = CouponRedemptionService(db).verify_for_owner(other_owner, issued_code)

        assert result.status == "unauthorized"
        assert result.customer_email is None

    def test_valid_then_already_redeemed(self, db, owner, issued_code):
        service = CouponRedemptionService(db)

        valid = service.verify_for_owner(owner, issued_code.lower())
        assert valid.status == "valid"
        assert valid.coupon_code == issued_code
        assert valid.customer_email == "guest@example.com"
        assert valid.offer.review_stars == 5
        assert valid.offer.offer_title == "Thanks"

        service.redeem_by_code(issued_code)
        redeemed = service.verify_for_owner(owner, issued_code)
        assert redeemed.status == "already_redeemed"
        assert redeemed.is_redeemed is True
        assert redeemed.redeemed_at is not None


class TestRedeemAsOwner:
    """Tests for dashboard redemption."""

    def test_redeem(self, db, owner, issued_code, fixed_now):
        redeemed_at = CouponRedemptionService(db).redeem_as_owner(owner, issued_code, now=fixed_now)

        assert redeemed_at == fixed_now

    def test_second_redeem_conflicts(self, db, owner, issued_code):
        service = CouponRedemptionService(db)
        service.redeem_as_owner(owner, issued_code)

        with pytest.raises(AlreadyRedeemed):
            service.redeem_as_owner(owner, issued_code)

    def test_other_owner_forbidden(self, db, other_owner, issued_code):
        with pytest.raises(Forbidden):
            CouponRedemptionService(db).redeem_as_owner(other_owner, issued_code)

    def test_unknown_code(self, db, owner):
        with pytest.raises(NotFound):
            CouponRedemptionService(db).redeem_as_owner(owner, "ZZZZ9999")


class TestCouponRouters:
    """Tests for the coupon endpoints."""

    def test_public_redeem_and_replay(self, client, issued_code):
        first = client.post("/api/public/coupons/redeem", json={"coupon_code": issued_code})
        second = client.post("/api/public/coupons/redeem", json={"coupon_code": issued_code})

        assert first.status_code == 200
        assert first.json()["status"] == "redeemed"
        assert first.json()["offer_discount_value"] == "10% off"
        assert "offer_reward" not in first.json()
        assert second.status_code == 200
        assert second.json()["status"] == "already_redeemed"
        assert second.json()["redeemed_at"] == first.json()["redeemed_at"]

    def test_public_redeem_bad_format(self, client):
        response = client.post("/api/public/coupons/redeem", json={"coupon_code": "a b"})

        assert response.status_code == 422
        assert response.json()["error"] == "invalid_code"

    def test_public_redeem_unknown(self, client, restaurant):
        response = client.post("/api/public/coupons/redeem", json={"coupon_code": "ZZZZ9999"})

        assert response.status_code == 404

    def test_verify(self, client, issued_code, auth_headers):
        response = client.post("/api/coupons/verify", headers=auth_headers, json={"coupon_code": issued_code})

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "valid"
        assert data["restaurant_name"] == "Joe's Diner"
        assert data["offer_discount_value"] == "10% off"

    def test_verify_invalid_is_200(self, client, owner, auth_headers):
        response = client.post("/api/coupons/verify", headers=auth_headers, json={"coupon_code": "!!"})

        assert response.status_code == 200
        assert response.json()["status"] == "invalid"

    def test_owner_redeem_twice(self, client, issued_code, auth_headers):
        first = client.post("/api/coupons/redeem", headers=auth_headers, json={"coupon_code": issued_code})
        second = client.post("/api/coupons/redeem", headers=auth_headers, json={"coupon_code": issued_code})

        assert first.status_code == 200
        assert first.json()["success"] is True
        assert second.status_code == 409
        assert second.json()["error"] == "already_redeemed"

    def test_list_customer_coupons(self, client, db, owner, issued_code, auth_headers):
        other = make_restaurant(db, owner, public_id="zz23456789", slug="elsewhere")

        response = client.get(f"/api/restaurants/{other.id}/customer-coupons", headers=auth_headers)
        assert response.json()["total"] == 0

        restaurant_id = db.execute(select(CustomerCoupon.restaurant_id)).scalar_one()
        response = client.get(f"/api/restaurants/{restaurant_id}/customer-coupons", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["coupons"][0]["coupon_code"] == issued_code
        assert data["coupons"][0]["sent_at"] is None
