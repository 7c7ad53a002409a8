from datetime import timedelta

from fastapi.testclient import TestClient

from storefront import app
from storefront.core.dependencies import get_db
from storefront.enums import DiscountType
from storefront.utils.time import utcnow
from tests.conftest import override_db


VALIDATE_URL = "/api/v1/coupons/validate"


def test_valid_coupon_returns_discount(client, make_coupon):
    make_coupon("WELCOME20", discount_value=20, min_order_value=1000, max_discount=200)

    response = client.post(VALIDATE_URL, json={"code": " welcome20 ", "subtotal": 1200})

    assert response.status_code == 200
    assert response.json() == {"success": True, "discount": 200, "code": "WELCOME20", "type": "percentage"}


def test_fixed_coupon(client, make_coupon):
    make_coupon("FLAT50", discount_type=DiscountType.FIXED, discount_value=50)

    body = client.post(VALIDATE_URL, json={"code": "flat50", "subtotal": 30}).json()

    assert body["discount"] == 30
    assert body["type"] == "fixed"


def test_below_minimum_names_the_threshold(client, make_coupon):
    make_coupon("BIG500", min_order_value=500)

    body = client.post(VALIDATE_URL, json={"code": "BIG500", "subtotal": 300}).json()

    assert body["success"] is False
    assert body["reason"] == "below_minimum"
    assert "500" in body["error"]


def test_each_rejection_has_its_own_message(client, make_coupon):
    make_coupon("OFF", is_active=False)
    make_coupon("OLD", valid_until=utcnow() - timedelta(seconds=1))

    unknown = client.post(VALIDATE_URL, json={"code": "MISSING", "subtotal": 100}).json()
    inactive = client.post(VALIDATE_URL, json={"code": "off", "subtotal": 100}).json()
    expired = client.post(VALIDATE_URL, json={"code": "old", "subtotal": 100}).json()
    empty = client.post(VALIDATE_URL, json={"code": "  ", "subtotal": 100}).json()

    assert unknown["error"] == "Coupon 'MISSING' is invalid."
    assert inactive["error"] == "Coupon 'off' is inactive."
    assert expired["error"] == "Coupon 'old' has expired."
    assert empty["error"] == "Please enter a coupon code."


def test_usage_limit_counts_non_cancelled_orders(client, make_coupon, make_order):
    make_coupon("TWICE", usage_limit=2)
    make_order(coupon_code="twice ")
    make_order(coupon_code="TWICE", status="Cancelled")

    assert client.post(VALIDATE_URL, json={"code": "TWICE", "subtotal": 100}).json()["success"] is True

    make_order(coupon_code="TWICE", status="shipped")

    body = client.post(VALIDATE_URL, json={"code": "TWICE", "subtotal": 100}).json()
    assert body["success"] is False
    assert body["reason"] == "usage_limit_reached"


def test_validation_reserves_nothing(client, make_coupon, make_order):
    make_coupon("LAST", usage_limit=1)

    first = client.post(VALIDATE_URL, json={"code": "LAST", "subtotal": 100}).json()
    second = client.post(VALIDATE_URL, json={"code": "LAST", "subtotal": 100}).json()

    assert first["success"] and second["success"]


def test_negative_subtotal_is_rejected_by_the_schema(client):
    response = client.post(VALIDATE_URL, json={"code": "X", "subtotal": -5})

    assert response.status_code == 422


def test_lookup_failure_is_a_retry_message(tmp_path):
    # no tables in this database, so the lookup itself fails
    app.dependency_overrides[get_db] = override_db(tmp_path / "empty.db")
    try:
        response = TestClient(app).post(VALIDATE_URL, json={"code": "SAVE10", "subtotal": 100})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 503
    assert response.json() == {"detail": "We couldn't check this coupon right now. Please try again."}


def test_usage_counts_codes_stored_with_stray_whitespace(client, make_coupon, make_order):
    make_coupon("TABBED", usage_limit=2)
    make_order(coupon_code="TABBED\t")
    make_order(coupon_code="\ntabbed")

    body = client.post(VALIDATE_URL, json={"code": "tabbed", "subtotal": 100}).json()

    assert body["reason"] == "usage_limit_reached"
