"""Integration tests for the gateway endpoints via TestClient."""

import pytest
from fastapi.testclient import TestClient

from app import create_app
from ordering.order.order import fetch_order


@pytest.fixture()
def client(settings, engine):
    return TestClient(create_app(settings, engine), follow_redirects=False)


class TestCreatePaymentUrlAPI:
    def test_create_url(self, client, place_order):
        order_id = place_order()

        response = client.post(
            "/payments/vnpay/create-url",
            json={"order_id": order_id},
            headers={"X-Customer-Id": "cust-1"},
        )

        assert response.status_code == 200
        assert response.json()["payment_url"].startswith("https://gateway.test/pay?")
        assert "vnp_Amount=3000" in response.json()["payment_url"]

    def test_requires_customer(self, client, place_order):
        response = client.post("/payments/vnpay/create-url", json={"order_id": place_order()})
        assert response.status_code == 401

    def test_foreign_order_is_404(self, client, place_order):
        response = client.post(
            "/payments/vnpay/create-url",
            json={"order_id": place_order()},
            headers={"X-Customer-Id": "someone-else"},
        )
        assert response.status_code == 404

    def test_cod_order_is_409(self, client, place_order):
        response = client.post(
            "/payments/vnpay/create-url",
            json={"order_id": place_order(payment_method="COD")},
            headers={"X-Customer-Id": "cust-1"},
        )
        assert response.status_code == 409
        assert response.json()["error"] == "ORDER_NOT_PAYABLE"

    def test_order_id_beyond_integer_column_is_400(self, client):
        response = client.post(
            "/payments/vnpay/create-url",
            json={"order_id": 10**20},
            headers={"X-Customer-Id": "cust-1"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "ValidationError"
        assert "order_id" in response.json()["details"]


class TestIpnAPI:
    def test_settles_and_acknowledges(self, client, engine, place_order, signed_params):
        order_id = place_order()

        response = client.get("/payments/vnpay-ipn", params=signed_params(order_id, "30.00"))

        assert response.status_code == 200
        assert response.json() == {"RspCode": "00", "Message": "Confirm Success"}
        with engine.connect() as conn:
            assert fetch_order(conn, order_id).status == "PAID"

    def test_redelivery(self, client, place_order, signed_params):
        params = signed_params(place_order(), "30.00")
        client.get("/payments/vnpay-ipn", params=params)

        response = client.get("/payments/vnpay-ipn", params=params)

        assert response.json()["RspCode"] == "02"

    def test_invalid_signature_still_200(self, client, place_order, signed_params):
        params = signed_params(place_order(), "30.00")
        params["vnp_Amount"] = "1"

        response = client.get("/payments/vnpay-ipn", params=params)

        assert response.status_code == 200
        assert response.json()["RspCode"] == "97"

    def test_amount_mismatch(self, client, place_order, signed_params):
        response = client.get("/payments/vnpay-ipn", params=signed_params(place_order(), "10.00"))
        assert response.json()["RspCode"] == "04"

    def test_unknown_order(self, client, signed_params):
        response = client.get("/payments/vnpay-ipn", params=signed_params(31337, "10.00"))
        assert response.json()["RspCode"] == "01"

    def test_oversized_order_ref_is_not_found(self, client, signed_params):
        response = client.get("/payments/vnpay-ipn", params=signed_params("1" + "0" * 25, "30.00"))

        assert response.status_code == 200
        assert response.json() == {"RspCode": "01", "Message": "Order not found"}


class TestReturnAPI:
    def test_redirects_to_success_page(self, client, engine, place_order, signed_params):
        order_id = place_order()

        response = client.get("/payments/vnpay-return", params=signed_params(order_id, "30.00"))

        assert response.status_code == 302
        assert response.headers["location"] == f"http://shop.test/payment/success?orderId={order_id}"
        with engine.connect() as conn:
            assert fetch_order(conn, order_id).status == "PENDING"

    def test_redirects_on_bad_checksum(self, client):
        response = client.get("/payments/vnpay-return", params={"vnp_TxnRef": "1", "vnp_SecureHash": "00"})

        assert response.status_code == 302
        assert response.headers["location"] == "http://shop.test/payment/failed?reason=checksum_failed"
