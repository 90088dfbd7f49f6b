"""API route tests"""
import pytest
from datetime import timedelta
from fastapi import status
from unittest.mock import patch

from app.core.config import settings
from app.core.exceptions import PaymentProviderError
from app.models.base import utcnow
from app.models.boost import Boost
from app.models.notification import Notification
from app.models.transaction import Transaction

from conftest import TEST_USER_ID, make_event, make_signed_event, sign_webhook_payload

CREATE_URL = "/api/payments/create-payment-intent"


@pytest.mark.critical
class TestCreatePaymentIntentRoute:
    """Test POST /api/payments/create-payment-intent"""

    def test_requires_authorization_header(self, client, fake_provider, test_item):
        response = client.post(CREATE_URL, json={"type": "boost", "itemId": test_item.id, "boostType": "premium"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json() == {"error": "No authorization header", "details": None, "success": False}
        assert fake_provider.calls == []

    def test_rejects_invalid_token(self, client, fake_provider, test_item):
        response = client.post(
            CREATE_URL,
            json={"type": "boost", "itemId": test_item.id, "boostType": "premium"},
            headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["success"] is False
        assert fake_provider.calls == []

    def test_premium_chf_five_days(self, client, auth_headers, fake_provider, test_item, db_session):
        """Test scenario: premium CHF 5 days costs 400"""
        response = client.post(
            CREATE_URL,
            json={"type": "boost", "itemId": test_item.id, "boostType": "premium", "currency": "CHF", "duration": 5},
            headers=auth_headers
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["success"] is True
        assert data["amount"] == 400
        assert data["currency"] == "CHF"
        assert data["clientSecret"] == "pi_test_1_secret_abc"
        assert data["paymentIntentId"] == "pi_test_1"
        assert data["transactionId"] == db_session.query(Transaction).one().id
        assert fake_provider.calls[0]["metadata"]["userId"] == TEST_USER_ID

    def test_urgent_usd_one_day(self, client, auth_headers, test_item):
        """Test scenario: urgent USD 1 day costs 320"""
        response = client.post(
            CREATE_URL,
            json={"type": "boost", "itemId": test_item.id, "boostType": "urgent", "currency": "USD", "duration": 1},
            headers=auth_headers
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["amount"] == 320

    def test_missing_item_id_is_400(self, client, auth_headers, fake_provider):
        response = client.post(CREATE_URL, json={"type": "boost", "boostType": "premium"}, headers=auth_headers)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "itemId and boostType are required for boost payments"
        assert fake_provider.calls == []

    def test_schema_error_is_400_with_error_body(self, client, auth_headers, fake_provider, test_item):
        response = client.post(
            CREATE_URL,
            json={"type": "boost", "itemId": test_item.id, "boostType": "premium", "duration": "abc"},
            headers=auth_headers
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        data = response.json()
        assert data["error"] == "Invalid request"
        assert data["success"] is False
        assert "duration" in data["details"]
        assert fake_provider.calls == []

    def test_malformed_json_is_400(self, client, auth_headers, fake_provider):
        response = client.post(
            CREATE_URL,
            content=b'{"type": "boost", ',
            headers={**auth_headers, "Content-Type": "application/json"}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["success"] is False
        assert fake_provider.calls == []

    def test_subscription_type_not_implemented(self, client, auth_headers, fake_provider):
        response = client.post(CREATE_URL, json={"type": "subscription"}, headers=auth_headers)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "Subscription payments not yet implemented"

    def test_unknown_currency_is_400(self, client, auth_headers, fake_provider, test_item):
        response = client.post(
            CREATE_URL,
            json={"type": "boost", "itemId": test_item.id, "boostType": "premium", "currency": "JPY"},
            headers=auth_headers
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert fake_provider.calls == []

    def test_item_owned_by_someone_else_is_404(self, client, auth_headers, fake_provider, other_item):
        response = client.post(
            CREATE_URL,
            json={"type": "boost", "itemId": other_item.id, "boostType": "premium"},
            headers=auth_headers
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"] == "Item not found or access denied"
        assert fake_provider.calls == []

    def test_provider_failure_is_502(self, client, auth_headers, fake_provider, test_item, db_session):
        fake_provider.fail_with = PaymentProviderError("Failed to create payment intent", details="Your card was declined.")
        response = client.post(
            CREATE_URL,
            json={"type": "boost", "itemId": test_item.id, "boostType": "premium"},
            headers=auth_headers
        )

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        assert response.json() == {
            "error": "Failed to create payment intent",
            "details": "Your card was declined.",
            "success": False,
        }
        assert db_session.query(Transaction).count() == 0


@pytest.mark.critical
class TestStripeWebhookRoute:
    """Test POST /api/webhooks/stripe"""

    def _create_boost(self, client, auth_headers, item_id):
        response = client.post(
            CREATE_URL,
            json={"type": "boost", "itemId": item_id, "boostType": "featured", "duration": 7},
            headers=auth_headers
        )
        assert response.status_code == status.HTTP_200_OK
        return response.json()

    def test_purchase_then_success_webhook(self, client, auth_headers, test_item, db_session):
        """Test full flow: create intent, then reconcile via signed webhook"""
        created = self._create_boost(client, auth_headers, test_item.id)
        payload, signature = make_signed_event(
            "payment_intent.succeeded",
            {"id": created["paymentIntentId"], "metadata": {"userId": TEST_USER_ID, "type": "boost"}}
        )

        response = client.post(
            "/api/webhooks/stripe",
            content=payload,
            headers={"stripe-signature": signature, "Content-Type": "application/json"}
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"received": True}
        transaction = db_session.query(Transaction).one()
        db_session.refresh(transaction)
        assert transaction.status == "succeeded"
        assert db_session.query(Boost).one().is_active is True
        assert db_session.query(Notification).count() == 1

    def test_invalid_signature_is_400(self, client, auth_headers, test_item, db_session):
        created = self._create_boost(client, auth_headers, test_item.id)
        payload = make_event("payment_intent.succeeded", {"id": created["paymentIntentId"]})

        response = client.post(
            "/api/webhooks/stripe",
            content=payload,
            headers={"stripe-signature": sign_webhook_payload(payload, secret="whsec_wrong")}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "Webhook signature verification failed"
        transaction = db_session.query(Transaction).one()
        db_session.refresh(transaction)
        assert transaction.status == "pending"

    def test_non_utf8_body_is_400(self, client):
        response = client.post(
            "/api/webhooks/stripe",
            content=b"\xff\xfe{}",
            headers={"stripe-signature": sign_webhook_payload("{}")}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["success"] is False

    def test_missing_signature_is_400(self, client):
        response = client.post("/api/webhooks/stripe", content=make_event("payment_intent.succeeded", {"id": "pi_1"}))
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_unknown_intent_acknowledged(self, client):
        payload, signature = make_signed_event("payment_intent.succeeded", {"id": "pi_nobody"})
        response = client.post("/api/webhooks/stripe", content=payload, headers={"stripe-signature": signature})

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"received": True}

    def test_webhook_does_not_need_bearer_token_and_is_not_rate_limited(self, client):
        with patch.object(settings, "RATE_LIMIT_STRICT_REQUESTS", 1):
            for i in range(3):
                payload, signature = make_signed_event("charge.refunded", {"id": f"ch_{i}"}, event_id=f"evt_{i}")
                response = client.post("/api/webhooks/stripe", content=payload, headers={"stripe-signature": signature})
                assert response.status_code == status.HTTP_200_OK


@pytest.mark.high
class TestReadRoutes:
    """Test transaction and boost read endpoints"""

    def test_transactions_require_auth(self, client):
        assert client.get("/api/payments/transactions").status_code == status.HTTP_401_UNAUTHORIZED
        assert client.get("/api/boosts").status_code == status.HTTP_401_UNAUTHORIZED

    def test_transactions_only_show_own(self, client, auth_headers, other_auth_headers, test_item):
        client.post(
            CREATE_URL,
            json={"type": "boost", "itemId": test_item.id, "boostType": "premium"},
            headers=auth_headers
        )

        mine = client.get("/api/payments/transactions", headers=auth_headers).json()["transactions"]
        theirs = client.get("/api/payments/transactions", headers=other_auth_headers).json()["transactions"]

        assert len(mine) == 1
        assert mine[0]["status"] == "pending"
        assert mine[0]["provider"] == "stripe"
        assert theirs == []

    def test_my_boosts_and_item_live_boosts(self, client, auth_headers, test_item):
        client.post(
            CREATE_URL,
            json={"type": "boost", "itemId": test_item.id, "boostType": "urgent", "duration": 3},
            headers=auth_headers
        )

        boosts = client.get("/api/boosts", headers=auth_headers).json()["boosts"]
        assert len(boosts) == 1
        assert boosts[0]["boost_type"] == "urgent"
        assert boosts[0]["is_live"] is True

        response = client.get(f"/api/boosts/item/{test_item.id}")
        assert response.status_code == status.HTTP_200_OK
        assert [b["id"] for b in response.json()["boosts"]] == [boosts[0]["id"]]

    def test_expired_boost_is_not_live(self, client, auth_headers, test_item, db_session):
        now = utcnow()
        db_session.add(Boost(
            item_id=test_item.id, user_id=TEST_USER_ID, boost_type="premium", duration_days=1,
            amount_paid=120, currency="USD", starts_at=now - timedelta(days=2),
            expires_at=now - timedelta(days=1), is_active=True
        ))
        db_session.commit()

        boosts = client.get("/api/boosts", headers=auth_headers).json()["boosts"]
        assert boosts[0]["is_live"] is False
        assert client.get(f"/api/boosts/item/{test_item.id}").json()["boosts"] == []

    def test_pricing_defaults(self, client):
        response = client.get("/api/boosts/pricing")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["currency"] == "USD"
        assert data["duration_days"] == 7
        assert {p["boost_type"]: p["amount"] for p in data["prices"]} == {
            "premium": 419,
            "featured": 699,
            "urgent": 1119,
        }

    def test_pricing_for_currency_and_duration(self, client):
        data = client.get("/api/boosts/pricing", params={"currency": "chf", "duration": 5}).json()
        assert {p["boost_type"]: p["amount"] for p in data["prices"]} == {
            "premium": 400,
            "featured": 700,
            "urgent": 1100,
        }

    def test_pricing_invalid_duration_is_400(self, client):
        response = client.get("/api/boosts/pricing", params={"duration": 0})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "Invalid request"

    def test_pricing_unknown_currency_is_400(self, client):
        response = client.get("/api/boosts/pricing", params={"currency": "JPY"})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["success"] is False


@pytest.mark.medium
class TestServiceRoutes:
    """Test config, health and metrics endpoints"""

    def test_stripe_config_returns_publishable_key(self, client):
        response = client.get("/api/stripe/config")
        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"publishable_key": "pk_test_dummy"}

    def test_stripe_config_unconfigured_is_500(self, client):
        with patch.object(settings, "STRIPE_PUBLISHABLE_KEY", ""):
            response = client.get("/api/stripe/config")
        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"status": "healthy"}

    def test_metrics_exposes_payment_counters(self, client, auth_headers, test_item):
        client.post(
            CREATE_URL,
            json={"type": "boost", "itemId": test_item.id, "boostType": "premium"},
            headers=auth_headers
        )

        response = client.get("/metrics")
        assert response.status_code == status.HTTP_200_OK
        assert "swapit_payment_intents_total" in response.text
