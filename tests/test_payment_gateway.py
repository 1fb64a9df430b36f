from decimal import Decimal
from types import SimpleNamespace

import pytest
import stripe

from app.domain.errors import PaymentProviderError
from app.services.payment_gateway import PaymentGateway
from conftest import WEBHOOK_SECRET


@pytest.fixture
def gateway():
    return PaymentGateway(webhook_secret=WEBHOOK_SECRET)


def promo_listing(*promos):
    def fake_list(**params):
        return SimpleNamespace(data=list(promos))

    return fake_list


class TestPromotionCodes:
    def test_coupon_embedded_in_promotion_code(self, gateway, monkeypatch):
        promo = SimpleNamespace(id="promo_1", code="HALF", active=True, coupon={"percent_off": 12.5})
        monkeypatch.setattr(stripe.PromotionCode, "list", promo_listing(promo))

        found = gateway.find_active_promotion_code("HALF")

        assert found == {"id": "promo_1", "code": "HALF", "percent_off": Decimal("12.5")}

    def test_coupon_referenced_by_id_is_retrieved(self, gateway, monkeypatch):
        promo = SimpleNamespace(
            id="promo_2", code="SPRING", active=True, coupon=None, promotion=SimpleNamespace(coupon="co_1")
        )
        retrieved = []

        def fake_retrieve(coupon_id):
            retrieved.append(coupon_id)
            return {"id": coupon_id, "percent_off": 25}

        monkeypatch.setattr(stripe.PromotionCode, "list", promo_listing(promo))
        monkeypatch.setattr(stripe.Coupon, "retrieve", fake_retrieve)

        found = gateway.find_active_promotion_code("SPRING")

        assert retrieved == ["co_1"]
        assert found["percent_off"] == Decimal("25")

    def test_amount_off_coupon_is_ignored(self, gateway, monkeypatch):
        promo = SimpleNamespace(id="promo_3", code="FIVE", active=True, coupon={"amount_off": 500})
        monkeypatch.setattr(stripe.PromotionCode, "list", promo_listing(promo))

        assert gateway.find_active_promotion_code("FIVE") is None

    def test_inactive_or_other_code_is_ignored(self, gateway, monkeypatch):
        inactive = SimpleNamespace(id="promo_4", code="OLD", active=False, coupon={"percent_off": 10})
        other = SimpleNamespace(id="promo_5", code="OTHER", active=True, coupon={"percent_off": 10})
        monkeypatch.setattr(stripe.PromotionCode, "list", promo_listing(inactive, other))

        assert gateway.find_active_promotion_code("OLD") is None

    def test_no_match(self, gateway, monkeypatch):
        monkeypatch.setattr(stripe.PromotionCode, "list", promo_listing())

        assert gateway.find_active_promotion_code("NOPE") is None

    def test_stripe_failure_is_wrapped(self, gateway, monkeypatch):
        def fake_list(**params):
            raise stripe.AuthenticationError("Invalid API Key provided")

        monkeypatch.setattr(stripe.PromotionCode, "list", fake_list)

        with pytest.raises(PaymentProviderError):
            gateway.find_active_promotion_code("SPRING")


class TestCheckoutSessions:
    def test_create_returns_id_and_url(self, gateway, monkeypatch):
        seen = {}

        def fake_create(**params):
            seen.update(params)
            return SimpleNamespace(id="cs_live_1", url="https://checkout.stripe.com/c/cs_live_1", status="open")

        monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)

        session = gateway.create_checkout_session(mode="payment", client_reference_id="7")

        assert session == {"id": "cs_live_1", "url": "https://checkout.stripe.com/c/cs_live_1"}
        assert seen["client_reference_id"] == "7"

    def test_create_rejected_by_stripe(self, gateway, monkeypatch):
        calls = []

        def fake_create(**params):
            calls.append(params)
            raise stripe.InvalidRequestError("No such price", "line_items")

        monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)

        with pytest.raises(PaymentProviderError):
            gateway.create_checkout_session(mode="payment")
        # bledy walidacji nie sa powtarzane
        assert len(calls) == 1

    def test_create_retried_after_connection_error(self, gateway, monkeypatch):
        calls = []

        def fake_create(**params):
            calls.append(params)
            if len(calls) == 1:
                raise stripe.APIConnectionError("connection reset")
            return SimpleNamespace(id="cs_live_2", url="https://checkout.stripe.com/c/cs_live_2")

        monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)

        session = gateway.create_checkout_session(mode="payment")

        assert session["id"] == "cs_live_2"
        assert len(calls) == 2

    def test_expire_failure_is_swallowed(self, gateway, monkeypatch):
        calls = []

        def fake_expire(session_id):
            calls.append(session_id)
            raise stripe.InvalidRequestError("Only Checkout Sessions with a status of open can be expired", None)

        monkeypatch.setattr(stripe.checkout.Session, "expire", fake_expire)

        gateway.expire_checkout_session("cs_done")

        assert calls == ["cs_done"]

    def test_expire_without_session_does_not_call_stripe(self, gateway, monkeypatch):
        calls = []
        monkeypatch.setattr(stripe.checkout.Session, "expire", lambda session_id: calls.append(session_id))

        gateway.expire_checkout_session(None)

        assert calls == []
