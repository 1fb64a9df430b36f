# app/services/payment_gateway.py
import json
from decimal import Decimal

import stripe

from app.domain.errors import PaymentProviderError, WebhookSignatureError
from app.utils.retry import stripe_retry
from app.utils.settings import STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET
from app.utils.logging import get_logger

logger = get_logger(__name__)

if STRIPE_SECRET_KEY:
    stripe.api_key = STRIPE_SECRET_KEY


def _field(obj, name):
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


class PaymentGateway:
    """Cienka warstwa nad Stripe: promotion codes, checkout sessions, webhooki."""

    def __init__(self, webhook_secret: str | None = None):
        self.webhook_secret = webhook_secret if webhook_secret is not None else STRIPE_WEBHOOK_SECRET

    def find_active_promotion_code(self, code: str) -> dict | None:
        try:
            return self._find_promotion_code(code)
        except stripe.StripeError as e:
            logger.error(f"Stripe promotion code lookup failed: {e}")
            raise PaymentProviderError() from e

    @stripe_retry()
    def _find_promotion_code(self, code: str) -> dict | None:
        promos = stripe.PromotionCode.list(code=code, active=True, limit=1)
        for promo in promos.data:
            if _field(promo, "code") != code or not _field(promo, "active"):
                continue

            #starsze API: promo.coupon, nowsze: promo.promotion.coupon
            coupon = _field(promo, "coupon") or _field(_field(promo, "promotion"), "coupon")
            if isinstance(coupon, str):
                coupon = stripe.Coupon.retrieve(coupon)
            percent_off = _field(coupon, "percent_off")
            if not percent_off:
                logger.info(f"Promotion code {code} has no percent discount, ignoring")
                return None
            #stripe daje float (np. 12.5), przez str zeby nie zgubic ulamka
            return {
                "id": _field(promo, "id"),
                "code": _field(promo, "code"),
                "percent_off": Decimal(str(percent_off)),
            }
        return None

    def create_checkout_session(self, **params) -> dict:
        try:
            session = self._create_session(**params)
        except stripe.StripeError as e:
            logger.error(f"Stripe checkout session creation failed: {e}")
            raise PaymentProviderError() from e
        return {"id": session.id, "url": session.url}

    @stripe_retry()
    def _create_session(self, **params):
        return stripe.checkout.Session.create(**params)

    def expire_checkout_session(self, session_id: str | None) -> None:
        """Best-effort; a session that is already complete or expired is not an error for us."""
        if not session_id:
            return
        try:
            self._expire_session(session_id)
            logger.info(f"Expired checkout session {session_id}")
        except stripe.StripeError as e:
            logger.warning(f"Failed to expire checkout session {session_id}: {e}")

    @stripe_retry()
    def _expire_session(self, session_id: str):
        return stripe.checkout.Session.expire(session_id)

    def parse_webhook_event(self, payload: bytes, signature: str | None) -> dict:
        if not self.webhook_secret or not signature:
            raise WebhookSignatureError()

        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            logger.warning(f"Webhook signature mismatch: {e}")
            raise WebhookSignatureError() from e
        except ValueError as e:
            #zle utf-8 albo zly JSON
            logger.warning(f"Webhook payload rejected: {e}")
            raise WebhookSignatureError("Webhook payload is not valid JSON.") from e

        #serwisy dostaja zwykly dict, StripeObject zostaje w tej warstwie
        return json.loads(payload)
