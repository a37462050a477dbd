"""
Thin wrapper around the official Razorpay SDK.

Every API call carries an explicit timeout; timeouts surface as UpstreamTimeout
and any other SDK or transport failure as UpstreamError. Nothing is retried
here. Signature checks are delegated to the SDK's ``utility`` helpers and
reported as plain booleans.
"""
import logging

import razorpay
import requests
from razorpay.errors import BadRequestError, GatewayError, ServerError, SignatureVerificationError

from utils.errors import UpstreamError, UpstreamTimeout

logger = logging.getLogger(__name__)


class RazorpayGateway:
    def __init__(self, client, key_id=None, key_secret=None, timeout=10.0):
        self.client = client
        self.key_id = key_id
        self.key_secret = key_secret
        self.timeout = timeout

    @classmethod
    def from_config(cls, config):
        key_id = config.get("RAZORPAY_KEY_ID")
        key_secret = config.get("RAZORPAY_KEY_SECRET")
        client = razorpay.Client(auth=(key_id or "", key_secret or ""))
        return cls(
            client,
            key_id=key_id,
            key_secret=key_secret,
            timeout=config.get("GATEWAY_TIMEOUT_SECONDS", 10),
        )

    def _call(self, operation, fn, *args, **kwargs):
        try:
            return fn(*args, timeout=self.timeout, **kwargs)
        except requests.Timeout as exc:
            logger.warning("Razorpay %s timed out after %ss", operation, self.timeout)
            raise UpstreamTimeout() from exc
        except (BadRequestError, GatewayError, ServerError) as exc:
            logger.error("Razorpay %s failed: %s", operation, exc)
            raise UpstreamError(details=str(exc)) from exc
        except requests.RequestException as exc:
            logger.error("Razorpay %s transport error: %s", operation, exc)
            raise UpstreamError() from exc

    def create_order(self, amount_minor: int, currency: str, receipt: str, notes=None) -> dict:
        data = {
            "amount": amount_minor,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        return self._call("order.create", self.client.order.create, data=data)

    def refund_payment(self, payment_id: str, amount_minor=None, notes=None) -> dict:
        data = {}
        if amount_minor:
            data["amount"] = amount_minor
        if notes:
            data["notes"] = notes
        return self._call("payment.refund", self.client.payment.refund, payment_id, data)

    def verify_payment(self, order_id: str, payment_id: str, signature: str) -> bool:
        """Checkout callback signature, keyed with the API key secret."""
        try:
            return bool(self.client.utility.verify_payment_signature({
                "razorpay_order_id": order_id,
                "razorpay_payment_id": payment_id,
                "razorpay_signature": signature,
            }))
        except (SignatureVerificationError, TypeError):
            # TypeError: non-ASCII signature text cannot be compared
            return False

    def verify_webhook(self, body, signature: str, secret: str) -> bool:
        """Webhook signature over the raw request body."""
        if isinstance(body, bytes):
            try:
                body = body.decode("utf-8")
            except UnicodeDecodeError:
                return False
        try:
            return bool(self.client.utility.verify_webhook_signature(body, signature, secret))
        except (SignatureVerificationError, TypeError):
            return False
