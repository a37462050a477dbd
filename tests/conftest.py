import pytest
import razorpay

from app import create_app
from integrations.daily import VideoRoomError
from integrations.razorpay_gateway import RazorpayGateway
from models import db

KEY_SECRET = "rzp_test_key_secret"
WEBHOOK_SECRET = "rzp_test_webhook_secret"
CSRF = "test-csrf-token"


class FakeGateway(RazorpayGateway):
    """Records order and refund calls instead of hitting the API. Signature
    checks still run through the real SDK client."""

    def __init__(self):
        super().__init__(
            razorpay.Client(auth=("rzp_test_key", KEY_SECRET)),
            key_id="rzp_test_key",
            key_secret=KEY_SECRET,
        )
        self.orders = []
        self.refunds = []
        self.error = None

    def create_order(self, amount_minor, currency, receipt, notes=None):
        if self.error:
            raise self.error
        order = {
            "id": f"order_test_{len(self.orders) + 1}",
            "amount": amount_minor,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
            "status": "created",
        }
        self.orders.append(order)
        return order

    def refund_payment(self, payment_id, amount_minor=None, notes=None):
        if self.error:
            raise self.error
        refund = {
            "id": f"rfnd_test_{len(self.refunds) + 1}",
            "payment_id": payment_id,
            "amount": amount_minor,
            "notes": notes or {},
        }
        self.refunds.append(refund)
        return refund


class FakeVideoRooms:
    def __init__(self):
        self.rooms = []
        self.fail = False

    def create_room(self, name, expires_at=None, max_participants=2):
        if self.fail:
            raise VideoRoomError("Daily.co /rooms failed (500): boom")
        room = {
            "name": name,
            "url": f"https://fynly.daily.co/{name}",
            "exp": expires_at,
            "max_participants": max_participants,
        }
        self.rooms.append(room)
        return room


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "CREATE_TABLES_ON_STARTUP": True,
        "BCRYPT_ROUNDS": 4,
        "RAZORPAY_KEY_ID": "rzp_test_key",
        "RAZORPAY_KEY_SECRET": KEY_SECRET,
        "RAZORPAY_WEBHOOK_SECRET": WEBHOOK_SECRET,
        "SMTP_HOST": None,
        "LOG_LEVEL": "WARNING",
    })
    app.extensions["payment_gateway"] = FakeGateway()
    app.extensions["video_rooms"] = FakeVideoRooms()

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def gateway(app):
    return app.extensions["payment_gateway"]


@pytest.fixture
def video_rooms(app):
    return app.extensions["video_rooms"]


@pytest.fixture
def client_for(app):
    """Returns ``(client, headers)`` logged in as the given user."""
    from tests.factories import PASSWORD

    def _login(user, password=PASSWORD):
        client = app.test_client()
        resp = client.post("/auth/login", json={"email": user.email, "password": password})
        assert resp.status_code == 200, resp.get_json()
        client.set_cookie("csrf_token", CSRF)
        return client, {"X-CSRF-Token": CSRF}

    return _login
