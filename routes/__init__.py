from routes.health import health_bp
from routes.auth import auth_bp
from routes.advisors import advisors_bp
from routes.admin import admin_bp
from routes.bookings import bookings_bp
from routes.payments import payments_bp
from routes.webhooks import webhooks_bp
from routes.score import score_bp

__all__ = [
    "health_bp",
    "auth_bp",
    "advisors_bp",
    "admin_bp",
    "bookings_bp",
    "payments_bp",
    "webhooks_bp",
    "score_bp",
]
