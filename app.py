import logging

import click
from flask import Flask
from flask_migrate import Migrate
from sqlalchemy import inspect

from config import Config
from integrations.daily import DailyClient
from integrations.razorpay_gateway import RazorpayGateway
from models import db
from models.user import User
from routes import (
    health_bp,
    auth_bp,
    advisors_bp,
    admin_bp,
    bookings_bp,
    payments_bp,
    webhooks_bp,
    score_bp,
)
from security.csrf import csrf_protect
from security.rbac import ROLE_ADMIN
from services.availability import SlotReservations
from utils.auth_context import load_current_user
from utils.errors import register_error_handlers
from utils.seed import grant_role, seed_roles

logger = logging.getLogger(__name__)

# JSON-only API, nothing is ever framed or embedded
SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none';",
}

BLUEPRINTS = (health_bp, auth_bp, advisors_bp, admin_bp, bookings_bp, payments_bp, webhooks_bp, score_bp)


def create_app(config_overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    for blueprint in BLUEPRINTS:
        app.register_blueprint(blueprint)

    db.init_app(app)
    Migrate(app, db)
    register_error_handlers(app, db)

    # External clients, built once; tests swap in fakes
    app.extensions.setdefault("payment_gateway", RazorpayGateway.from_config(app.config))
    app.extensions.setdefault("video_rooms", DailyClient.from_config(app.config))

    with app.app_context():
        if app.config.get("CREATE_TABLES_ON_STARTUP"):
            db.create_all()
        # before `flask db upgrade` has run there is nothing to seed
        if inspect(db.engine).has_table("roles"):
            seed_roles()

    # order matters: CSRF is only enforced once the user is known
    app.before_request(load_current_user)
    app.before_request(csrf_protect)

    @app.after_request
    def add_security_headers(resp):
        resp.headers.update(SECURITY_HEADERS)
        return resp

    register_cli(app)
    return app


def register_cli(app):
    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Grant ADMIN to an existing account (bootstrap)."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if user is None:
            click.echo("User not found")
            return
        if grant_role(user, ROLE_ADMIN):
            logger.info("Granted %s to user %s", ROLE_ADMIN, user.id)
        click.echo(f"{user.email} promoted to ADMIN")

    @app.cli.command("release-expired-slots")
    def release_expired_slots():
        """Free time slots whose checkout hold has lapsed."""
        released = SlotReservations(db.session).sweep_expired()
        logger.info("Released %s expired slot holds", released)
        click.echo(f"Released {released} expired slot hold(s)")


if __name__ == "__main__":
    create_app().run(host="127.0.0.1", port=5002)
