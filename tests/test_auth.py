from models import db
from models.session import AuthSession
from models.user import User
from tests.factories import PASSWORD, make_user


def test_register_investor_and_login(app):
    client = app.test_client()
    resp = client.post("/auth/register", json={
        "email": "New@Example.com",
        "password": "long-password-1",
        "full_name": "New User",
    })
    assert resp.status_code == 201
    assert resp.get_json()["user"]["roles"] == ["INVESTOR"]

    resp = client.post("/auth/login", json={"email": "new@example.com", "password": "long-password-1"})
    assert resp.status_code == 200
    cookies = resp.headers.getlist("Set-Cookie")
    assert any(c.startswith("fynly_session=") and "HttpOnly" in c for c in cookies)
    assert any(c.startswith("csrf_token=") for c in cookies)

    me = client.get("/auth/me").get_json()
    assert me["email"] == "new@example.com"


def test_register_advisor_role(app):
    resp = app.test_client().post("/auth/register", json={
        "email": "adv@example.com",
        "password": "long-password-1",
        "role": "advisor",
    })
    assert resp.status_code == 201
    assert resp.get_json()["user"]["roles"] == ["ADVISOR"]


def test_cannot_self_register_as_admin(app):
    resp = app.test_client().post("/auth/register", json={
        "email": "sneaky@example.com",
        "password": "long-password-1",
        "role": "admin",
    })
    assert resp.status_code == 400
    assert User.query.filter_by(email="sneaky@example.com").first() is None


def test_weak_password_rejected(app):
    resp = app.test_client().post("/auth/register", json={"email": "a@example.com", "password": "short"})
    assert resp.status_code == 400
    assert resp.get_json()["details"]


def test_duplicate_email(app):
    make_user("dupe@example.com")
    resp = app.test_client().post("/auth/register", json={
        "email": "dupe@example.com",
        "password": "long-password-1",
    })
    assert resp.status_code == 409


def test_wrong_password(app):
    make_user("user@example.com")
    resp = app.test_client().post("/auth/login", json={"email": "user@example.com", "password": "nope-nope-1"})
    assert resp.status_code == 401


def test_logout_revokes_session(app, client_for):
    user = make_user("user@example.com")
    client, headers = client_for(user)

    assert client.post("/auth/logout", headers=headers).status_code == 200
    assert AuthSession.query.filter_by(user_id=user.id, revoked=False).count() == 0
    assert client.get("/auth/me").status_code == 401


def test_me_requires_login(app):
    resp = app.test_client().get("/auth/me")
    assert resp.status_code == 401
    assert resp.get_json()["code"] == "AUTH_REQUIRED"


def test_health(app):
    resp = app.test_client().get("/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok"}
    assert resp.headers["X-Content-Type-Options"] == "nosniff"


def test_password_fixture_is_valid(app):
    user = make_user("fixture@example.com")
    resp = app.test_client().post("/auth/login", json={"email": user.email, "password": PASSWORD})
    assert resp.status_code == 200


def test_make_admin_command(app):
    user = make_user("boss@example.com")

    result = app.test_cli_runner().invoke(args=["make-admin", "Boss@Example.com"])

    assert result.exit_code == 0
    assert "boss@example.com promoted to ADMIN" in result.output
    db.session.expire_all()
    assert "ADMIN" in user.role_names


def test_seed_roles_is_idempotent(app):
    from utils.seed import seed_roles

    # create_app already seeded them
    assert seed_roles() == 0


def test_grant_role_reports_existing(app):
    from utils.seed import grant_role

    user = make_user("twice@example.com")
    assert grant_role(user, "ADVISOR") is True
    assert grant_role(user, "ADVISOR") is False
    assert user.role_names == ["ADVISOR", "INVESTOR"]


def test_csrf_mismatch_is_forbidden(app, client_for):
    user = make_user("user@example.com")
    client, _ = client_for(user)

    resp = client.post("/auth/logout", headers={"X-CSRF-Token": "wrong"})
    assert resp.status_code == 403
    assert resp.get_json()["code"] == "FORBIDDEN"
