from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from models import db
from models.advisor import ADVISOR_APPROVED, ADVISOR_PENDING, ADVISOR_REJECTED
from models.audit_log import AuditLog
from models.booking import BOOKING_CANCELLED, BOOKING_COMPLETED, BOOKING_CONFIRMED
from models.payment import PAYMENT_COMPLETED
from services.advisors import AdvisorDirectory
from tests.factories import make_advisor, make_booking, make_payment, make_slot, make_user
from utils.clock import utcnow
from utils.errors import Forbidden, NotFound, ValidationError


class TestProfile:
    def test_onboarding_creates_pending_profile(self, app, client_for):
        user = make_user("new-advisor@example.com", role="ADVISOR", full_name="Meera Shah")
        client, headers = client_for(user)

        resp = client.post("/advisors/me", json={
            "bio": "SEBI registered advisor, 10 years in equity research.",
            "specialization": "Equity",
            "hourly_rate": "1500",
        }, headers=headers)

        assert resp.status_code == 201
        advisor = resp.get_json()["advisor"]
        assert advisor["display_name"] == "Meera Shah"
        assert advisor["status"] == ADVISOR_PENDING
        assert advisor["hourly_rate"] == "1500.00"
        assert advisor["specialization"] == "equity"

    def test_update_keeps_status(self, app):
        advisor = make_advisor()
        updated, created = AdvisorDirectory(db.session).upsert_profile(advisor.user, {"hourly_rate": "2000"})
        assert created is False
        assert updated.hourly_rate == Decimal("2000.00")
        assert updated.status == ADVISOR_APPROVED

    @pytest.mark.parametrize("data", [
        {"bio": "long enough bio here", "hourly_rate": "0"},
        {"bio": "long enough bio here", "hourly_rate": "abc"},
        {"bio": "long enough bio here", "hourly_rate": "NaN"},
        {"bio": "long enough bio here", "hourly_rate": "Infinity"},
        {"bio": "short", "hourly_rate": "1000"},
    ])
    def test_invalid_profile(self, app, data):
        user = make_user("x@example.com", role="ADVISOR", full_name="X")
        with pytest.raises(ValidationError):
            AdvisorDirectory(db.session).upsert_profile(user, data)

    def test_investor_cannot_onboard(self, app, client_for):
        client, headers = client_for(make_user("investor@example.com"))
        resp = client.post("/advisors/me", json={"hourly_rate": "1000"}, headers=headers)
        assert resp.status_code == 403


class TestDirectory:
    def test_lists_only_approved(self, app):
        approved = make_advisor("a@example.com", rate="1000")
        make_advisor("b@example.com", status=ADVISOR_PENDING)

        client = app.test_client()
        advisors = client.get("/advisors").get_json()["advisors"]
        assert [a["id"] for a in advisors] == [approved.id]

    def test_max_rate_filter(self, app):
        cheap = make_advisor("cheap@example.com", rate="800")
        make_advisor("pricey@example.com", rate="5000")

        advisors = AdvisorDirectory(db.session).list_approved(max_rate="1000")
        assert [a.id for a in advisors] == [cheap.id]

    def test_pending_profile_is_hidden(self, app):
        pending = make_advisor("p@example.com", status=ADVISOR_PENDING)
        resp = app.test_client().get(f"/advisors/{pending.id}")
        assert resp.status_code == 404

    def test_open_slots(self, app):
        advisor = make_advisor()
        free = make_slot(advisor)
        taken = make_slot(advisor, start=free.start_time + timedelta(hours=1))
        taken.is_booked = True
        db.session.commit()

        slots = app.test_client().get(f"/advisors/{advisor.id}/slots").get_json()["slots"]
        assert [s["id"] for s in slots] == [free.id]


class TestSlots:
    def test_add_and_deactivate(self, app, client_for):
        advisor = make_advisor()
        client, headers = client_for(advisor.user)
        start = (utcnow() + timedelta(days=1)).replace(microsecond=0)

        resp = client.post("/advisors/me/slots", json={
            "start_time": start.isoformat(),
            "end_time": (start + timedelta(hours=1)).isoformat(),
        }, headers=headers)
        assert resp.status_code == 201
        slot_id = resp.get_json()["slot"]["id"]

        resp = client.post(f"/advisors/me/slots/{slot_id}/deactivate", headers=headers)
        assert resp.status_code == 200
        assert resp.get_json()["slot"]["is_available"] is False

    def test_end_before_start(self, app):
        advisor = make_advisor()
        start = utcnow() + timedelta(days=1)
        with pytest.raises(ValidationError):
            AdvisorDirectory(db.session).add_slot(advisor, start, start - timedelta(minutes=1))

    def test_duplicate_start(self, app):
        advisor = make_advisor()
        slot = make_slot(advisor)
        with pytest.raises(ValidationError):
            AdvisorDirectory(db.session).add_slot(advisor, slot.start_time, slot.end_time)

    def test_cannot_touch_other_advisors_slot(self, app):
        mine = make_advisor("mine@example.com")
        theirs = make_advisor("theirs@example.com")
        slot = make_slot(theirs)
        with pytest.raises(Forbidden):
            AdvisorDirectory(db.session).deactivate_slot(mine, slot.id)


class TestApproval:
    def test_approve(self, app, client_for):
        advisor = make_advisor("p@example.com", status=ADVISOR_PENDING)
        admin = make_user("admin@example.com", role="ADMIN")
        client, headers = client_for(admin)

        pending = client.get("/admin/advisors/pending").get_json()["advisors"]
        assert [a["id"] for a in pending] == [advisor.id]
        assert pending[0]["email"] == "p@example.com"

        resp = client.post(f"/admin/advisors/{advisor.id}/approve", headers=headers)
        assert resp.status_code == 200
        assert resp.get_json()["advisor"]["status"] == ADVISOR_APPROVED
        assert resp.get_json()["advisor"]["approved_at"] is not None

        actions = {row.action for row in AuditLog.query.all()}
        assert {"ADVISOR_APPROVED", "ADVISOR_DECISION_EMAIL"} <= actions

    def test_reject_needs_reason(self, app, client_for):
        advisor = make_advisor("p@example.com", status=ADVISOR_PENDING)
        client, headers = client_for(make_user("admin@example.com", role="ADMIN"))

        resp = client.post(f"/admin/advisors/{advisor.id}/reject", json={}, headers=headers)
        assert resp.status_code == 400

        resp = client.post(
            f"/admin/advisors/{advisor.id}/reject", json={"reason": "Missing SEBI number"}, headers=headers
        )
        assert resp.status_code == 200
        body = resp.get_json()["advisor"]
        assert body["status"] == ADVISOR_REJECTED
        assert body["rejected_reason"] == "Missing SEBI number"

    def test_unknown_advisor(self, app):
        with pytest.raises(NotFound):
            AdvisorDirectory(db.session).approve(404)

    def test_non_admin_forbidden(self, app, client_for):
        advisor = make_advisor("p@example.com", status=ADVISOR_PENDING)
        client, headers = client_for(make_user("investor@example.com"))
        resp = client.post(f"/admin/advisors/{advisor.id}/approve", headers=headers)
        assert resp.status_code == 403

    def test_audit_log_listing(self, app, client_for):
        client, _ = client_for(make_user("admin@example.com", role="ADMIN"))
        logs = client.get("/admin/audit-logs?action=LOGIN_SUCCESS").get_json()["logs"]
        assert len(logs) == 1
        assert logs[0]["action"] == "LOGIN_SUCCESS"


class TestEarnings:
    def test_summary_uses_stored_payouts(self, app, client_for):
        advisor = make_advisor(rate="1000")
        investor = make_user("investor@example.com")
        now = utcnow()

        done = make_booking(advisor, investor, status=BOOKING_COMPLETED, meeting_time=now - timedelta(minutes=1))
        make_payment(done, order_id="order_e1", status=PAYMENT_COMPLETED, payment_id="pay_e1", amount="1000.00")

        upcoming = make_booking(advisor, investor, status=BOOKING_CONFIRMED)
        make_payment(upcoming, order_id="order_e2", status=PAYMENT_COMPLETED, payment_id="pay_e2", amount="500.00")

        # cancelled and unpaid bookings earn nothing
        cancelled = make_booking(advisor, investor, status=BOOKING_CANCELLED)
        make_payment(cancelled, order_id="order_e3", status=PAYMENT_COMPLETED, payment_id="pay_e3")
        make_booking(advisor, investor, status=BOOKING_COMPLETED)

        client, _ = client_for(advisor.user)
        summary = client.get("/advisors/me/earnings").get_json()

        assert summary["totalEarnings"] == 900
        assert summary["completedPayouts"] == 900
        assert summary["thisMonth"] == 900
        assert summary["thisYear"] == 900
        assert summary["pendingPayouts"] == 450
        assert summary["totalSessions"] == 2
        assert summary["avgEarningPerSession"] == 450

    def test_display_rounds_half_up(self, app):
        advisor = make_advisor(rate="1000")
        investor = make_user("investor@example.com")
        booking = make_booking(
            advisor, investor, status=BOOKING_COMPLETED, meeting_time=datetime(2026, 3, 2, 10, 0)
        )
        # 10% of 1000.55 is 100.06 (rounded), payout 900.49
        make_payment(booking, order_id="order_r", status=PAYMENT_COMPLETED, payment_id="pay_r", amount="1000.55")

        summary = AdvisorDirectory(db.session).earnings(advisor, now=datetime(2026, 3, 15))
        assert summary["totalEarnings"] == 900
        assert summary["thisMonth"] == 900


def test_nan_rate_is_400_over_http(app, client_for):
    user = make_user("nan-advisor@example.com", role="ADVISOR", full_name="Nan Rao")
    client, headers = client_for(user)
    resp = client.post("/advisors/me", json={
        "bio": "Certified planner with ten years of practice.",
        "hourly_rate": "NaN",
    }, headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "VALIDATION_ERROR"
