from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from thatsgoodtoo.core.clock import utcnow
from thatsgoodtoo.core.config import settings
from thatsgoodtoo.models import Coupon, RecurrencePattern
from thatsgoodtoo.services.lifecycle import LifecycleService, add_months, advance_period
from tests.factories import make_coupon

NOW = datetime(2026, 3, 15, 12, 0)


def fail_next_commit(session, monkeypatch):
    """Make the session's next commit raise, later commits go through."""
    real_commit = session.commit
    calls = []

    def flaky_commit():
        calls.append(1)
        if len(calls) == 1:
            raise OperationalError("UPDATE coupons", {}, Exception("database is locked"))
        real_commit()

    monkeypatch.setattr(session, "commit", flaky_commit)


class TestPeriodArithmetic:
    def test_add_months_clamps_to_month_end(self):
        assert add_months(datetime(2027, 1, 31), 1) == datetime(2027, 2, 28)
        assert add_months(datetime(2028, 1, 31), 1) == datetime(2028, 2, 29)

    def test_add_months_crosses_year(self):
        assert add_months(datetime(2026, 11, 30, 9, 30), 3) == datetime(2027, 2, 28, 9, 30)
        assert add_months(datetime(2026, 12, 15), 12) == datetime(2027, 12, 15)

    @pytest.mark.parametrize("pattern, expected", [
        (RecurrencePattern.WEEKLY, datetime(2026, 3, 8)),
        (RecurrencePattern.MONTHLY, datetime(2026, 4, 1)),
        (RecurrencePattern.QUARTERLY, datetime(2026, 6, 1)),
        (RecurrencePattern.YEARLY, datetime(2027, 3, 1)),
    ])
    def test_advance_period(self, pattern, expected):
        assert advance_period(datetime(2026, 3, 1), pattern) == expected


class TestExpiration:
    def test_lapsed_coupons_are_deactivated_once(self, session, vendor):
        lapsed = make_coupon(session, vendor, now=NOW, code="LAPSED", end_date=NOW - timedelta(hours=1))
        live = make_coupon(session, vendor, now=NOW, code="LIVE")
        service = LifecycleService(session)

        first = service.expire_lapsed_coupons(now=NOW)
        second = service.expire_lapsed_coupons(now=NOW)

        assert first.expired_count == 1
        assert second.expired_count == 0
        assert first.failed == []
        session.refresh(lapsed)
        session.refresh(live)
        assert lapsed.is_active is False
        assert live.is_active is True

    def test_reports_coupons_expiring_soon(self, session, vendor):
        make_coupon(session, vendor, now=NOW, code="SOON", end_date=NOW + timedelta(days=2))
        make_coupon(session, vendor, now=NOW, code="LATER", end_date=NOW + timedelta(days=settings.EXPIRING_SOON_DAYS + 1))

        report = LifecycleService(session).expire_lapsed_coupons(now=NOW)
        assert report.expired_count == 0
        assert report.expiring_soon == 1


    def test_one_failed_commit_does_not_stop_the_batch(self, session, vendor, monkeypatch):
        first = make_coupon(session, vendor, now=NOW, code="FIRST", end_date=NOW - timedelta(hours=2))
        second = make_coupon(session, vendor, now=NOW, code="SECOND", end_date=NOW - timedelta(hours=1))
        fail_next_commit(session, monkeypatch)

        report = LifecycleService(session).expire_lapsed_coupons(now=NOW)

        assert report.failed == [first.id]
        assert report.expired_count == 1
        session.refresh(first)
        session.refresh(second)
        assert first.is_active is True
        assert second.is_active is False


class TestRenewal:
    def test_monthly_coupon_advances_one_period(self, session, vendor):
        coupon = make_coupon(
            session, vendor,
            start_date=datetime(2026, 2, 1),
            end_date=datetime(2026, 3, 1),
            used_count=3,
            max_uses=10,
            is_active=False,
            is_recurring=True,
            recurrence_pattern=RecurrencePattern.MONTHLY,
        )

        report = LifecycleService(session).renew_recurring_coupons(now=NOW)

        assert report.renewed_count == 1
        assert report.renewed_coupons == [coupon.id]
        session.refresh(coupon)
        assert coupon.start_date == datetime(2026, 3, 1)
        assert coupon.end_date == datetime(2026, 4, 1)
        assert coupon.used_count == 0
        assert coupon.is_active is True

    def test_far_behind_coupon_catches_up_one_period_per_run(self, session, vendor):
        coupon = make_coupon(
            session, vendor,
            start_date=datetime(2025, 12, 1),
            end_date=datetime(2026, 1, 1),
            is_recurring=True,
            recurrence_pattern=RecurrencePattern.MONTHLY,
        )
        service = LifecycleService(session)

        service.renew_recurring_coupons(now=NOW)
        session.refresh(coupon)
        assert coupon.end_date == datetime(2026, 2, 1)

        service.renew_recurring_coupons(now=NOW)
        session.refresh(coupon)
        assert coupon.end_date == datetime(2026, 3, 1)

    def test_current_and_one_off_coupons_are_left_alone(self, session, vendor):
        current = make_coupon(
            session, vendor, now=NOW, code="CURRENT",
            is_recurring=True, recurrence_pattern=RecurrencePattern.WEEKLY,
        )
        one_off = make_coupon(session, vendor, now=NOW, code="ONEOFF", end_date=NOW - timedelta(days=1), is_active=False)
        end_before = current.end_date

        report = LifecycleService(session).renew_recurring_coupons(now=NOW)

        assert report.renewed_count == 0
        session.refresh(current)
        session.refresh(one_off)
        assert current.end_date == end_before
        assert one_off.is_active is False

    def test_notification_failure_does_not_undo_renewal(self, session, vendor, monkeypatch):
        coupon = make_coupon(
            session, vendor,
            start_date=datetime(2026, 2, 1),
            end_date=datetime(2026, 3, 1),
            is_recurring=True,
            recurrence_pattern=RecurrencePattern.MONTHLY,
        )

        def broken_mailer(**kwargs):
            raise RuntimeError("smtp down")

        monkeypatch.setattr("thatsgoodtoo.services.lifecycle.send_coupon_renewed_email", broken_mailer)

        report = LifecycleService(session).renew_recurring_coupons(now=NOW)
        assert report.renewed_coupons == [coupon.id]
        assert session.get(Coupon, coupon.id).end_date == datetime(2026, 4, 1)


    def test_one_failed_commit_does_not_stop_the_batch(self, session, vendor, monkeypatch):
        coupons = [
            make_coupon(
                session, vendor, code=code,
                start_date=datetime(2026, 2, 1),
                end_date=datetime(2026, 3, 1),
                is_recurring=True,
                recurrence_pattern=RecurrencePattern.MONTHLY,
            )
            for code in ("FIRST", "SECOND")
        ]
        fail_next_commit(session, monkeypatch)

        report = LifecycleService(session).renew_recurring_coupons(now=NOW)

        assert report.failed == [coupons[0].id]
        assert report.renewed_coupons == [coupons[1].id]
        session.refresh(coupons[0])
        session.refresh(coupons[1])
        assert coupons[0].end_date == datetime(2026, 3, 1)
        assert coupons[1].end_date == datetime(2026, 4, 1)

    def test_window_is_renewed_only_once(self, session, vendor):
        coupon = make_coupon(
            session, vendor,
            start_date=datetime(2026, 2, 1),
            end_date=datetime(2026, 3, 1),
            is_recurring=True,
            recurrence_pattern=RecurrencePattern.MONTHLY,
        )
        service = LifecycleService(session)

        # Two runs that both read the same stale end_date
        assert service.renew_coupon(coupon.id, datetime(2026, 3, 1), RecurrencePattern.MONTHLY, NOW) is True
        assert service.renew_coupon(coupon.id, datetime(2026, 3, 1), RecurrencePattern.MONTHLY, NOW) is False

        session.refresh(coupon)
        assert coupon.start_date == datetime(2026, 3, 1)
        assert coupon.end_date == datetime(2026, 4, 1)


class TestJobEndpoints:
    @pytest.fixture(autouse=True)
    def cron_secret(self, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", "test-cron-secret")

    def test_missing_secret_is_rejected(self, client):
        assert client.post("/api/v1/jobs/expire-coupons").status_code == 401

    def test_wrong_secret_is_rejected(self, client):
        response = client.post("/api/v1/jobs/renew-coupons", headers={"X-Cron-Secret": "guess"})
        assert response.status_code == 401

    def test_expire_job(self, client, session, vendor):
        make_coupon(session, vendor, end_date=utcnow() - timedelta(hours=1))
        response = client.post("/api/v1/jobs/expire-coupons", headers={"X-Cron-Secret": "test-cron-secret"})
        assert response.status_code == 200
        assert response.json() == {"success": True, "expired_count": 1, "expiring_soon": 0, "failed": []}

    def test_renew_job(self, client, session, vendor):
        now = utcnow()
        coupon = make_coupon(
            session, vendor,
            start_date=now - timedelta(days=8),
            end_date=now - timedelta(days=1),
            is_recurring=True,
            recurrence_pattern=RecurrencePattern.WEEKLY,
        )
        response = client.post("/api/v1/jobs/renew-coupons", headers={"X-Cron-Secret": "test-cron-secret"})
        assert response.status_code == 200
        assert response.json()["renewed_coupons"] == [coupon.id]
