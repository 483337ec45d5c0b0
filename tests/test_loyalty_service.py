"""
Tests for the loyalty engine.

Tests cover:
- Profile creation and the signup bonus
- Awarding and debiting points, balance invariants
- Ledger running balance
- Daily login bonus and the business-day boundary
- Admin adjustments and purchase points
- Expiring points warnings
- Loyalty snapshot
- Interleaved requests for the same user
"""
from datetime import datetime, timedelta

import pytest

from conftest import make_profile
from sevenblue_loyalty.models.notification import Notification
from sevenblue_loyalty.services import ledger_service, loyalty_service
from sevenblue_loyalty.services.errors import InvalidAmount, ProfileNotFound, ValidationError


def assert_balances_consistent(db, user_id):
    profile = loyalty_service.get_profile(db, user_id)
    assert profile.total_points == profile.total_points_earned - profile.total_points_redeemed
    assert profile.total_points >= 0
    assert ledger_service.ledger_balance(db, user_id) == profile.total_points
    assert ledger_service.find_running_balance_mismatches(db, user_id) == []


class TestProfiles:
    """Profile creation and initialization."""

    def test_ensure_profile_creates_once(self, db):
        """Test a second call returns the same profile with refreshed identity."""
        first = loyalty_service.ensure_profile(db, "u1", "Mona", "mona@example.com")
        again = loyalty_service.ensure_profile(db, "u1", "Mona A.", None)

        assert first is again
        assert again.display_name == "Mona A."
        assert again.email == "mona@example.com"
        assert again.current_tier == "C"
        assert again.referral_code.startswith("SB")

    def test_ensure_profile_requires_user_id(self, db):
        """Test a blank user id is rejected."""
        with pytest.raises(ValidationError):
            loyalty_service.ensure_profile(db, "  ")

    def test_initialize_credits_signup_once(self, db):
        """Test the signup bonus is credited exactly once."""
        profile, credited = loyalty_service.initialize_loyalty(db, "u1", "Mona")
        db.commit()
        _, credited_again = loyalty_service.initialize_loyalty(db, "u1", "Mona")
        db.commit()

        assert credited is True
        assert credited_again is False
        assert profile.total_points == 3
        assert len(ledger_service.list_entries(db, "u1", type="signup")) == 1


class TestAwardPoints:
    """Credits, debits and their invariants."""

    def test_credit_updates_aggregates_and_ledger(self, db):
        """Test a credit moves total and earned and appends one entry."""
        make_profile(db, "u1")
        entry = loyalty_service.award_points(db, "u1", 40, "purchase", "نقاط", "Points", reference_id="o-1")
        db.commit()

        profile = loyalty_service.get_profile(db, "u1")
        assert profile.total_points == 40
        assert profile.total_points_earned == 40
        assert entry.balance_after == 40
        assert entry.sequence == 1
        assert entry.expires_at is not None
        assert_balances_consistent(db, "u1")

    def test_debit_type_is_negated(self, db):
        """Test debit types take a positive amount and subtract it."""
        make_profile(db, "u1", points=50)
        entry = loyalty_service.award_points(db, "u1", 20, "admin_remove")
        db.commit()

        assert entry.points == -20
        assert entry.balance_after == 30
        assert entry.expires_at is None
        assert loyalty_service.get_profile(db, "u1").total_points_redeemed == 20
        assert_balances_consistent(db, "u1")

    @pytest.mark.parametrize("amount", [0, -5, 2.5, True])
    def test_invalid_amount_rejected(self, db, amount):
        """Test zero, negative, fractional and boolean amounts are rejected."""
        make_profile(db, "u1")
        with pytest.raises(InvalidAmount):
            loyalty_service.award_points(db, "u1", amount, "purchase")

    def test_unknown_type_rejected(self, db):
        """Test an unknown transaction type is a validation error."""
        make_profile(db, "u1")
        with pytest.raises(ValidationError):
            loyalty_service.award_points(db, "u1", 5, "lottery")

    def test_debit_above_balance_leaves_state_untouched(self, db):
        """Test an oversized debit fails and changes nothing."""
        make_profile(db, "u1", points=10)
        with pytest.raises(InvalidAmount):
            loyalty_service.award_points(db, "u1", 11, "admin_remove")

        assert loyalty_service.get_profile(db, "u1").total_points == 10
        assert len(ledger_service.list_entries(db, "u1")) == 1
        assert_balances_consistent(db, "u1")

    def test_missing_profile(self, db):
        """Test awarding to an unknown user raises ProfileNotFound."""
        with pytest.raises(ProfileNotFound):
            loyalty_service.award_points(db, "ghost", 5, "purchase")

    def test_running_balance_over_mixed_entries(self, db):
        """Test balance_after follows the running sum across credits and debits."""
        make_profile(db, "u1")
        loyalty_service.award_points(db, "u1", 30, "purchase")
        loyalty_service.award_points(db, "u1", 10, "admin_remove")
        loyalty_service.award_points(db, "u1", 5, "admin_add")
        db.commit()

        entries = list(reversed(ledger_service.list_entries(db, "u1")))
        assert [e.sequence for e in entries] == [1, 2, 3]
        assert [e.balance_after for e in entries] == [30, 20, 25]
        assert_balances_consistent(db, "u1")

    def test_tier_upgrade_records_notification(self, db):
        """Test crossing 500 points moves the tier and notifies the user."""
        make_profile(db, "u1", points=499)
        loyalty_service.award_points(db, "u1", 1, "admin_add")
        db.commit()

        assert loyalty_service.get_profile(db, "u1").current_tier == "B"
        types = [n.type for n in db.query(Notification).filter(Notification.user_id == "u1").all()]
        assert "tier_upgrade" in types


class TestDailyBonus:
    """Daily login bonus."""

    def test_claim_twice_same_day_credits_once(self, db):
        """Test the second claim on the same day reports already claimed."""
        make_profile(db, "u1")
        morning = datetime(2026, 1, 10, 8, 0)
        evening = datetime(2026, 1, 10, 20, 0)

        claimed, balance = loyalty_service.claim_daily_bonus(db, "u1", now=morning)
        db.commit()
        claimed_again, balance_again = loyalty_service.claim_daily_bonus(db, "u1", now=evening)
        db.commit()

        assert (claimed, balance) == (True, 1)
        assert (claimed_again, balance_again) == (False, 1)
        assert len(ledger_service.list_entries(db, "u1", type="daily_login")) == 1

    def test_business_midnight_starts_new_day(self, db):
        """Test Cairo midnight (22:00 UTC in winter) opens a new claim day."""
        make_profile(db, "u1")

        claimed, _ = loyalty_service.claim_daily_bonus(db, "u1", now=datetime(2026, 1, 10, 21, 30))
        db.commit()
        claimed_after_midnight, balance = loyalty_service.claim_daily_bonus(
            db, "u1", now=datetime(2026, 1, 10, 22, 30)
        )
        db.commit()

        assert claimed is True
        assert claimed_after_midnight is True
        assert balance == 2

    def test_claimable_flag(self, db):
        """Test is_daily_bonus_claimable tracks the last claim."""
        profile = make_profile(db, "u1")
        now = datetime(2026, 3, 1, 9, 0)
        assert loyalty_service.is_daily_bonus_claimable(profile, now) is True

        loyalty_service.claim_daily_bonus(db, "u1", now=now)
        db.commit()

        profile = loyalty_service.get_profile(db, "u1")
        assert loyalty_service.is_daily_bonus_claimable(profile, now + timedelta(hours=1)) is False
        assert loyalty_service.is_daily_bonus_claimable(profile, now + timedelta(days=1)) is True


class TestAdminAndPurchase:
    """Admin adjustments and order points."""

    def test_admin_add_and_remove(self, db):
        """Test positive and negative deltas map to admin_add / admin_remove."""
        make_profile(db, "u1")
        added = loyalty_service.admin_adjust_points(db, "u1", 25, "goodwill")
        removed = loyalty_service.admin_adjust_points(db, "u1", -10)
        db.commit()

        assert added.type == "admin_add"
        assert added.description_en == "Points added by admin: goodwill"
        assert removed.type == "admin_remove"
        assert removed.balance_after == 15

    def test_admin_remove_cannot_go_negative(self, db):
        """Test removing more than the balance is rejected."""
        make_profile(db, "u1", points=5)
        with pytest.raises(InvalidAmount):
            loyalty_service.admin_adjust_points(db, "u1", -6)
        assert loyalty_service.get_profile(db, "u1").total_points == 5

    def test_zero_delta_rejected(self, db):
        """Test a zero delta is rejected."""
        make_profile(db, "u1")
        with pytest.raises(InvalidAmount):
            loyalty_service.admin_adjust_points(db, "u1", 0)

    def test_purchase_points_per_hundred(self, db):
        """Test 1 point per 100 of order total, rounded down."""
        make_profile(db, "u1")
        entry = loyalty_service.record_purchase_points(db, "u1", 1250.75, "ORD-1")
        db.commit()

        assert entry.points == 12
        assert entry.reference_id == "ORD-1"

    def test_purchase_points_idempotent_per_order(self, db):
        """Test replaying the same order does not credit twice."""
        make_profile(db, "u1")
        first = loyalty_service.record_purchase_points(db, "u1", 300, "ORD-2")
        db.commit()
        second = loyalty_service.record_purchase_points(db, "u1", 300, "ORD-2")
        db.commit()

        assert first.id == second.id
        assert loyalty_service.get_profile(db, "u1").total_points == 3

    def test_small_order_earns_nothing(self, db):
        """Test an order under 100 earns no points."""
        make_profile(db, "u1")
        assert loyalty_service.record_purchase_points(db, "u1", 99, "ORD-3") is None


class TestExpiringPoints:
    """Expiring points warnings."""

    def test_warns_once_per_window(self, db):
        """Test credits expiring within 7 days produce a single warning."""
        make_profile(db, "u1")
        earned_at = datetime(2026, 1, 1, 12, 0)
        loyalty_service.award_points(db, "u1", 40, "purchase", now=earned_at)
        db.commit()

        check_at = datetime(2026, 6, 28, 12, 0)
        expiring = loyalty_service.check_expiring_points(db, "u1", now=check_at)
        db.commit()
        repeated = loyalty_service.check_expiring_points(db, "u1", now=check_at + timedelta(days=1))
        db.commit()

        assert expiring == 40
        assert repeated == 0
        warnings = db.query(Notification).filter(Notification.type == "points_expiring").all()
        assert len(warnings) == 1

    def test_nothing_expiring(self, db):
        """Test fresh credits do not trigger a warning."""
        make_profile(db, "u1")
        loyalty_service.award_points(db, "u1", 40, "purchase", now=datetime(2026, 1, 1))
        db.commit()

        assert loyalty_service.check_expiring_points(db, "u1", now=datetime(2026, 2, 1)) == 0
        assert loyalty_service.get_profile(db, "u1").last_points_expiry_notification is None


class TestSnapshot:
    """Loyalty snapshot."""

    def test_snapshot_contents(self, db):
        """Test snapshot returns profile, tier, newest-first ledger and bonus state."""
        make_profile(db, "u1", points=10)
        loyalty_service.award_points(db, "u1", 5, "purchase")
        db.commit()

        snapshot = loyalty_service.get_loyalty_snapshot(db, "u1", transactions_limit=1)

        assert snapshot["profile"].user_id == "u1"
        assert snapshot["tier"]["tier"] == "C"
        assert snapshot["dailyBonusClaimable"] is True
        assert [t.points for t in snapshot["transactions"]] == [5]
        assert snapshot["referrals"] == []

    def test_snapshot_missing_profile(self, db):
        """Test an unknown user raises ProfileNotFound."""
        with pytest.raises(ProfileNotFound):
            loyalty_service.get_loyalty_snapshot(db, "ghost")


class TestInterleavedRequests:
    """Two sessions crediting the same user; the second commits between the first's reads and writes."""

    def _stale_once(self, monkeypatch, module, name, target, interleave, stale_result=None):
        """Patch ``module.name`` so the first call from ``target`` runs ``interleave`` first."""
        original = getattr(module, name)
        state = {"done": False}

        def wrapper(db, *args, **kwargs):
            if db is target and not state["done"]:
                state["done"] = True
                result = original(db, *args, **kwargs)
                interleave()
                return result if stale_result is None else stale_result(result)
            return original(db, *args, **kwargs)

        monkeypatch.setattr(module, name, wrapper)

    def test_purchase_replay_credits_order_once(self, monkeypatch, file_session_factory):
        """Test an order credited by another session after the first one looked it up is not credited again."""
        Session = file_session_factory
        with Session() as setup:
            make_profile(setup, "u1")

        first, second = Session(), Session()
        try:
            def credit_in_second():
                loyalty_service.record_purchase_points(second, "u1", 500, "ORD-1")
                second.commit()

            # the first session's lookup saw no purchase entry yet
            self._stale_once(
                monkeypatch, ledger_service, "find_entry", first, credit_in_second, stale_result=lambda _: None
            )

            entry = loyalty_service.record_purchase_points(first, "u1", 500, "ORD-1")
            first.commit()

            assert entry.points == 5
        finally:
            first.close()
            second.close()

        with Session() as check:
            assert len(ledger_service.list_entries(check, "u1", type="purchase")) == 1
            assert loyalty_service.get_profile(check, "u1").total_points == 5
            assert_balances_consistent(check, "u1")

    def test_daily_claim_credits_once(self, monkeypatch, file_session_factory):
        """Test two claims on the same business day credit one point even when both saw the day unclaimed."""
        Session = file_session_factory
        morning = datetime(2026, 1, 10, 8, 0)
        evening = datetime(2026, 1, 10, 20, 0)
        with Session() as setup:
            make_profile(setup, "u1")

        first, second = Session(), Session()
        try:
            def claim_in_second():
                assert loyalty_service.claim_daily_bonus(second, "u1", now=morning) == (True, 1)
                second.commit()

            # the first session's profile still shows no claim today
            self._stale_once(monkeypatch, loyalty_service, "lock_profile", first, claim_in_second)

            claimed = loyalty_service.claim_daily_bonus(first, "u1", now=evening)
            first.commit()

            assert claimed == (False, 1)
        finally:
            first.close()
            second.close()

        with Session() as check:
            assert len(ledger_service.list_entries(check, "u1", type="daily_login")) == 1
            assert loyalty_service.get_profile(check, "u1").total_points == 1
            assert_balances_consistent(check, "u1")

    def test_signup_bonus_credited_once(self, monkeypatch, file_session_factory):
        """Test concurrent initialization credits the signup bonus a single time."""
        Session = file_session_factory
        with Session() as setup:
            make_profile(setup, "u1")

        first, second = Session(), Session()
        try:
            def initialize_in_second():
                profile, credited = loyalty_service.initialize_loyalty(second, "u1")
                second.commit()
                assert credited is True

            # the first session's lookup saw no signup entry yet
            self._stale_once(
                monkeypatch, ledger_service, "find_entry", first, initialize_in_second, stale_result=lambda _: None
            )

            profile, credited = loyalty_service.initialize_loyalty(first, "u1")
            first.commit()

            assert credited is False
            assert profile.total_points == 3
        finally:
            first.close()
            second.close()

        with Session() as check:
            assert len(ledger_service.list_entries(check, "u1", type="signup")) == 1
            assert loyalty_service.get_profile(check, "u1").total_points == 3
            assert_balances_consistent(check, "u1")
