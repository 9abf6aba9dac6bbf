"""Tests for Stripe Connect webhooks.

Covers:
- account.updated (flags, verification status, one-time ready notification)
- payout.paid / payout.failed
- capability.updated
- account.application.deauthorized
- transfer.created
- redelivery after the audit row was lost (no duplicate rows or notifications)
"""

from app.extensions import db
from app.models.notification import Notification
from app.models.payout import ArtistPayout, RoyaltyPayout, StripeAccount
from app.models.profile import ArtistProfile
from app.models.webhook_event import WebhookEvent


def _account_event(event_id, charges=True, payouts=True, details=True,
                   account_id="acct_nova"):
    return {
        "id": event_id,
        "type": "account.updated",
        "account": account_id,
        "data": {
            "object": {
                "id": account_id,
                "object": "account",
                "charges_enabled": charges,
                "payouts_enabled": payouts,
                "details_submitted": details,
            }
        },
    }


class TestAccountUpdated:
    """Tests for account.updated."""

    def test_updates_flags_and_verification(self, post_event, seed_data, app):
        resp = post_event(_account_event("evt_acct_001"))
        assert resp.status_code == 200

        with app.app_context():
            account = StripeAccount.query.filter_by(stripe_account_id="acct_nova").one()
            assert account.charges_enabled is True
            assert account.payouts_enabled is True
            assert account.details_submitted is True
            assert account.onboarding_completed is True
            assert account.verification_status == "verified"

    def test_details_only_is_pending_review(self, post_event, seed_data, app):
        post_event(_account_event("evt_acct_002", charges=False, payouts=False))

        with app.app_context():
            account = StripeAccount.query.filter_by(stripe_account_id="acct_nova").one()
            assert account.verification_status == "pending_review"

    def test_nothing_submitted_is_pending_submission(self, post_event, seed_data, app):
        post_event(_account_event(
            "evt_acct_003", charges=False, payouts=False, details=False
        ))

        with app.app_context():
            account = StripeAccount.query.filter_by(stripe_account_id="acct_nova").one()
            assert account.verification_status == "pending_submission"

    def test_ready_notification_sent(self, post_event, seed_data, app):
        """Charges + payouts enabled -> 'Account Ready!' to the account owner."""
        post_event(_account_event("evt_acct_004"))

        with app.app_context():
            notification = Notification.query.filter_by(title="Account Ready!").one()
            assert notification.user_id == seed_data["user_id"]
            assert notification.type == "success"
            assert notification.read is False

    def test_ready_notification_sent_once(self, post_event, seed_data, app):
        """Two ready account.updated events -> one notification."""
        post_event(_account_event("evt_acct_005a"))
        post_event(_account_event("evt_acct_005b"))

        with app.app_context():
            assert Notification.query.filter_by(title="Account Ready!").count() == 1

    def test_ready_again_after_disable(self, post_event, seed_data, app):
        """ready -> disabled -> ready again notifies twice."""
        post_event(_account_event("evt_acct_006a"))
        post_event(_account_event("evt_acct_006b", payouts=False))
        post_event(_account_event("evt_acct_006c"))

        with app.app_context():
            assert Notification.query.filter_by(title="Account Ready!").count() == 2

    def test_not_ready_no_notification(self, post_event, seed_data, app):
        post_event(_account_event("evt_acct_007", payouts=False))

        with app.app_context():
            assert Notification.query.count() == 0

    def test_unknown_account_is_noop(self, post_event, seed_data, app):
        resp = post_event(_account_event("evt_acct_008", account_id="acct_unknown"))
        assert resp.status_code == 200

        with app.app_context():
            assert Notification.query.count() == 0


class TestPayouts:
    """Tests for payout.paid and payout.failed."""

    def test_payout_paid(self, post_event, seed_data, app):
        resp = post_event({
            "id": "evt_po_paid",
            "type": "payout.paid",
            "account": "acct_nova",
            "data": {"object": {"id": "po_nova_001", "amount": 12550, "currency": "usd"}},
        })
        assert resp.status_code == 200

        with app.app_context():
            payout = RoyaltyPayout.query.filter_by(stripe_payout_id="po_nova_001").one()
            assert payout.status == "completed"

            notification = Notification.query.one()
            assert notification.title == "Payout Completed"
            assert notification.message == "Your payout of $125.50 has been processed."

    def test_payout_failed(self, post_event, seed_data, app):
        post_event({
            "id": "evt_po_failed",
            "type": "payout.failed",
            "account": "acct_nova",
            "data": {
                "object": {
                    "id": "po_nova_001",
                    "amount": 12550,
                    "failure_message": "The bank account has been closed.",
                }
            },
        })

        with app.app_context():
            payout = RoyaltyPayout.query.filter_by(stripe_payout_id="po_nova_001").one()
            assert payout.status == "failed"
            assert payout.failure_reason == "The bank account has been closed."

            notification = Notification.query.one()
            assert notification.title == "Payout Failed"
            assert notification.type == "error"
            assert notification.message == (
                "Your payout of $125.50 failed: The bank account has been closed."
            )

    def test_payout_failed_default_reason(self, post_event, seed_data, app):
        post_event({
            "id": "evt_po_failed_2",
            "type": "payout.failed",
            "account": "acct_nova",
            "data": {"object": {"id": "po_nova_001", "amount": 500}},
        })

        with app.app_context():
            payout = RoyaltyPayout.query.filter_by(stripe_payout_id="po_nova_001").one()
            assert payout.failure_reason == "Unknown error"

    def test_unknown_payout_still_notifies(self, post_event, seed_data, app):
        """No local payout row -> nothing updated, owner still told."""
        resp = post_event({
            "id": "evt_po_unknown",
            "type": "payout.paid",
            "account": "acct_nova",
            "data": {"object": {"id": "po_other", "amount": 1000}},
        })
        assert resp.status_code == 200

        with app.app_context():
            payout = RoyaltyPayout.query.filter_by(stripe_payout_id="po_nova_001").one()
            assert payout.status == "pending"
            assert Notification.query.count() == 1


class TestCapabilityUpdated:
    """Tests for capability.updated."""

    def _event(self, event_id, status):
        return {
            "id": event_id,
            "type": "capability.updated",
            "account": "acct_nova",
            "data": {"object": {"id": "card_payments", "status": status}},
        }

    def test_active_capability(self, post_event, seed_data, app):
        post_event(self._event("evt_cap_001", "active"))

        with app.app_context():
            notification = Notification.query.one()
            assert notification.title == "New Capability Enabled"
            assert "card_payments" in notification.message

    def test_inactive_capability(self, post_event, seed_data, app):
        post_event(self._event("evt_cap_002", "inactive"))

        with app.app_context():
            notification = Notification.query.one()
            assert notification.title == "Capability Disabled"
            assert notification.type == "warning"

    def test_pending_capability_ignored(self, post_event, seed_data, app):
        post_event(self._event("evt_cap_003", "pending"))

        with app.app_context():
            assert Notification.query.count() == 0


class TestAccountDeauthorized:
    """Tests for account.application.deauthorized."""

    def test_clears_artist_profile(self, post_event, seed_data, app):
        resp = post_event({
            "id": "evt_deauth_001",
            "type": "account.application.deauthorized",
            "account": "acct_nova",
            "data": {"object": {"id": "ca_platform", "object": "application"}},
        })
        assert resp.status_code == 200

        with app.app_context():
            profile = db.session.get(ArtistProfile, seed_data["artist_profile_id"])
            assert profile.stripe_account_id is None
            assert profile.stripe_onboarding_complete is False
            assert profile.payouts_enabled is False


class TestTransferCreated:
    """Tests for transfer.created."""

    def test_royalty_transfer_recorded(self, post_event, seed_data, app):
        post_event({
            "id": "evt_tr_001",
            "type": "transfer.created",
            "data": {
                "object": {
                    "id": "tr_001",
                    "amount": 8000,
                    "currency": "usd",
                    "destination": "acct_nova",
                    "metadata": {
                        "type": "royalty_payout",
                        "artist_id": seed_data["user_id"],
                        "release_id": seed_data["release_id"],
                    },
                }
            },
        })

        with app.app_context():
            payout = ArtistPayout.query.one()
            assert payout.stripe_transfer_id == "tr_001"
            assert payout.amount == 8000
            assert payout.currency == "USD"
            assert payout.status == "pending"
            assert payout.artist_id == seed_data["user_id"]

    def test_other_transfer_ignored(self, post_event, seed_data, app):
        post_event({
            "id": "evt_tr_002",
            "type": "transfer.created",
            "data": {"object": {"id": "tr_002", "amount": 100, "currency": "usd"}},
        })

        with app.app_context():
            assert ArtistPayout.query.count() == 0


class TestRepeatedDelivery:
    """Running a Connect handler twice for one event."""

    def _redeliver(self, post_event, app, event):
        post_event(event)
        with app.app_context():
            WebhookEvent.query.filter_by(stripe_event_id=event["id"]).delete()
            db.session.commit()
        return post_event(event)

    def test_transfer_recorded_once(self, post_event, seed_data, app):
        resp = self._redeliver(post_event, app, {
            "id": "evt_tr_repeat",
            "type": "transfer.created",
            "data": {
                "object": {
                    "id": "tr_repeat",
                    "amount": 8000,
                    "currency": "usd",
                    "metadata": {
                        "type": "royalty_payout",
                        "artist_id": seed_data["user_id"],
                    },
                }
            },
        })
        assert resp.status_code == 200

        with app.app_context():
            assert ArtistPayout.query.filter_by(stripe_transfer_id="tr_repeat").count() == 1

    def test_payout_notification_sent_once(self, post_event, seed_data, app):
        resp = self._redeliver(post_event, app, {
            "id": "evt_po_repeat",
            "type": "payout.failed",
            "account": "acct_nova",
            "data": {"object": {"id": "po_nova_001", "amount": 12550}},
        })
        assert resp.status_code == 200

        with app.app_context():
            notification = Notification.query.one()
            assert notification.title == "Payout Failed"
            assert notification.stripe_event_id == "evt_po_repeat"

    def test_capability_notification_sent_once(self, post_event, seed_data, app):
        self._redeliver(post_event, app, {
            "id": "evt_cap_repeat",
            "type": "capability.updated",
            "account": "acct_nova",
            "data": {"object": {"id": "transfers", "status": "active"}},
        })

        with app.app_context():
            assert Notification.query.count() == 1
