"""Tests for the operator CLI commands."""

import json
from types import SimpleNamespace
from unittest.mock import patch

import stripe

from app.extensions import db
from app.models.catalog import TrackPurchase
from app.models.notification import Notification
from app.models.webhook_event import WebhookEvent


class TestWebhookEventsCommand:

    def test_lists_events(self, app, post_event, seed_data):
        post_event({
            "id": "evt_cli_001",
            "type": "charge.refunded",
            "data": {"object": {"id": "ch_1"}},
        })

        result = app.test_cli_runner().invoke(args=["webhook-events"])
        assert result.exit_code == 0
        assert "evt_cli_001" in result.output
        assert "ignored" in result.output

    def test_filters_by_status(self, app, post_event, seed_data):
        post_event({
            "id": "evt_cli_002",
            "type": "charge.refunded",
            "data": {"object": {"id": "ch_2"}},
        })

        result = app.test_cli_runner().invoke(
            args=["webhook-events", "--status", "failed"]
        )
        assert result.exit_code == 0
        assert "No webhook events found." in result.output


class TestReplayCommand:

    def _store_failed_event(self, app):
        with app.app_context():
            db.session.add(WebhookEvent(
                stripe_event_id="evt_replay_001",
                event_type="payout.paid",
                account_id="acct_nova",
                status="failed",
                error="connection reset",
                attempts=3,
                data={"id": "po_nova_001", "amount": 12550},
            ))
            db.session.commit()

    def test_replays_stored_event(self, app, seed_data):
        self._store_failed_event(app)

        result = app.test_cli_runner().invoke(
            args=["replay-webhook-event", "evt_replay_001"]
        )
        assert result.exit_code == 0
        assert "processed" in result.output

        with app.app_context():
            evt = WebhookEvent.query.filter_by(stripe_event_id="evt_replay_001").one()
            assert evt.status == "processed"
            assert evt.attempts == 4
            assert Notification.query.filter_by(title="Payout Completed").count() == 1

    def test_replay_of_processed_event_keeps_one_row(self, app, post_event, seed_data):
        post_event({
            "id": "evt_replay_pi",
            "type": "payment_intent.succeeded",
            "data": {
                "object": {
                    "id": "pi_replay",
                    "amount": 999,
                    "currency": "usd",
                    "metadata": {
                        "type": "track_purchase",
                        "track_id": seed_data["track_id"],
                        "buyer_id": "buyer_1",
                    },
                }
            },
        })

        result = app.test_cli_runner().invoke(
            args=["replay-webhook-event", "evt_replay_pi"]
        )
        assert result.exit_code == 0
        assert "already processed" in result.output

        with app.app_context():
            assert TrackPurchase.query.count() == 1
            evt = WebhookEvent.query.filter_by(stripe_event_id="evt_replay_pi").one()
            assert evt.status == "processed"
            assert evt.attempts == 2

    @patch("app.services.stripe_service.stripe.Subscription.retrieve")
    def test_failed_replay_keeps_processed_status(
        self, mock_retrieve, app, post_event, seed_data
    ):
        mock_retrieve.return_value = {
            "id": "sub_replay",
            "status": "active",
            "current_period_end": 1798761600,
        }
        post_event({
            "id": "evt_replay_sub",
            "type": "checkout.session.completed",
            "data": {
                "object": {
                    "id": "cs_replay_sub",
                    "mode": "subscription",
                    "payment_status": "paid",
                    "subscription": "sub_replay",
                    "metadata": {"artist_id": seed_data["user_id"]},
                }
            },
        })

        mock_retrieve.side_effect = stripe.APIConnectionError("Stripe unreachable")
        result = app.test_cli_runner().invoke(
            args=["replay-webhook-event", "evt_replay_sub"]
        )
        assert result.exit_code == 1

        with app.app_context():
            evt = WebhookEvent.query.filter_by(stripe_event_id="evt_replay_sub").one()
            assert evt.status == "processed"
            assert "Stripe unreachable" in evt.error

        # The next Stripe redelivery is still treated as a duplicate.
        resp = post_event({
            "id": "evt_replay_sub",
            "type": "checkout.session.completed",
            "data": {"object": {"id": "cs_replay_sub", "mode": "subscription"}},
        })
        assert json.loads(resp.data)["status"] == "already_processed"

    def test_unknown_event(self, app, seed_data):
        result = app.test_cli_runner().invoke(
            args=["replay-webhook-event", "evt_missing"]
        )
        assert result.exit_code == 1
        assert "no stored webhook event" in result.output


class TestListWebhookEndpointsCommand:

    @patch("stripe.WebhookEndpoint.list")
    def test_flags_missing_events(self, mock_list, app):
        mock_list.return_value = SimpleNamespace(data=[
            {
                "id": "we_1",
                "url": "https://example.com/api/webhooks/stripe",
                "status": "enabled",
                "enabled_events": ["checkout.session.completed"],
            },
            {
                "id": "we_2",
                "url": "https://example.com/all",
                "status": "enabled",
                "enabled_events": ["*"],
            },
        ])

        result = app.test_cli_runner().invoke(args=["list-webhook-endpoints"])
        assert result.exit_code == 0
        assert "Stripe key mode: Test" in result.output
        assert "we_1" in result.output
        assert "missing events:" in result.output
        assert "payout.failed" in result.output
        assert "events: all" in result.output
