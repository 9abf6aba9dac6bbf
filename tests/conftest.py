"""Shared test fixtures for the payment sync test suite.

Provides:
- app: Flask app configured for testing (in-memory SQLite)
- client: Flask test client
- db_session: clean database per test (tables created/dropped)
- seed_data: pre-populated artist profile, connected account, release, track
- post_event: deliver a fake, signature-verified Stripe event
"""

from decimal import Decimal
from unittest.mock import patch

import pytest

from app import create_app
from app.extensions import db as _db
from app.models.catalog import Release, Track
from app.models.payout import RoyaltyPayout, StripeAccount
from app.models.profile import ArtistProfile, Profile

WEBHOOK_URL = "/api/webhooks/stripe"


@pytest.fixture(scope="session")
def app():
    """Create the Flask application configured for testing."""
    app = create_app("testing")
    yield app


@pytest.fixture(autouse=True)
def db_session(app):
    """Create all tables before each test, drop after."""
    with app.app_context():
        _db.create_all()
        yield _db.session
        _db.session.rollback()
        _db.drop_all()


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def seed_data(app, db_session):
    """Seed an artist with a connected account, a release, a track and a payout.

    Returns a dict of plain IDs so tests can use them across app contexts.
    """
    with app.app_context():
        # --- Artist ---
        artist = Profile(email="nova@example.com", full_name="Nova Reyes")
        _db.session.add(artist)
        _db.session.flush()

        artist_profile = ArtistProfile(
            user_id=artist.id,
            stage_name="NOVA",
            stripe_account_id="acct_nova",
            stripe_onboarding_complete=True,
            payouts_enabled=True,
        )
        _db.session.add(artist_profile)

        # --- Connected account (not yet enabled) ---
        account = StripeAccount(
            user_id=artist.id,
            stripe_account_id="acct_nova",
            charges_enabled=False,
            payouts_enabled=False,
            details_submitted=False,
            verification_status="pending_submission",
        )
        _db.session.add(account)

        # --- Catalog ---
        release = Release(
            user_id=artist.id,
            title="Midnight Drive",
            artist_name="NOVA",
        )
        _db.session.add(release)
        _db.session.flush()

        track = Track(
            user_id=artist.id,
            release_id=release.id,
            title="Neon Skyline",
            payment_status="pending",
        )
        _db.session.add(track)

        # --- Pending royalty payout ---
        payout = RoyaltyPayout(
            user_id=artist.id,
            release_id=release.id,
            stripe_payout_id="po_nova_001",
            amount=Decimal("125.50"),
            currency="usd",
            status="pending",
        )
        _db.session.add(payout)

        _db.session.commit()

        return {
            "user_id": artist.id,
            "artist_profile_id": artist_profile.id,
            "account_id": "acct_nova",
            "release_id": release.id,
            "track_id": track.id,
            "payout_id": "po_nova_001",
        }


@pytest.fixture
def post_event(client):
    """Return a callable that delivers an event as if Stripe signed it.

    stripe.Webhook.construct_event is patched to return the given dict.
    """
    def _post(event):
        with patch(
            "app.services.stripe_service.stripe.Webhook.construct_event",
            return_value=event,
        ):
            return client.post(
                WEBHOOK_URL,
                data="{}",
                content_type="application/json",
                headers={"Stripe-Signature": "valid_sig"},
            )
    return _post
