"""Connect models: connected accounts and money movement.

- StripeAccount: mirrors a connected account's capability flags.
- ArtistPayout: a royalty transfer from the platform to an artist.
- RoyaltyPayout: a payout from a connected account to the artist's bank.
"""

import uuid

from app.extensions import db


class StripeAccount(db.Model):
    __tablename__ = "stripe_accounts"

    VERIFICATION_STATUSES = ["pending_submission", "pending_review", "verified"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id = db.Column(
        db.String(36), db.ForeignKey("profiles.id"), nullable=False
    )
    stripe_account_id = db.Column(
        db.String(255), unique=True, nullable=False
    )  # e.g. "acct_1Abc..."
    charges_enabled = db.Column(db.Boolean, default=False)
    payouts_enabled = db.Column(db.Boolean, default=False)
    details_submitted = db.Column(db.Boolean, default=False)
    onboarding_completed = db.Column(db.Boolean, default=False)
    verification_status = db.Column(
        db.String(50), default="pending_submission", nullable=False
    )
    # Set when the "Account Ready!" notification goes out, cleared when
    # charges or payouts get disabled again.
    ready_notified_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    # --- Relationships ---
    user = db.relationship("Profile", back_populates="stripe_accounts")

    @property
    def is_ready(self):
        return bool(self.charges_enabled and self.payouts_enabled)

    def __repr__(self):
        return f"<StripeAccount {self.stripe_account_id} ({self.verification_status})>"


class ArtistPayout(db.Model):
    __tablename__ = "artist_payouts"

    STATUSES = ["pending", "completed", "failed"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    artist_id = db.Column(db.String(36), nullable=True)
    release_id = db.Column(db.String(36), nullable=True)
    amount = db.Column(db.Integer, nullable=False)  # minor units (cents)
    currency = db.Column(db.String(3), nullable=False)
    stripe_transfer_id = db.Column(db.String(255), unique=True, nullable=False)
    status = db.Column(db.String(50), default="pending", nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    def __repr__(self):
        return f"<ArtistPayout {self.stripe_transfer_id} ({self.status})>"


class RoyaltyPayout(db.Model):
    __tablename__ = "royalty_payouts"

    STATUSES = ["pending", "completed", "failed"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id = db.Column(
        db.String(36), db.ForeignKey("profiles.id"), nullable=False
    )
    release_id = db.Column(db.String(36), nullable=True)
    stripe_payout_id = db.Column(db.String(255), unique=True, nullable=True)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    currency = db.Column(db.String(3), default="usd")
    status = db.Column(db.String(50), default="pending", nullable=False)
    failure_reason = db.Column(db.Text, nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self):
        return f"<RoyaltyPayout {self.stripe_payout_id} ({self.status})>"
