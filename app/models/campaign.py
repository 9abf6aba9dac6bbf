"""Playlist campaign model.

A paid playlist-promotion purchase. The row is usually created ahead of
payment with status "pending_payment" and the Checkout session id, then
activated by the checkout.session.completed webhook. When no placeholder
exists the webhook inserts the row itself.

stripe_session_id is unique so activation is a single upsert.
"""

import uuid

from app.extensions import db


class PlaylistCampaign(db.Model):
    __tablename__ = "playlist_campaigns"

    STATUSES = ["pending_payment", "active", "payment_failed", "completed"]
    PAYMENT_STATUSES = ["pending", "paid", "unpaid", "failed"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id = db.Column(
        db.String(36), db.ForeignKey("profiles.id"), nullable=False
    )
    release_id = db.Column(
        db.String(36), db.ForeignKey("releases.id"), nullable=True
    )  # null = promotes all releases
    plan_type = db.Column(db.String(50), nullable=False)  # indie | pro | superstar
    plan_price = db.Column(db.Numeric(10, 2), nullable=False)
    status = db.Column(
        db.String(50), default="pending_payment", nullable=False
    )
    payment_status = db.Column(
        db.String(50), default="pending", nullable=False
    )
    stripe_session_id = db.Column(
        db.String(255), unique=True, nullable=True
    )  # e.g. "cs_test_a1B2..."
    payment_intent_id = db.Column(db.String(255), nullable=True, index=True)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    failure_reason = db.Column(db.Text, nullable=True)
    campaign_data = db.Column(db.JSON, default=dict)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self):
        return f"<PlaylistCampaign {self.plan_type} ({self.status})>"
