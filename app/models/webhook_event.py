"""Webhook event model (audit + idempotency table).

Every Stripe webhook event is recorded by its Stripe event ID along with
the raw object payload. Before processing, the dispatcher checks this
table: an event already "processed" or "ignored" is acknowledged without
side effects, a "failed" one is processed again.
"""

import uuid

from app.extensions import db


class WebhookEvent(db.Model):
    __tablename__ = "webhook_events"

    STATUSES = ["processed", "ignored", "failed"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    stripe_event_id = db.Column(
        db.String(255), unique=True, nullable=False
    )  # e.g. "evt_1Abc..."
    event_type = db.Column(
        db.String(255), nullable=False
    )  # e.g. "checkout.session.completed"
    account_id = db.Column(
        db.String(255), nullable=True, index=True
    )  # connected account, when resolvable
    status = db.Column(db.String(20), nullable=False, default="processed")
    error = db.Column(db.Text, nullable=True)
    attempts = db.Column(db.Integer, nullable=False, default=1)
    data = db.Column(db.JSON, default=dict)  # event.data.object as received
    processed_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    def __repr__(self):
        return f"<WebhookEvent {self.stripe_event_id} ({self.event_type}, {self.status})>"
