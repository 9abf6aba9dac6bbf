"""Billing models.

- ArtistSubscription: an artist's Stripe subscription, synced from
  webhooks. Keyed by stripe_subscription_id; status mirrors Stripe's
  string verbatim.
- PaymentHistory: record of paid subscription invoices, one row per
  Stripe invoice.
"""

import uuid

from app.extensions import db


class ArtistSubscription(db.Model):
    __tablename__ = "artist_subscriptions"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    artist_id = db.Column(db.String(36), nullable=True)
    stripe_subscription_id = db.Column(
        db.String(255), unique=True, nullable=False
    )
    stripe_customer_id = db.Column(db.String(255), nullable=True)
    status = db.Column(
        db.String(50), nullable=False
    )  # whatever Stripe sends: active | past_due | canceled | trialing | ...
    current_period_end = db.Column(
        db.DateTime(timezone=True), nullable=True
    )
    canceled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self):
        return f"<ArtistSubscription {self.stripe_subscription_id} ({self.status})>"


class PaymentHistory(db.Model):
    __tablename__ = "payment_history"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    artist_id = db.Column(db.String(36), nullable=True)
    amount = db.Column(db.Integer, nullable=False)  # minor units (cents)
    currency = db.Column(db.String(3), nullable=False)
    type = db.Column(db.String(50), nullable=False)  # e.g. "subscription_renewal"
    stripe_invoice_id = db.Column(
        db.String(255), unique=True, nullable=True, index=True
    )
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    def __repr__(self):
        return f"<PaymentHistory {self.type} {self.amount} {self.currency}>"
