"""Catalog models.

- Release: an album / EP / single. Read for purchase notifications.
- Track: an uploaded track. Its distribution fee is paid through Checkout.
- TrackPurchase: one row per paid track sale (beat marketplace).
"""

import uuid

from app.extensions import db


class Release(db.Model):
    __tablename__ = "releases"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id = db.Column(
        db.String(36), db.ForeignKey("profiles.id"), nullable=True
    )
    title = db.Column(db.String(255), nullable=False)
    artist_name = db.Column(db.String(255), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    def __repr__(self):
        return f"<Release {self.title}>"


class Track(db.Model):
    __tablename__ = "tracks"

    # -- Upload fee lifecycle --
    PAYMENT_STATUSES = ["pending", "paid"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id = db.Column(
        db.String(36), db.ForeignKey("profiles.id"), nullable=True
    )
    release_id = db.Column(
        db.String(36), db.ForeignKey("releases.id"), nullable=True
    )
    title = db.Column(db.String(255), nullable=False)
    payment_status = db.Column(
        db.String(50), default="pending", nullable=False
    )  # pending | paid
    stripe_payment_id = db.Column(
        db.String(255), nullable=True
    )  # payment intent id, e.g. "pi_1Abc..."
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self):
        return f"<Track {self.title} ({self.payment_status})>"


class TrackPurchase(db.Model):
    __tablename__ = "track_purchases"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    track_id = db.Column(db.String(36), nullable=True)
    buyer_id = db.Column(db.String(36), nullable=True)
    amount = db.Column(db.Integer, nullable=False)  # minor units (cents)
    currency = db.Column(db.String(3), nullable=False)  # upper case, e.g. "USD"
    stripe_payment_id = db.Column(db.String(255), unique=True, nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    def __repr__(self):
        return f"<TrackPurchase track={self.track_id} buyer={self.buyer_id}>"
