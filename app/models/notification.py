"""Notification models.

- Notification: shown to a single user in their inbox.
- AdminNotification: staff-facing alerts (new purchases, etc.).
"""

import uuid

from app.extensions import db


class Notification(db.Model):
    __tablename__ = "notifications"

    TYPES = ["success", "warning", "error", "info"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id = db.Column(
        db.String(36), db.ForeignKey("profiles.id"), nullable=False
    )
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(20), default="info", nullable=False)
    read = db.Column(db.Boolean, default=False, nullable=False)
    # Webhook event that produced this notification (one per event)
    stripe_event_id = db.Column(db.String(255), unique=True, nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    user = db.relationship("Profile", back_populates="notifications")

    def __repr__(self):
        return f"<Notification {self.title!r} user={self.user_id}>"


class AdminNotification(db.Model):
    __tablename__ = "admin_notifications"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    type = db.Column(db.String(100), nullable=False)  # e.g. "playlist_campaign_purchase"
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    data = db.Column(db.JSON, default=dict)
    read = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    def __repr__(self):
        return f"<AdminNotification {self.type}>"
