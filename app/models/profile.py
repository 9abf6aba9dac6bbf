"""Profile models.

- Profile: an application user (artist, producer, label). Owned by the
  rest of the platform; the webhook only reads it for display names.
- ArtistProfile: the artist side of a user, holding the Stripe Connect
  link that is cleared when the account is deauthorized.
"""

import uuid

from app.extensions import db


class Profile(db.Model):
    __tablename__ = "profiles"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    email = db.Column(db.String(255), unique=True, nullable=True)
    full_name = db.Column(db.String(255), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    artist_profile = db.relationship(
        "ArtistProfile", back_populates="user", uselist=False
    )
    stripe_accounts = db.relationship(
        "StripeAccount", back_populates="user", lazy="dynamic"
    )
    notifications = db.relationship(
        "Notification", back_populates="user", lazy="dynamic"
    )

    @property
    def display_name(self):
        return self.full_name or self.email or "User"

    def __repr__(self):
        return f"<Profile {self.email}>"


class ArtistProfile(db.Model):
    __tablename__ = "artist_profiles"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id = db.Column(
        db.String(36), db.ForeignKey("profiles.id"), unique=True, nullable=False
    )
    stage_name = db.Column(db.String(255), nullable=True)
    stripe_account_id = db.Column(
        db.String(255), nullable=True, index=True
    )  # e.g. "acct_1Abc..."
    stripe_onboarding_complete = db.Column(db.Boolean, default=False)
    payouts_enabled = db.Column(db.Boolean, default=False)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    # --- Relationships ---
    user = db.relationship("Profile", back_populates="artist_profile")

    def __repr__(self):
        return f"<ArtistProfile {self.stage_name} account={self.stripe_account_id}>"
