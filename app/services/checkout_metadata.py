"""Checkout metadata parsing.

Checkout sessions carry a free-form metadata bag set when the session was
created; its "type" key says what was bought. This module turns that bag
into one typed purchase record at the boundary so the webhook handlers
never branch on raw strings.

    track_upload        -> TrackUpload
    playlist_campaign   -> PlaylistCampaignPurchase  (camelCase keys)
    playlist_pitching   -> PlaylistPitchingPurchase  (legacy, snake_case keys)

Anything else (including no metadata at all) parses to None.
"""

from dataclasses import dataclass
from decimal import Decimal


class InvalidMetadata(ValueError):
    """Metadata names a known purchase type but is missing required fields."""


@dataclass(frozen=True)
class PlaylistPlan:
    plan_id: str
    name: str
    price: Decimal
    description: str


# Fixed pricing; the amount charged at Checkout is created from the same table.
PLAYLIST_PLANS = {
    "indie": PlaylistPlan(
        plan_id="indie",
        name="Indie Promotion",
        price=Decimal("99.99"),
        description="Promote all releases to 50+ playlists",
    ),
    "pro": PlaylistPlan(
        plan_id="pro",
        name="Pro Campaign",
        price=Decimal("299.99"),
        description="Promote all releases to 150+ premium playlists",
    ),
    "superstar": PlaylistPlan(
        plan_id="superstar",
        name="Superstar Package",
        price=Decimal("499.99"),
        description="Promote all releases to 300+ top-tier playlists",
    ),
}


@dataclass(frozen=True)
class TrackUpload:
    track_id: str


@dataclass(frozen=True)
class PlaylistCampaignPurchase:
    user_id: str
    plan: PlaylistPlan


@dataclass(frozen=True)
class PlaylistPitchingPurchase:
    user_id: str
    release_id: str
    plan_id: str


def get_plan(plan_id):
    """Return the PlaylistPlan for plan_id, or None if unknown."""
    return PLAYLIST_PLANS.get(plan_id)


def parse_checkout_metadata(metadata):
    """Parse a Checkout session's metadata into a purchase record.

    Returns TrackUpload, PlaylistCampaignPurchase, PlaylistPitchingPurchase
    or None when the bag has no recognised "type".
    Raises InvalidMetadata when a recognised type lacks required fields
    or names an unknown plan.
    """
    metadata = metadata or {}
    purchase_type = metadata.get("type")

    if purchase_type == "track_upload":
        track_id = metadata.get("track_id")
        if not track_id:
            raise InvalidMetadata("track_upload metadata missing track_id")
        return TrackUpload(track_id=track_id)

    if purchase_type == "playlist_campaign":
        user_id = metadata.get("userId")
        plan_id = metadata.get("planId")
        if not user_id or not plan_id:
            raise InvalidMetadata(
                f"playlist_campaign metadata missing userId or planId: {dict(metadata)}"
            )
        plan = get_plan(plan_id)
        if plan is None:
            raise InvalidMetadata(f"Invalid plan ID: {plan_id}")
        return PlaylistCampaignPurchase(user_id=user_id, plan=plan)

    if purchase_type == "playlist_pitching":
        user_id = metadata.get("user_id")
        release_id = metadata.get("release_id")
        if not user_id or not release_id:
            raise InvalidMetadata(
                f"playlist_pitching metadata missing user_id or release_id: {dict(metadata)}"
            )
        return PlaylistPitchingPurchase(
            user_id=user_id,
            release_id=release_id,
            plan_id=metadata.get("plan_id") or "",
        )

    return None
