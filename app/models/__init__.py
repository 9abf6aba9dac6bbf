# Models package — import all models here so Alembic can discover them.

from app.models.profile import Profile, ArtistProfile  # noqa: F401
from app.models.catalog import Release, Track, TrackPurchase  # noqa: F401
from app.models.campaign import PlaylistCampaign  # noqa: F401
from app.models.billing import ArtistSubscription, PaymentHistory  # noqa: F401
from app.models.payout import (  # noqa: F401
    ArtistPayout,
    RoyaltyPayout,
    StripeAccount,
)
from app.models.notification import Notification, AdminNotification  # noqa: F401
from app.models.webhook_event import WebhookEvent  # noqa: F401
