"""Stripe service — webhook verification, dispatch and event handlers.

Responsible for:
- Verifying webhook signatures
- Dispatching verified events to event-specific handlers
- Recording every event in webhook_events (audit + idempotency)
- Syncing campaigns, subscriptions, payouts and connected accounts

Handlers let store and Stripe API errors propagate; the dispatcher rolls
back, records the event as failed and reports failure so Stripe
redelivers. Bad metadata is logged and treated as handled, since a
redelivery would carry the same metadata.
"""

import logging
from decimal import Decimal

import stripe
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from app.extensions import db
from app.models.billing import ArtistSubscription, PaymentHistory
from app.models.campaign import PlaylistCampaign
from app.models.catalog import Release, Track, TrackPurchase
from app.models.payout import ArtistPayout, RoyaltyPayout, StripeAccount
from app.models.profile import ArtistProfile, Profile
from app.models.webhook_event import WebhookEvent
from app.services.checkout_metadata import (
    InvalidMetadata,
    PlaylistCampaignPurchase,
    PlaylistPitchingPurchase,
    TrackUpload,
    parse_checkout_metadata,
)
from app.services.sync_service import (
    create_admin_notification,
    create_notification,
    from_unix,
    get_verification_status,
    insert_if_absent,
    upsert_row,
    utcnow,
)

logger = logging.getLogger(__name__)


def _as_dict(obj):
    """Return a Stripe object as a plain dict (dicts pass through)."""
    if obj is None or isinstance(obj, dict):
        return obj
    return obj.to_dict()


def _extract_period_end(sub_data):
    """Extract current_period_end from a Stripe subscription object.

    In newer Stripe API versions, current_period_end has moved from the
    subscription top level to items.data[0].current_period_end.
    This helper checks both locations.

    Returns a timezone-aware datetime or None.
    """
    ts = sub_data.get("current_period_end")

    if not ts:
        items = sub_data.get("items")
        if items and items.get("data"):
            ts = items["data"][0].get("current_period_end")

    return from_unix(ts)


def _extract_invoice_subscription(invoice):
    """Return the subscription id an invoice belongs to, or None.

    Older API versions put it at invoice.subscription, newer ones under
    invoice.parent.subscription_details.subscription.
    """
    subscription_id = invoice.get("subscription")
    if subscription_id:
        return subscription_id

    parent = invoice.get("parent") or {}
    details = parent.get("subscription_details") or {}
    return details.get("subscription")


def get_account_id_from_event(event):
    """Resolve the connected account an event concerns.

    Connect events carry it at event.account; some objects (transfers,
    application fees) carry it at data.object.account.
    """
    if event.get("account"):
        return event["account"]

    obj = event.get("data", {}).get("object") or {}
    account = obj.get("account")
    if isinstance(account, str):
        return account
    return None


# ──────────────────────────────────────────────
# Webhook Handling
# ──────────────────────────────────────────────

def verify_webhook_signature(payload, sig_header):
    """Verify Stripe webhook signature and construct the event.

    Returns the verified event as a dict.
    Raises stripe.SignatureVerificationError on invalid signature and
    ValueError on an unparseable payload.
    """
    webhook_secret = current_app.config["STRIPE_WEBHOOK_SECRET"]
    event = stripe.Webhook.construct_event(payload, sig_header, webhook_secret)
    return _as_dict(event)


def handle_webhook_event(event, force=False):
    """Process a verified Stripe webhook event.

    Idempotency: checks webhook_events before processing. An event already
    processed (or ignored) returns immediately; a failed one is retried.
    force=True skips the check (used by the replay CLI command).

    Returns (success: bool, message: str).
    """
    event = _as_dict(event)
    event_id = event["id"]
    event_type = event["type"]

    # --- Idempotency check ---
    if not force:
        existing = WebhookEvent.query.filter_by(
            stripe_event_id=event_id
        ).first()
        if existing and existing.status != "failed":
            logger.info(f"Duplicate webhook event {event_id}, skipping")
            return True, "already_processed"

    logger.info(f"Processing webhook event {event_id}: {event_type}")

    # --- Route to handler ---
    handler = EVENT_HANDLERS.get(event_type)
    if handler is None:
        logger.info(f"Unhandled event type: {event_type}")
        record_webhook_event(event, "ignored")
        return True, "ignored"

    try:
        handler(event)
        db.session.commit()
    except Exception as e:
        logger.error(f"Error handling {event_type} ({event_id}): {e}", exc_info=True)
        db.session.rollback()
        record_webhook_event(event, "failed", error=str(e))
        return False, str(e)

    # --- Audit (best effort; handler work is already committed) ---
    record_webhook_event(event, "processed")
    return True, "processed"


def record_webhook_event(event, status, error=None):
    """Write or update the audit row for an event.

    One row per Stripe event id. A processed row is never downgraded to
    failed. A failure here is logged and swallowed: it must not change the
    outcome of the event itself.

    Returns the WebhookEvent, or None if it couldn't be stored.
    """
    event_id = event["id"]
    try:
        row = WebhookEvent.query.filter_by(stripe_event_id=event_id).first()
        if row is None:
            row = WebhookEvent(
                stripe_event_id=event_id,
                event_type=event["type"],
                attempts=0,
            )
            db.session.add(row)

        if status == "failed" and row.status == "processed":
            # A failed replay or a losing concurrent delivery keeps the
            # event processed; only the error is recorded.
            logger.warning(f"Event {event_id} failed again after being processed")
        else:
            row.status = status
        row.error = error
        row.attempts = (row.attempts or 0) + 1
        row.account_id = get_account_id_from_event(event)
        row.data = event.get("data", {}).get("object") or {}
        row.processed_at = utcnow()
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Error storing webhook event {event_id}: {e}")
        return None
    return row


# ──────────────────────────────────────────────
# Checkout
# ──────────────────────────────────────────────

def _handle_checkout_completed(event):
    """Handle checkout.session.completed.

    Routes on the parsed metadata (track upload, playlist campaign, legacy
    playlist pitching), then syncs the subscription for subscription-mode
    sessions.
    """
    session = event["data"]["object"]
    logger.info(
        f"Checkout completed: session={session.get('id')} "
        f"payment_status={session.get('payment_status')} mode={session.get('mode')}"
    )

    try:
        purchase = parse_checkout_metadata(session.get("metadata"))
    except InvalidMetadata as e:
        logger.warning(f"checkout.session.completed {session.get('id')}: {e}")
        purchase = None

    if isinstance(purchase, TrackUpload):
        _complete_track_upload(session, purchase)
    elif isinstance(purchase, PlaylistCampaignPurchase):
        _complete_playlist_campaign(session, purchase)
    elif isinstance(purchase, PlaylistPitchingPurchase):
        _complete_playlist_pitching(session, purchase)

    if session.get("mode") == "subscription":
        _complete_subscription_checkout(session)


def _complete_track_upload(session, purchase):
    track = db.session.get(Track, purchase.track_id)
    if not track:
        logger.warning(f"track_upload: no track {purchase.track_id}")
        return

    track.payment_status = "paid"
    track.stripe_payment_id = session.get("payment_intent")
    track.updated_at = utcnow()
    db.session.flush()
    logger.info(f"Track {purchase.track_id} payment confirmed")


def _complete_playlist_campaign(session, purchase):
    """Activate (or create) the campaign for a playlist_campaign checkout.

    Matches on stripe_session_id + user_id. Paid sessions upsert the row;
    unpaid sessions only mark an existing row as failed.
    """
    session_id = session["id"]
    plan = purchase.plan
    payment_status = session.get("payment_status")

    existing = PlaylistCampaign.query.filter_by(
        stripe_session_id=session_id
    ).first()
    if existing and existing.user_id != purchase.user_id:
        logger.warning(
            f"playlist_campaign: session {session_id} belongs to user "
            f"{existing.user_id}, not {purchase.user_id}"
        )
        return

    if payment_status == "unpaid":
        if not existing:
            logger.warning(f"playlist_campaign: unpaid session {session_id} has no campaign")
            return
        existing.status = "payment_failed"
        existing.payment_status = "unpaid"
        existing.updated_at = utcnow()
        db.session.flush()
        logger.info(f"Campaign {existing.id} marked payment_failed")
        return

    if payment_status != "paid":
        logger.info(f"playlist_campaign: session {session_id} payment_status={payment_status}, nothing to do")
        return

    was_active = existing is not None and existing.status == "active"
    now = utcnow()

    upsert_row(
        PlaylistCampaign,
        values={
            "user_id": purchase.user_id,
            "release_id": None,
            "plan_type": plan.plan_id,
            "plan_price": plan.price,
            "status": "active",
            "payment_status": "paid",
            "payment_intent_id": session.get("payment_intent"),
            "stripe_session_id": session_id,
            "campaign_data": {
                "plan_name": plan.name,
                "plan_description": plan.description,
                "campaign_type": "all_releases",
                "checkout_session_id": session_id,
            },
            "paid_at": now,
            "updated_at": now,
        },
        conflict_columns=["stripe_session_id"],
        update_columns=[
            "status", "payment_status", "payment_intent_id", "paid_at", "updated_at",
        ],
        where=PlaylistCampaign.user_id == purchase.user_id,
    )

    campaign = PlaylistCampaign.query.filter_by(stripe_session_id=session_id).first()
    if campaign is None or campaign.user_id != purchase.user_id:
        logger.warning(f"playlist_campaign: session {session_id} was claimed by another user")
        return
    logger.info(
        f"Campaign {campaign.id} {'updated' if existing else 'created'} as active"
    )

    if was_active:
        return

    profile = db.session.get(Profile, purchase.user_id)
    buyer = profile.display_name if profile else "User"
    create_admin_notification(
        "playlist_campaign_purchase",
        "New Playlist Campaign Purchase!",
        f"{buyer} purchased {plan.name} plan. Amount: ${plan.price:.2f}",
        data={
            "user_id": purchase.user_id,
            "plan_id": plan.plan_id,
            "plan_name": plan.name,
            "amount": float(plan.price),
            "stripe_session_id": session_id,
            "campaign_id": campaign.id,
        },
    )


def _complete_playlist_pitching(session, purchase):
    """Record a legacy playlist_pitching purchase (one release, amount from Stripe)."""
    session_id = session["id"]
    amount_total = session.get("amount_total") or 0
    amount = Decimal(amount_total) / 100

    existing = PlaylistCampaign.query.filter_by(
        stripe_session_id=session_id
    ).first()
    if existing and existing.user_id != purchase.user_id:
        logger.warning(
            f"playlist_pitching: session {session_id} belongs to user "
            f"{existing.user_id}, not {purchase.user_id}"
        )
        return
    if existing and existing.status == "active":
        logger.info(f"playlist_pitching: session {session_id} already recorded")
        return

    now = utcnow()
    upsert_row(
        PlaylistCampaign,
        values={
            "user_id": purchase.user_id,
            "release_id": purchase.release_id,
            "plan_type": purchase.plan_id,
            "plan_price": amount,
            "status": "active",
            "payment_status": "paid",
            "payment_intent_id": session.get("payment_intent"),
            "stripe_session_id": session_id,
            "paid_at": now,
            "updated_at": now,
        },
        conflict_columns=["stripe_session_id"],
        update_columns=[
            "release_id", "plan_type", "plan_price", "status", "payment_status",
            "payment_intent_id", "paid_at", "updated_at",
        ],
        where=PlaylistCampaign.user_id == purchase.user_id,
    )

    campaign = PlaylistCampaign.query.filter_by(stripe_session_id=session_id).first()
    if campaign is None or campaign.user_id != purchase.user_id:
        logger.warning(f"playlist_pitching: session {session_id} was claimed by another user")
        return
    logger.info(f"Playlist campaign purchase recorded: {purchase.plan_id}")

    release = db.session.get(Release, purchase.release_id)
    profile = db.session.get(Profile, purchase.user_id)
    buyer = profile.display_name if profile else "User"
    title = release.title if release else "Unknown release"
    artist = release.artist_name if release else "Unknown artist"

    create_admin_notification(
        "playlist_campaign_purchase",
        "New Playlist Campaign Purchase!",
        f'{buyer} purchased {purchase.plan_id} plan for "{title}" by {artist}. '
        f"Amount: ${amount:.2f}",
        data={
            "user_id": purchase.user_id,
            "release_id": purchase.release_id,
            "plan_id": purchase.plan_id,
            "amount": float(amount),
            "stripe_session_id": session_id,
        },
    )


def _complete_subscription_checkout(session):
    """Create the artist subscription for a subscription-mode checkout.

    The session doesn't carry the billing period, so the subscription is
    retrieved from Stripe.
    """
    stripe_subscription_id = session.get("subscription")
    if not stripe_subscription_id:
        logger.warning(f"Subscription checkout {session.get('id')} has no subscription")
        return

    stripe.api_key = current_app.config["STRIPE_SECRET_KEY"]
    sub = _as_dict(stripe.Subscription.retrieve(stripe_subscription_id))

    metadata = session.get("metadata") or {}
    _sync_subscription(
        sub,
        artist_id=metadata.get("artist_id"),
        stripe_customer_id=session.get("customer"),
    )
    logger.info(f"Subscription created for artist {metadata.get('artist_id')}")


# ──────────────────────────────────────────────
# Subscriptions & Invoices
# ──────────────────────────────────────────────

def _sync_subscription(sub_data, artist_id=None, stripe_customer_id=None):
    """Upsert an ArtistSubscription from a Stripe subscription object.

    status is copied verbatim; canceled_at is only written when present.
    """
    values = {
        "stripe_subscription_id": sub_data["id"],
        "status": sub_data.get("status", "active"),
        "current_period_end": _extract_period_end(sub_data),
        "updated_at": utcnow(),
    }
    if sub_data.get("canceled_at"):
        values["canceled_at"] = from_unix(sub_data["canceled_at"])

    artist_id = artist_id or (sub_data.get("metadata") or {}).get("artist_id")
    if artist_id:
        values["artist_id"] = artist_id

    customer = stripe_customer_id or sub_data.get("customer")
    if isinstance(customer, str):
        values["stripe_customer_id"] = customer

    upsert_row(
        ArtistSubscription,
        values=values,
        conflict_columns=["stripe_subscription_id"],
    )


def _handle_subscription_changed(event):
    """Handle customer.subscription.updated and customer.subscription.deleted."""
    sub_data = event["data"]["object"]
    logger.info(f"Subscription {sub_data.get('id')} is now {sub_data.get('status')}")
    _sync_subscription(sub_data)


def _handle_invoice_payment_succeeded(event):
    """Handle invoice.payment_succeeded.

    Records a payment_history row for subscription invoices only.
    """
    invoice = event["data"]["object"]
    stripe_subscription_id = _extract_invoice_subscription(invoice)

    if not stripe_subscription_id:
        logger.info(f"Invoice {invoice.get('id')} is not a subscription invoice, skipping")
        return

    metadata = invoice.get("metadata") or {}
    inserted = insert_if_absent(
        PaymentHistory,
        values={
            "artist_id": metadata.get("artist_id"),
            "amount": invoice.get("amount_paid") or 0,
            "currency": (invoice.get("currency") or "usd").upper(),
            "type": "subscription_renewal",
            "stripe_invoice_id": invoice["id"],
            "description": invoice.get("description") or "Subscription payment",
        },
        conflict_columns=["stripe_invoice_id"],
    )
    if inserted:
        logger.info(f"Payment recorded for invoice {invoice['id']}")
    else:
        logger.info(f"Invoice {invoice['id']} already recorded")


# ──────────────────────────────────────────────
# Payment Intents
# ──────────────────────────────────────────────

def _handle_payment_intent_succeeded(event):
    """Handle payment_intent.succeeded.

    One-time track sales are tagged metadata.type = "track_purchase".
    """
    payment_intent = event["data"]["object"]
    metadata = payment_intent.get("metadata") or {}

    if metadata.get("type") != "track_purchase":
        return

    inserted = insert_if_absent(
        TrackPurchase,
        values={
            "track_id": metadata.get("track_id"),
            "buyer_id": metadata.get("buyer_id"),
            "amount": payment_intent.get("amount") or 0,
            "currency": (payment_intent.get("currency") or "usd").upper(),
            "stripe_payment_id": payment_intent["id"],
        },
        conflict_columns=["stripe_payment_id"],
    )
    if inserted:
        logger.info(f"Track purchase recorded: {metadata.get('track_id')}")
    else:
        logger.info(f"Track purchase {payment_intent['id']} already recorded")


def _handle_payment_intent_failed(event):
    """Handle payment_intent.payment_failed.

    Marks every campaign paid with this intent as failed.
    """
    payment_intent = event["data"]["object"]
    last_error = payment_intent.get("last_payment_error") or {}
    failure_reason = last_error.get("message") or "Payment failed"

    campaigns = PlaylistCampaign.query.filter_by(
        payment_intent_id=payment_intent["id"]
    ).all()
    for campaign in campaigns:
        campaign.status = "payment_failed"
        campaign.payment_status = "failed"
        campaign.failure_reason = failure_reason
        campaign.updated_at = utcnow()
    db.session.flush()

    logger.info(
        f"Payment intent {payment_intent['id']} failed, {len(campaigns)} campaign(s) updated"
    )


# ──────────────────────────────────────────────
# Connect: transfers, payouts, accounts
# ──────────────────────────────────────────────

def _handle_transfer_created(event):
    """Handle transfer.created. Only royalty transfers are tracked."""
    transfer = event["data"]["object"]
    metadata = transfer.get("metadata") or {}

    if metadata.get("type") != "royalty_payout":
        return

    inserted = insert_if_absent(
        ArtistPayout,
        values={
            "artist_id": metadata.get("artist_id"),
            "release_id": metadata.get("release_id"),
            "amount": transfer.get("amount") or 0,
            "currency": (transfer.get("currency") or "usd").upper(),
            "stripe_transfer_id": transfer["id"],
            "status": "pending",
        },
        conflict_columns=["stripe_transfer_id"],
    )
    if inserted:
        logger.info(f"Payout recorded: {transfer['id']}")
    else:
        logger.info(f"Transfer {transfer['id']} already recorded")


def _payout_account_id(event):
    # Payout events arrive on the connected account; older deliveries
    # only identify it through the payout destination.
    payout = event["data"]["object"]
    return get_account_id_from_event(event) or payout.get("destination")


def _handle_payout_paid(event):
    """Handle payout.paid."""
    payout = event["data"]["object"]

    record = RoyaltyPayout.query.filter_by(stripe_payout_id=payout["id"]).first()
    if record:
        record.status = "completed"
        record.updated_at = utcnow()
        db.session.flush()
        logger.info(f"Payout {payout['id']} marked as completed")
    else:
        logger.warning(f"payout.paid: no local record for payout {payout['id']}")

    amount = Decimal(payout.get("amount") or 0) / 100
    create_notification(
        _payout_account_id(event),
        "Payout Completed",
        f"Your payout of ${amount:.2f} has been processed.",
        "success",
        stripe_event_id=event["id"],
    )


def _handle_payout_failed(event):
    """Handle payout.failed."""
    payout = event["data"]["object"]
    failure_reason = payout.get("failure_message") or "Unknown error"

    record = RoyaltyPayout.query.filter_by(stripe_payout_id=payout["id"]).first()
    if record:
        record.status = "failed"
        record.failure_reason = failure_reason
        record.updated_at = utcnow()
        db.session.flush()
        logger.info(f"Payout {payout['id']} marked as failed")
    else:
        logger.warning(f"payout.failed: no local record for payout {payout['id']}")

    amount = Decimal(payout.get("amount") or 0) / 100
    create_notification(
        _payout_account_id(event),
        "Payout Failed",
        f"Your payout of ${amount:.2f} failed: {failure_reason}",
        "error",
        stripe_event_id=event["id"],
    )


def _handle_account_updated(event):
    """Handle account.updated.

    Overwrites the capability flags and verification status. The "Account
    Ready!" notification is sent once, on the transition into
    charges + payouts enabled.
    """
    account = event["data"]["object"]

    record = StripeAccount.query.filter_by(stripe_account_id=account["id"]).first()
    if not record:
        logger.warning(f"account.updated: no local record for account {account['id']}")
        return

    was_ready = record.is_ready and record.ready_notified_at is not None

    record.details_submitted = bool(account.get("details_submitted"))
    record.onboarding_completed = record.details_submitted
    record.charges_enabled = bool(account.get("charges_enabled"))
    record.payouts_enabled = bool(account.get("payouts_enabled"))
    record.verification_status = get_verification_status(account)
    record.updated_at = utcnow()

    if not record.is_ready:
        record.ready_notified_at = None
    db.session.flush()

    logger.info(
        f"Updated account {account['id']}: verification={record.verification_status}"
    )

    if record.is_ready and not was_ready:
        create_notification(
            account["id"],
            "Account Ready!",
            "Your Stripe account is now ready to accept payments and receive payouts.",
            "success",
            stripe_event_id=event["id"],
        )
        record.ready_notified_at = utcnow()
        db.session.flush()


def _handle_capability_updated(event):
    """Handle capability.updated. Notifies on active / inactive only."""
    capability = event["data"]["object"]
    account_id = get_account_id_from_event(event)
    status = capability.get("status")

    if status == "active":
        create_notification(
            account_id,
            "New Capability Enabled",
            f"{capability.get('id')} capability is now active on your account.",
            "success",
            stripe_event_id=event["id"],
        )
    elif status == "inactive":
        create_notification(
            account_id,
            "Capability Disabled",
            f"{capability.get('id')} capability has been disabled. "
            f"Please check your account requirements.",
            "warning",
            stripe_event_id=event["id"],
        )


def _handle_account_deauthorized(event):
    """Handle account.application.deauthorized.

    Disconnects the artist profile linked to the account.
    """
    account_id = get_account_id_from_event(event)
    if not account_id:
        logger.warning("account.application.deauthorized without an account id")
        return

    profiles = ArtistProfile.query.filter_by(stripe_account_id=account_id).all()
    for profile in profiles:
        profile.stripe_account_id = None
        profile.stripe_onboarding_complete = False
        profile.payouts_enabled = False
        profile.updated_at = utcnow()
    db.session.flush()

    logger.info(f"Account {account_id} deauthorized ({len(profiles)} profile(s) cleared)")


EVENT_HANDLERS = {
    "checkout.session.completed": _handle_checkout_completed,
    "customer.subscription.updated": _handle_subscription_changed,
    "customer.subscription.deleted": _handle_subscription_changed,
    "invoice.payment_succeeded": _handle_invoice_payment_succeeded,
    "payment_intent.succeeded": _handle_payment_intent_succeeded,
    "payment_intent.payment_failed": _handle_payment_intent_failed,
    "transfer.created": _handle_transfer_created,
    "account.updated": _handle_account_updated,
    "payout.paid": _handle_payout_paid,
    "payout.failed": _handle_payout_failed,
    "capability.updated": _handle_capability_updated,
    "account.application.deauthorized": _handle_account_deauthorized,
}

SUPPORTED_EVENTS = list(EVENT_HANDLERS)
