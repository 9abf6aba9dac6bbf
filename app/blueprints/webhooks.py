"""Webhooks blueprint — /api/webhooks/stripe

Receives Stripe webhook events.
Raw body is required for signature verification.
"""

import logging
from datetime import datetime, timezone

import stripe
from flask import Blueprint, current_app, jsonify, request

from app.extensions import limiter
from app.services.stripe_service import (
    SUPPORTED_EVENTS,
    handle_webhook_event,
    verify_webhook_signature,
)

logger = logging.getLogger(__name__)

webhooks_bp = Blueprint("webhooks", __name__, url_prefix="/api/webhooks")


@webhooks_bp.route("/stripe", methods=["POST"])
def stripe_webhook():
    """Receive and process Stripe webhook events.

    1. Get raw body (required for signature verification)
    2. Verify signature with STRIPE_WEBHOOK_SECRET
    3. Pass to handle_webhook_event (idempotent via webhook_events table)
    4. Return 200 to acknowledge receipt, 500 so Stripe retries a failure
    """
    payload = request.get_data(as_text=True)
    sig_header = request.headers.get("Stripe-Signature")

    if not sig_header:
        logger.warning("Webhook received without Stripe-Signature header")
        return jsonify({"error": "Missing signature"}), 400

    if not current_app.config.get("STRIPE_WEBHOOK_SECRET"):
        logger.error("Webhook received but STRIPE_WEBHOOK_SECRET is not configured")
        return jsonify({"error": "Webhook secret not configured"}), 400

    # --- Verify signature ---
    try:
        event = verify_webhook_signature(payload, sig_header)
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.warning(f"Webhook signature verification failed: {e}")
        return jsonify({"error": "Webhook signature verification failed"}), 400

    # --- Process event (idempotent) ---
    success, message = handle_webhook_event(event)

    if success:
        return jsonify({"received": True, "status": message}), 200

    logger.error(f"Webhook processing failed: {message}")
    return jsonify({"error": "Webhook processing failed"}), 500


@webhooks_bp.route("/stripe", methods=["GET"])
@limiter.limit(lambda: current_app.config["WEBHOOK_HEALTH_RATE_LIMIT"])
def stripe_webhook_health():
    """Health / capability descriptor for the webhook endpoint."""
    return jsonify({
        "status": "ok",
        "webhook_secret_configured": bool(
            current_app.config.get("STRIPE_WEBHOOK_SECRET")
        ),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "supported_events": SUPPORTED_EVENTS,
    })
