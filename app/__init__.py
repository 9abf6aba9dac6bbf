import os
import logging

import click
from flask import Flask, jsonify

from app.config import config_by_name
from app.extensions import db, migrate, limiter


def create_app(config_name=None):
    """Application factory."""

    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])

    # --- Validate required env vars (skip in testing) ---
    if config_name != "testing":
        try:
            config_by_name[config_name].validate()
        except RuntimeError as e:
            app.logger.warning(f"Config validation: {e}")

    # --- Init extensions ---
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    # --- Import models so Alembic can discover them ---
    with app.app_context():
        from app import models  # noqa: F401

    # --- Register blueprints ---
    from app.blueprints.webhooks import webhooks_bp

    app.register_blueprint(webhooks_bp)

    # --- Error handlers ---
    # Server-to-server API: every error is JSON.
    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(429)
    def rate_limited(e):
        return jsonify({"error": "Too many requests"}), 429

    @app.errorhandler(500)
    def server_error(e):
        return jsonify({"error": "Webhook processing failed"}), 500

    # --- CLI commands ---
    register_cli(app)

    # --- Logging ---
    if not app.debug:
        logging.basicConfig(level=logging.INFO)

    return app


def register_cli(app):
    """Register custom CLI commands with the Flask app."""

    @app.cli.command("webhook-events")
    @click.option(
        "--status",
        type=click.Choice(["processed", "ignored", "failed"]),
        default=None,
        help="Only show events with this status.",
    )
    @click.option("--limit", default=20, show_default=True, help="Number of events to show.")
    def webhook_events(status, limit):
        """List recently received Stripe webhook events.

        Usage:
            flask webhook-events
            flask webhook-events --status failed --limit 50
        """
        from app.models.webhook_event import WebhookEvent

        query = WebhookEvent.query
        if status:
            query = query.filter_by(status=status)
        events = query.order_by(WebhookEvent.processed_at.desc()).limit(limit).all()

        if not events:
            click.echo("No webhook events found.")
            return

        for evt in events:
            processed = evt.processed_at.isoformat() if evt.processed_at else "-"
            click.echo(
                f"{processed}  {evt.stripe_event_id}  {evt.event_type}  "
                f"{evt.status} (attempts={evt.attempts})"
            )
            if evt.error:
                click.echo(f"    error: {evt.error}")

    @app.cli.command("replay-webhook-event")
    @click.argument("event_id")
    def replay_webhook_event(event_id):
        """Re-run a stored webhook event through the handlers.

        Uses the payload recorded in webhook_events, so it works for events
        Stripe has stopped retrying.

        Usage:
            flask replay-webhook-event evt_1Abc...
        """
        from app.models.webhook_event import WebhookEvent
        from app.services.stripe_service import handle_webhook_event

        row = WebhookEvent.query.filter_by(stripe_event_id=event_id).first()
        if not row:
            click.echo(f"ERROR: no stored webhook event {event_id}")
            raise SystemExit(1)

        if row.status == "processed":
            click.echo(f"Note: {event_id} was already processed.")

        event = {
            "id": row.stripe_event_id,
            "type": row.event_type,
            "account": row.account_id,
            "data": {"object": row.data or {}},
        }
        success, message = handle_webhook_event(event, force=True)

        if success:
            click.echo(f"Replayed {event_id} ({row.event_type}): {message}")
        else:
            click.echo(f"ERROR: replay of {event_id} failed: {message}")
            raise SystemExit(1)

    @app.cli.command("list-webhook-endpoints")
    def list_webhook_endpoints():
        """List webhook endpoints configured in Stripe.

        Flags endpoints that don't subscribe to every event type this app
        handles. Uses STRIPE_SECRET_KEY from env.
        """
        import stripe as _stripe

        from app.services.stripe_service import SUPPORTED_EVENTS

        api_key = app.config.get("STRIPE_SECRET_KEY")
        if not api_key:
            click.echo("ERROR: STRIPE_SECRET_KEY is not set.")
            return
        key_mode = "Live" if api_key.startswith("sk_live_") else "Test"
        click.echo(f"Stripe key mode: {key_mode}")
        click.echo(
            f"Webhook secret configured: {bool(app.config.get('STRIPE_WEBHOOK_SECRET'))}"
        )
        click.echo("")

        _stripe.api_key = api_key
        endpoints = _stripe.WebhookEndpoint.list(limit=10)

        if not endpoints.data:
            click.echo("No webhook endpoints configured.")
            return

        for endpoint in endpoints.data:
            enabled = list(endpoint["enabled_events"] or [])
            click.echo(f"  {endpoint['id']}: {endpoint['url']} ({endpoint['status']})")
            if "*" in enabled:
                click.echo("    events: all")
                continue
            missing = [e for e in SUPPORTED_EVENTS if e not in enabled]
            if missing:
                click.echo(f"    WARNING: missing events: {', '.join(missing)}")
            else:
                click.echo("    events: all supported events enabled")
