"""Sync service — DB helpers shared by the Stripe webhook handlers.

Responsible for:
- Atomic insert-or-update (INSERT ... ON CONFLICT) keyed on natural keys
- Insert-if-absent for append-only rows keyed on a Stripe id
- Deriving a connected account's verification status from its flags
- Resolving a connected account to the user who owns it
- Creating user and admin notifications
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.dialects import postgresql, sqlite

from app.extensions import db
from app.models.notification import AdminNotification, Notification
from app.models.payout import StripeAccount

logger = logging.getLogger(__name__)

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def utcnow():
    return datetime.now(timezone.utc)


def from_unix(ts):
    """Convert a Stripe epoch-seconds field to an aware datetime (or None)."""
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc)


def _insert(model):
    dialect = db.engine.dialect.name
    insert = _DIALECT_INSERTS.get(dialect)
    if insert is None:
        raise RuntimeError(f"upsert not supported on {dialect}")
    return insert(model)


def upsert_row(model, values, conflict_columns, update_columns=None, where=None):
    """INSERT a row, or UPDATE the conflicting one, in a single statement.

    Args:
        model:            mapped class to write to.
        values:           column -> value for the insert.
        conflict_columns: columns of the unique key that identifies the row.
        update_columns:   columns overwritten on conflict (defaults to every
                          key in values except the conflict columns).
        where:            optional condition on the existing row; when it is
                          false the conflicting row is left untouched.

    The session's identity map is expired afterwards so later queries see
    the row as written.
    """
    if update_columns is None:
        update_columns = [c for c in values if c not in conflict_columns]

    stmt = _insert(model).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=conflict_columns,
        set_={column: stmt.excluded[column] for column in update_columns},
        where=where,
    )
    db.session.execute(stmt)
    db.session.expire_all()


def insert_if_absent(model, values, conflict_columns):
    """INSERT a row unless one with the same unique key already exists.

    Used for append-only records keyed on a Stripe object id, so running
    a handler twice leaves a single row.

    Returns True if a row was inserted.
    """
    stmt = _insert(model).values(**values)
    stmt = stmt.on_conflict_do_nothing(index_elements=conflict_columns)
    result = db.session.execute(stmt)
    db.session.expire_all()
    return result.rowcount > 0


def get_verification_status(account):
    """Derive a verification status from a Stripe Account's flags.

    Mapping:
        details + charges + payouts -> 'verified'
        details only               -> 'pending_review'
        otherwise                  -> 'pending_submission'
    """
    details_submitted = bool(account.get("details_submitted"))
    if (details_submitted
            and account.get("charges_enabled")
            and account.get("payouts_enabled")):
        return "verified"
    if details_submitted:
        return "pending_review"
    return "pending_submission"


def get_user_id_for_account(stripe_account_id):
    """Look up the user who owns a connected account.

    Returns user_id string or None.
    """
    if not stripe_account_id:
        return None
    account = StripeAccount.query.filter_by(
        stripe_account_id=stripe_account_id
    ).first()
    if account:
        return account.user_id
    return None


def create_notification(stripe_account_id, title, message, type_="info",
                        stripe_event_id=None):
    """Notify the owner of a connected account.

    When stripe_event_id is given the notification is keyed on it: a
    second call for the same event returns the existing row instead of
    adding another.

    Returns the Notification, or None when the account can't be resolved
    to a user (logged, not an error).
    """
    user_id = get_user_id_for_account(stripe_account_id)
    if not user_id:
        logger.warning(
            f"Notification '{title}' skipped: no user for account {stripe_account_id}"
        )
        return None

    if stripe_event_id:
        inserted = insert_if_absent(
            Notification,
            values={
                "user_id": user_id,
                "title": title,
                "message": message,
                "type": type_,
                "read": False,
                "stripe_event_id": stripe_event_id,
            },
            conflict_columns=["stripe_event_id"],
        )
        if not inserted:
            logger.info(f"Notification for event {stripe_event_id} already sent")
        return Notification.query.filter_by(stripe_event_id=stripe_event_id).first()

    notification = Notification(
        user_id=user_id,
        title=title,
        message=message,
        type=type_,
        read=False,
    )
    db.session.add(notification)
    db.session.flush()
    return notification


def create_admin_notification(type_, title, message, data=None):
    """Queue a staff-facing notification."""
    notification = AdminNotification(
        type=type_,
        title=title,
        message=message,
        data=data or {},
        read=False,
    )
    db.session.add(notification)
    db.session.flush()
    logger.info(f"Admin notification queued: {type_}")
    return notification
