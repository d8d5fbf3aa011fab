"""Stripe webhook handling: mirrors subscription state onto user profiles"""
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import stripe

from config.database import get_supabase, get_supabase_admin
from utils.logger import get_logger

logger = get_logger('stripe_webhook')

STRIPE_SECRET_KEY = os.getenv('STRIPE_SECRET_KEY')
STRIPE_WEBHOOK_SECRET = os.getenv('STRIPE_WEBHOOK_SECRET')

# Stripe statuses folded into ours; anything not listed passes through
STATUS_MAP = {
    'trialing': 'trialing',
    'active': 'active',
    'past_due': 'past_due',
    'canceled': 'canceled',
    'unpaid': 'canceled',
}


def _field(obj: Any, name: str, default=None):
    """Read a field from a plain dict or a StripeObject"""
    if obj is None:
        return default
    if isinstance(obj, dict):
        return obj.get(name, default)
    try:
        return obj[name]
    except (KeyError, TypeError):
        return default


def _db():
    return get_supabase_admin() or get_supabase()


def map_subscription_status(stripe_status: str) -> str:
    return STATUS_MAP.get(stripe_status, stripe_status)


def construct_event(payload: bytes, signature: str):
    """
    Verify the Stripe signature and parse the event.

    Raises ValueError for a malformed payload and
    stripe.SignatureVerificationError for a bad signature.
    """
    return stripe.Webhook.construct_event(payload, signature, STRIPE_WEBHOOK_SECRET)


def _current_period_end(subscription) -> Optional[str]:
    period_end = _field(subscription, 'current_period_end')
    if not period_end:
        # Newer API versions carry the period on the subscription items
        items = _field(_field(subscription, 'items'), 'data') or []
        if items:
            period_end = _field(items[0], 'current_period_end')
    if not period_end:
        return None
    return datetime.fromtimestamp(int(period_end), tz=timezone.utc).isoformat()


def _find_profile_id_by_customer(customer_id: Optional[str]) -> Optional[str]:
    if not customer_id:
        return None
    profile = _db().table('profiles').select('id').eq('stripe_customer_id', customer_id).execute()
    return profile.data[0]['id'] if profile.data else None


def update_subscription_status(subscription) -> Optional[str]:
    """
    Write the subscription's status and period end to the owning profile.

    The owner comes from metadata.supabase_user_id, falling back to the
    profile holding the subscription's customer ID.

    Returns:
        The updated user ID, or None when no owner could be found
    """
    metadata = _field(subscription, 'metadata') or {}
    user_id = _field(metadata, 'supabase_user_id')
    if not user_id:
        user_id = _find_profile_id_by_customer(_field(subscription, 'customer'))

    if not user_id:
        logger.error(f"Could not find user for subscription: {_field(subscription, 'id')}")
        return None

    status = map_subscription_status(_field(subscription, 'status'))
    end_date = _current_period_end(subscription)
    logger.info(f"Updating user {user_id}: status={status}, end={end_date}")

    update_data = {
        'subscription_status': status,
        'updated_at': datetime.now(timezone.utc).isoformat(),
    }
    if end_date:
        update_data['subscription_end'] = end_date

    _db().table('profiles').update(update_data).eq('id', user_id).execute()
    return user_id


def cancel_subscription(subscription) -> Optional[str]:
    """Mark the profile owning the subscription's customer as canceled"""
    user_id = _find_profile_id_by_customer(_field(subscription, 'customer'))
    if not user_id:
        logger.error("Could not find user for cancelled subscription")
        return None

    _db().table('profiles').update({
        'subscription_status': 'canceled',
        'updated_at': datetime.now(timezone.utc).isoformat(),
    }).eq('id', user_id).execute()
    return user_id


def handle_event(event) -> Dict[str, Any]:
    """
    Dispatch a verified Stripe event

    Events handled:
    - checkout.session.completed: sync the new subscription
    - customer.subscription.created / updated: sync status and period end
    - customer.subscription.deleted: mark canceled
    """
    event_type = _field(event, 'type')
    obj = _field(_field(event, 'data'), 'object')
    logger.info(f"Received event: {event_type}")

    if event_type == 'checkout.session.completed':
        subscription_id = _field(obj, 'subscription')
        if subscription_id:
            subscription = stripe.Subscription.retrieve(subscription_id, api_key=STRIPE_SECRET_KEY)
            update_subscription_status(subscription)
    elif event_type in ('customer.subscription.created', 'customer.subscription.updated'):
        update_subscription_status(obj)
    elif event_type == 'customer.subscription.deleted':
        cancel_subscription(obj)
    else:
        logger.info(f"Unhandled event type: {event_type}")
        return {"status": "ignored", "event_type": event_type}

    return {"status": "success", "event_type": event_type}
