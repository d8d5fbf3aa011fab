"""Subscription status lookups for gating the desktop app"""
from datetime import datetime, timezone
from typing import Dict, Any, Optional

from config.database import get_supabase, get_supabase_admin

ACTIVE_STATUSES = ['active', 'trialing']


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_subscription_active(status: Optional[str], subscription_end: Optional[str], now: datetime = None) -> bool:
    """Active or trialing, and the paid period (if known) has not ended"""
    if status not in ACTIVE_STATUSES:
        return False
    end = _parse_timestamp(subscription_end)
    if end is None:
        return True
    return end > (now or datetime.now(timezone.utc))


def get_subscription_status(user_id: str) -> Dict[str, Any]:
    """
    Get the subscription state mirrored from Stripe onto the user's profile

    Returns:
        dict: hasActiveSubscription and the subscription fields (or None).
        The top-level key is camelCase because the desktop client reads it
        straight from the edge-function response.
    """
    supabase = get_supabase_admin() or get_supabase()
    profile = supabase.table('profiles').select(
        'subscription_status, subscription_end, stripe_customer_id'
    ).eq('id', user_id).execute()

    if not profile.data or not profile.data[0].get('subscription_status'):
        return {'hasActiveSubscription': False, 'subscription': None}

    row = profile.data[0]
    return {
        'hasActiveSubscription': is_subscription_active(row['subscription_status'], row.get('subscription_end')),
        'subscription': {
            'status': row['subscription_status'],
            'subscription_end': row.get('subscription_end'),
        },
    }
