"""Stripe Checkout sessions for the subscription plan"""
import os
from typing import Dict, Optional

import stripe

from config.database import get_supabase, get_supabase_admin
from utils.logger import log_info

# Stripe API configuration
STRIPE_SECRET_KEY = os.getenv('STRIPE_SECRET_KEY')
STRIPE_PRICE_ID = os.getenv('STRIPE_PRICE_ID')
SITE_URL = os.getenv('SITE_URL', 'https://drasillai.com')
TRIAL_PERIOD_DAYS = 14


def get_or_create_customer(user: Dict[str, str]) -> str:
    """
    Return the user's Stripe customer ID, creating the customer on first use.

    The new ID is stored on the user's profile so later checkouts reuse it.
    """
    supabase = get_supabase_admin() or get_supabase()
    profile = supabase.table('profiles').select('stripe_customer_id').eq('id', user['id']).execute()

    customer_id = profile.data[0].get('stripe_customer_id') if profile.data else None
    if customer_id:
        return customer_id

    customer = stripe.Customer.create(
        api_key=STRIPE_SECRET_KEY,
        email=user.get('email'),
        metadata={
            'supabase_user_id': user['id'],
        },
    )
    customer_id = customer.id

    supabase.table('profiles').update({'stripe_customer_id': customer_id}).eq('id', user['id']).execute()
    log_info(f"Created Stripe customer {customer_id} for user {user['id']}")
    return customer_id


def create_checkout_session(
    user: Dict[str, str],
    price_id: Optional[str] = None,
    success_url: Optional[str] = None,
    cancel_url: Optional[str] = None,
) -> Dict[str, str]:
    """
    Create a Stripe Checkout session for a subscription with a free trial

    Args:
        user: The authenticated user ({'id', 'email'})
        price_id: Stripe price; defaults to STRIPE_PRICE_ID
        success_url: Redirect after checkout; defaults to SITE_URL?checkout=success
        cancel_url: Redirect on cancel; defaults to SITE_URL?checkout=cancel

    Returns:
        dict: Checkout session data with url and session_id
    """
    if not STRIPE_SECRET_KEY:
        raise ValueError("Stripe API not configured. Please set STRIPE_SECRET_KEY.")

    price = price_id or STRIPE_PRICE_ID
    if not price:
        raise ValueError("Stripe price ID not configured. Please set STRIPE_PRICE_ID.")

    customer_id = get_or_create_customer(user)

    session = stripe.checkout.Session.create(
        api_key=STRIPE_SECRET_KEY,
        customer=customer_id,
        mode='subscription',
        payment_method_types=['card'],
        line_items=[{
            'price': price,
            'quantity': 1,
        }],
        success_url=success_url or f"{SITE_URL}?checkout=success",
        cancel_url=cancel_url or f"{SITE_URL}?checkout=cancel",
        subscription_data={
            'trial_period_days': TRIAL_PERIOD_DAYS,
            'metadata': {
                'supabase_user_id': user['id'],
            },
        },
        metadata={
            'supabase_user_id': user['id'],
        },
    )

    return {
        'url': session.url,
        'session_id': session.id,
    }
