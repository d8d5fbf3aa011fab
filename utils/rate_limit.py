"""Rate limiting configuration for API endpoints"""
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
import os

def get_rate_limit_key():
    """Get rate limit key function - uses the Supabase user ID if authenticated, otherwise IP"""
    from utils.auth import get_current_user_id
    try:
        user_id = get_current_user_id()
    except ValueError:
        user_id = None
    if user_id:
        return f"user:{user_id}"
    return get_remote_address()

def init_rate_limiter(app):
    """Initialize rate limiter with Flask app"""
    # Default rate limits (per minute)
    default_limit = os.environ.get('RATE_LIMIT_DEFAULT', '100 per minute')

    limiter = Limiter(
        app=app,
        key_func=get_rate_limit_key,
        default_limits=[default_limit],
        storage_uri=os.environ.get('RATE_LIMIT_STORAGE_URI', 'memory://'),  # Optional: Redis URL for distributed rate limiting
        headers_enabled=True  # Include rate limit headers in response
    )

    return limiter

# Rate limit presets for different endpoint types
RATE_LIMITS = {
    'strict': '10 per minute',      # Checkout, webhooks
    'moderate': '30 per minute',    # Memo generation, template writes
    'standard': '60 per minute',    # Read operations
    'chat': '120 per minute',       # Streaming chat relay
}
