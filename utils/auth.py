"""Authentication utilities - Supabase Auth bearer tokens"""
from flask import request, g

from config.database import get_supabase, get_supabase_admin
from utils.logger import log_warning


def get_bearer_token():
    """Extract the access token from the Authorization header"""
    auth_header = request.headers.get('Authorization') or request.headers.get('authorization')
    if not auth_header:
        return None
    token = auth_header.replace('Bearer ', '', 1).strip()
    return token or None


def verify_access_token(token):
    """
    Verify a Supabase access token and return the user as a dict.

    Uses the service role client when configured so the check does not depend
    on RLS; falls back to the anon client otherwise.

    Returns:
        dict with 'id' and 'email', or None when the token is invalid
    """
    if not token:
        return None

    client = get_supabase_admin() or get_supabase()
    if not client:
        raise ValueError("Database connection not available")

    try:
        response = client.auth.get_user(token)
    except Exception as e:
        log_warning(f"Auth error: {str(e)}")
        return None

    user = getattr(response, 'user', None) if response else None
    if not user:
        return None

    return {
        'id': user.id,
        'email': getattr(user, 'email', None),
    }


def get_current_user():
    """Return the authenticated user for this request (cached on flask.g)"""
    if 'current_user' not in g:
        g.current_user = verify_access_token(get_bearer_token())
    return g.current_user


def get_current_user_id():
    """Return the authenticated user's id, or None"""
    user = get_current_user()
    return user['id'] if user else None
