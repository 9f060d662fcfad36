"""
Session Authentication and Tenant Guard
Handles the signed session cookie, tenant-scoped route protection
and the edge middleware that gates dashboard pages.

Session keys (set at login, refreshed after onboarding):
    user_id, user_name, user_email, business_id, business_slug,
    role, onboarding_completed
"""
from functools import wraps
from typing import Optional, Dict, Any
from urllib.parse import quote
from flask import session, redirect, jsonify, request
import logging

logger = logging.getLogger(__name__)

SESSION_KEYS = (
    'user_id', 'user_name', 'user_email', 'business_id',
    'business_slug', 'role', 'onboarding_completed',
)

# Prefix matches, except '/' which only matches the landing page
PUBLIC_ROUTES = [
    '/',
    '/auth/signin',
    '/auth/signup',
    '/auth/forgot-password',
    '/auth/reset-password',
    '/auth/error',
    '/form',
    '/api/auth',
    '/api/webhooks',
    '/api/public',
]

AUTH_ROUTES = ['/auth/signin', '/auth/signup']

SIGNIN_PATH = '/auth/signin'
DASHBOARD_PATH = '/dashboard'
ONBOARDING_PATH = '/onboarding'


# ============================================================================
# SESSION
# ============================================================================

def login_user(identity: Dict[str, Any]):
    """Populate the session from UsersRepository.get_session_identity()"""
    session.clear()
    for key in SESSION_KEYS:
        session[key] = identity.get(key)
    session.permanent = True
    logger.info(f"User logged in: {identity.get('user_id')} (business {identity.get('business_id')})")


def logout_user():
    """Clear user session"""
    session.clear()


def refresh_session(**values):
    """Update identity fields of the current session (e.g. after onboarding)"""
    for key, value in values.items():
        if key in SESSION_KEYS:
            session[key] = value


def get_current_identity() -> Optional[Dict[str, Any]]:
    """Identity of the logged-in caller, or None"""
    if not is_authenticated():
        return None
    return {key: session.get(key) for key in SESSION_KEYS}


def is_authenticated():
    """Check if user is logged in"""
    return 'user_id' in session


def current_business_id() -> Optional[str]:
    return session.get('business_id')


def current_user_id() -> Optional[str]:
    return session.get('user_id')


# ============================================================================
# TENANT GUARD
# ============================================================================

def _deny(message: str, status: int):
    return jsonify({'success': False, 'error': message}), status


def tenant_required(role: str = None, business_arg: str = None):
    """
    Decorator to require a session bound to a business.

    Args:
        role: If set, the caller's role must equal it (401 otherwise)
        business_arg: Name of the URL argument holding the target business id;
                      it must equal the caller's business (403 otherwise)

    Usage:
        @bp.route('/api/businesses/<business_id>', methods=['PATCH'])
        @tenant_required(business_arg='business_id')
        def update_business(business_id):
            ...
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            business_id = current_business_id()
            if not business_id:
                return _deny('Unauthorized', 401)

            if role and session.get('role') != role:
                logger.warning(f"Role {session.get('role')} denied {request.method} {request.path}")
                return _deny('Unauthorized', 401)

            if business_arg and not ensure_same_tenant(kwargs.get(business_arg)):
                logger.warning(
                    f"Cross-tenant request blocked: business {business_id} -> "
                    f"{kwargs.get(business_arg)} on {request.path}"
                )
                return _deny('Forbidden', 403)

            return f(*args, **kwargs)
        return decorated_function
    return decorator


def ensure_same_tenant(resource_business_id: Optional[str]) -> bool:
    """True iff the resource belongs to the caller's business"""
    caller = current_business_id()
    return bool(caller) and caller == resource_business_id


# ============================================================================
# EDGE MIDDLEWARE
# ============================================================================

def is_public_path(path: str) -> bool:
    for route in PUBLIC_ROUTES:
        if route == '/':
            if path == '/':
                return True
        elif path == route or path.startswith(route + '/'):
            return True
    return False


def _propagate_tenant_headers():
    """Expose the caller's tenant as X-Business-Id / X-Business-Slug request headers"""
    business_id = session.get('business_id')
    business_slug = session.get('business_slug')
    if business_id:
        request.environ['HTTP_X_BUSINESS_ID'] = business_id
    if business_slug:
        request.environ['HTTP_X_BUSINESS_SLUG'] = business_slug


def register_edge_middleware(app):
    """
    Page-level gatekeeping run before every request.

    API paths are never redirected; the tenant guard answers them with JSON.
    """
    @app.before_request
    def edge_gate():
        path = request.path

        if is_authenticated():
            _propagate_tenant_headers()

        if path.startswith('/api/') or (is_public_path(path) and path not in AUTH_ROUTES):
            return None

        if not is_authenticated():
            if path in AUTH_ROUTES:
                return None
            return redirect(f"{SIGNIN_PATH}?callbackUrl={quote(path)}")

        if path in AUTH_ROUTES:
            return redirect(DASHBOARD_PATH)

        onboarded = bool(session.get('onboarding_completed'))

        if path.startswith(DASHBOARD_PATH) and not onboarded:
            return redirect(ONBOARDING_PATH)

        if path.startswith(ONBOARDING_PATH) and onboarded:
            return redirect(DASHBOARD_PATH)

        return None

    logger.info("Edge middleware registered")
