"""Middleware for authentication context."""
from functools import wraps
from flask import current_app, g, jsonify, session
from quotedesk.database import get_session
from quotedesk.services.catalog_store import find_user_by_id


def load_user():
    """
    Load current user into g (Flask's per-request global).

    Called before each request. Sets g.user when the session carries the
    id of an active user.
    """
    g.user = None

    try:
        user_id = session.get('user_id')
        if user_id:
            db_session = get_session()
            if not db_session:
                return
            g.user = find_user_by_id(db_session, user_id)
    except Exception as e:
        # Avoid crashing the whole app if context loading fails
        current_app.logger.error(f"Error in load_user: {e}")


def require_login(f):
    """Decorator: reject anonymous requests with a JSON 401."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('user') is None:
            return jsonify({'status': 'error', 'message': 'Authentication required'}), 401
        return f(*args, **kwargs)
    return decorated_function



def require_admin(f):
    """Decorator: only admin and super_admin users."""
    @wraps(f)
    @require_login
    def decorated_function(*args, **kwargs):
        if not g.user.is_admin:
            return jsonify({'status': 'error', 'message': 'Admin access required'}), 403
        return f(*args, **kwargs)
    return decorated_function
