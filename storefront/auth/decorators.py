"""
storefront/auth/decorators.py
-----------------------------
Reusable route-protection decorators.
Usage:
    from storefront.auth.decorators import login_required, staff_required

    @carts.route('')
    @login_required
    def current():
        ...

    @catalog.route('', methods=['DELETE'])
    @staff_required
    def delete_all():
        ...

The logged-in User row is loaded once per request into `g.user`
(see auth/routes.py). Failures raise StoreError subclasses, so the
JSON error handler answers 401 / 403.
"""
from functools import wraps
from flask import g

from storefront.errors import UnauthenticatedError, UserNotManagerError


def login_required(f):
    """Reject the request with 401 when nobody is logged in."""
    @wraps(f)
    def decorated(*args, **kwargs):
        if g.get('user') is None:
            raise UnauthenticatedError()
        return f(*args, **kwargs)
    return decorated


def staff_required(f):
    """
    Allow access only to managers and admins.
    Implies login_required: unauthenticated users receive 401.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        user = g.get('user')
        if user is None:
            raise UnauthenticatedError()
        if not (user.is_manager or user.is_admin):
            raise UserNotManagerError()
        return f(*args, **kwargs)
    return decorated
