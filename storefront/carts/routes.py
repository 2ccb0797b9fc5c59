"""
storefront/carts/routes.py
--------------------------
JSON endpoints for the customer's cart. Mounted at /cart.

Role checks live in CartService; the routes only require a login,
unpack the request and render the result.
"""
from flask import request, jsonify, g

from storefront import db
from storefront.carts import carts
from storefront.carts.service import CartService
from storefront.auth.decorators import login_required
from storefront.errors import InvalidInputError


def _service() -> CartService:
    return CartService(db.session)


# ── CURRENT CART ──────────────────────────────────────────────────

@carts.route('', methods=['GET'])
@login_required
def current():
    """The logged-in customer's current cart (empty cart when there is none)."""
    cart = _service().current_cart(g.user)
    return jsonify(cart.to_dict())


@carts.route('', methods=['POST'])
@login_required
def add_product():
    """Add one unit of `model` to the current cart."""
    data  = request.get_json(silent=True) or request.form.to_dict()
    model = str(data.get('model') or '').strip()
    if not model:
        raise InvalidInputError(fields={'model': 'Model is required.'})

    _service().add_product(g.user, model)
    return '', 200


@carts.route('', methods=['PATCH'])
@login_required
def checkout():
    """Pay the current cart."""
    _service().checkout(g.user)
    return '', 200


@carts.route('/history', methods=['GET'])
@login_required
def history():
    """Paid carts of the logged-in customer."""
    return jsonify([cart.to_dict() for cart in _service().history(g.user)])


@carts.route('/products/<model>', methods=['DELETE'])
@login_required
def remove_product(model):
    """Remove one unit of `model` from the current cart."""
    _service().remove_product(g.user, model)
    return '', 200


@carts.route('/current', methods=['DELETE'])
@login_required
def clear():
    """Empty the current cart."""
    _service().clear(g.user)
    return '', 200


# ── ADMIN ─────────────────────────────────────────────────────────

@carts.route('', methods=['DELETE'])
@login_required
def purge():
    """Delete every cart of every customer."""
    _service().purge(g.user)
    return '', 200


@carts.route('/all', methods=['GET'])
@login_required
def all_carts():
    """Every cart of every customer."""
    return jsonify([cart.to_dict() for cart in _service().all_carts(g.user)])
