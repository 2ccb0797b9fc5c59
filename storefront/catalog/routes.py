from flask import request, jsonify, g

from storefront import db
from storefront.catalog import catalog
from storefront.catalog.store import ProductCatalog
from storefront.catalog.validators import validate_arrival, validate_stock_change, parse_date
from storefront.auth.decorators import login_required, staff_required
from storefront.errors import InvalidInputError
from storefront.utils.db import transaction


def _payload() -> dict:
    return request.get_json(silent=True) or request.form.to_dict()


def _filters():
    """grouping / category / model query parameters, blanks treated as absent."""
    args = request.args
    return (
        args.get('grouping') or None,
        args.get('category') or None,
        args.get('model') or None,
    )


# ── ARRIVALS ──────────────────────────────────────────────────────────────────

@catalog.route('', methods=['POST'])
@staff_required
def register_arrival():
    """Register a new product model with its initial quantity."""
    data = _payload()
    errors = validate_arrival(data)
    if errors:
        raise InvalidInputError(fields=errors)

    with transaction(db.session):
        product = ProductCatalog(db.session).register_arrival(
            model=str(data['model']).strip(),
            category=data['category'],
            quantity=int(data['quantity']),
            selling_price=data['sellingPrice'],
            arrival_date=parse_date(data.get('arrivalDate')),
            details=data.get('details'),
            changed_by=g.user.id,
        )
    return jsonify(product.to_dict()), 200


# ── STOCK CHANGES ─────────────────────────────────────────────────────────────

@catalog.route('/<model>', methods=['PATCH'])
@staff_required
def restock(model):
    """Add units to an existing product. Returns the new quantity."""
    data = _payload()
    errors = validate_stock_change(data, 'changeDate')
    if errors:
        raise InvalidInputError(fields=errors)

    with transaction(db.session):
        quantity = ProductCatalog(db.session).restock(
            model, int(data['quantity']),
            change_date=parse_date(data.get('changeDate')),
            changed_by=g.user.id,
        )
    return jsonify({'quantity': quantity})


@catalog.route('/<model>/sell', methods=['PATCH'])
@staff_required
def sell(model):
    """Direct sale that bypasses carts. Returns the remaining quantity."""
    data = _payload()
    errors = validate_stock_change(data, 'sellingDate')
    if errors:
        raise InvalidInputError(fields=errors)

    with transaction(db.session):
        quantity = ProductCatalog(db.session).sell(
            model, int(data['quantity']),
            selling_date=parse_date(data.get('sellingDate')),
            changed_by=g.user.id,
        )
    return jsonify({'quantity': quantity})


# ── LIST ──────────────────────────────────────────────────────────────────────

@catalog.route('', methods=['GET'])
@staff_required
def index():
    """All products, optionally grouped by category or model."""
    grouping, category, model = _filters()
    products = ProductCatalog(db.session).list_products(grouping, category, model)
    return jsonify([p.to_dict() for p in products])


@catalog.route('/available', methods=['GET'])
@login_required
def available():
    """Products with at least one unit available."""
    grouping, category, model = _filters()
    products = ProductCatalog(db.session).list_products(
        grouping, category, model, available_only=True
    )
    return jsonify([p.to_dict() for p in products])


@catalog.route('/<model>', methods=['GET'])
@login_required
def detail(model):
    return jsonify(ProductCatalog(db.session).get_product(model).to_dict())


# ── DELETE ────────────────────────────────────────────────────────────────────

@catalog.route('/<model>', methods=['DELETE'])
@staff_required
def delete(model):
    with transaction(db.session):
        ProductCatalog(db.session).delete_product(model)
    return '', 200


@catalog.route('', methods=['DELETE'])
@staff_required
def delete_all():
    with transaction(db.session):
        ProductCatalog(db.session).delete_all_products()
    return '', 200
