from flask import request, jsonify, g, current_app

from storefront import db
from storefront.reviews import reviews
from storefront.reviews.store import ReviewStore
from storefront.catalog.store import ProductCatalog
from storefront.auth.decorators import login_required, staff_required
from storefront.errors import UserNotCustomerError
from storefront.utils.db import transaction


def _store() -> ReviewStore:
    return ReviewStore(db.session, ProductCatalog(db.session))


def _require_customer():
    if not g.user.is_customer:
        raise UserNotCustomerError()


@reviews.route('/<model>', methods=['POST'])
@login_required
def add(model):
    """Review a product: {score: 1..5, comment}."""
    _require_customer()
    data = request.get_json(silent=True) or {}
    with transaction(db.session):
        _store().add_review(model, g.user, data.get('score'), data.get('comment'))
    current_app.logger.info(f"User {g.user.id} reviewed {model}")
    return '', 200


@reviews.route('/<model>', methods=['GET'])
@login_required
def index(model):
    return jsonify([r.to_dict() for r in _store().get_product_reviews(model)])


@reviews.route('/<model>', methods=['DELETE'])
@login_required
def delete(model):
    """Delete the logged-in customer's review of `model`."""
    _require_customer()
    with transaction(db.session):
        _store().delete_review(model, g.user)
    return '', 200


@reviews.route('/<model>/all', methods=['DELETE'])
@staff_required
def delete_for_product(model):
    with transaction(db.session):
        _store().delete_reviews_of_product(model)
    return '', 200


@reviews.route('', methods=['DELETE'])
@staff_required
def delete_all():
    with transaction(db.session):
        _store().delete_all_reviews()
    return '', 200
