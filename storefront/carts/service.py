"""
storefront/carts/service.py
---------------------------
CartService: the façade the HTTP layer talks to.

  • checks the caller's role (customers own carts, admins purge/list them)
  • runs each store operation in exactly one transaction
  • leaves domain errors untouched and turns unexpected database errors
    into StorageError (see storefront.utils.db.transaction)

It holds no state of its own beyond the stores it wires together.
"""
from flask import current_app

from storefront.carts.store import CartStore
from storefront.catalog.store import ProductCatalog
from storefront.errors import UnauthenticatedError, UserNotCustomerError, UserNotAdminError
from storefront.utils.db import transaction


class CartService:

    def __init__(self, db_session, catalog=None):
        self.session = db_session
        self.catalog = catalog or ProductCatalog(db_session)
        self.store   = CartStore(db_session, self.catalog)

    # ── Role checks ───────────────────────────────────────────────

    @staticmethod
    def _require_customer(user) -> None:
        if user is None:
            raise UnauthenticatedError()
        if not user.is_customer:
            raise UserNotCustomerError()

    @staticmethod
    def _require_admin(user) -> None:
        if user is None:
            raise UnauthenticatedError()
        if not user.is_admin:
            raise UserNotAdminError()

    # ── Customer operations ───────────────────────────────────────

    def current_cart(self, user):
        self._require_customer(user)
        with transaction(self.session):
            return self.store.get_current_cart(user)

    def history(self, user) -> list:
        self._require_customer(user)
        with transaction(self.session):
            return self.store.get_past_carts(user)

    def add_product(self, user, model: str):
        self._require_customer(user)
        with transaction(self.session):
            cart = self.store.add_line(user, model)
        current_app.logger.info(f"User {user.id} added {model} to cart {cart.id}")
        return cart

    def remove_product(self, user, model: str):
        self._require_customer(user)
        with transaction(self.session):
            cart = self.store.remove_line(user, model)
        current_app.logger.info(f"User {user.id} removed {model} from cart {cart.id}")
        return cart

    def clear(self, user):
        self._require_customer(user)
        with transaction(self.session):
            return self.store.clear_cart(user)

    def checkout(self, user):
        self._require_customer(user)
        with transaction(self.session):
            return self.store.checkout(user)

    # ── Admin operations ──────────────────────────────────────────

    def all_carts(self, user) -> list:
        self._require_admin(user)
        with transaction(self.session):
            return self.store.list_all_carts()

    def purge(self, user) -> int:
        self._require_admin(user)
        with transaction(self.session):
            deleted = self.store.delete_all_carts()
        current_app.logger.info(f"Admin {user.id} purged {deleted} carts")
        return deleted
