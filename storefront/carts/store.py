"""
storefront/carts/store.py
-------------------------
CartStore: carts, cart lines and the add / remove / clear / checkout
protocol against the product catalog.

Stock model
───────────
Units are reserved eagerly: add_line takes one unit out of
Product.quantity, remove_line and clear_cart put it back, checkout keeps it
out for good (sale finalised). Product.quantity is therefore the number of
units nobody holds.

Locking order (prevents deadlocks between concurrent requests)
──────────────────────────────────────────────────────────────
    1. the customer's unpaid cart row      SELECT … FOR UPDATE
    2. product rows, sorted by model       SELECT … FOR UPDATE

Every method only flushes; the caller's transaction commits or rolls back
the whole operation, so a failure never leaves a half-applied change.
"""
from datetime import date
from decimal import Decimal

from flask import current_app

from storefront.carts.models import Cart, CartLine
from storefront.errors import (
    CartNotFoundError, EmptyCartError, ProductNotInCartError, ProductNotFoundError,
    EmptyProductStockError,
)


class CartStore:

    def __init__(self, db_session, catalog):
        self.session = db_session
        self.catalog = catalog

    # ── Helpers ───────────────────────────────────────────────────

    def _current_cart(self, customer, lock: bool = False):
        """The customer's unpaid cart, or None."""
        query = self.session.query(Cart).filter(
            Cart.customer_id == customer.id,
            Cart.paid == False,  # noqa: E712
        )
        if lock:
            query = query.with_for_update().populate_existing()
        return query.first()

    def _find_line(self, cart: Cart, product):
        return (
            self.session.query(CartLine)
            .filter(CartLine.cart_id == cart.id, CartLine.product_id == product.id)
            .first()
        )

    @staticmethod
    def _lines_by_model(cart: Cart) -> list:
        lines = list(cart.lines)
        if any(line.product is None for line in lines):
            raise ProductNotFoundError()
        return sorted(lines, key=lambda line: line.product.model)

    # ── Read ──────────────────────────────────────────────────────

    def get_current_cart(self, customer) -> Cart:
        """
        The customer's unpaid cart with its lines when its total is > 0.
        Otherwise an empty cart that is never added to the session.
        """
        cart = self._current_cart(customer)
        if cart is None or cart.is_empty:
            return Cart(customer=customer, paid=False, payment_date=None, total=Decimal('0'))
        return cart

    def get_past_carts(self, customer) -> list:
        """All paid carts of the customer, oldest first."""
        return (
            self.session.query(Cart)
            .filter(Cart.customer_id == customer.id, Cart.paid == True)  # noqa: E712
            .order_by(Cart.payment_date.asc(), Cart.id.asc())
            .all()
        )

    def list_all_carts(self) -> list:
        return self.session.query(Cart).order_by(Cart.id.asc()).all()

    # ── Write ─────────────────────────────────────────────────────

    def add_line(self, customer, model: str) -> Cart:
        """
        Put one unit of `model` in the customer's current cart.

          1. unknown model        → ProductNotFoundError
          2. no units available   → EmptyProductStockError
          3. no current cart      → create it
          4. line exists          → quantity + 1, else new line (quantity 1)
          5. product stock        - 1
          6. cart total           + selling price
        """
        cart    = self._current_cart(customer, lock=True)
        product = self.catalog.get_product(model, lock=True)

        if product.quantity <= 0:
            raise EmptyProductStockError()

        if cart is None:
            cart = Cart(customer_id=customer.id, paid=False, total=Decimal('0'))
            self.session.add(cart)
            self.session.flush()   # assigns cart.id; unique index guards against a twin

        line = self._find_line(cart, product)
        if line is None:
            cart.lines.append(CartLine(product=product, quantity=1))
        else:
            line.quantity += 1

        self.catalog.adjust_stock(model, -1, "Reserved in cart", changed_by=customer.id)
        cart.total = Decimal(str(cart.total)) + Decimal(str(product.selling_price))
        self.session.flush()
        return cart

    def remove_line(self, customer, model: str) -> Cart:
        """
        Take one unit of `model` out of the current cart and back into stock.

          unknown model                  → ProductNotFoundError
          no current cart / cart empty   → CartNotFoundError
          model not in cart              → ProductNotInCartError
        """
        cart    = self._current_cart(customer, lock=True)
        product = self.catalog.get_product(model, lock=True)

        if cart is None or cart.is_empty:
            raise CartNotFoundError()

        line = self._find_line(cart, product)
        if line is None:
            raise ProductNotInCartError()

        if line.quantity == 1:
            cart.lines.remove(line)   # delete-orphan removes the row
        else:
            line.quantity -= 1

        self.catalog.adjust_stock(model, 1, "Released from cart", changed_by=customer.id)

        # The total uses today's price; it may have drifted since the add.
        # An empty cart owes nothing whatever the drift.
        if cart.lines:
            remaining = Decimal(str(cart.total)) - Decimal(str(product.selling_price))
            cart.total = max(remaining, Decimal('0'))
        else:
            cart.total = Decimal('0')
        self.session.flush()
        return cart

    def clear_cart(self, customer) -> Cart:
        """Empty the current cart, returning every reserved unit to stock."""
        cart = self._current_cart(customer, lock=True)
        if cart is None:
            raise CartNotFoundError()

        for line in self._lines_by_model(cart):
            self.catalog.adjust_stock(
                line.product.model, line.quantity,
                "Released from cart (cart cleared)", changed_by=customer.id,
            )
        cart.lines.clear()
        cart.total = Decimal('0')
        self.session.flush()
        return cart

    def checkout(self, customer) -> Cart:
        """
        Pay the current cart. All-or-nothing.

          no current cart   → CartNotFoundError
          total == 0        → EmptyCartError
          product deleted   → ProductNotFoundError
        """
        cart = self._current_cart(customer, lock=True)
        if cart is None:
            raise CartNotFoundError()
        if cart.is_empty:
            raise EmptyCartError()

        self._lock_products(cart)

        cart.paid         = True
        cart.payment_date = date.today()
        self.session.flush()
        current_app.logger.info(
            f"Cart {cart.id} checked out by customer {customer.id} | Total: {cart.total}"
        )
        return cart

    def _lock_products(self, cart: Cart) -> None:
        """
        Lock every product of the cart in model order before it is marked
        paid. Units left stock when they were added, so no stock check
        remains here: a quantity of 0 is the normal state after the last
        unit went into a cart. A product that no longer exists raises
        ProductNotFoundError.
        """
        for line in self._lines_by_model(cart):
            self.catalog.get_product(line.product.model, lock=True)

    # ── Admin ─────────────────────────────────────────────────────

    def delete_all_carts(self) -> int:
        """
        Purge every cart. Units still reserved by unpaid carts go back to
        stock; paid carts are history and hold no reservation.
        """
        carts = self.session.query(Cart).order_by(Cart.id.asc()).with_for_update().all()
        for cart in carts:
            if not cart.paid:
                for line in self._lines_by_model(cart):
                    self.catalog.adjust_stock(
                        line.product.model, line.quantity, "Released from cart (carts purged)",
                    )
            self.session.delete(cart)
        self.session.flush()
        return len(carts)
