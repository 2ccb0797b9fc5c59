"""
storefront/catalog/store.py
---------------------------
ProductCatalog: every read and write of product stock goes through here.

The catalog never commits. Callers open the transaction
(storefront.utils.db.transaction) and the catalog only flushes, so a stock
change and the cart write that caused it commit or roll back together.

Locking
───────
get_product(model, lock=True) issues SELECT … FOR UPDATE and refreshes the
row from the database (populate_existing), so the quantity a caller checks
is the current one. On SQLite the clause is a no-op and pysqlite opens the
transaction lazily, so a check can go stale; adjust_stock therefore writes
stock with a conditional UPDATE and never with a value read earlier.
"""
from datetime import date
from decimal import Decimal, InvalidOperation

from flask import current_app
from sqlalchemy import update

from storefront.catalog.models import Product, InventoryLog, Category
from storefront.errors import (
    ProductNotFoundError, ProductAlreadyExistsError, EmptyProductStockError,
    LowProductStockError, NegativeStockError, ProductInUseError, InvalidInputError,
)

GROUPINGS = ('category', 'model')


def _as_category(value) -> Category:
    if isinstance(value, Category):
        return value
    try:
        return Category(value)
    except ValueError:
        raise InvalidInputError(f'Invalid category: {value}')


def _as_positive_quantity(value) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise InvalidInputError('Quantity must be a whole number greater than zero.')
    return value


class ProductCatalog:
    """Product stock records and the operations that change them."""

    def __init__(self, db_session):
        self.session = db_session

    # ── Read ──────────────────────────────────────────────────────

    def get_product(self, model: str, lock: bool = False) -> Product:
        """Return the product for `model` or raise ProductNotFoundError."""
        query = self.session.query(Product).filter(Product.model == model)
        if lock:
            query = query.with_for_update().populate_existing()
        product = query.first()
        if product is None:
            raise ProductNotFoundError()
        return product

    def list_products(self, grouping=None, category=None, model=None,
                      available_only: bool = False) -> list:
        """
        All products, optionally narrowed by category or model.

          grouping=None        → category and model must be absent
          grouping='category'  → category required (valid), model absent
          grouping='model'     → model required, category absent;
                                 unknown model raises ProductNotFoundError
        available_only keeps products with quantity > 0.
        """
        if grouping not in (None,) + GROUPINGS:
            raise InvalidInputError('Invalid grouping parameter')

        query = self.session.query(Product)

        if grouping is None:
            if category is not None or model is not None:
                raise InvalidInputError('Category and model filters require a grouping')
        elif grouping == 'category':
            if category is None or model is not None:
                raise InvalidInputError('Grouping by category requires only a category')
            query = query.filter(Product.category == _as_category(category))
        else:
            if not model or category is not None:
                raise InvalidInputError('Grouping by model requires only a model')
            self.get_product(model)
            query = query.filter(Product.model == model)

        if available_only:
            query = query.filter(Product.quantity > 0)

        return query.order_by(Product.model.asc()).all()

    # ── Stock ─────────────────────────────────────────────────────

    def adjust_stock(self, model: str, delta: int, reason: str, changed_by=None) -> int:
        """
        Apply quantity += delta and log it. Returns the new quantity.

        The change is one conditional UPDATE evaluated by the database
        (quantity = quantity + delta WHERE quantity + delta >= 0), so two
        writers on the same product never overwrite each other, even on
        SQLite where FOR UPDATE is not emitted. A refused decrement raises
        NegativeStockError and leaves the row untouched.
        """
        product = self.get_product(model, lock=True)
        result  = self.session.execute(
            update(Product)
            .where(Product.id == product.id, Product.quantity + delta >= 0)
            .values(quantity=Product.quantity + delta)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            current_app.logger.error(
                f"Refused stock adjustment for {model}: {delta:+d} would leave a negative quantity"
            )
            raise NegativeStockError()

        # Re-read inside the transaction that now holds the write.
        self.session.refresh(product, attribute_names=['quantity'])
        new_stock = product.quantity
        self.session.add(InventoryLog(
            product_id=product.id,
            old_stock=new_stock - delta,
            new_stock=new_stock,
            changed_by=changed_by,
            reason=reason,
        ))
        self.session.flush()
        return new_stock

    def register_arrival(self, model: str, category, quantity: int, selling_price,
                         arrival_date=None, details=None, changed_by=None) -> Product:
        """Register a new product model with its first batch of units."""
        category = _as_category(category)
        quantity = _as_positive_quantity(quantity)
        try:
            selling_price = Decimal(str(selling_price))
        except InvalidOperation:
            raise InvalidInputError('Selling price must be a valid number.')
        if selling_price <= 0:
            raise InvalidInputError('Selling price must be greater than zero.')

        today = date.today()
        arrival_date = arrival_date or today
        if arrival_date > today:
            raise InvalidInputError('Arrival date cannot be after the current date')

        if self.session.query(Product.id).filter(Product.model == model).first():
            raise ProductAlreadyExistsError()

        product = Product(
            model=model,
            category=category,
            quantity=quantity,
            selling_price=selling_price,
            arrival_date=arrival_date,
            details=details or None,
        )
        self.session.add(product)
        self.session.flush()   # assigns product.id without committing

        self.session.add(InventoryLog(
            product_id=product.id,
            old_stock=0,
            new_stock=quantity,
            changed_by=changed_by,
            reason="Arrival (Product Registered)",
        ))
        current_app.logger.info(f"Arrival registered: {quantity} x {model} ({category.value})")
        return product

    def restock(self, model: str, quantity: int, change_date=None, changed_by=None) -> int:
        """Add `quantity` units of an existing model. Returns the new quantity."""
        product  = self.get_product(model, lock=True)
        quantity = _as_positive_quantity(quantity)
        self._check_date_window(product, change_date or date.today(), 'Change date')
        return self.adjust_stock(model, quantity, "Restock", changed_by=changed_by)

    def sell(self, model: str, quantity: int, selling_date=None, changed_by=None) -> int:
        """
        Manager-initiated sale that bypasses carts.
        Requires arrival_date <= selling_date <= today. Returns the new quantity.
        """
        product  = self.get_product(model, lock=True)
        quantity = _as_positive_quantity(quantity)

        if product.quantity == 0:
            raise EmptyProductStockError()
        if product.quantity < quantity:
            raise LowProductStockError()

        selling_date = selling_date or date.today()
        self._check_date_window(product, selling_date, 'Selling date')

        product.selling_date = selling_date
        remaining = self.adjust_stock(model, -quantity, "Direct Sale", changed_by=changed_by)
        current_app.logger.info(f"Direct sale: {quantity} x {model} on {selling_date} ({remaining} left)")
        return remaining

    @staticmethod
    def _check_date_window(product: Product, when: date, label: str) -> None:
        if when < product.arrival_date or when > date.today():
            raise InvalidInputError(
                f'{label} must be between the arrival date and the current date'
            )

    # ── Delete ────────────────────────────────────────────────────

    def _held_in_carts(self, product=None) -> bool:
        # Imported here: the carts package imports this module.
        from storefront.carts.models import CartLine

        query = self.session.query(CartLine.id)
        if product is not None:
            query = query.filter(CartLine.product_id == product.id)
        return query.first() is not None

    def delete_product(self, model: str) -> None:
        """Delete one product with its reviews and stock log."""
        product = self.get_product(model, lock=True)
        if self._held_in_carts(product):
            raise ProductInUseError()
        self.session.delete(product)
        self.session.flush()
        current_app.logger.info(f"Product deleted: {model}")

    def delete_all_products(self) -> int:
        """Delete every product. Carts must be purged first."""
        if self._held_in_carts():
            raise ProductInUseError()
        products = self.session.query(Product).all()
        for product in products:
            self.session.delete(product)
        self.session.flush()
        current_app.logger.info(f"All products deleted ({len(products)})")
        return len(products)
