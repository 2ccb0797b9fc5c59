"""
test_cart_store.py: Cart lifecycle: reservation, idempotent lines, checkout.

Runs the CartService / CartStore against SQLite in-memory.
Run: pytest test_cart_store.py -v
"""
import random
from datetime import date, timedelta
from decimal import Decimal

import pytest

from storefront import create_app, db
from storefront.auth.models import User, RoleEnum
from storefront.catalog.models import Product, Category, InventoryLog
from storefront.carts.models import Cart, CartLine
from storefront.carts.service import CartService
from storefront.errors import (
    ProductNotFoundError, EmptyProductStockError, CartNotFoundError, EmptyCartError,
    ProductNotInCartError, NegativeStockError, UserNotCustomerError, UserNotAdminError,
)


# ── Fixtures ──────────────────────────────────────────────────────

@pytest.fixture(scope='function')
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def service(app):
    return CartService(db.session)


def make_user(username='alice', role=RoleEnum.customer):
    u = User(username=username, name=username.title(), surname='Tester', role=role)
    u.set_password('secret')
    db.session.add(u)
    db.session.commit()
    return u


def make_product(model='P1', price='100.00', quantity=5, category=Category.smartphone):
    p = Product(
        model=model, category=category, selling_price=Decimal(price),
        quantity=quantity, arrival_date=date.today() - timedelta(days=30),
    )
    db.session.add(p)
    db.session.commit()
    return p


def stock(model):
    return Product.query.filter_by(model=model).one().quantity


# ── 1. Reference scenario ─────────────────────────────────────────

def test_add_add_remove_checkout_scenario(service):
    """P1 stock=5 price=100 through add, add, remove, checkout."""
    u = make_user()
    make_product('P1', '100.00', 5)

    service.add_product(u, 'P1')
    cart = service.current_cart(u)
    assert cart.total == Decimal('100')
    assert stock('P1') == 4

    service.add_product(u, 'P1')
    cart = service.current_cart(u)
    assert len(cart.lines) == 1
    assert cart.lines[0].quantity == 2
    assert cart.total == Decimal('200')
    assert stock('P1') == 3

    service.remove_product(u, 'P1')
    cart = service.current_cart(u)
    assert cart.lines[0].quantity == 1
    assert cart.total == Decimal('100')
    assert stock('P1') == 4

    service.checkout(u)
    history = service.history(u)
    assert len(history) == 1
    assert history[0].paid is True
    assert history[0].payment_date == date.today()
    assert stock('P1') == 4

    # Sale is final: no current cart, stock stays decremented
    assert service.current_cart(u).id is None
    assert stock('P1') == 4


def test_adding_twice_yields_one_line(service):
    u = make_user()
    make_product('P1')
    service.add_product(u, 'P1')
    service.add_product(u, 'P1')

    lines = CartLine.query.all()
    assert len(lines) == 1
    assert lines[0].quantity == 2


# ── 2. Rejections leave no trace ──────────────────────────────────

def test_add_empty_stock_rejected_without_state_change(service):
    u = make_user()
    make_product('P2', quantity=0)

    with pytest.raises(EmptyProductStockError):
        service.add_product(u, 'P2')

    assert Cart.query.count() == 0
    assert CartLine.query.count() == 0
    assert stock('P2') == 0


def test_add_unknown_product(service):
    u = make_user()
    with pytest.raises(ProductNotFoundError):
        service.add_product(u, 'nope')
    assert Cart.query.count() == 0


def test_failed_add_leaves_no_partial_state(service, monkeypatch):
    """A failure after the line insert rolls back cart, line and stock together."""
    u = make_user()
    make_product('P1', quantity=5)

    def refuse(*args, **kwargs):
        raise NegativeStockError()

    monkeypatch.setattr(service.catalog, 'adjust_stock', refuse)

    with pytest.raises(NegativeStockError):
        service.add_product(u, 'P1')

    assert Cart.query.count() == 0
    assert CartLine.query.count() == 0
    assert stock('P1') == 5


# ── 3. Round trip ─────────────────────────────────────────────────

def test_add_then_remove_restores_state(service):
    u = make_user()
    make_product('P1', quantity=5)

    service.add_product(u, 'P1')
    service.remove_product(u, 'P1')

    cart = service.current_cart(u)
    assert cart.total == 0
    assert cart.lines == []
    assert stock('P1') == 5
    assert CartLine.query.count() == 0


# ── 4. Remove errors ──────────────────────────────────────────────

def test_remove_error_precedence(service):
    u = make_user()
    make_product('P1')
    make_product('P2')

    with pytest.raises(ProductNotFoundError):
        service.remove_product(u, 'ghost')

    with pytest.raises(CartNotFoundError):
        service.remove_product(u, 'P1')

    service.add_product(u, 'P1')
    with pytest.raises(ProductNotInCartError):
        service.remove_product(u, 'P2')

    # cart emptied again → treated as no cart
    service.remove_product(u, 'P1')
    with pytest.raises(CartNotFoundError):
        service.remove_product(u, 'P1')


# ── 5. Clear ──────────────────────────────────────────────────────

def test_clear_cart_returns_stock(service):
    u = make_user()
    make_product('P1', '100.00', 5)
    make_product('P2', '50.00', 3)

    service.add_product(u, 'P1')
    service.add_product(u, 'P1')
    service.add_product(u, 'P2')
    assert stock('P1') == 3
    assert stock('P2') == 2

    service.clear(u)

    assert stock('P1') == 5
    assert stock('P2') == 3
    assert CartLine.query.count() == 0
    unpaid = Cart.query.filter_by(paid=False).one()
    assert unpaid.total == 0


def test_clear_without_cart(service):
    u = make_user()
    with pytest.raises(CartNotFoundError):
        service.clear(u)


# ── 6. Checkout ───────────────────────────────────────────────────

def test_checkout_without_cart(service):
    u = make_user()
    with pytest.raises(CartNotFoundError):
        service.checkout(u)


def test_checkout_empty_cart_never_touches_stock(service):
    u = make_user()
    make_product('P1', quantity=5)
    service.add_product(u, 'P1')
    service.remove_product(u, 'P1')
    logs_before = InventoryLog.query.count()

    with pytest.raises(EmptyCartError):
        service.checkout(u)

    assert stock('P1') == 5
    assert InventoryLog.query.count() == logs_before
    assert Cart.query.filter_by(paid=True).count() == 0


def test_second_checkout_is_cart_not_found(service):
    u = make_user()
    make_product('P1')
    service.add_product(u, 'P1')
    service.checkout(u)

    with pytest.raises(CartNotFoundError):
        service.checkout(u)
    assert Cart.query.filter_by(paid=True).count() == 1


def test_checkout_last_units(service):
    """Reserving the last unit must not block paying for it."""
    u = make_user()
    make_product('P1', quantity=1)
    service.add_product(u, 'P1')
    assert stock('P1') == 0

    service.checkout(u)
    assert service.history(u)[0].paid is True
    assert stock('P1') == 0


def test_checkout_locks_products_without_touching_stock(service, monkeypatch):
    """Checkout locks each product in model order; stock already left at add time."""
    u = make_user()
    make_product('B2')
    make_product('A1')
    service.add_product(u, 'B2')
    service.add_product(u, 'A1')

    Product.query.filter_by(model='A1').one().quantity = 0
    db.session.commit()

    locked = []
    get_product = service.catalog.get_product

    def recording_get_product(model, lock=False):
        if lock:
            locked.append(model)
        return get_product(model, lock=lock)

    monkeypatch.setattr(service.catalog, 'get_product', recording_get_product)
    logs_before = InventoryLog.query.count()

    service.checkout(u)

    assert locked == ['A1', 'B2']
    assert InventoryLog.query.count() == logs_before
    assert stock('A1') == 0
    assert stock('B2') == 4
    assert service.history(u)[0].paid is True


def test_new_cart_after_checkout(service):
    u = make_user()
    make_product('P1')
    service.add_product(u, 'P1')
    first = service.checkout(u).id

    service.add_product(u, 'P1')
    current = service.current_cart(u)
    assert current.id != first
    assert current.total == Decimal('100')
    assert Cart.query.filter_by(customer_id=u.id, paid=False).count() == 1


def test_total_is_a_price_snapshot(service):
    u = make_user()
    p = make_product('P1', '100.00')
    service.add_product(u, 'P1')

    p.selling_price = Decimal('150.00')
    db.session.commit()

    assert service.current_cart(u).total == Decimal('100')


# ── 7. Roles & admin ──────────────────────────────────────────────

def test_cart_operations_require_customer(service):
    manager = make_user('mara', RoleEnum.manager)
    make_product('P1')
    with pytest.raises(UserNotCustomerError):
        service.add_product(manager, 'P1')
    assert stock('P1') == 5


def test_admin_operations_require_admin(service):
    u = make_user()
    with pytest.raises(UserNotAdminError):
        service.purge(u)
    with pytest.raises(UserNotAdminError):
        service.all_carts(u)


def test_history_and_all_carts(service):
    alice = make_user('alice')
    bob   = make_user('bob')
    admin = make_user('root', RoleEnum.admin)
    make_product('P1', '100.00', 10)
    make_product('P2', '50.00', 10)

    service.add_product(alice, 'P1')
    service.checkout(alice)
    service.add_product(alice, 'P2')
    service.add_product(alice, 'P2')
    service.checkout(alice)
    service.add_product(bob, 'P1')

    history = service.history(alice)
    assert [c.total for c in history] == [Decimal('100'), Decimal('100')]
    assert [line.product.model for line in history[1].lines] == ['P2']
    assert history[1].lines[0].quantity == 2

    everything = service.all_carts(admin)
    assert len(everything) == 3
    assert service.history(bob) == []


def test_purge_returns_reserved_units(service):
    alice = make_user('alice')
    admin = make_user('root', RoleEnum.admin)
    make_product('P1', quantity=5)

    service.add_product(alice, 'P1')
    service.checkout(alice)           # 1 unit sold for good
    service.add_product(alice, 'P1')  # 1 unit reserved
    assert stock('P1') == 3

    assert service.purge(admin) == 2
    assert Cart.query.count() == 0
    assert CartLine.query.count() == 0
    assert stock('P1') == 4


# ── 8. Stock never goes negative ──────────────────────────────────

def test_random_sequences_keep_stock_consistent(service):
    """
    After any mix of add/remove/clear/checkout:
      stock >= 0   and   stock + reserved + sold == initial stock
    """
    rng = random.Random(7)
    customers = [make_user(f'user{i}') for i in range(3)]
    initial = {'A': 3, 'B': 1, 'C': 0}
    for model, qty in initial.items():
        make_product(model, '10.00', qty)

    operations = [
        lambda u, m: service.add_product(u, m),
        lambda u, m: service.add_product(u, m),
        lambda u, m: service.remove_product(u, m),
        lambda u, m: service.clear(u),
        lambda u, m: service.checkout(u),
    ]
    for _ in range(150):
        op = rng.choice(operations)
        try:
            op(rng.choice(customers), rng.choice(list(initial)))
        except (EmptyProductStockError, CartNotFoundError, EmptyCartError,
                ProductNotInCartError):
            pass

    for model, qty in initial.items():
        product = Product.query.filter_by(model=model).one()
        held = sum(
            line.quantity
            for line in CartLine.query.filter_by(product_id=product.id).all()
        )
        assert product.quantity >= 0
        assert product.quantity + held == qty
