"""
test_catalog.py: Product arrivals, restock, direct sales, listing and deletion.

Run: pytest test_catalog.py -v
"""
from datetime import date, timedelta
from decimal import Decimal

import pytest

from storefront import create_app, db
from storefront.auth.models import User, RoleEnum
from storefront.catalog.store import ProductCatalog
from storefront.catalog.models import Product, Category, InventoryLog
from storefront.errors import NegativeStockError, ProductNotFoundError, InvalidInputError


TODAY    = date.today()
ARRIVED  = TODAY - timedelta(days=10)


@pytest.fixture(scope='function')
def client():
    app = create_app('testing')
    with app.app_context():
        db.create_all()

        for username, role in [('mara', RoleEnum.manager), ('alice', RoleEnum.customer)]:
            u = User(username=username, name=username.title(), surname='Tester', role=role)
            u.set_password('secret')
            db.session.add(u)

        db.session.add_all([
            Product(model='P1', category=Category.smartphone, selling_price=Decimal('100.00'),
                    quantity=5, arrival_date=ARRIVED),
            Product(model='L1', category=Category.laptop, selling_price=Decimal('900.00'),
                    quantity=0, arrival_date=ARRIVED),
        ])
        db.session.commit()

        yield app.test_client()
        db.session.remove()
        db.drop_all()


def login(client, username):
    resp = client.post('/auth/login', json={'username': username, 'password': 'secret'})
    assert resp.status_code == 200


def arrival(**overrides):
    payload = {
        'model': 'X1', 'category': 'Appliance', 'quantity': 4,
        'sellingPrice': 249.99, 'arrivalDate': ARRIVED.isoformat(), 'details': 'Blender',
    }
    payload.update(overrides)
    return payload


# ── Arrivals ──────────────────────────────────────────────────────

def test_register_arrival(client):
    login(client, 'mara')
    resp = client.post('/products', json=arrival())
    assert resp.status_code == 200
    body = resp.get_json()
    assert body == {
        'model': 'X1', 'category': 'Appliance', 'sellingPrice': 249.99, 'quantity': 4,
        'arrivalDate': ARRIVED.isoformat(), 'sellingDate': None, 'details': 'Blender',
    }

    log = InventoryLog.query.join(Product).filter(Product.model == 'X1').one()
    assert (log.old_stock, log.new_stock) == (0, 4)


def test_register_arrival_errors(client):
    login(client, 'mara')

    assert client.post('/products', json=arrival(model='P1')).status_code == 409

    resp = client.post('/products', json=arrival(category='Tablet', quantity=0))
    assert resp.status_code == 422
    assert set(resp.get_json()['fields']) == {'category', 'quantity'}

    future = (TODAY + timedelta(days=1)).isoformat()
    assert client.post('/products', json=arrival(arrivalDate=future)).status_code == 422
    assert client.post('/products', json=arrival(arrivalDate='10/01/2024')).status_code == 422
    assert client.post('/products', json=arrival(sellingPrice='free')).status_code == 422


def test_register_arrival_numeric_model(client):
    login(client, 'mara')
    resp = client.post('/products', json=arrival(model=123))
    assert resp.status_code == 200
    assert resp.get_json()['model'] == '123'
    assert client.get('/products/123').get_json()['quantity'] == 4


def test_register_arrival_requires_staff(client):
    assert client.post('/products', json=arrival()).status_code == 401
    login(client, 'alice')
    assert client.post('/products', json=arrival()).status_code == 403
    assert Product.query.filter_by(model='X1').first() is None


# ── Stock changes ─────────────────────────────────────────────────

def test_restock(client):
    login(client, 'mara')
    resp = client.patch('/products/P1', json={'quantity': 3})
    assert resp.status_code == 200
    assert resp.get_json() == {'quantity': 8}

    assert client.patch('/products/ghost', json={'quantity': 3}).status_code == 404
    assert client.patch('/products/P1', json={'quantity': -1}).status_code == 422
    before = (ARRIVED - timedelta(days=1)).isoformat()
    assert client.patch('/products/P1', json={'quantity': 1, 'changeDate': before}).status_code == 422


def test_sell(client):
    login(client, 'mara')
    resp = client.patch('/products/P1/sell', json={'quantity': 2, 'sellingDate': TODAY.isoformat()})
    assert resp.status_code == 200
    assert resp.get_json() == {'quantity': 3}
    assert Product.query.filter_by(model='P1').one().selling_date == TODAY


def test_sell_errors(client):
    login(client, 'mara')
    resp = client.patch('/products/P1/sell', json={'quantity': 6})
    assert resp.status_code == 409
    assert 'cannot satisfy' in resp.get_json()['error']

    resp = client.patch('/products/L1/sell', json={'quantity': 1})
    assert resp.status_code == 409
    assert resp.get_json()['error'] == 'Product stock is empty'

    too_early = (ARRIVED - timedelta(days=1)).isoformat()
    assert client.patch('/products/P1/sell', json={'quantity': 1, 'sellingDate': too_early}).status_code == 422
    too_late = (TODAY + timedelta(days=1)).isoformat()
    assert client.patch('/products/P1/sell', json={'quantity': 1, 'sellingDate': too_late}).status_code == 422

    assert Product.query.filter_by(model='P1').one().quantity == 5


def test_adjust_stock_refuses_negative(client):
    catalog = ProductCatalog(db.session)
    assert catalog.adjust_stock('P1', -5, 'Test drain') == 0
    with pytest.raises(NegativeStockError):
        catalog.adjust_stock('P1', -1, 'Test drain')
    db.session.rollback()
    with pytest.raises(ProductNotFoundError):
        catalog.adjust_stock('ghost', 1, 'Test')


# ── Listing ───────────────────────────────────────────────────────

def test_list_products(client):
    login(client, 'mara')
    models = [p['model'] for p in client.get('/products').get_json()]
    assert models == ['L1', 'P1']

    resp = client.get('/products?grouping=category&category=Laptop')
    assert [p['model'] for p in resp.get_json()] == ['L1']

    resp = client.get('/products?grouping=model&model=P1')
    assert [p['model'] for p in resp.get_json()] == ['P1']


def test_list_products_validation(client):
    login(client, 'mara')
    assert client.get('/products?grouping=price').status_code == 422
    assert client.get('/products?category=Laptop').status_code == 422
    assert client.get('/products?grouping=category').status_code == 422
    assert client.get('/products?grouping=category&category=Tablet').status_code == 422
    assert client.get('/products?grouping=model&model=P1&category=Laptop').status_code == 422
    assert client.get('/products?grouping=model&model=ghost').status_code == 404


def test_available_products_for_customers(client):
    login(client, 'alice')
    assert client.get('/products').status_code == 403

    resp = client.get('/products/available')
    assert resp.status_code == 200
    assert [p['model'] for p in resp.get_json()] == ['P1']

    assert client.get('/products/available?grouping=category&category=Laptop').get_json() == []
    assert client.get('/products/P1').get_json()['quantity'] == 5
    assert client.get('/products/ghost').status_code == 404


def test_list_products_rejects_bad_category_directly(client):
    with pytest.raises(InvalidInputError):
        ProductCatalog(db.session).list_products('category', 'Tablet')


# ── Deletion ──────────────────────────────────────────────────────

def test_delete_product(client):
    login(client, 'mara')
    assert client.delete('/products/L1').status_code == 200
    assert client.get('/products/L1').status_code == 404
    assert client.delete('/products/L1').status_code == 404


def test_delete_product_held_in_cart(client):
    login(client, 'alice')
    client.post('/cart', json={'model': 'P1'})

    login(client, 'mara')
    assert client.delete('/products/P1').status_code == 409
    assert client.delete('/products').status_code == 409
    assert Product.query.count() == 2


def test_delete_all_products(client):
    login(client, 'mara')
    assert client.delete('/products').status_code == 200
    assert Product.query.count() == 0
    assert InventoryLog.query.count() == 0
