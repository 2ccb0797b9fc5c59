import click
from flask import Flask, jsonify, current_app
from flask_sqlalchemy import SQLAlchemy
from werkzeug.exceptions import HTTPException
from config import config

db = SQLAlchemy()


def create_app(config_name='default'):
    """Application factory: creates and configures the Flask app."""
    app = Flask(__name__)
    app.config.from_object(config[config_name])

    # ── Logging ───────────────────────────────────────────────────
    from storefront.utils.logging import setup_logging
    setup_logging(app)

    # ── Extensions ────────────────────────────────────────────────
    db.init_app(app)

    # ── Blueprints ────────────────────────────────────────────────
    from storefront.main import main as main_blueprint
    app.register_blueprint(main_blueprint)

    from storefront.auth import auth as auth_blueprint
    app.register_blueprint(auth_blueprint, url_prefix='/auth')

    from storefront.catalog import catalog as catalog_blueprint
    app.register_blueprint(catalog_blueprint, url_prefix='/products')

    from storefront.carts import carts as carts_blueprint
    app.register_blueprint(carts_blueprint, url_prefix='/cart')

    from storefront.reviews import reviews as reviews_blueprint
    app.register_blueprint(reviews_blueprint, url_prefix='/reviews')

    # ── Error Handlers ────────────────────────────────────────────
    register_error_handlers(app)

    # ── CLI Commands ──────────────────────────────────────────────
    register_commands(app)

    return app


def register_error_handlers(app):
    """Every error leaves the API as {"error": ..., "status": ...}; store errors add "kind"."""
    from storefront.errors import StoreError

    @app.errorhandler(StoreError)
    def store_error(e):
        if e.status_code >= 500:
            current_app.logger.error(f"{type(e).__name__} [{e.kind}]: {e.message}")
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def http_error(e):
        return jsonify({'error': e.description, 'status': e.code}), e.code

    @app.errorhandler(Exception)
    def internal_error(e):
        # Full traceback goes to the log, never to the caller
        current_app.logger.exception(f"Unhandled error: {e}")
        db.session.rollback()
        return jsonify({'error': 'Internal Server Error', 'status': 500}), 500


def register_commands(app):
    """Register custom Flask CLI commands."""

    @app.cli.command('init-db')
    def init_db():
        """Create all database tables."""
        db.create_all()
        click.echo('✅  Database tables created.')

    @app.cli.command('create-user')
    @click.option('--username', prompt='Username', help='Login name')
    @click.option('--name',     prompt='First name', help='First name')
    @click.option('--surname',  prompt='Surname',  help='Surname')
    @click.option('--role', type=click.Choice(['Customer', 'Manager', 'Admin']),
                  default='Customer', show_default=True)
    @click.option('--password', prompt=True, hide_input=True,
                  confirmation_prompt=True, help='Password')
    def create_user(username, name, surname, role, password):
        """Create a user with the given role."""
        from storefront.auth.models import User, RoleEnum

        if User.query.filter_by(username=username).first():
            click.echo(f'⚠️  User "{username}" already exists.')
            return

        user = User(username=username, name=name, surname=surname, role=RoleEnum(role))
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        click.echo(f'✅  {role} "{username}" created successfully.')

    @app.cli.command('seed-demo')
    def seed_demo():
        """Populate database with demo users and products."""
        from decimal import Decimal
        from storefront.auth.models import User, RoleEnum
        from storefront.catalog.store import ProductCatalog
        from storefront.catalog.models import Product

        click.echo("🌱 Seeding demo data...")
        db.create_all()

        demo_users = [
            ('admin',    'Admin',    'User',     RoleEnum.admin),
            ('manager',  'Mara',     'Manager',  RoleEnum.manager),
            ('customer', 'Carl',     'Customer', RoleEnum.customer),
        ]
        for username, name, surname, role in demo_users:
            if not User.query.filter_by(username=username).first():
                u = User(username=username, name=name, surname=surname, role=role)
                u.set_password('demo123')
                db.session.add(u)
        db.session.commit()
        click.echo("✅ Users created (admin, manager, customer / demo123).")

        if Product.query.count() == 0:
            catalog = ProductCatalog(db.session)
            demo_products = [
                ('iPhone 15',      'Smartphone', 20, '999.00'),
                ('Pixel 8',        'Smartphone', 15, '699.00'),
                ('ThinkPad X1',    'Laptop',     8,  '1899.00'),
                ('MacBook Air',    'Laptop',     10, '1199.00'),
                ('Dyson V15',      'Appliance',  5,  '649.00'),
                ('Espresso Pro',   'Appliance',  12, '349.00'),
            ]
            for model, category, qty, price in demo_products:
                catalog.register_arrival(model, category, qty, Decimal(price))
            db.session.commit()
            click.echo("✅ Products seeded.")

        click.echo("✅ Demo seed complete.")
