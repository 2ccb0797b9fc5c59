from datetime import datetime
from decimal import Decimal
from storefront import db


class Cart(db.Model):
    """
    A customer's shopping cart.

    At most one unpaid cart per customer exists at a time (the "current
    cart"); the partial unique index below enforces it at the database
    level. Paid carts are the purchase history and are never mutated.

    `total` is maintained incrementally: each add/remove applies the
    product's selling price *at that moment*. It is a snapshot, not a
    live price query.
    """
    __tablename__ = 'carts'

    id           = db.Column(db.Integer, primary_key=True)
    customer_id  = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    paid         = db.Column(db.Boolean, nullable=False, default=False)
    payment_date = db.Column(db.Date, nullable=True)
    total        = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal('0'))
    created_at   = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    # ── Relationships ─────────────────────────────────────────────
    customer = db.relationship('User', lazy='select')
    lines    = db.relationship('CartLine', backref='cart', lazy='select',
                               cascade='all, delete-orphan',
                               order_by='CartLine.id')

    __table_args__ = (
        db.Index('uq_carts_one_unpaid_per_customer', 'customer_id', unique=True,
                 sqlite_where=db.text('paid = 0'),
                 postgresql_where=db.text('paid = false')),
    )

    @property
    def is_empty(self) -> bool:
        return Decimal(str(self.total or 0)) == 0

    def to_dict(self) -> dict:
        return {
            'id':          self.id,
            'customer':    self.customer.username if self.customer else None,
            'paid':        bool(self.paid),
            'paymentDate': self.payment_date.isoformat() if self.payment_date else None,
            'total':       float(self.total or 0),
            'products':    [line.to_dict() for line in self.lines],
        }

    def __repr__(self):
        return f"<Cart {self.id} customer={self.customer_id} paid={self.paid} total={self.total}>"


class CartLine(db.Model):
    """One product inside a cart. Unique per (cart, product): adding again bumps quantity."""
    __tablename__ = 'cart_lines'

    id         = db.Column(db.Integer, primary_key=True)
    cart_id    = db.Column(db.Integer, db.ForeignKey('carts.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False, index=True)
    quantity   = db.Column(db.Integer, nullable=False, default=1)

    # ── Relationship ──────────────────────────────────────────────
    product = db.relationship('Product', lazy='select')

    __table_args__ = (
        db.UniqueConstraint('cart_id', 'product_id', name='uq_cart_line_product'),
        db.CheckConstraint('quantity >= 1', name='check_line_quantity_positive'),
    )

    def to_dict(self) -> dict:
        return {
            'model':    self.product.model,
            'quantity': self.quantity,
            'category': self.product.category.value,
            'price':    float(self.product.selling_price),
        }

    def __repr__(self):
        return f"<CartLine cart={self.cart_id} product={self.product_id} qty={self.quantity}>"
