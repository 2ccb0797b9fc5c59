import enum
from datetime import datetime
from storefront import db


class Category(enum.Enum):
    smartphone = "Smartphone"
    laptop     = "Laptop"
    appliance  = "Appliance"


class Product(db.Model):
    """
    One product model offered by the store.

    `quantity` is the number of units still available. It is shared mutable
    state: cart additions reserve units by decrementing it, removals give
    them back, checkout leaves it decremented for good.
    """
    __tablename__ = 'products'

    id            = db.Column(db.Integer, primary_key=True)
    model         = db.Column(db.String(200), unique=True, nullable=False, index=True)
    category      = db.Column(db.Enum(Category), nullable=False, index=True)
    selling_price = db.Column(db.Numeric(10, 2), nullable=False)
    quantity      = db.Column(db.Integer, nullable=False, default=0)
    arrival_date  = db.Column(db.Date, nullable=False)
    selling_date  = db.Column(db.Date, nullable=True)    # last direct sale
    details       = db.Column(db.String(500), nullable=True)
    updated_at    = db.Column(
        db.DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow
    )

    __table_args__ = (
        db.CheckConstraint('quantity >= 0', name='check_quantity_non_negative'),
        db.CheckConstraint('selling_price > 0', name='check_selling_price_positive'),
    )

    def to_dict(self) -> dict:
        return {
            'model':        self.model,
            'category':     self.category.value,
            'sellingPrice': float(self.selling_price),
            'quantity':     self.quantity,
            'arrivalDate':  self.arrival_date.isoformat() if self.arrival_date else None,
            'sellingDate':  self.selling_date.isoformat() if self.selling_date else None,
            'details':      self.details,
        }

    def __repr__(self):
        return f"<Product {self.model!r} qty={self.quantity}>"


class InventoryLog(db.Model):
    """
    Audit trail for stock changes.
    Tracks old vs new stock, who changed it, and why.
    """
    __tablename__ = 'inventory_logs'

    id          = db.Column(db.Integer, primary_key=True)
    product_id  = db.Column(db.Integer, db.ForeignKey('products.id', ondelete='CASCADE'), nullable=False, index=True)
    old_stock   = db.Column(db.Integer, nullable=False)
    new_stock   = db.Column(db.Integer, nullable=False)
    changed_by  = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    reason      = db.Column(db.String(255), nullable=False)
    timestamp   = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)

    # ── Relationships ─────────────────────────────────────────────
    product = db.relationship('Product', backref=db.backref('logs', lazy='select',
                                                            cascade='all, delete-orphan'))

    def __repr__(self):
        return f"<Log Product:{self.product_id} {self.old_stock}->{self.new_stock} ({self.reason})>"
