from datetime import date
from storefront import db


class Review(db.Model):
    """One customer's review of one product model."""
    __tablename__ = 'reviews'

    id         = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id    = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    score      = db.Column(db.Integer, nullable=False)
    comment    = db.Column(db.Text, nullable=False)
    date       = db.Column(db.Date, nullable=False, default=date.today)

    # ── Relationships ─────────────────────────────────────────────
    product = db.relationship('Product', backref=db.backref('reviews', lazy='select',
                                                            cascade='all, delete-orphan'))
    user    = db.relationship('User', lazy='select')

    __table_args__ = (
        db.UniqueConstraint('product_id', 'user_id', name='uq_review_product_user'),
        db.CheckConstraint('score >= 1 AND score <= 5', name='check_score_range'),
    )

    def to_dict(self) -> dict:
        return {
            'model':   self.product.model,
            'user':    self.user.username,
            'score':   self.score,
            'date':    self.date.isoformat(),
            'comment': self.comment,
        }

    def __repr__(self):
        return f"<Review product={self.product_id} user={self.user_id} score={self.score}>"
