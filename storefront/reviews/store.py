"""
storefront/reviews/store.py
---------------------------
ReviewStore: one review per (customer, product), score 1..5.
Product lookups go through the injected catalog. Flush only; callers commit.
"""
from datetime import date

from storefront.reviews.models import Review
from storefront.errors import ExistingReviewError, NoReviewProductError, InvalidInputError


class ReviewStore:

    def __init__(self, db_session, catalog):
        self.session = db_session
        self.catalog = catalog

    def _find(self, product, user):
        return (
            self.session.query(Review)
            .filter(Review.product_id == product.id, Review.user_id == user.id)
            .first()
        )

    def add_review(self, model: str, user, score, comment) -> Review:
        if not isinstance(score, int) or isinstance(score, bool) or not (1 <= score <= 5):
            raise InvalidInputError('Score must be between 1 and 5.')
        if not comment or not str(comment).strip():
            raise InvalidInputError('Comment cannot be empty.')

        product = self.catalog.get_product(model)
        if self._find(product, user) is not None:
            raise ExistingReviewError()

        review = Review(product=product, user=user, score=score,
                        comment=str(comment).strip(), date=date.today())
        self.session.add(review)
        self.session.flush()
        return review

    def get_product_reviews(self, model: str) -> list:
        product = self.catalog.get_product(model)
        return (
            self.session.query(Review)
            .filter(Review.product_id == product.id)
            .order_by(Review.date.desc(), Review.id.desc())
            .all()
        )

    def delete_review(self, model: str, user) -> None:
        product = self.catalog.get_product(model)
        review = self._find(product, user)
        if review is None:
            raise NoReviewProductError()
        self.session.delete(review)
        self.session.flush()

    def delete_reviews_of_product(self, model: str) -> int:
        product = self.catalog.get_product(model)
        deleted = (
            self.session.query(Review)
            .filter(Review.product_id == product.id)
            .delete(synchronize_session='fetch')
        )
        self.session.flush()
        return deleted

    def delete_all_reviews(self) -> int:
        deleted = self.session.query(Review).delete(synchronize_session='fetch')
        self.session.flush()
        return deleted
