"""
storefront/errors.py
--------------------
Domain error taxonomy.

Every error raised by the catalog, cart and review stores derives from
StoreError and carries:

    kind         stable machine-readable category (not_found, conflict, ...)
    status_code  HTTP status the API layer answers with
    message      human-readable text sent to the caller

The app factory registers one Flask error handler for StoreError, so routes
never translate errors by hand.
"""


class StoreError(Exception):
    """Base class for every domain error."""
    kind = 'internal'
    status_code = 500
    message = 'An error occurred'

    def __init__(self, message=None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {'error': self.message, 'status': self.status_code, 'kind': self.kind}


# ── Kinds ─────────────────────────────────────────────────────────

class NotFoundError(StoreError):
    kind = 'not_found'
    status_code = 404
    message = 'Resource not found'


class ConflictError(StoreError):
    kind = 'conflict'
    status_code = 409
    message = 'Conflict with the current state'


class InvalidInputError(StoreError):
    kind = 'invalid_input'
    status_code = 422
    message = 'The parameters are not formatted properly'

    def __init__(self, message=None, fields=None):
        super().__init__(message)
        self.fields = fields or {}

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.fields:
            body['fields'] = self.fields
        return body


class ForbiddenError(StoreError):
    kind = 'forbidden'
    status_code = 403
    message = 'Operation not allowed'


class UnauthenticatedError(StoreError):
    kind = 'unauthenticated'
    status_code = 401
    message = 'Unauthenticated user'


class StorageError(StoreError):
    """Unexpected database failure. Never exposes the driver message."""
    kind = 'internal'
    status_code = 500
    message = 'Internal Server Error'


# ── Products ──────────────────────────────────────────────────────

class ProductNotFoundError(NotFoundError):
    message = 'Product not found'


class ProductAlreadyExistsError(ConflictError):
    message = 'The product already exists'


class EmptyProductStockError(ConflictError):
    message = 'Product stock is empty'


class LowProductStockError(ConflictError):
    message = 'Product stock cannot satisfy the requested quantity'


class NegativeStockError(ConflictError):
    message = 'Stock adjustment would leave a negative quantity'


class ProductInUseError(ConflictError):
    message = 'Product is referenced by one or more carts'


# ── Carts ─────────────────────────────────────────────────────────

class CartNotFoundError(NotFoundError):
    message = 'Cart not found'


class ProductNotInCartError(NotFoundError):
    message = 'Product not in cart'


class EmptyCartError(InvalidInputError):
    status_code = 400
    message = 'Cart is empty'


# ── Reviews ───────────────────────────────────────────────────────

class ExistingReviewError(ConflictError):
    message = 'You have already reviewed this product'


class NoReviewProductError(NotFoundError):
    message = 'You have not reviewed this product'


# ── Users ─────────────────────────────────────────────────────────

class UserAlreadyExistsError(ConflictError):
    message = 'The chosen username already exists'


class UserNotCustomerError(ForbiddenError):
    message = 'This operation can be performed only by a customer'


class UserNotManagerError(ForbiddenError):
    message = 'This operation can be performed only by a manager'


class UserNotAdminError(ForbiddenError):
    message = 'This operation can be performed only by an admin'
