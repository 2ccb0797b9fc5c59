"""
storefront/catalog/validators.py
--------------------------------
Pure-Python validation for product payloads.
Each validate_* function returns a dict of field -> error_message;
an empty dict means all fields are valid.
"""
from datetime import datetime
from decimal import Decimal, InvalidOperation

from storefront.catalog.models import Category

DATE_FORMAT = '%Y-%m-%d'
CATEGORIES  = [c.value for c in Category]


def parse_date(raw):
    """'YYYY-MM-DD' → date; None/'' → None. Raises ValueError on bad input."""
    if raw is None or str(raw).strip() == '':
        return None
    return datetime.strptime(str(raw).strip(), DATE_FORMAT).date()


def _check_positive_int(data: dict, field: str, errors: dict) -> None:
    raw = data.get(field)
    try:
        value = int(str(raw).strip())
        if value <= 0:
            errors[field] = f'{field} must be a whole number greater than zero.'
    except (TypeError, ValueError):
        errors[field] = f'{field} must be a whole number greater than zero.'


def _check_date(data: dict, field: str, errors: dict) -> None:
    try:
        parse_date(data.get(field))
    except ValueError:
        errors[field] = f'{field} must be a valid date in the format YYYY-MM-DD.'


def validate_arrival(data: dict) -> dict:
    """
    Validate a product arrival payload:
        model, category, quantity, sellingPrice, [arrivalDate], [details]
    """
    errors = {}

    # ── model ────────────────────────────────────────────────────
    model = str(data.get('model') or '').strip()
    if not model:
        errors['model'] = 'Model is required.'
    elif len(model) > 200:
        errors['model'] = 'Model must be 200 characters or fewer.'

    # ── category ──────────────────────────────────────────────────
    if data.get('category') not in CATEGORIES:
        errors['category'] = f'Category must be one of {", ".join(CATEGORIES)}.'

    # ── quantity ──────────────────────────────────────────────────
    _check_positive_int(data, 'quantity', errors)

    # ── sellingPrice ──────────────────────────────────────────────
    price_raw = data.get('sellingPrice')
    if price_raw is None or str(price_raw).strip() == '':
        errors['sellingPrice'] = 'Selling price is required.'
    else:
        try:
            if Decimal(str(price_raw)) <= 0:
                errors['sellingPrice'] = 'Selling price must be greater than zero.'
        except InvalidOperation:
            errors['sellingPrice'] = 'Selling price must be a valid number.'

    # ── arrivalDate / details ─────────────────────────────────────
    _check_date(data, 'arrivalDate', errors)
    details = data.get('details')
    if details is not None and len(str(details)) > 500:
        errors['details'] = 'Details must be 500 characters or fewer.'

    return errors


def validate_stock_change(data: dict, date_field: str) -> dict:
    """Validate a restock / sale payload: quantity and an optional date."""
    errors = {}
    _check_positive_int(data, 'quantity', errors)
    _check_date(data, date_field, errors)
    return errors
