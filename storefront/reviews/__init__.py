from flask import Blueprint

reviews = Blueprint('reviews', __name__)

from storefront.reviews import routes  # noqa: F401, E402
from storefront.reviews import models  # noqa: F401, E402
