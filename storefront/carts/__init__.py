from flask import Blueprint

carts = Blueprint('carts', __name__)

from storefront.carts import routes  # noqa: F401, E402
from storefront.carts import models  # noqa: F401, E402
