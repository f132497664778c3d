# circular_portal/orders/__init__.py
from flask import Blueprint

orders_bp = Blueprint('orders_bp', __name__, url_prefix='/api/orders')
delivery_timeline_bp = Blueprint('delivery_timeline_bp', __name__, url_prefix='/api/delivery-timeline')

from . import routes
from . import timeline_routes
