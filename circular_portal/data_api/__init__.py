# circular_portal/data_api/__init__.py
# Endpoints external systems use to push users, orders, RMAs and warranties.
from flask import Blueprint

data_api_bp = Blueprint('data_api_bp', __name__, url_prefix='/api/data')

from . import routes
