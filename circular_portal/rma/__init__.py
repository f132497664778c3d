# circular_portal/rma/__init__.py
from flask import Blueprint

rma_bp = Blueprint('rma_bp', __name__, url_prefix='/api/rma')
rma_requests_bp = Blueprint('rma_requests_bp', __name__, url_prefix='/api/rma-requests')
warranty_bp = Blueprint('warranty_bp', __name__, url_prefix='/api/warranty')

from . import rma_routes
from . import request_routes
from . import warranty_routes
