# circular_portal/impact/__init__.py
from flask import Blueprint

impact_bp = Blueprint('impact_bp', __name__, url_prefix='/api/impact')

from . import routes
