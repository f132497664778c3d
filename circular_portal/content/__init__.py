# circular_portal/content/__init__.py
# Water projects, theme, support tickets and case studies.
from flask import Blueprint

content_bp = Blueprint('content_bp', __name__, url_prefix='/api')

from . import public_routes
from . import support_routes
