# circular_portal/auth/__init__.py
from flask import Blueprint

auth_bp = Blueprint('auth_bp', __name__, url_prefix='/api/auth')

from . import routes
