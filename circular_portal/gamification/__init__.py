# circular_portal/gamification/__init__.py
from flask import Blueprint

gamification_bp = Blueprint('gamification_bp', __name__, url_prefix='/api/gamification')

from . import routes
