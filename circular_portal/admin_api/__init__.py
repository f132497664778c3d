# circular_portal/admin_api/__init__.py
from flask import Blueprint

admin_api_bp = Blueprint('admin_api_bp', __name__, url_prefix='/api/admin')

# Import all the route modules to register their routes with the blueprint
from . import user_routes
from . import order_routes
from . import rma_routes
from . import content_routes
from . import settings_routes
from . import api_key_routes
from . import gamification_routes
from . import dashboard_routes
