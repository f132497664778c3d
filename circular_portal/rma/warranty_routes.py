# circular_portal/rma/warranty_routes.py
from flask import request, jsonify, current_app

from . import warranty_bp


@warranty_bp.route('/lookup', methods=['GET'])
def lookup_warranty():
    """Public lookup by in-house or manufacturer serial number."""
    query = (request.args.get('query') or '').strip()
    if not query:
        return jsonify(message="A serial number is required.", success=False), 400
    try:
        warranties = current_app.storage.search_warranty(query)
        return jsonify(warranties=warranties, found=bool(warranties), success=True), 200
    except Exception as e:
        current_app.logger.error(f"Error looking up warranty '{query}': {e}", exc_info=True)
        return jsonify(message="Internal server error", success=False), 500
