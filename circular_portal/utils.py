# circular_portal/utils.py
import json
import secrets
from datetime import datetime, timezone
from functools import wraps

from flask import current_app, jsonify, g, request
from flask_jwt_extended import verify_jwt_in_request, get_jwt, get_jwt_identity


def generate_reference_number(prefix):
    """Human-readable unique reference such as RMA-20260119-4F7A2C."""
    return f"{prefix}-{datetime.now(timezone.utc).strftime('%Y%m%d')}-{secrets.token_hex(3).upper()}"

def current_user_id():
    """Integer id of the authenticated user (JWT identities are strings)."""
    identity = get_jwt_identity()
    return int(identity) if identity is not None else None

def admin_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        try: verify_jwt_in_request()
        except Exception as e:
            current_app.logger.warning(f"Admin access denied for {request.path}: JWT verification failed - {e}")
            return jsonify(message="Access token is missing or invalid.", success=False), 401
        # g.is_admin is set in @app.before_request in __init__.py
        if getattr(g, 'is_admin', False): return fn(*args, **kwargs)
        if get_jwt().get('is_admin'): return fn(*args, **kwargs)
        current_app.logger.warning(f"Admin access denied for {request.path}: user is not an admin.")
        return jsonify(message="Administration rights required.", success=False), 403
    return wrapper

def extract_api_key():
    api_key = request.headers.get('X-API-Key')
    if api_key:
        return api_key.strip()
    auth_header = request.headers.get('Authorization', '')
    if auth_header.lower().startswith('bearer '):
        return auth_header[7:].strip()
    return None

def api_key_required(fn):
    """Authenticates data-push callers by `X-API-Key` or `Authorization: Bearer <key>`."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        raw_key = extract_api_key()
        if not raw_key:
            return jsonify(message="API key required.", success=False), 401
        try:
            api_key = current_app.storage.validate_api_key(raw_key)
        except Exception as e:
            current_app.logger.error(f"API key validation failed: {e}", exc_info=True)
            return jsonify(message="Internal server error", success=False), 500
        if not api_key:
            current_app.logger.warning(f"Rejected API key with prefix {raw_key[:11]} for {request.path}")
            return jsonify(message="Invalid or expired API key.", success=False), 401
        g.api_key = api_key
        return fn(*args, **kwargs)
    return wrapper

def parse_datetime_from_iso(iso_str):
    if not iso_str: return None
    if isinstance(iso_str, datetime):
        dt_obj = iso_str
    else:
        try:
            dt_obj = datetime.fromisoformat(str(iso_str).replace('Z', '+00:00'))
        except ValueError as e:
            current_app.logger.warning(f"Failed to parse ISO datetime string '{iso_str}': {e}")
            try: dt_obj = datetime.strptime(str(iso_str), '%Y-%m-%d')
            except ValueError: return None
    if dt_obj.tzinfo is None or dt_obj.tzinfo.utcoffset(dt_obj) is None: return dt_obj.replace(tzinfo=timezone.utc)
    return dt_obj.astimezone(timezone.utc)

def format_datetime_for_storage(dt_obj=None):
    if dt_obj is None: dt_obj = datetime.now(timezone.utc)
    if not isinstance(dt_obj, datetime):
        if isinstance(dt_obj, str):
            parsed_dt = parse_datetime_from_iso(dt_obj)
            if parsed_dt: dt_obj = parsed_dt
            else: return None
        else: return None
    # Naive datetimes come back from SQLite and are UTC
    if dt_obj.tzinfo is None or dt_obj.tzinfo.utcoffset(dt_obj) is None: dt_obj = dt_obj.replace(tzinfo=timezone.utc)
    else: dt_obj = dt_obj.astimezone(timezone.utc)
    return dt_obj.isoformat(timespec='seconds')

def validation_error_response(error):
    """400 response carrying a pydantic ValidationError's details."""
    return jsonify(message="Validation error", errors=json.loads(error.json(include_url=False)), success=False), 400

def parse_payload(schema, data=None):
    """Validates the JSON body (or `data`) against a pydantic schema; raises ValidationError."""
    if data is None:
        data = request.get_json(silent=True) or {}
    return schema.model_validate(data)

def owns_record(record, user_field='user_id'):
    """True when the authenticated user is an admin or owns `record`."""
    if getattr(g, 'is_admin', False):
        return True
    return record is not None and record.get(user_field) == current_user_id()

def parse_bool_arg(name):
    value = request.args.get(name)
    if value is None or value == '':
        return None
    return value.lower() in ('true', '1', 'yes')
