# circular_portal/audit_log_service.py
import logging
from flask import request, has_request_context

from .models.enums import AuditLogStatusEnum


class AuditLogService:
    """Writes admin and security events to the audit_logs table through the storage backend."""

    def __init__(self, storage, app=None):
        self.storage = storage
        self.app = app
        if app is not None:
            self.logger = app.logger
        else:
            self.logger = logging.getLogger(__name__)

    def log_action(self, action, user_id=None, email_for_unauthenticated=None,
                   target_type=None, target_id=None, details=None,
                   status="success", ip_address=None):
        try:
            try:
                status_value = AuditLogStatusEnum(status.lower()).value
            except ValueError:
                self.logger.warning(f"Invalid audit log status string '{status}' received. Defaulting to INFO.")
                status_value = AuditLogStatusEnum.INFO.value

            final_details = details
            if not user_id and email_for_unauthenticated:
                detail_prefix = f"Attempt by email: {email_for_unauthenticated}. "
                final_details = f"{detail_prefix}{details}" if details else detail_prefix

            if ip_address is None and has_request_context():
                ip_address = request.remote_addr

            self.storage.create_audit_log({
                'action': action,
                'user_id': int(user_id) if user_id is not None else None,
                'target_type': target_type,
                'target_id': int(target_id) if target_id is not None else None,
                'details': final_details,
                'status': status_value,
                'ip_address': ip_address,
            })
        except Exception as e:
            # Audit failures must never break the request that triggered them
            self.logger.error(f"Failed to write audit log: Action={action}, UserID={user_id}, Target={target_type}/{target_id}. Error: {e}", exc_info=True)
