# circular_portal/models/utility_models.py
from .base import db, BaseModel, utcnow
from .enums import AuditLogStatusEnum


class SystemSetting(BaseModel):
    """Key/JSON-value store for admin-editable settings (theme, scoring, notification routing)."""
    __tablename__ = 'system_settings'
    setting_key = db.Column(db.String(100), unique=True, nullable=False, index=True)
    setting_value = db.Column(db.JSON, nullable=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)


class AuditLog(BaseModel):
    __tablename__ = 'audit_logs'
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True, index=True)
    action = db.Column(db.String(255), nullable=False, index=True)
    target_type = db.Column(db.String(50), nullable=True)
    target_id = db.Column(db.Integer, nullable=True)
    details = db.Column(db.Text, nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)
    status = db.Column(db.Enum(AuditLogStatusEnum, name="audit_log_status_enum"), nullable=False, default=AuditLogStatusEnum.INFO)
