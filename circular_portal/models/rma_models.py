# circular_portal/models/rma_models.py
from .base import db, BaseModel, utcnow
from .enums import RmaStatusEnum, RmaRequestStatusEnum


class Rma(BaseModel):
    __tablename__ = 'rmas'
    rma_number = db.Column(db.String(64), unique=True, nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id'), nullable=True, index=True)
    reason = db.Column(db.Text, nullable=False)
    status = db.Column(db.Enum(RmaStatusEnum, name="rma_status_enum"), nullable=False, default=RmaStatusEnum.REQUESTED, index=True)
    request_date = db.Column(db.DateTime, default=utcnow)
    completion_date = db.Column(db.DateTime, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    items = db.relationship('RmaItem', back_populates='rma', lazy='dynamic', cascade="all, delete-orphan")


class RmaItem(BaseModel):
    __tablename__ = 'rma_items'
    rma_id = db.Column(db.Integer, db.ForeignKey('rmas.id', ondelete='CASCADE'), nullable=False, index=True)
    product_make_model = db.Column(db.String(255), nullable=False)
    manufacturer_serial_number = db.Column(db.String(120), nullable=True)
    in_house_serial_number = db.Column(db.String(120), nullable=True)
    fault_description = db.Column(db.Text, nullable=False)
    status = db.Column(db.Enum(RmaStatusEnum, name="rma_item_status_enum"), nullable=False, default=RmaStatusEnum.REQUESTED)
    resolution = db.Column(db.Text, nullable=True)

    rma = db.relationship('Rma', back_populates='items')


class RmaRequestLog(BaseModel):
    """A customer-submitted warranty claim and the outcome of notifying the back office."""
    __tablename__ = 'rma_request_logs'
    request_number = db.Column(db.String(64), unique=True, nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True, index=True)
    submitted_by_user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    email = db.Column(db.String(255), nullable=False, index=True)
    full_name = db.Column(db.String(150), nullable=False)
    company_name = db.Column(db.String(150), nullable=True)
    payload = db.Column(db.JSON, nullable=False)
    status = db.Column(db.Enum(RmaRequestStatusEnum, name="rma_request_status_enum"), nullable=False, default=RmaRequestStatusEnum.SUBMITTED, index=True)
    notification_channel = db.Column(db.String(20), nullable=True)
    notification_detail = db.Column(db.Text, nullable=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)


class Warranty(BaseModel):
    __tablename__ = 'warranties'
    serial_number = db.Column(db.String(120), unique=True, nullable=False, index=True)
    manufacturer_serial_number = db.Column(db.String(120), nullable=True, index=True)
    product_description = db.Column(db.String(255), nullable=True)
    customer_name = db.Column(db.String(150), nullable=True)
    warranty_start_date = db.Column(db.DateTime, nullable=True)
    warranty_end_date = db.Column(db.DateTime, nullable=True)
    warranty_description = db.Column(db.Text, nullable=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)
