# circular_portal/models/order_models.py
from .base import db, BaseModel, utcnow
from .enums import OrderStatusEnum


class Order(BaseModel):
    __tablename__ = 'orders'
    order_number = db.Column(db.String(64), unique=True, nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    status = db.Column(db.Enum(OrderStatusEnum, name="order_status_enum"), nullable=False, default=OrderStatusEnum.PLACED, index=True)
    total_amount = db.Column(db.Integer, nullable=False, default=0)  # pence
    saved_amount = db.Column(db.Integer, nullable=False, default=0)
    order_date = db.Column(db.DateTime, default=utcnow, index=True)
    estimated_delivery = db.Column(db.DateTime, nullable=True)
    tracking_number = db.Column(db.String(100), nullable=True)
    shipping_address = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    user = db.relationship('User', back_populates='orders')
    items = db.relationship('OrderItem', back_populates='order', lazy='dynamic', cascade="all, delete-orphan")
    updates = db.relationship('OrderUpdate', back_populates='order', lazy='dynamic', cascade="all, delete-orphan")


class OrderItem(BaseModel):
    __tablename__ = 'order_items'
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    product_description = db.Column(db.Text, nullable=False, default='')
    quantity = db.Column(db.Integer, nullable=False, default=1)
    unit_price = db.Column(db.Integer, nullable=False, default=0)
    total_price = db.Column(db.Integer, nullable=False, default=0)
    image_url = db.Column(db.String(500), nullable=True)

    order = db.relationship('Order', back_populates='items')


class OrderUpdate(BaseModel):
    __tablename__ = 'order_updates'
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True)
    status = db.Column(db.Enum(OrderStatusEnum, name="order_update_status_enum"), nullable=False)
    message = db.Column(db.Text, nullable=False)
    timestamp = db.Column(db.DateTime, default=utcnow)

    order = db.relationship('Order', back_populates='updates')


class DeliveryTimeline(BaseModel):
    """Per-order checklist of the customer journey shown on the delivery page."""
    __tablename__ = 'delivery_timelines'
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id', ondelete='CASCADE'), unique=True, nullable=False, index=True)
    order_placed = db.Column(db.Boolean, default=False, nullable=False)
    customer_success_call_booked = db.Column(db.Boolean, default=False, nullable=False)
    rate_your_experience = db.Column(db.Boolean, default=False, nullable=False)
    customer_success_intro_call = db.Column(db.Boolean, default=False, nullable=False)
    order_in_progress = db.Column(db.Boolean, default=False, nullable=False)
    order_being_built = db.Column(db.Boolean, default=False, nullable=False)
    quality_checks = db.Column(db.Boolean, default=False, nullable=False)
    ready_for_delivery = db.Column(db.Boolean, default=False, nullable=False)
    order_delivered = db.Column(db.Boolean, default=False, nullable=False)
    rate_your_product = db.Column(db.Boolean, default=False, nullable=False)
    customer_success_call_booked_post = db.Column(db.Boolean, default=False, nullable=False)
    customer_success_check_in = db.Column(db.Boolean, default=False, nullable=False)
    order_completed = db.Column(db.Boolean, default=False, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)


class EnvironmentalImpact(BaseModel):
    __tablename__ = 'environmental_impact'
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id', ondelete='CASCADE'), nullable=True, index=True)
    carbon_saved = db.Column(db.Integer, nullable=False, default=0)  # grams
    water_provided = db.Column(db.Integer, nullable=False, default=0)  # litres
    minerals_saved = db.Column(db.Integer, nullable=False, default=0)  # grams
    trees_equivalent = db.Column(db.Integer, nullable=False, default=0)
    families_helped = db.Column(db.Integer, nullable=False, default=0)
