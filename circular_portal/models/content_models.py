# circular_portal/models/content_models.py
from .base import db, BaseModel, utcnow
from .enums import SupportTicketStatusEnum


class WaterProject(BaseModel):
    __tablename__ = 'water_projects'
    name = db.Column(db.String(255), nullable=False)
    location = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)
    people_impacted = db.Column(db.Integer, nullable=False, default=0)
    water_provided = db.Column(db.Integer, nullable=False, default=0)
    image_url = db.Column(db.String(500), nullable=False, default='')


class SupportTicket(BaseModel):
    __tablename__ = 'support_tickets'
    ticket_number = db.Column(db.String(64), unique=True, nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id'), nullable=True)
    subject = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)
    status = db.Column(db.Enum(SupportTicketStatusEnum, name="support_ticket_status_enum"), nullable=False, default=SupportTicketStatusEnum.OPEN, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)


class CaseStudy(BaseModel):
    __tablename__ = 'case_studies'
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    company_name = db.Column(db.String(255), nullable=False)
    contact_name = db.Column(db.String(150), nullable=False)
    contact_email = db.Column(db.String(255), nullable=False)
    contact_phone = db.Column(db.String(50), nullable=True)
    industry_type = db.Column(db.String(100), nullable=False)
    employee_count = db.Column(db.Integer, nullable=True)
    testimonial = db.Column(db.Text, nullable=True)
    approved = db.Column(db.Boolean, default=False, nullable=False)
    featured = db.Column(db.Boolean, default=False, nullable=False)
