# circular_portal/schemas.py
# Request payload schemas. Handlers validate with Model.model_validate(...)
# and hand model_dump(mode='json') output to the storage layer.
from datetime import datetime
from typing import Optional, List, Dict, Any

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from .models.enums import OrderStatusEnum, RmaStatusEnum, RmaRequestStatusEnum, SupportTicketStatusEnum


# --- Auth & users ---

class LoginSchema(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)

class ChangePasswordSchema(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=8)

class ProfileUpdateSchema(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    company: Optional[str] = None
    phone_number: Optional[str] = None
    notification_preferences: Optional[Dict[str, Any]] = None

class UserCreateSchema(BaseModel):
    username: str = Field(min_length=3)
    password: str = Field(min_length=8)
    name: str = Field(min_length=1)
    company: str = ''
    email: EmailStr
    phone_number: Optional[str] = None
    is_admin: bool = False
    is_active: bool = True

class UserUpdateSchema(BaseModel):
    username: Optional[str] = Field(None, min_length=3)
    password: Optional[str] = Field(None, min_length=8)
    name: Optional[str] = None
    company: Optional[str] = None
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = None
    is_admin: Optional[bool] = None
    is_active: Optional[bool] = None
    pending_approval: Optional[bool] = None
    notification_preferences: Optional[Dict[str, Any]] = None


# --- Orders ---

class OrderItemSchema(BaseModel):
    product_name: str = Field(min_length=1)
    product_description: str = ''
    quantity: int = Field(1, ge=1)
    unit_price: int = Field(0, ge=0)
    total_price: Optional[int] = Field(None, ge=0)
    image_url: Optional[str] = None

class OrderCreateSchema(BaseModel):
    order_number: Optional[str] = None
    user_id: Optional[int] = None  # admin only; customers always order for themselves
    status: OrderStatusEnum = OrderStatusEnum.PLACED
    total_amount: int = Field(0, ge=0)
    saved_amount: int = Field(0, ge=0)
    order_date: Optional[datetime] = None
    estimated_delivery: Optional[datetime] = None
    tracking_number: Optional[str] = None
    shipping_address: Optional[str] = None
    notes: Optional[str] = None
    items: List[OrderItemSchema] = Field(default_factory=list)

class OrderUpdateSchema(BaseModel):
    status: Optional[OrderStatusEnum] = None
    total_amount: Optional[int] = Field(None, ge=0)
    saved_amount: Optional[int] = Field(None, ge=0)
    estimated_delivery: Optional[datetime] = None
    tracking_number: Optional[str] = None
    shipping_address: Optional[str] = None
    notes: Optional[str] = None
    status_message: Optional[str] = None
    items: Optional[List[OrderItemSchema]] = None

class DeliveryTimelineSchema(BaseModel):
    order_placed: Optional[bool] = None
    customer_success_call_booked: Optional[bool] = None
    rate_your_experience: Optional[bool] = None
    customer_success_intro_call: Optional[bool] = None
    order_in_progress: Optional[bool] = None
    order_being_built: Optional[bool] = None
    quality_checks: Optional[bool] = None
    ready_for_delivery: Optional[bool] = None
    order_delivered: Optional[bool] = None
    rate_your_product: Optional[bool] = None
    customer_success_call_booked_post: Optional[bool] = None
    customer_success_check_in: Optional[bool] = None
    order_completed: Optional[bool] = None

class DeliveryTimelineCreateSchema(DeliveryTimelineSchema):
    order_id: int


# --- RMAs and warranty claims ---

class RmaItemSchema(BaseModel):
    product_make_model: str = Field(min_length=1)
    manufacturer_serial_number: Optional[str] = None
    in_house_serial_number: Optional[str] = None
    fault_description: str = Field(min_length=1)
    status: Optional[RmaStatusEnum] = None
    resolution: Optional[str] = None

class RmaItemUpdateSchema(BaseModel):
    product_make_model: Optional[str] = Field(None, min_length=1)
    manufacturer_serial_number: Optional[str] = None
    in_house_serial_number: Optional[str] = None
    fault_description: Optional[str] = Field(None, min_length=1)
    status: Optional[RmaStatusEnum] = None
    resolution: Optional[str] = None

class RmaCreateSchema(BaseModel):
    order_id: Optional[int] = None
    user_id: Optional[int] = None  # admin only
    reason: str = Field(min_length=1)
    status: RmaStatusEnum = RmaStatusEnum.REQUESTED
    notes: Optional[str] = None
    items: List[RmaItemSchema] = Field(default_factory=list)

class RmaUpdateSchema(BaseModel):
    order_id: Optional[int] = None
    reason: Optional[str] = None
    status: Optional[RmaStatusEnum] = None
    completion_date: Optional[datetime] = None
    notes: Optional[str] = None
    items: Optional[List[RmaItemSchema]] = None

class WarrantyClaimSchema(BaseModel):
    """Customer warranty claim form."""
    full_name: str = Field(min_length=1)
    company_name: Optional[str] = None
    email: EmailStr
    phone: str = Field(min_length=1)
    address: str = Field(min_length=1)
    delivery_address: Optional[str] = None
    recipient_contact_number: Optional[str] = None
    country_of_purchase: str = Field(min_length=1)
    number_of_products: int = Field(1, ge=1)
    product_make_model: str = Field(min_length=1)
    manufacturer_serial_number: str = Field(min_length=1)
    in_house_serial_number: Optional[str] = None
    fault_description: str = Field(min_length=1)
    consent: bool
    track_under_current_account: bool = True

    @field_validator('consent')
    @classmethod
    def consent_must_be_given(cls, value):
        if not value:
            raise ValueError('consent is required to submit a warranty claim')
        return value

class RmaRequestStatusSchema(BaseModel):
    status: RmaRequestStatusEnum


# --- Support, case studies, water projects ---

class SupportTicketCreateSchema(BaseModel):
    subject: str = Field(min_length=1)
    description: str = Field(min_length=1)
    order_id: Optional[int] = None

class SupportTicketUpdateSchema(BaseModel):
    subject: Optional[str] = None
    description: Optional[str] = None
    status: Optional[SupportTicketStatusEnum] = None

class CaseStudyCreateSchema(BaseModel):
    company_name: str = Field(min_length=1)
    contact_name: str = Field(min_length=1)
    contact_email: EmailStr
    contact_phone: Optional[str] = None
    industry_type: str = Field(min_length=1)
    employee_count: Optional[int] = Field(None, ge=0)
    testimonial: Optional[str] = None

class CaseStudyUpdateSchema(BaseModel):
    company_name: Optional[str] = None
    contact_name: Optional[str] = None
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = None
    industry_type: Optional[str] = None
    employee_count: Optional[int] = Field(None, ge=0)
    testimonial: Optional[str] = None
    approved: Optional[bool] = None
    featured: Optional[bool] = None

class WaterProjectSchema(BaseModel):
    name: str = Field(min_length=1)
    location: str = Field(min_length=1)
    description: str = Field(min_length=1)
    people_impacted: int = Field(0, ge=0)
    water_provided: int = Field(0, ge=0)
    image_url: str = ''

class WaterProjectUpdateSchema(BaseModel):
    name: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    people_impacted: Optional[int] = Field(None, ge=0)
    water_provided: Optional[int] = Field(None, ge=0)
    image_url: Optional[str] = None


# --- Settings ---

class AdminSettingsSchema(BaseModel):
    visible_tabs: Optional[List[str]] = None
    rma_notification_emails: List[EmailStr] = Field(default_factory=list)
    new_user_alert_emails: List[EmailStr] = Field(default_factory=list)
    rma_webhook_url: Optional[str] = None

    @field_validator('rma_webhook_url')
    @classmethod
    def webhook_must_be_https(cls, value):
        if value is None or value.strip() == '':
            return None
        if not value.strip().lower().startswith('https://'):
            raise ValueError('webhook URL must use https')
        return value.strip()

class ThemeSettingsSchema(BaseModel):
    company_name: Optional[str] = None
    logo_url: Optional[str] = None
    primary_color: Optional[str] = Field(None, pattern=r'^#[0-9A-Fa-f]{6}$')
    secondary_color: Optional[str] = Field(None, pattern=r'^#[0-9A-Fa-f]{6}$')
    accent_color: Optional[str] = Field(None, pattern=r'^#[0-9A-Fa-f]{6}$')

class SustainabilityMetricsSchema(BaseModel):
    carbon_reduction_per_laptop: int = Field(ge=0)
    resource_preservation_per_laptop: int = Field(ge=0)
    water_saved_per_laptop: int = Field(ge=0)
    families_helped_per_laptop: int = Field(ge=0)
    trees_equivalent_per_laptop: int = Field(ge=0)

class ScoringWeightsSchema(BaseModel):
    carbon: float = Field(ge=0, le=100)
    water: float = Field(ge=0, le=100)
    resources: float = Field(ge=0, le=100)
    social: float = Field(ge=0, le=100)

    @model_validator(mode='after')
    def weights_sum_to_100(self):
        total = self.carbon + self.water + self.resources + self.social
        if abs(total - 100) > 1e-6:
            raise ValueError(f'weights must sum to 100 (got {total:g})')
        return self

class ScoringNormalizationSchema(BaseModel):
    base_unit: float = Field(gt=0)
    social_base_unit: float = Field(1, gt=0)
    carbon_multiplier: float = Field(ge=0)
    water_multiplier: float = Field(ge=0)
    resources_multiplier: float = Field(ge=0)
    social_multiplier: float = Field(ge=0)

class EsgParametersSchema(BaseModel):
    weights: Optional[ScoringWeightsSchema] = None
    normalization: Optional[ScoringNormalizationSchema] = None
    anonymize_leaderboard: Optional[bool] = None


# --- API keys and gamification admin ---

class ApiKeyCreateSchema(BaseModel):
    name: str = Field(min_length=1)
    expires_at: Optional[datetime] = None

class TierSchema(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    min_score: int = Field(0, ge=0)
    max_score: Optional[int] = Field(None, ge=0)
    color: str = '#78909C'
    icon: Optional[str] = None
    sort_order: int = 0
    is_active: bool = True

class AchievementSchema(BaseModel):
    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    metric: str = Field(pattern=r'^(carbon_saved|water_provided|minerals_saved|families_helped|orders_count)$')
    threshold_value: int = Field(gt=0)
    icon: str = 'ri-award-line'
    badge_color: str = '#08ABAB'
    reward_points: int = Field(100, ge=0)
    is_active: bool = True

class AchievementUpdateSchema(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    metric: Optional[str] = Field(None, pattern=r'^(carbon_saved|water_provided|minerals_saved|families_helped|orders_count)$')
    threshold_value: Optional[int] = Field(None, gt=0)
    icon: Optional[str] = None
    badge_color: Optional[str] = None
    reward_points: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None

class MilestoneSchema(BaseModel):
    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    required_score: int = Field(ge=0)
    reward_points: int = Field(500, ge=0)
    icon: str = 'ri-flag-line'
    color: str = '#08ABAB'
    is_active: bool = True

class MilestoneUpdateSchema(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    required_score: Optional[int] = Field(None, ge=0)
    reward_points: Optional[int] = Field(None, ge=0)
    icon: Optional[str] = None
    color: Optional[str] = None
    is_active: Optional[bool] = None


# --- Data-push API ---
# Pushes update only the fields they carry; create-time defaults live in storage.

class DataUserSchema(BaseModel):
    email: EmailStr
    name: Optional[str] = Field(None, min_length=1)
    company: Optional[str] = None
    username: Optional[str] = None
    phone_number: Optional[str] = None
    password: Optional[str] = Field(None, min_length=8)

class DataOrderSchema(BaseModel):
    order_number: str = Field(min_length=1)
    email: EmailStr
    status: Optional[OrderStatusEnum] = None
    total_amount: Optional[int] = Field(None, ge=0)
    saved_amount: Optional[int] = Field(None, ge=0)
    order_date: Optional[datetime] = None
    estimated_delivery: Optional[datetime] = None
    tracking_number: Optional[str] = None
    shipping_address: Optional[str] = None
    notes: Optional[str] = None
    items: Optional[List[OrderItemSchema]] = None

class DataRmaSchema(BaseModel):
    rma_number: str = Field(min_length=1)
    email: EmailStr
    order_number: Optional[str] = None
    reason: Optional[str] = Field(None, min_length=1)
    status: Optional[RmaStatusEnum] = None
    notes: Optional[str] = None
    completion_date: Optional[datetime] = None
    items: Optional[List[RmaItemSchema]] = None

class DataWarrantySchema(BaseModel):
    serial_number: str = Field(min_length=1)
    manufacturer_serial_number: Optional[str] = None
    product_description: Optional[str] = None
    customer_name: Optional[str] = None
    warranty_start_date: Optional[datetime] = None
    warranty_end_date: Optional[datetime] = None
    warranty_description: Optional[str] = None

class DataWarrantyBulkSchema(BaseModel):
    records: List[DataWarrantySchema] = Field(min_length=1)
    truncate: bool = False
