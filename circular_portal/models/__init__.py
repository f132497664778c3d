# circular_portal/models/__init__.py
from .base import db, BaseModel
from .enums import (
    OrderStatusEnum, RmaStatusEnum, RmaRequestStatusEnum,
    SupportTicketStatusEnum, AuditLogStatusEnum
)
from .user_models import User, ApiKey
from .order_models import Order, OrderItem, OrderUpdate, DeliveryTimeline, EnvironmentalImpact
from .rma_models import Rma, RmaItem, RmaRequestLog, Warranty
from .content_models import WaterProject, SupportTicket, CaseStudy
from .gamification_models import (
    GamificationTier, Achievement, UserAchievementProgress,
    Milestone, UserMilestoneEvent, UserProgress, EsgScore
)
from .utility_models import SystemSetting, AuditLog
