# circular_portal/models/enums.py
# Contains all Enum definitions for the models.
import enum


class OrderStatusEnum(enum.Enum):
    PLACED = "placed"
    PROCESSING = "processing"
    IN_PRODUCTION = "in_production"
    QUALITY_CHECK = "quality_check"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RETURNED = "returned"

class RmaStatusEnum(enum.Enum):
    REQUESTED = "requested"
    APPROVED = "approved"
    IN_TRANSIT = "in_transit"
    RECEIVED = "received"
    PROCESSING = "processing"
    COMPLETED = "completed"
    REJECTED = "rejected"

class RmaRequestStatusEnum(enum.Enum):
    SUBMITTED = "submitted"
    APPROVED = "approved"
    DECLINED = "declined"

class SupportTicketStatusEnum(enum.Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"

class AuditLogStatusEnum(enum.Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    PENDING = "pending"
    INFO = "info"
    WARNING = "warning"
