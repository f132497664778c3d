# circular_portal/storage/orm_storage.py
import enum

from sqlalchemy import DateTime, or_, func

from .base import BaseStorage
from ..models import (
    db, User, ApiKey, Order, OrderItem, OrderUpdate, DeliveryTimeline, EnvironmentalImpact,
    Rma, RmaItem, RmaRequestLog, Warranty, WaterProject, SupportTicket, CaseStudy,
    GamificationTier, Achievement, UserAchievementProgress, Milestone, UserMilestoneEvent,
    UserProgress, EsgScore, SystemSetting, AuditLog
)
from ..utils import parse_datetime_from_iso

MODELS = {
    'users': User,
    'api_keys': ApiKey,
    'orders': Order,
    'order_items': OrderItem,
    'order_updates': OrderUpdate,
    'delivery_timelines': DeliveryTimeline,
    'environmental_impact': EnvironmentalImpact,
    'rmas': Rma,
    'rma_items': RmaItem,
    'rma_request_logs': RmaRequestLog,
    'warranties': Warranty,
    'water_projects': WaterProject,
    'support_tickets': SupportTicket,
    'case_studies': CaseStudy,
    'gamification_tiers': GamificationTier,
    'achievements': Achievement,
    'user_achievement_progress': UserAchievementProgress,
    'milestones': Milestone,
    'user_milestone_events': UserMilestoneEvent,
    'user_progress': UserProgress,
    'esg_scores': EsgScore,
    'system_settings': SystemSetting,
    'audit_logs': AuditLog,
}


class OrmStorage(BaseStorage):
    """Storage backed by the Flask-SQLAlchemy models."""

    def _model(self, table):
        try:
            return MODELS[table]
        except KeyError:
            raise ValueError(f"Unknown table '{table}'")

    def _clean(self, model, data):
        """Keep known columns only and convert enum strings and ISO dates to column types."""
        columns = model.__table__.columns
        cleaned = {}
        for key, value in data.items():
            if key == 'id' or key not in columns:
                continue
            column_type = columns[key].type
            enum_class = getattr(column_type, 'enum_class', None)
            if enum_class is not None and value is not None and not isinstance(value, enum.Enum):
                value = enum_class(value)
            elif isinstance(column_type, DateTime) and isinstance(value, str):
                value = parse_datetime_from_iso(value)
            cleaned[key] = value
        return cleaned

    def _query(self, table, criteria=None):
        model = self._model(table)
        query = model.query
        if criteria:
            query = query.filter_by(**self._clean(model, criteria))
        return model, query

    def _commit(self):
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

    def _get(self, table, record_id):
        instance = db.session.get(self._model(table), record_id)
        return instance.to_dict() if instance else None

    def _find_one(self, table, **criteria):
        model, query = self._query(table, criteria)
        instance = query.order_by(model.id).first()
        return instance.to_dict() if instance else None

    def _list(self, table, criteria=None, search=None, order_by='id', descending=False, limit=None):
        model, query = self._query(table, criteria)
        if search:
            term, columns = search
            pattern = f"%{term.lower()}%"
            query = query.filter(or_(*[func.lower(getattr(model, column)).like(pattern) for column in columns]))
        order_column = getattr(model, order_by)
        if descending:
            query = query.order_by(order_column.desc(), model.id.desc())
        else:
            query = query.order_by(order_column, model.id)
        if limit:
            query = query.limit(limit)
        return [instance.to_dict() for instance in query.all()]

    def _insert(self, table, data):
        model = self._model(table)
        # None leaves column defaults in place
        instance = model(**{key: value for key, value in self._clean(model, data).items() if value is not None})
        db.session.add(instance)
        self._commit()
        return instance.to_dict()

    def _update(self, table, record_id, data):
        model = self._model(table)
        instance = db.session.get(model, record_id)
        if not instance:
            return None
        for key, value in self._clean(model, data).items():
            setattr(instance, key, value)
        self._commit()
        return instance.to_dict()

    def _delete(self, table, record_id):
        instance = db.session.get(self._model(table), record_id)
        if not instance:
            return False
        db.session.delete(instance)
        self._commit()
        return True

    def _delete_where(self, table, **criteria):
        _, query = self._query(table, criteria)
        deleted = query.delete(synchronize_session=False)
        self._commit()
        return deleted

    def _count(self, table, **criteria):
        _, query = self._query(table, criteria)
        return query.count()

    def _sum(self, table, columns, **criteria):
        model = self._model(table)
        query = db.session.query(*[func.coalesce(func.sum(getattr(model, column)), 0) for column in columns])
        for key, value in self._clean(model, criteria).items():
            query = query.filter(getattr(model, key) == value)
        row = query.one()
        return dict(zip(columns, row))

    def _get_hidden(self, table, record_id, column):
        instance = db.session.get(self._model(table), record_id)
        return getattr(instance, column) if instance else None
