# circular_portal/models/base.py
# Shared SQLAlchemy instance and the common model base, kept here to avoid circular imports.

import enum
from datetime import datetime, timezone
from ..utils import format_datetime_for_storage
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def utcnow():
    return datetime.now(timezone.utc)


class BaseModel(db.Model):
    __abstract__ = True

    id = db.Column(db.Integer, primary_key=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    # Columns never returned by to_dict()
    __hidden_columns__ = ()

    def to_dict(self):
        data = {}
        for column in self.__table__.columns:
            if column.name in self.__hidden_columns__:
                continue
            value = getattr(self, column.name)
            if isinstance(value, enum.Enum):
                value = value.value
            elif isinstance(value, datetime):
                value = format_datetime_for_storage(value)
            data[column.name] = value
        return data

    def __repr__(self):
        return f'<{self.__class__.__name__} {self.id}>'
