# circular_portal/models/user_models.py
from werkzeug.security import generate_password_hash, check_password_hash
from .base import db, BaseModel


class User(BaseModel):
    """Portal account. Customers are created by admins, by the data-push API,
    or as pending accounts when a warranty claim arrives for an unknown email."""
    __tablename__ = 'users'
    __hidden_columns__ = ('password_hash',)

    username = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    name = db.Column(db.String(150), nullable=False)
    company = db.Column(db.String(150), nullable=False, default='')
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    phone_number = db.Column(db.String(50), nullable=True)
    is_admin = db.Column(db.Boolean, default=False, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False, index=True)
    pending_approval = db.Column(db.Boolean, default=False, nullable=False, index=True)
    notification_preferences = db.Column(db.JSON, nullable=True)

    orders = db.relationship('Order', back_populates='user', lazy='dynamic')

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password) if self.password_hash else False

    def __repr__(self): return f'<User {self.username}>'


class ApiKey(BaseModel):
    __tablename__ = 'api_keys'
    __hidden_columns__ = ('key_hash',)

    name = db.Column(db.String(150), nullable=False)
    key_prefix = db.Column(db.String(20), nullable=False, index=True)
    key_hash = db.Column(db.String(256), nullable=False)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=True)
    last_used_at = db.Column(db.DateTime, nullable=True)
