# circular_portal/models/gamification_models.py
from .base import db, BaseModel, utcnow


class GamificationTier(BaseModel):
    __tablename__ = 'gamification_tiers'
    name = db.Column(db.String(100), unique=True, nullable=False)
    description = db.Column(db.Text, nullable=True)
    min_score = db.Column(db.Integer, nullable=False, default=0)
    max_score = db.Column(db.Integer, nullable=True)  # open-ended top tier
    color = db.Column(db.String(20), nullable=False, default='#78909C')
    icon = db.Column(db.String(100), nullable=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, default=True, nullable=False)


class Achievement(BaseModel):
    __tablename__ = 'achievements'
    name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text, nullable=False)
    metric = db.Column(db.String(50), nullable=False)  # carbon_saved, water_provided, minerals_saved, families_helped, orders_count
    threshold_value = db.Column(db.Integer, nullable=False)
    icon = db.Column(db.String(100), nullable=False, default='ri-award-line')
    badge_color = db.Column(db.String(20), nullable=False, default='#08ABAB')
    reward_points = db.Column(db.Integer, nullable=False, default=100)
    is_active = db.Column(db.Boolean, default=True, nullable=False)


class UserAchievementProgress(BaseModel):
    __tablename__ = 'user_achievement_progress'
    __table_args__ = (db.UniqueConstraint('user_id', 'achievement_id', name='uq_user_achievement'),)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    achievement_id = db.Column(db.Integer, db.ForeignKey('achievements.id', ondelete='CASCADE'), nullable=False, index=True)
    current_value = db.Column(db.Integer, nullable=False, default=0)
    progress_percent = db.Column(db.Integer, nullable=False, default=0)
    is_unlocked = db.Column(db.Boolean, default=False, nullable=False)
    unlocked_at = db.Column(db.DateTime, nullable=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)


class Milestone(BaseModel):
    __tablename__ = 'milestones'
    name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text, nullable=False)
    required_score = db.Column(db.Integer, nullable=False)
    reward_points = db.Column(db.Integer, nullable=False, default=500)
    icon = db.Column(db.String(100), nullable=False, default='ri-flag-line')
    color = db.Column(db.String(20), nullable=False, default='#08ABAB')
    is_active = db.Column(db.Boolean, default=True, nullable=False)


class UserMilestoneEvent(BaseModel):
    __tablename__ = 'user_milestone_events'
    __table_args__ = (db.UniqueConstraint('user_id', 'milestone_id', name='uq_user_milestone'),)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    milestone_id = db.Column(db.Integer, db.ForeignKey('milestones.id', ondelete='CASCADE'), nullable=False, index=True)
    reached_at = db.Column(db.DateTime, default=utcnow)
    event_data = db.Column(db.JSON, nullable=True)


class UserProgress(BaseModel):
    __tablename__ = 'user_progress'
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), unique=True, nullable=False, index=True)
    level = db.Column(db.Integer, nullable=False, default=1)
    experience_points = db.Column(db.Integer, nullable=False, default=0)
    total_points = db.Column(db.Integer, nullable=False, default=0)
    current_streak = db.Column(db.Integer, nullable=False, default=0)
    longest_streak = db.Column(db.Integer, nullable=False, default=0)
    last_activity_date = db.Column(db.DateTime, nullable=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)


class EsgScore(BaseModel):
    __tablename__ = 'esg_scores'
    __table_args__ = (db.UniqueConstraint('user_id', 'period', name='uq_esg_score_user_period'),)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    period = db.Column(db.String(20), nullable=False, default='current')
    total_score = db.Column(db.Integer, nullable=False, default=0)
    carbon_score = db.Column(db.Integer, nullable=False, default=0)
    water_score = db.Column(db.Integer, nullable=False, default=0)
    resources_score = db.Column(db.Integer, nullable=False, default=0)
    social_score = db.Column(db.Integer, nullable=False, default=0)
    tier_id = db.Column(db.Integer, db.ForeignKey('gamification_tiers.id'), nullable=True)
    details = db.Column(db.JSON, nullable=True)
    calculated_at = db.Column(db.DateTime, default=utcnow)
