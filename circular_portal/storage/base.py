# circular_portal/storage/base.py
# Storage interface shared by the ORM and raw-SQL backends.
#
# Backends implement the table-level primitives at the top of BaseStorage.
# Everything the API layer calls is written once on top of them, so both
# backends share the same semantics and return the same plain dicts.

import logging
import secrets
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from werkzeug.security import generate_password_hash, check_password_hash

from ..utils import generate_reference_number, parse_datetime_from_iso

API_KEY_PREFIX = 'cc_'
API_KEY_PREFIX_LENGTH = 11  # 'cc_' plus the first 8 hex characters
XP_PER_LEVEL = 1000


class BaseStorage(ABC):

    def __init__(self, logger=None):
        self.logger = logger or logging.getLogger(__name__)

    # --- Primitives -----------------------------------------------------

    @abstractmethod
    def _get(self, table, record_id):
        """Row by primary key as a dict, or None."""

    @abstractmethod
    def _find_one(self, table, **criteria):
        """First row matching all equality criteria, or None."""

    @abstractmethod
    def _list(self, table, criteria=None, search=None, order_by='id', descending=False, limit=None):
        """Rows matching equality `criteria`; `search` is (term, columns) for a
        case-insensitive substring match on any of the columns."""

    @abstractmethod
    def _insert(self, table, data):
        """Insert and return the stored row."""

    @abstractmethod
    def _update(self, table, record_id, data):
        """Update and return the stored row, or None when it does not exist."""

    @abstractmethod
    def _delete(self, table, record_id):
        """Delete by primary key; True when a row was removed."""

    @abstractmethod
    def _delete_where(self, table, **criteria):
        """Delete every row matching the criteria; returns the count."""

    @abstractmethod
    def _count(self, table, **criteria):
        pass

    @abstractmethod
    def _sum(self, table, columns, **criteria):
        """{column: total} over matching rows, 0 for empty sets."""

    @abstractmethod
    def _get_hidden(self, table, record_id, column):
        """Raw value of a column that is never returned in row dicts."""

    # --- Users ----------------------------------------------------------

    def get_user(self, user_id):
        return self._get('users', user_id)

    def get_user_by_username(self, username):
        return self._find_one('users', username=username)

    def get_user_by_email(self, email):
        if not email:
            return None
        return self._find_one('users', email=email.strip().lower())

    def create_user(self, data):
        record = dict(data)
        password = record.pop('password', None) or secrets.token_urlsafe(16)
        record['password_hash'] = generate_password_hash(password)
        record['email'] = record['email'].strip().lower()
        if not record.get('username'):
            record['username'] = record['email']
        return self._insert('users', record)

    def update_user(self, user_id, data):
        record = dict(data)
        if record.get('password'):
            record['password_hash'] = generate_password_hash(record.pop('password'))
        record.pop('password', None)
        if record.get('email'):
            record['email'] = record['email'].strip().lower()
        return self._update('users', user_id, record)

    def list_users(self, filters=None):
        filters = dict(filters or {})
        search = filters.pop('search', None)
        criteria = {k: v for k, v in filters.items() if k in ('is_active', 'is_admin', 'pending_approval') and v is not None}
        return self._list('users', criteria, search=(search, ('username', 'email', 'name', 'company')) if search else None,
                          order_by='created_at', descending=True)

    def delete_user(self, user_id):
        """Users are deactivated, never removed, so their orders and RMAs keep an owner."""
        return self._update('users', user_id, {'is_active': False}) is not None

    def authenticate_user(self, username, password):
        user = self.get_user_by_username(username)
        if not user and '@' in (username or ''):
            user = self.get_user_by_email(username)
        if not user:
            return None
        password_hash = self._get_hidden('users', user['id'], 'password_hash')
        if not password_hash or not check_password_hash(password_hash, password):
            return None
        return user

    def change_password(self, user_id, current_password, new_password):
        password_hash = self._get_hidden('users', user_id, 'password_hash')
        if password_hash is None:
            return False, "User not found"
        if not check_password_hash(password_hash, current_password):
            return False, "Current password is incorrect"
        self._update('users', user_id, {'password_hash': generate_password_hash(new_password)})
        return True, None

    def get_or_create_pending_user(self, email, name, company=None, phone_number=None):
        """Returns (user, created). New accounts are inactive until an admin approves them."""
        existing = self.get_user_by_email(email)
        if existing:
            return existing, False
        user = self.create_user({
            'email': email,
            'username': email.strip().lower(),
            'name': name,
            'company': company or '',
            'phone_number': phone_number,
            'is_active': False,
            'pending_approval': True,
        })
        self.logger.info(f"Created pending user {user['id']} for {user['email']}")
        return user, True

    # --- Orders ---------------------------------------------------------

    def get_order(self, order_id):
        return self._get('orders', order_id)

    def get_order_by_number(self, order_number):
        return self._find_one('orders', order_number=order_number)

    def list_orders_for_user(self, user_id):
        return self._list('orders', {'user_id': user_id}, order_by='order_date', descending=True)

    def list_orders(self, filters=None):
        filters = dict(filters or {})
        search = filters.pop('search', None)
        criteria = {k: v for k, v in filters.items() if k in ('user_id', 'status') and v is not None}
        return self._list('orders', criteria, search=(search, ('order_number', 'tracking_number')) if search else None,
                          order_by='order_date', descending=True)

    def create_order(self, data):
        record = dict(data)
        if not record.get('order_number'):
            record['order_number'] = generate_reference_number('ORD')
        return self._insert('orders', record)

    def update_order(self, order_id, data):
        return self._update('orders', order_id, data)

    def delete_order(self, order_id):
        if not self.get_order(order_id):
            return False
        for table in ('order_items', 'order_updates', 'delivery_timelines', 'environmental_impact'):
            self._delete_where(table, order_id=order_id)
        for table in ('rmas', 'support_tickets'):
            for row in self._list(table, {'order_id': order_id}):
                self._update(table, row['id'], {'order_id': None})
        return self._delete('orders', order_id)

    def get_order_items(self, order_id):
        return self._list('order_items', {'order_id': order_id})

    def create_order_item(self, order_id, data):
        record = dict(data, order_id=order_id)
        if record.get('total_price') is None:
            record['total_price'] = int(record.get('quantity') or 1) * int(record.get('unit_price') or 0)
        return self._insert('order_items', record)

    def replace_order_items(self, order_id, items):
        self._delete_where('order_items', order_id=order_id)
        return [self.create_order_item(order_id, item) for item in items]

    def get_order_updates(self, order_id):
        return self._list('order_updates', {'order_id': order_id}, order_by='timestamp', descending=True)

    def create_order_update(self, order_id, status, message):
        return self._insert('order_updates', {'order_id': order_id, 'status': status, 'message': message})

    def upsert_order(self, order_number, email, data, items=None):
        """Create or update an order by number for the user owning `email`.
        Returns (order, created). Raises LookupError when no such user exists."""
        user = self.get_user_by_email(email)
        if not user:
            raise LookupError(f"No user with email {email}")
        record = dict(data, user_id=user['id'], order_number=order_number)
        existing = self.get_order_by_number(order_number)
        if existing:
            order, created = self.update_order(existing['id'], record), False
        else:
            record.setdefault('status', 'placed')
            record.setdefault('total_amount', 0)
            record.setdefault('saved_amount', 0)
            order, created = self.create_order(record), True
        if items is not None:
            self.replace_order_items(order['id'], items)
        return order, created

    # --- Environmental impact -------------------------------------------

    IMPACT_METRICS = ('carbon_saved', 'water_provided', 'minerals_saved', 'trees_equivalent', 'families_helped')

    def list_impacts_for_user(self, user_id):
        return self._list('environmental_impact', {'user_id': user_id}, order_by='created_at', descending=True)

    def get_impact_for_order(self, order_id):
        return self._find_one('environmental_impact', order_id=order_id)

    def create_impact(self, data):
        return self._insert('environmental_impact', data)

    def update_impact(self, impact_id, data):
        return self._update('environmental_impact', impact_id, data)

    def get_total_impact(self, user_id=None):
        criteria = {'user_id': user_id} if user_id is not None else {}
        totals = self._sum('environmental_impact', self.IMPACT_METRICS, **criteria)
        return {metric: int(totals.get(metric) or 0) for metric in self.IMPACT_METRICS}

    # --- Delivery timeline ------------------------------------------------

    def get_delivery_timeline(self, order_id):
        return self._find_one('delivery_timelines', order_id=order_id)

    def create_delivery_timeline(self, data):
        return self._insert('delivery_timelines', data)

    def update_delivery_timeline(self, order_id, data):
        timeline = self.get_delivery_timeline(order_id)
        if not timeline:
            return None
        return self._update('delivery_timelines', timeline['id'], data)

    # --- RMAs -----------------------------------------------------------

    def get_rma(self, rma_id):
        return self._get('rmas', rma_id)

    def get_rma_by_number(self, rma_number):
        return self._find_one('rmas', rma_number=rma_number)

    def list_rmas_for_user(self, user_id):
        return self._list('rmas', {'user_id': user_id}, order_by='request_date', descending=True)

    def list_rmas(self, filters=None):
        filters = dict(filters or {})
        search = filters.pop('search', None)
        criteria = {k: v for k, v in filters.items() if k in ('user_id', 'order_id', 'status') and v is not None}
        return self._list('rmas', criteria, search=(search, ('rma_number', 'reason')) if search else None,
                          order_by='request_date', descending=True)

    def create_rma(self, data):
        record = dict(data)
        if not record.get('rma_number'):
            record['rma_number'] = generate_reference_number('RMA')
        return self._insert('rmas', record)

    def update_rma(self, rma_id, data):
        return self._update('rmas', rma_id, data)

    def delete_rma(self, rma_id):
        self._delete_where('rma_items', rma_id=rma_id)
        return self._delete('rmas', rma_id)

    def get_rma_items(self, rma_id):
        return self._list('rma_items', {'rma_id': rma_id})

    def add_rma_items(self, rma_id, items):
        """Insert a batch of items. If one insert fails the items already
        inserted by this call are deleted again and the error is re-raised."""
        created = []
        try:
            for item in items:
                created.append(self._insert('rma_items', dict(item, rma_id=rma_id)))
        except Exception:
            self.logger.error(f"Adding items to RMA {rma_id} failed after {len(created)} inserts; removing them.")
            for row in created:
                try:
                    self._delete('rma_items', row['id'])
                except Exception as cleanup_error:
                    self.logger.error(f"Could not remove RMA item {row['id']}: {cleanup_error}", exc_info=True)
            raise
        return created

    def replace_rma_items(self, rma_id, items):
        self._delete_where('rma_items', rma_id=rma_id)
        return self.add_rma_items(rma_id, items)

    def update_rma_item(self, item_id, data):
        return self._update('rma_items', item_id, data)

    def delete_rma_item(self, item_id):
        return self._delete('rma_items', item_id)

    def upsert_rma(self, rma_number, email, data, items=None):
        user = self.get_user_by_email(email)
        if not user:
            raise LookupError(f"No user with email {email}")
        record = dict(data, user_id=user['id'], rma_number=rma_number)
        existing = self.get_rma_by_number(rma_number)
        if existing:
            rma, created = self.update_rma(existing['id'], record), False
        else:
            if not record.get('reason'):
                raise ValueError(f"RMA {rma_number} needs a reason when it is first pushed")
            record.setdefault('status', 'requested')
            rma, created = self.create_rma(record), True
        if items is not None:
            self.replace_rma_items(rma['id'], items)
        return rma, created

    # --- RMA request logs -------------------------------------------------

    def create_rma_request_log(self, data):
        record = dict(data)
        if not record.get('request_number'):
            record['request_number'] = generate_reference_number('WRC')
        record['email'] = record['email'].strip().lower()
        return self._insert('rma_request_logs', record)

    def get_rma_request_log(self, log_id):
        return self._get('rma_request_logs', log_id)

    def update_rma_request_log(self, log_id, data):
        return self._update('rma_request_logs', log_id, data)

    def list_rma_request_logs_for_user(self, user_id):
        rows = {row['id']: row for row in self._list('rma_request_logs', {'user_id': user_id})}
        for row in self._list('rma_request_logs', {'submitted_by_user_id': user_id}):
            rows.setdefault(row['id'], row)
        return sorted(rows.values(), key=lambda row: row['id'], reverse=True)

    def list_rma_request_logs(self, filters=None):
        filters = dict(filters or {})
        search = filters.pop('search', None)
        criteria = {k: v for k, v in filters.items() if k in ('status', 'user_id') and v is not None}
        return self._list('rma_request_logs', criteria,
                          search=(search, ('request_number', 'email', 'full_name', 'company_name')) if search else None,
                          order_by='created_at', descending=True)

    # --- Warranties -----------------------------------------------------

    def search_warranty(self, query):
        query = (query or '').strip()
        if not query:
            return []
        rows = {row['id']: row for row in self._list('warranties', {'serial_number': query})}
        for row in self._list('warranties', {'manufacturer_serial_number': query}):
            rows.setdefault(row['id'], row)
        return list(rows.values())

    def upsert_warranty(self, data):
        existing = self._find_one('warranties', serial_number=data['serial_number'])
        if existing:
            return self._update('warranties', existing['id'], data)
        return self._insert('warranties', data)

    def bulk_replace_warranties(self, records, truncate=False):
        if truncate:
            removed = self._delete_where('warranties')
            self.logger.info(f"Removed {removed} warranty records before bulk upload.")
        return [self.upsert_warranty(record) for record in records]

    # --- Water projects, support tickets, case studies -------------------

    def list_water_projects(self):
        return self._list('water_projects')

    def get_water_project(self, project_id):
        return self._get('water_projects', project_id)

    def create_water_project(self, data):
        return self._insert('water_projects', data)

    def update_water_project(self, project_id, data):
        return self._update('water_projects', project_id, data)

    def delete_water_project(self, project_id):
        return self._delete('water_projects', project_id)

    def list_support_tickets(self, filters=None):
        filters = dict(filters or {})
        criteria = {k: v for k, v in filters.items() if k in ('user_id', 'status') and v is not None}
        return self._list('support_tickets', criteria, order_by='created_at', descending=True)

    def list_support_tickets_for_user(self, user_id):
        return self.list_support_tickets({'user_id': user_id})

    def get_support_ticket(self, ticket_id):
        return self._get('support_tickets', ticket_id)

    def create_support_ticket(self, data):
        record = dict(data)
        if not record.get('ticket_number'):
            record['ticket_number'] = generate_reference_number('TKT')
        return self._insert('support_tickets', record)

    def update_support_ticket(self, ticket_id, data):
        return self._update('support_tickets', ticket_id, data)

    def delete_support_ticket(self, ticket_id):
        return self._delete('support_tickets', ticket_id)

    def list_case_studies(self, filters=None):
        filters = dict(filters or {})
        criteria = {k: v for k, v in filters.items() if k in ('user_id', 'approved', 'featured') and v is not None}
        return self._list('case_studies', criteria, order_by='created_at', descending=True)

    def list_case_studies_for_user(self, user_id):
        return self.list_case_studies({'user_id': user_id})

    def get_case_study(self, case_study_id):
        return self._get('case_studies', case_study_id)

    def create_case_study(self, data):
        return self._insert('case_studies', data)

    def update_case_study(self, case_study_id, data):
        return self._update('case_studies', case_study_id, data)

    def delete_case_study(self, case_study_id):
        return self._delete('case_studies', case_study_id)

    # --- System settings ------------------------------------------------

    def get_setting(self, key, default=None):
        row = self._find_one('system_settings', setting_key=key)
        if not row or row.get('setting_value') is None:
            return default
        return row['setting_value']

    def set_setting(self, key, value):
        row = self._find_one('system_settings', setting_key=key)
        if row:
            return self._update('system_settings', row['id'], {'setting_value': value})
        return self._insert('system_settings', {'setting_key': key, 'setting_value': value})

    # --- API keys -------------------------------------------------------

    def create_api_key(self, name, created_by=None, expires_at=None):
        """Returns (raw_key, record). The raw key is only available here; only its hash is stored."""
        raw_key = API_KEY_PREFIX + secrets.token_hex(32)
        record = self._insert('api_keys', {
            'name': name,
            'key_prefix': raw_key[:API_KEY_PREFIX_LENGTH],
            'key_hash': generate_password_hash(raw_key),
            'created_by': created_by,
            'is_active': True,
            'expires_at': expires_at,
        })
        return raw_key, record

    def validate_api_key(self, raw_key):
        if not raw_key or not raw_key.startswith(API_KEY_PREFIX):
            return None
        now = datetime.now(timezone.utc)
        for candidate in self._list('api_keys', {'key_prefix': raw_key[:API_KEY_PREFIX_LENGTH], 'is_active': True}):
            expires_at = parse_datetime_from_iso(candidate.get('expires_at'))
            if expires_at and expires_at <= now:
                continue
            key_hash = self._get_hidden('api_keys', candidate['id'], 'key_hash')
            if key_hash and check_password_hash(key_hash, raw_key):
                return self._update('api_keys', candidate['id'], {'last_used_at': now})
        return None

    def list_api_keys(self, active_only=False):
        criteria = {'is_active': True} if active_only else {}
        return self._list('api_keys', criteria, order_by='created_at', descending=True)

    def revoke_api_key(self, key_id):
        return self._update('api_keys', key_id, {'is_active': False}) is not None

    def delete_api_key(self, key_id):
        return self._delete('api_keys', key_id)

    # --- Gamification: tiers, achievements, milestones --------------------

    def list_tiers(self, active_only=True):
        criteria = {'is_active': True} if active_only else {}
        return self._list('gamification_tiers', criteria, order_by='min_score')

    def get_tier(self, tier_id):
        return self._get('gamification_tiers', tier_id)

    def get_tier_by_score(self, score):
        for tier in self.list_tiers():
            if tier['min_score'] <= score and (tier['max_score'] is None or score <= tier['max_score']):
                return tier
        return None

    def create_tier(self, data):
        return self._insert('gamification_tiers', data)

    def update_tier(self, tier_id, data):
        return self._update('gamification_tiers', tier_id, data)

    def list_achievements(self, active_only=False):
        criteria = {'is_active': True} if active_only else {}
        return self._list('achievements', criteria)

    def get_achievement(self, achievement_id):
        return self._get('achievements', achievement_id)

    def create_achievement(self, data):
        return self._insert('achievements', data)

    def update_achievement(self, achievement_id, data):
        return self._update('achievements', achievement_id, data)

    def delete_achievement(self, achievement_id):
        self._delete_where('user_achievement_progress', achievement_id=achievement_id)
        return self._delete('achievements', achievement_id)

    def get_achievement_progress(self, user_id, achievement_id):
        return self._find_one('user_achievement_progress', user_id=user_id, achievement_id=achievement_id)

    def list_achievement_progress(self, user_id):
        return self._list('user_achievement_progress', {'user_id': user_id})

    def create_achievement_progress(self, data):
        return self._insert('user_achievement_progress', data)

    def update_achievement_progress(self, progress_id, data):
        return self._update('user_achievement_progress', progress_id, data)

    def unlock_achievement(self, user_id, achievement_id):
        unlocked = {'is_unlocked': True, 'progress_percent': 100, 'unlocked_at': datetime.now(timezone.utc)}
        progress = self.get_achievement_progress(user_id, achievement_id)
        if progress:
            return self.update_achievement_progress(progress['id'], unlocked)
        return self.create_achievement_progress(dict(unlocked, user_id=user_id, achievement_id=achievement_id))

    def list_milestones(self, active_only=False):
        criteria = {'is_active': True} if active_only else {}
        return self._list('milestones', criteria, order_by='required_score')

    def get_milestone(self, milestone_id):
        return self._get('milestones', milestone_id)

    def create_milestone(self, data):
        return self._insert('milestones', data)

    def update_milestone(self, milestone_id, data):
        return self._update('milestones', milestone_id, data)

    def delete_milestone(self, milestone_id):
        self._delete_where('user_milestone_events', milestone_id=milestone_id)
        return self._delete('milestones', milestone_id)

    def has_reached_milestone(self, user_id, milestone_id):
        return self._find_one('user_milestone_events', user_id=user_id, milestone_id=milestone_id) is not None

    def create_milestone_event(self, user_id, milestone_id, event_data=None):
        return self._insert('user_milestone_events', {
            'user_id': user_id, 'milestone_id': milestone_id, 'event_data': event_data or {}
        })

    def list_milestone_events(self, user_id):
        return self._list('user_milestone_events', {'user_id': user_id}, order_by='reached_at', descending=True)

    # --- Gamification: user progress ---------------------------------------

    def get_user_progress(self, user_id):
        return self._find_one('user_progress', user_id=user_id)

    def _ensure_user_progress(self, user_id):
        return self.get_user_progress(user_id) or self._insert('user_progress', {'user_id': user_id})

    def add_experience_points(self, user_id, points):
        progress = self._ensure_user_progress(user_id)
        experience = progress['experience_points'] + points
        level = max(progress['level'], experience // XP_PER_LEVEL + 1)
        return self._update('user_progress', progress['id'], {
            'experience_points': experience,
            'total_points': progress['total_points'] + points,
            'level': level,
        })

    def update_streak(self, user_id, now=None):
        """Consecutive-day activity streak: same day is a no-op, the next day
        extends it, any longer gap restarts it at 1."""
        progress = self._ensure_user_progress(user_id)
        now = now or datetime.now(timezone.utc)
        last_activity = parse_datetime_from_iso(progress.get('last_activity_date'))
        if last_activity is None:
            streak = 1
        else:
            days = (now.date() - last_activity.date()).days
            if days <= 0:
                return progress
            streak = progress['current_streak'] + 1 if days == 1 else 1
        return self._update('user_progress', progress['id'], {
            'current_streak': streak,
            'longest_streak': max(progress['longest_streak'], streak),
            'last_activity_date': now,
        })

    # --- ESG scores -----------------------------------------------------

    def get_current_esg_score(self, user_id):
        return self._find_one('esg_scores', user_id=user_id, period='current')

    def create_esg_score(self, data):
        return self._insert('esg_scores', data)

    def update_esg_score(self, score_id, data):
        return self._update('esg_scores', score_id, data)

    def list_top_esg_scores(self, limit=10, period='current'):
        return self._list('esg_scores', {'period': period}, order_by='total_score', descending=True, limit=limit)

    def list_esg_scores(self, period='current'):
        return self._list('esg_scores', {'period': period}, order_by='total_score', descending=True)

    # --- Audit log and dashboard ------------------------------------------

    def create_audit_log(self, data):
        return self._insert('audit_logs', data)

    def list_audit_logs(self, limit=100):
        return self._list('audit_logs', order_by='created_at', descending=True, limit=limit)

    def get_dashboard_stats(self):
        return {
            'total_users': self._count('users'),
            'active_users': self._count('users', is_active=True),
            'pending_users': self._count('users', pending_approval=True),
            'total_orders': self._count('orders'),
            'total_rmas': self._count('rmas'),
            'open_rma_requests': self._count('rma_request_logs', status='submitted'),
            'open_support_tickets': self._count('support_tickets', status='open'),
            'total_impact': self.get_total_impact(),
        }
