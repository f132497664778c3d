# circular_portal/storage/sql_storage.py
# Raw parameterized SQL backend. One sqlite3 connection per application
# context, kept on flask.g; the schema lives in schema.sql.

import json
import os
import sqlite3
from datetime import datetime, timezone

from flask import current_app, g

from .base import BaseStorage
from ..utils import format_datetime_for_storage

# Column kinds per table. Only listed columns are ever written, so keys in
# caller data can never reach the SQL text.
TABLES = {
    'users': {
        'username': 'str', 'password_hash': 'str', 'name': 'str', 'company': 'str', 'email': 'str',
        'phone_number': 'str', 'is_admin': 'bool', 'is_active': 'bool', 'pending_approval': 'bool',
        'notification_preferences': 'json', 'created_at': 'datetime',
    },
    'api_keys': {
        'name': 'str', 'key_prefix': 'str', 'key_hash': 'str', 'created_by': 'int', 'is_active': 'bool',
        'expires_at': 'datetime', 'last_used_at': 'datetime', 'created_at': 'datetime',
    },
    'orders': {
        'order_number': 'str', 'user_id': 'int', 'status': 'str', 'total_amount': 'int', 'saved_amount': 'int',
        'order_date': 'datetime', 'estimated_delivery': 'datetime', 'tracking_number': 'str',
        'shipping_address': 'str', 'notes': 'str', 'created_at': 'datetime',
    },
    'order_items': {
        'order_id': 'int', 'product_name': 'str', 'product_description': 'str', 'quantity': 'int',
        'unit_price': 'int', 'total_price': 'int', 'image_url': 'str', 'created_at': 'datetime',
    },
    'order_updates': {
        'order_id': 'int', 'status': 'str', 'message': 'str', 'timestamp': 'datetime', 'created_at': 'datetime',
    },
    'delivery_timelines': {
        'order_id': 'int', 'order_placed': 'bool', 'customer_success_call_booked': 'bool',
        'rate_your_experience': 'bool', 'customer_success_intro_call': 'bool', 'order_in_progress': 'bool',
        'order_being_built': 'bool', 'quality_checks': 'bool', 'ready_for_delivery': 'bool',
        'order_delivered': 'bool', 'rate_your_product': 'bool', 'customer_success_call_booked_post': 'bool',
        'customer_success_check_in': 'bool', 'order_completed': 'bool',
        'created_at': 'datetime', 'updated_at': 'datetime',
    },
    'environmental_impact': {
        'user_id': 'int', 'order_id': 'int', 'carbon_saved': 'int', 'water_provided': 'int',
        'minerals_saved': 'int', 'trees_equivalent': 'int', 'families_helped': 'int', 'created_at': 'datetime',
    },
    'rmas': {
        'rma_number': 'str', 'user_id': 'int', 'order_id': 'int', 'reason': 'str', 'status': 'str',
        'request_date': 'datetime', 'completion_date': 'datetime', 'notes': 'str', 'created_at': 'datetime',
    },
    'rma_items': {
        'rma_id': 'int', 'product_make_model': 'str', 'manufacturer_serial_number': 'str',
        'in_house_serial_number': 'str', 'fault_description': 'str', 'status': 'str', 'resolution': 'str',
        'created_at': 'datetime',
    },
    'rma_request_logs': {
        'request_number': 'str', 'user_id': 'int', 'submitted_by_user_id': 'int', 'email': 'str',
        'full_name': 'str', 'company_name': 'str', 'payload': 'json', 'status': 'str',
        'notification_channel': 'str', 'notification_detail': 'str', 'created_at': 'datetime', 'updated_at': 'datetime',
    },
    'warranties': {
        'serial_number': 'str', 'manufacturer_serial_number': 'str', 'product_description': 'str',
        'customer_name': 'str', 'warranty_start_date': 'datetime', 'warranty_end_date': 'datetime',
        'warranty_description': 'str', 'created_at': 'datetime', 'updated_at': 'datetime',
    },
    'water_projects': {
        'name': 'str', 'location': 'str', 'description': 'str', 'people_impacted': 'int',
        'water_provided': 'int', 'image_url': 'str', 'created_at': 'datetime',
    },
    'support_tickets': {
        'ticket_number': 'str', 'user_id': 'int', 'order_id': 'int', 'subject': 'str', 'description': 'str',
        'status': 'str', 'created_at': 'datetime', 'updated_at': 'datetime',
    },
    'case_studies': {
        'user_id': 'int', 'company_name': 'str', 'contact_name': 'str', 'contact_email': 'str',
        'contact_phone': 'str', 'industry_type': 'str', 'employee_count': 'int', 'testimonial': 'str',
        'approved': 'bool', 'featured': 'bool', 'created_at': 'datetime',
    },
    'gamification_tiers': {
        'name': 'str', 'description': 'str', 'min_score': 'int', 'max_score': 'int', 'color': 'str',
        'icon': 'str', 'sort_order': 'int', 'is_active': 'bool', 'created_at': 'datetime',
    },
    'achievements': {
        'name': 'str', 'description': 'str', 'metric': 'str', 'threshold_value': 'int', 'icon': 'str',
        'badge_color': 'str', 'reward_points': 'int', 'is_active': 'bool', 'created_at': 'datetime',
    },
    'user_achievement_progress': {
        'user_id': 'int', 'achievement_id': 'int', 'current_value': 'int', 'progress_percent': 'int',
        'is_unlocked': 'bool', 'unlocked_at': 'datetime', 'created_at': 'datetime', 'updated_at': 'datetime',
    },
    'milestones': {
        'name': 'str', 'description': 'str', 'required_score': 'int', 'reward_points': 'int', 'icon': 'str',
        'color': 'str', 'is_active': 'bool', 'created_at': 'datetime',
    },
    'user_milestone_events': {
        'user_id': 'int', 'milestone_id': 'int', 'reached_at': 'datetime', 'event_data': 'json',
        'created_at': 'datetime',
    },
    'user_progress': {
        'user_id': 'int', 'level': 'int', 'experience_points': 'int', 'total_points': 'int',
        'current_streak': 'int', 'longest_streak': 'int', 'last_activity_date': 'datetime',
        'created_at': 'datetime', 'updated_at': 'datetime',
    },
    'esg_scores': {
        'user_id': 'int', 'period': 'str', 'total_score': 'int', 'carbon_score': 'int', 'water_score': 'int',
        'resources_score': 'int', 'social_score': 'int', 'tier_id': 'int', 'details': 'json',
        'calculated_at': 'datetime', 'created_at': 'datetime',
    },
    'system_settings': {
        'setting_key': 'str', 'setting_value': 'json', 'created_at': 'datetime', 'updated_at': 'datetime',
    },
    'audit_logs': {
        'user_id': 'int', 'action': 'str', 'target_type': 'str', 'target_id': 'int', 'details': 'str',
        'ip_address': 'str', 'status': 'str', 'created_at': 'datetime',
    },
}

HIDDEN_COLUMNS = {'password_hash', 'key_hash'}

# Columns stamped with the current time on insert when the caller gives none
INSERT_TIMESTAMPS = {
    'created_at', 'updated_at', 'order_date', 'timestamp', 'request_date', 'reached_at', 'calculated_at',
}


def get_db_connection():
    """
    Returns the sqlite3 connection for the current application context,
    opening it on first use and storing it on flask.g.
    """
    if 'sql_storage_conn' not in g or g.sql_storage_conn is None:
        db_path = current_app.config['SQL_DATABASE_PATH']
        try:
            if db_path != ':memory:':
                os.makedirs(os.path.dirname(db_path) or '.', exist_ok=True)
            g.sql_storage_conn = sqlite3.connect(db_path)
            g.sql_storage_conn.row_factory = sqlite3.Row
            g.sql_storage_conn.execute("PRAGMA foreign_keys = ON;")
            current_app.logger.debug(f"SQL storage connection established to {db_path}")
        except sqlite3.Error as e:
            current_app.logger.error(f"SQL storage connection error: {e}")
            raise
    return g.sql_storage_conn

def close_db_connection(e=None):
    db_conn = g.pop('sql_storage_conn', None)
    if db_conn is not None:
        try:
            db_conn.close()
        except sqlite3.Error as close_error:
            current_app.logger.error(f"Error closing SQL storage connection: {close_error}")

def init_db_schema(db_conn=None):
    """Creates the tables from schema.sql (idempotent)."""
    db_conn = db_conn or get_db_connection()
    schema_path = os.path.join(os.path.dirname(__file__), 'schema.sql')
    with open(schema_path, 'r') as f:
        sql_script = f.read()
    try:
        db_conn.executescript(sql_script)
        db_conn.commit()
        current_app.logger.info("SQL storage schema initialized from schema.sql.")
    except sqlite3.Error as e:
        current_app.logger.error(f"Error initializing SQL storage schema: {e}")
        db_conn.rollback()
        raise


class SqlStorage(BaseStorage):
    """Storage backed by hand-written, parameterized SQLite statements."""

    def _columns(self, table):
        try:
            return TABLES[table]
        except KeyError:
            raise ValueError(f"Unknown table '{table}'")

    def _to_db(self, kind, value):
        if value is None:
            return None
        if kind == 'json':
            return json.dumps(value)
        if kind == 'bool':
            return 1 if value else 0
        if kind == 'datetime':
            return format_datetime_for_storage(value)
        if hasattr(value, 'value'):
            return value.value
        return value

    def _from_db(self, table, row):
        if row is None:
            return None
        columns = self._columns(table)
        data = {'id': row['id']}
        for column, kind in columns.items():
            if column in HIDDEN_COLUMNS:
                continue
            value = row[column]
            if value is not None:
                if kind == 'json':
                    value = json.loads(value)
                elif kind == 'bool':
                    value = bool(value)
            data[column] = value
        return data

    def _prepare(self, table, data):
        columns = self._columns(table)
        return {key: self._to_db(columns[key], value) for key, value in data.items() if key in columns}

    def _where(self, table, criteria):
        prepared = self._prepare(table, criteria or {})
        clauses, params = [], []
        for column, value in prepared.items():
            if value is None:
                clauses.append(f"{column} IS NULL")
            else:
                clauses.append(f"{column} = ?")
                params.append(value)
        return (" WHERE " + " AND ".join(clauses)) if clauses else "", params

    def _execute(self, sql, params=()):
        conn = get_db_connection()
        try:
            cursor = conn.execute(sql, params)
            conn.commit()
            return cursor
        except sqlite3.Error:
            conn.rollback()
            raise

    def _get(self, table, record_id):
        self._columns(table)
        row = get_db_connection().execute(f"SELECT * FROM {table} WHERE id = ?", (record_id,)).fetchone()
        return self._from_db(table, row)

    def _find_one(self, table, **criteria):
        where, params = self._where(table, criteria)
        row = get_db_connection().execute(f"SELECT * FROM {table}{where} ORDER BY id LIMIT 1", params).fetchone()
        return self._from_db(table, row)

    def _list(self, table, criteria=None, search=None, order_by='id', descending=False, limit=None):
        columns = self._columns(table)
        where, params = self._where(table, criteria)
        if search:
            term, search_columns = search
            likes = [f"LOWER({column}) LIKE ?" for column in search_columns if column in columns]
            if likes:
                where += (" AND " if where else " WHERE ") + "(" + " OR ".join(likes) + ")"
                params.extend([f"%{term.lower()}%"] * len(likes))
        if order_by != 'id' and order_by not in columns:
            raise ValueError(f"Cannot order {table} by '{order_by}'")
        direction = "DESC" if descending else "ASC"
        sql = f"SELECT * FROM {table}{where} ORDER BY {order_by} {direction}, id {direction}"
        if limit:
            sql += " LIMIT ?"
            params.append(int(limit))
        rows = get_db_connection().execute(sql, params).fetchall()
        return [self._from_db(table, row) for row in rows]

    def _insert(self, table, data):
        columns = self._columns(table)
        record = dict(data)
        now = datetime.now(timezone.utc)
        for column in INSERT_TIMESTAMPS:
            if column in columns and record.get(column) is None:
                record[column] = now
        prepared = {key: value for key, value in self._prepare(table, record).items() if value is not None}
        prepared.pop('id', None)
        names = ", ".join(prepared)
        placeholders = ", ".join("?" for _ in prepared)
        cursor = self._execute(f"INSERT INTO {table} ({names}) VALUES ({placeholders})", list(prepared.values()))
        return self._get(table, cursor.lastrowid)

    def _update(self, table, record_id, data):
        columns = self._columns(table)
        record = dict(data)
        if 'updated_at' in columns:
            record['updated_at'] = datetime.now(timezone.utc)
        prepared = self._prepare(table, record)
        prepared.pop('id', None)
        if prepared:
            assignments = ", ".join(f"{column} = ?" for column in prepared)
            self._execute(f"UPDATE {table} SET {assignments} WHERE id = ?", list(prepared.values()) + [record_id])
        return self._get(table, record_id)

    def _delete(self, table, record_id):
        self._columns(table)
        cursor = self._execute(f"DELETE FROM {table} WHERE id = ?", (record_id,))
        return cursor.rowcount > 0

    def _delete_where(self, table, **criteria):
        where, params = self._where(table, criteria)
        cursor = self._execute(f"DELETE FROM {table}{where}", params)
        return cursor.rowcount

    def _count(self, table, **criteria):
        where, params = self._where(table, criteria)
        return get_db_connection().execute(f"SELECT COUNT(*) FROM {table}{where}", params).fetchone()[0]

    def _sum(self, table, columns, **criteria):
        known = self._columns(table)
        selected = [column for column in columns if column in known]
        where, params = self._where(table, criteria)
        sums = ", ".join(f"COALESCE(SUM({column}), 0)" for column in selected)
        row = get_db_connection().execute(f"SELECT {sums} FROM {table}{where}", params).fetchone()
        return dict(zip(selected, tuple(row)))

    def _get_hidden(self, table, record_id, column):
        if column not in HIDDEN_COLUMNS or column not in self._columns(table):
            raise ValueError(f"'{column}' is not a hidden column of {table}")
        row = get_db_connection().execute(f"SELECT {column} FROM {table} WHERE id = ?", (record_id,)).fetchone()
        return row[0] if row else None
