# circular_portal/storage/__init__.py
from .base import BaseStorage
from .orm_storage import OrmStorage
from .sql_storage import SqlStorage, close_db_connection, init_db_schema


def create_storage(app):
    """Builds the backend named by STORAGE_BACKEND and wires its teardown."""
    backend = app.config.get('STORAGE_BACKEND', 'orm')
    if backend == 'sql':
        app.teardown_appcontext(close_db_connection)
        storage = SqlStorage(logger=app.logger)
    else:
        storage = OrmStorage(logger=app.logger)
    app.logger.info(f"Storage backend: {storage.__class__.__name__}")
    return storage
