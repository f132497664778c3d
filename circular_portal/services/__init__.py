# circular_portal/services/__init__.py
