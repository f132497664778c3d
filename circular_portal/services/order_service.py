# circular_portal/services/order_service.py
from flask import current_app

from . import impact_service
from ..models.enums import OrderStatusEnum


def order_with_items(storage, order):
    if order is None:
        return None
    return dict(order, items=storage.get_order_items(order['id']))

def create_order_with_items(storage, data, items):
    """Creates the order, its items and first status update, then its impact row."""
    order = storage.create_order(data)
    for item in items:
        storage.create_order_item(order['id'], item)
    storage.create_order_update(order['id'], order['status'], "Order placed")
    impact_service.recalculate_order_impact(storage, order['id'])
    current_app.logger.info(f"Order {order['order_number']} created for user {order['user_id']} with {len(items)} items")
    return order

def add_order_item(storage, order_id, item):
    created = storage.create_order_item(order_id, item)
    impact_service.recalculate_order_impact(storage, order_id)
    return created

def apply_order_changes(storage, scoring_service, order, changes, items=None, status_message=None):
    """
    Updates an order. A status change is recorded as an order update and a
    move to 'shipped' awards the owner's one-off shipping bonus. Replacing
    the items refreshes the order's environmental impact.
    Returns the updated order.
    """
    updated = storage.update_order(order['id'], changes) if changes else order
    new_status = changes.get('status')
    if new_status and new_status != order['status']:
        storage.create_order_update(order['id'], new_status, status_message or f"Order status changed to {new_status}")
        if new_status == OrderStatusEnum.SHIPPED.value:
            scoring_service.award_shipping_bonus(order['user_id'], order['id'])
    elif status_message:
        storage.create_order_update(order['id'], updated['status'], status_message)

    if items is not None:
        storage.replace_order_items(order['id'], items)
        impact_service.recalculate_order_impact(storage, order['id'])
    return updated

def upsert_pushed_order(storage, scoring_service, order_number, email, data, items=None):
    """
    Create-or-update used by the data-push API. Returns (order, created).
    Raises LookupError when no user owns `email`.
    """
    previous = storage.get_order_by_number(order_number)
    order, created = storage.upsert_order(order_number, email, data, items)
    if created or items is not None or order['user_id'] != previous['user_id']:
        impact_service.recalculate_order_impact(storage, order['id'])
    previous_status = previous['status'] if previous else None
    if order['status'] != previous_status:
        storage.create_order_update(order['id'], order['status'], "Order placed" if created else f"Order status changed to {order['status']}")
        if order['status'] == OrderStatusEnum.SHIPPED.value:
            scoring_service.award_shipping_bonus(order['user_id'], order['id'])
    return order, created
