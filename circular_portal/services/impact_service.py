# circular_portal/services/impact_service.py
# Per-order environmental impact: per-laptop metrics times the number of units ordered.

DEFAULT_SUSTAINABILITY_METRICS = {
    'carbon_reduction_per_laptop': 316000,        # grams CO2e
    'resource_preservation_per_laptop': 1200000,  # grams of minerals
    'water_saved_per_laptop': 190000,             # litres
    'families_helped_per_laptop': 1,
    'trees_equivalent_per_laptop': 3,
}


def get_sustainability_metrics(storage):
    return {**DEFAULT_SUSTAINABILITY_METRICS, **(storage.get_setting('sustainability_metrics') or {})}

def calculate_order_impact(storage, order_id, metrics=None):
    metrics = metrics or get_sustainability_metrics(storage)
    units = sum(item['quantity'] for item in storage.get_order_items(order_id))
    return {
        'carbon_saved': metrics['carbon_reduction_per_laptop'] * units,
        'water_provided': metrics['water_saved_per_laptop'] * units,
        'minerals_saved': metrics['resource_preservation_per_laptop'] * units,
        'trees_equivalent': metrics['trees_equivalent_per_laptop'] * units,
        'families_helped': metrics['families_helped_per_laptop'] * units,
    }

def recalculate_order_impact(storage, order_id, metrics=None):
    """Creates or refreshes the impact row for one order. Returns the row, or None for unknown orders."""
    order = storage.get_order(order_id)
    if not order:
        return None
    impact = calculate_order_impact(storage, order_id, metrics)
    existing = storage.get_impact_for_order(order_id)
    if existing:
        return storage.update_impact(existing['id'], dict(impact, user_id=order['user_id']))
    return storage.create_impact(dict(impact, user_id=order['user_id'], order_id=order_id))

def recalculate_all_impacts(storage):
    metrics = get_sustainability_metrics(storage)
    orders = storage.list_orders()
    for order in orders:
        recalculate_order_impact(storage, order['id'], metrics)
    return len(orders)
