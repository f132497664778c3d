# circular_portal/database.py
import click
from flask import current_app
from flask.cli import with_appcontext

from .content.public_routes import THEME_DEFAULTS
from .models.base import db
from .storage import init_db_schema
from .services.impact_service import DEFAULT_SUSTAINABILITY_METRICS
from .services.scoring_service import DEFAULT_WEIGHTS, DEFAULT_NORMALIZATION

INITIAL_TIERS = [
    {'name': 'Explorer', 'description': 'Starting out on the sustainability journey.', 'min_score': 0, 'max_score': 999,
     'color': '#78909C', 'icon': 'ri-compass-3-line', 'sort_order': 1},
    {'name': 'Innovator', 'description': 'Making significant environmental contributions.', 'min_score': 1000, 'max_score': 4999,
     'color': '#08ABAB', 'icon': 'ri-lightbulb-line', 'sort_order': 2},
    {'name': 'Vanguard', 'description': 'Leading the way in sustainable IT.', 'min_score': 5000, 'max_score': None,
     'color': '#FFD700', 'icon': 'ri-vip-crown-line', 'sort_order': 3},
]

INITIAL_ACHIEVEMENTS = [
    {'name': 'First Steps', 'description': 'Place your first order for remanufactured equipment',
     'metric': 'orders_count', 'threshold_value': 1, 'icon': 'ri-shopping-cart-line', 'reward_points': 100},
    {'name': 'Carbon Saver', 'description': 'Save 1kg of CO2 through your purchases',
     'metric': 'carbon_saved', 'threshold_value': 1000, 'icon': 'ri-leaf-line', 'reward_points': 150},
    {'name': 'Water Champion', 'description': 'Provide clean water to 10 families',
     'metric': 'families_helped', 'threshold_value': 10, 'icon': 'ri-water-flash-line', 'reward_points': 200},
    {'name': 'Carbon Hero', 'description': 'Save 10kg of CO2 emissions',
     'metric': 'carbon_saved', 'threshold_value': 10000, 'icon': 'ri-plant-line', 'reward_points': 500},
    {'name': 'Resource Guardian', 'description': 'Conserve 5kg of precious minerals',
     'metric': 'minerals_saved', 'threshold_value': 5000, 'icon': 'ri-recycle-line', 'reward_points': 400},
    {'name': 'Frequent Buyer', 'description': 'Place 5 orders for sustainable IT equipment',
     'metric': 'orders_count', 'threshold_value': 5, 'icon': 'ri-shopping-bag-3-line', 'reward_points': 300},
    {'name': 'Water Warrior', 'description': 'Provide clean water to 50 families',
     'metric': 'families_helped', 'threshold_value': 50, 'icon': 'ri-water-percent-line', 'reward_points': 750},
    {'name': 'Carbon Champion', 'description': 'Save 50kg of CO2 emissions',
     'metric': 'carbon_saved', 'threshold_value': 50000, 'icon': 'ri-trophy-line', 'reward_points': 1000},
]

INITIAL_MILESTONES = [
    {'name': 'Journey Begins', 'description': 'Welcome to your sustainability journey.',
     'required_score': 0, 'reward_points': 0, 'icon': 'ri-footprint-line'},
    {'name': 'First Impact Recorded', 'description': 'Made your first environmental impact through sustainable technology.',
     'required_score': 100, 'reward_points': 100, 'icon': 'ri-seedling-line'},
    {'name': 'Gaining Momentum', 'description': 'Building consistent environmental impact.',
     'required_score': 500, 'reward_points': 250, 'icon': 'ri-rocket-line'},
    {'name': 'Innovator Status Achieved', 'description': 'Reached the Innovator tier.',
     'required_score': 1000, 'reward_points': 500, 'icon': 'ri-lightbulb-flash-line'},
    {'name': 'Impact Multiplier', 'description': 'Amplifying your environmental influence.',
     'required_score': 2500, 'reward_points': 750, 'icon': 'ri-line-chart-line'},
    {'name': 'Vanguard Leader', 'description': 'Achieved Vanguard status.',
     'required_score': 5000, 'reward_points': 1000, 'icon': 'ri-medal-line'},
    {'name': 'Sustainability Champion', 'description': 'Setting the gold standard for environmental responsibility.',
     'required_score': 10000, 'reward_points': 2000, 'icon': 'ri-trophy-fill'},
]

INITIAL_WATER_PROJECTS = [
    {'name': 'Borehole Restoration', 'location': 'Kenya', 'people_impacted': 1500, 'water_provided': 2500000,
     'description': 'Repairing community boreholes so villages have year-round access to safe water.'},
    {'name': 'School Rainwater Harvesting', 'location': 'Uganda', 'people_impacted': 800, 'water_provided': 900000,
     'description': 'Rainwater tanks and filtration for rural primary schools.'},
]

DEFAULT_SETTINGS = {
    'admin_settings': {
        'visible_tabs': ['dashboard', 'orders', 'impact', 'rma', 'support', 'case-studies', 'gamification'],
        'rma_notification_emails': [],
        'new_user_alert_emails': [],
        'rma_webhook_url': None,
    },
    'scoring_weights': DEFAULT_WEIGHTS,
    'scoring_normalization': DEFAULT_NORMALIZATION,
    'sustainability_metrics': DEFAULT_SUSTAINABILITY_METRICS,
    'leaderboard_config': {'anonymize_names': True, 'show_top_n': 10},
    'theme': THEME_DEFAULTS,
}


def init_storage_schema():
    """Creates the tables for whichever storage backend is configured."""
    if current_app.config.get('STORAGE_BACKEND') == 'sql':
        init_db_schema()
    else:
        db.create_all()

def populate_initial_data(storage):
    """Seeds reference data through the storage layer. Existing data is left alone."""
    admin_email = current_app.config.get('INITIAL_ADMIN_EMAIL')
    admin_password = current_app.config.get('INITIAL_ADMIN_PASSWORD')
    if admin_email and admin_password:
        if not storage.get_user_by_email(admin_email):
            storage.create_user({
                'username': current_app.config.get('INITIAL_ADMIN_USERNAME') or admin_email,
                'password': admin_password,
                'name': 'Administrator',
                'company': 'Circular Computing',
                'email': admin_email,
                'is_admin': True,
                'is_active': True,
            })
            current_app.logger.info(f"Admin user '{admin_email}' created.")
        else:
            current_app.logger.info(f"Admin user '{admin_email}' already exists.")
    else:
        current_app.logger.warning(
            "INITIAL_ADMIN_EMAIL or INITIAL_ADMIN_PASSWORD not set in config. "
            "Initial admin user will not be created automatically."
        )

    if not storage.list_tiers(active_only=False):
        for tier in INITIAL_TIERS:
            storage.create_tier(tier)
        current_app.logger.info(f"{len(INITIAL_TIERS)} gamification tiers created.")

    if not storage.list_achievements():
        for achievement in INITIAL_ACHIEVEMENTS:
            storage.create_achievement(achievement)
        current_app.logger.info(f"{len(INITIAL_ACHIEVEMENTS)} achievements created.")

    if not storage.list_milestones():
        for milestone in INITIAL_MILESTONES:
            storage.create_milestone(milestone)
        current_app.logger.info(f"{len(INITIAL_MILESTONES)} milestones created.")

    for key, value in DEFAULT_SETTINGS.items():
        if storage.get_setting(key) is None:
            storage.set_setting(key, value)

    if not storage.list_water_projects():
        for project in INITIAL_WATER_PROJECTS:
            storage.create_water_project(project)
        current_app.logger.info(f"{len(INITIAL_WATER_PROJECTS)} water projects created.")


@click.command('init-db')
@with_appcontext
def init_db_command():
    """Creates all tables for the configured storage backend."""
    init_storage_schema()
    click.echo(f"Schema created for the '{current_app.config.get('STORAGE_BACKEND')}' storage backend.")

@click.command('init-sql-schema')
@with_appcontext
def init_sql_schema_command():
    """Applies schema.sql to SQL_DATABASE_PATH."""
    init_db_schema()
    click.echo(f"SQL schema applied to {current_app.config['SQL_DATABASE_PATH']}.")

@click.command('seed-db')
@with_appcontext
def seed_db_command():
    """Seeds the admin user, gamification reference data and default settings."""
    init_storage_schema()
    populate_initial_data(current_app.storage)
    click.echo('Database seeded with initial data.')

@click.command('create-api-key')
@click.argument('name')
@with_appcontext
def create_api_key_command(name):
    """Creates a data-push API key. The raw key is printed once."""
    raw_key, record = current_app.storage.create_api_key(name)
    current_app.audit_log_service.log_action('api_key_created_cli', target_type='api_key', target_id=record['id'],
                                             details=f"Key '{name}' created from the command line.")
    click.echo(f"API key '{name}' (id {record['id']}): {raw_key}")
    click.echo('Store it now; it cannot be shown again.')

def register_db_commands(app):
    """Registers database-related CLI commands."""
    app.cli.add_command(init_db_command)
    app.cli.add_command(init_sql_schema_command)
    app.cli.add_command(seed_db_command)
    app.cli.add_command(create_api_key_command)
    app.logger.info("Database CLI commands registered.")
