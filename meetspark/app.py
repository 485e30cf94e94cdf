#!/usr/bin/env python3

import os

from flask import Flask
from flask_login import LoginManager
from dotenv import load_dotenv

from meetspark.database import init_database, database
from meetspark.models.registration import Registration
from meetspark.notifications import AggregatorRegistry
from meetspark.realtime import feed

# Load environment variables
load_dotenv()


def create_app(test_config=None):
    """Create and configure the Flask application"""
    app = Flask(__name__)

    # Configure Flask app
    app.secret_key = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    app.config['SESSION_COOKIE_SECURE'] = False  # Set to True in production with HTTPS
    app.config['SESSION_COOKIE_HTTPONLY'] = True
    app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'
    app.config['DATABASE_PATH'] = os.getenv('DATABASE_PATH')

    if test_config:
        app.config.update(test_config)
        if 'SECRET_KEY' in test_config:
            app.secret_key = test_config['SECRET_KEY']

    # Initialize database
    init_database(app.config['DATABASE_PATH'])

    @app.before_request
    def _db_connect():
        database.connect(reuse_if_open=True)

    @app.teardown_request
    def _db_close(exc):
        if not database.is_closed():
            database.close()

    # Live notifications: change feed plus one aggregator per participant
    feed.connect()
    app.extensions['notifications'] = AggregatorRegistry(feed)

    # Initialize Flask-Login
    login_manager = LoginManager()
    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id):
        """Load the selected participant from database"""
        try:
            return Registration.get(Registration.id == int(user_id))
        except (Registration.DoesNotExist, ValueError):
            return None

    # Register route blueprints
    from meetspark.routes import register_routes
    register_routes(app)

    app.logger.info("MeetSpark application created")
    return app
