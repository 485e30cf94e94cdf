"""
API Blueprint Registry

This module creates and configures the main API blueprint and registers all API sub-modules.
All API endpoints are prefixed with /api/
"""

from flask import Blueprint
from . import events, registrations, meetings, matching, notifications

# Main API blueprint
bp = Blueprint('api', __name__, url_prefix='/api')

# Register sub-blueprints
bp.register_blueprint(events.bp)
bp.register_blueprint(registrations.bp)
bp.register_blueprint(meetings.bp)
bp.register_blueprint(matching.bp)
bp.register_blueprint(notifications.bp)
