"""
Utility functions for MeetSpark

Common helpers used by the JSON API blueprints.
"""

from datetime import datetime

from flask import jsonify, request


def error_response(message, status=400):
    """Standard failure body"""
    return jsonify({'success': False, 'error': message}), status


def not_found(thing):
    return error_response(f"{thing} not found", 404)


def get_json_body():
    """Request JSON as a dict; missing or malformed bodies become {}"""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def text_field(data, key):
    """Stripped string value of a JSON field; ValueError when it is not a string"""
    value = data.get(key)
    if value is None:
        return ''
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string")
    return value.strip()


def parse_date(value):
    """Parse a YYYY-MM-DD string, returns None for empty input"""
    if not value:
        return None
    if not isinstance(value, str):
        raise ValueError(f"date must be a string, got {type(value).__name__}")
    return datetime.strptime(value.strip(), '%Y-%m-%d').date()
