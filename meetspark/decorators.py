"""
Shared decorators for MeetSpark

Actor resolution for the JSON API: a participant session (flask_login) or an
organizer display name kept in the session.
"""

from functools import wraps
from flask import jsonify, session
from flask_login import current_user


def get_organizer_name():
    """Organizer display name for this session, or None"""
    name = session.get('organizer_name')
    return name.strip() if name and name.strip() else None


def participant_required(f):
    """Decorator to require a selected participant"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return jsonify({'success': False, 'error': 'Select your registration to continue.'}), 401
        return f(*args, **kwargs)
    return decorated_function


def organizer_required(f):
    """Decorator to require an organizer name in the session"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not get_organizer_name():
            return jsonify({'success': False, 'error': 'Organizer name required.'}), 401
        return f(*args, **kwargs)
    return decorated_function


def participant_or_organizer_required(f):
    """Decorator to require either kind of actor"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated and not get_organizer_name():
            return jsonify({'success': False, 'error': 'Please identify yourself to continue.'}), 401
        return f(*args, **kwargs)
    return decorated_function
