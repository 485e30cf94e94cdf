"""
Registration API endpoints

Public registration by share code, returning-participant lookup, participant
session selection and self-service profile and survey edits.
"""

from flask import Blueprint, jsonify, request, current_app
from flask_login import login_user, current_user
from peewee import PeeweeException

from meetspark import registration as resolver
from meetspark import survey
from meetspark.decorators import participant_required, participant_or_organizer_required
from meetspark.models.event import Event
from meetspark.models.registration import Registration
from meetspark.utils import error_response, not_found, get_json_body

bp = Blueprint('registrations', __name__)


def _event_by_code(code):
    return Event.get_or_none(Event.share_code == code)


@bp.route('/register/<code>/lookup')
def lookup_participants(code):
    """Name suggestions for returning participants (3+ characters)"""
    event = _event_by_code(code)
    if not event:
        return not_found('Event')
    matches = resolver.match_names(resolver.load_known_participants(event), request.args.get('name', ''))
    return jsonify({
        'success': True,
        'matches': [{'id': participant_id, 'name': name} for participant_id, name in matches],
    })


@bp.route('/register/<code>', methods=['POST'])
def register(code):
    """Register for an event, or update the registration picked from the lookup"""
    event = _event_by_code(code)
    if not event:
        return not_found('Event')

    data = get_json_body()
    try:
        registration, created = resolver.submit_registration(
            event, data, answers=data.get('answers'), existing_id=data.get('existing_id'))
    except (resolver.RegistrationError, survey.SurveyValidationError) as e:
        return error_response(str(e))
    except PeeweeException as e:
        current_app.logger.error(f"Registration failed for event {event.id}: {e}")
        return error_response('Registration failed. Please try again.', 500)

    login_user(registration)
    return jsonify({
        'success': True,
        'created': created,
        'registration': registration.to_dict(),
    }), 201 if created else 200


@bp.route('/register/<code>/welcome-back', methods=['POST'])
def welcome_back(code):
    """Skip the form for a recognised returning participant"""
    event = _event_by_code(code)
    if not event:
        return not_found('Event')

    registration = resolver.welcome_back(event, get_json_body().get('registration_id'))
    if not registration:
        return not_found('Registration')

    login_user(registration)
    return jsonify({'success': True, 'event_id': event.id, 'registration_id': registration.id})


def _get_registration(registration_id):
    return Registration.get_or_none(Registration.id == registration_id)


@bp.route('/registrations/<int:registration_id>/session', methods=['POST'])
def select_participant(registration_id):
    """Participant selects themselves from the event's list"""
    registration = _get_registration(registration_id)
    if not registration:
        return not_found('Registration')
    login_user(registration)
    current_app.logger.info(f"Participant {registration.id} selected for event {registration.event_id}")
    return jsonify({'success': True, 'registration': registration.to_dict()})


@bp.route('/registrations/<int:registration_id>')
@participant_or_organizer_required
def get_registration(registration_id):
    registration = _get_registration(registration_id)
    if not registration:
        return not_found('Registration')
    data = registration.to_dict()
    data['survey'] = survey.survey_view(registration)
    return jsonify({'success': True, 'registration': data})


@bp.route('/registrations/<int:registration_id>', methods=['PUT'])
@participant_required
def update_registration(registration_id):
    registration = _get_registration(registration_id)
    if not registration:
        return not_found('Registration')
    if registration.id != current_user.id:
        return error_response('You can only edit your own profile.', 403)

    try:
        resolver.update_profile(registration, get_json_body())
    except resolver.RegistrationError as e:
        return error_response(str(e))
    except PeeweeException as e:
        current_app.logger.error(f"Failed to update profile {registration.id}: {e}")
        return error_response('Failed to update profile.', 500)

    return jsonify({'success': True, 'registration': registration.to_dict()})


@bp.route('/registrations/<int:registration_id>/survey')
@participant_or_organizer_required
def get_survey(registration_id):
    registration = _get_registration(registration_id)
    if not registration:
        return not_found('Registration')
    return jsonify({'success': True, 'survey': survey.survey_view(registration)})


@bp.route('/registrations/<int:registration_id>/survey', methods=['PUT'])
@participant_required
def update_survey(registration_id):
    registration = _get_registration(registration_id)
    if not registration:
        return not_found('Registration')
    if registration.id != current_user.id:
        return error_response('You can only edit your own answers.', 403)

    try:
        view = survey.update_survey(registration, get_json_body().get('answers'))
    except survey.SurveyValidationError as e:
        return error_response(str(e))
    except PeeweeException as e:
        current_app.logger.error(f"Failed to update survey answers of {registration.id}: {e}")
        return error_response('Failed to update answers.', 500)

    return jsonify({'success': True, 'survey': view})
