"""
Event API endpoints

Organizer session, event creation and dashboard listing, participant lists
and the survey question builder.
"""

from flask import Blueprint, jsonify, request, session, current_app
from peewee import fn, PeeweeException

from meetspark import survey
from meetspark.ai_gateway import AIGatewayError, generate_form_questions
from meetspark.decorators import organizer_required, participant_or_organizer_required, get_organizer_name
from meetspark.models.event import Event
from meetspark.models.registration import Registration
from meetspark.utils import error_response, not_found, get_json_body, parse_date, text_field

bp = Blueprint('events', __name__)


def _get_event(event_id):
    return Event.get_or_none(Event.id == event_id)


@bp.route('/organizer/session', methods=['POST'])
def organizer_session():
    """Remember the organizer display name for this browser session"""
    try:
        name = text_field(get_json_body(), 'name')
    except ValueError:
        name = ''
    if not name:
        return error_response('Please enter your name.')
    session['organizer_name'] = name
    return jsonify({'success': True, 'organizer_name': name})


@bp.route('/events', methods=['POST'])
@organizer_required
def create_event():
    data = get_json_body()
    try:
        name = text_field(data, 'name')
        description = text_field(data, 'description')
        location = text_field(data, 'location')
    except ValueError as e:
        return error_response(f"Invalid event details: {e}.")
    if not name:
        return error_response('Event name is required.')

    try:
        event_date = parse_date(data.get('event_date'))
    except ValueError:
        return error_response('Invalid event date. Use YYYY-MM-DD.')

    try:
        duration = int(data.get('networking_duration') or 5)
    except (TypeError, ValueError):
        return error_response('Networking duration must be a number of minutes.')
    if duration <= 0:
        return error_response('Networking duration must be a number of minutes.')

    try:
        event = Event.create(
            name=name,
            description=description or None,
            event_date=event_date,
            location=location or None,
            networking_duration=duration,
            creator_name=get_organizer_name(),
        )
    except PeeweeException as e:
        current_app.logger.error(f"Failed to create event '{name}': {e}")
        return error_response('Failed to create event.', 500)

    current_app.logger.info(f"Event {event.id} '{event.name}' created by {event.creator_name}")
    return jsonify({'success': True, 'event': event.to_dict(include_private=True)}), 201


@bp.route('/events')
@organizer_required
def my_events():
    """Dashboard: events created under the session's organizer name"""
    organizer_name = get_organizer_name()
    events = (Event.select()
              .where(fn.LOWER(Event.creator_name) == organizer_name.lower())
              .order_by(Event.created_at.desc()))

    result = []
    for event in events:
        data = event.to_dict(include_private=True)
        data['participant_count'] = event.participant_count()
        result.append(data)
    return jsonify({'success': True, 'events': result})


@bp.route('/events/<int:event_id>')
def get_event(event_id):
    event = _get_event(event_id)
    if not event:
        return not_found('Event')
    data = event.to_dict(include_private=event.is_created_by(get_organizer_name()))
    data['participant_count'] = event.participant_count()
    data['has_custom_questions'] = survey.has_custom_questions(event)
    return jsonify({'success': True, 'event': data})


@bp.route('/events/share/<code>')
def get_event_by_share_code(code):
    """Public registration page lookup"""
    event = Event.get_or_none(Event.share_code == code)
    if not event:
        return not_found('Event')
    return jsonify({'success': True, 'event': event.to_dict()})


def _matches_search(registration, query):
    if query in (registration.name or '').lower() or query in (registration.role or '').lower():
        return True
    return any(query in interest.lower() for interest in registration.get_interests())


@bp.route('/events/<int:event_id>/participants')
@participant_or_organizer_required
def list_participants(event_id):
    """Participants of an event, filtered by name, role or interest with ?q="""
    event = _get_event(event_id)
    if not event:
        return not_found('Event')

    query = request.args.get('q', '').strip().lower()
    participants = (Registration.select()
                    .where(Registration.event == event)
                    .order_by(Registration.created_at.desc()))
    if query:
        participants = [p for p in participants if _matches_search(p, query)]

    return jsonify({'success': True, 'participants': [p.to_dict() for p in participants]})


# Survey builder

@bp.route('/events/<int:event_id>/questions')
def get_event_questions(event_id):
    event = _get_event(event_id)
    if not event:
        return not_found('Event')
    questions = survey.get_questions(event)
    return jsonify({
        'success': True,
        'mode': 'custom' if questions else 'legacy',
        'questions': [q.to_dict() for q in questions],
        'legacy_questions': [] if questions else survey.LEGACY_QUESTIONS,
    })


@bp.route('/events/<int:event_id>/questions', methods=['PUT'])
@organizer_required
def save_event_questions(event_id):
    """Replace the whole question set"""
    event = _get_event(event_id)
    if not event:
        return not_found('Event')
    if not event.is_created_by(get_organizer_name()):
        return error_response('Only the organizer of this event can edit its questions.', 403)

    questions = get_json_body().get('questions')
    if not isinstance(questions, list):
        return error_response('Questions must be a list.')

    try:
        saved = survey.replace_questions(event, questions)
    except survey.SurveyValidationError as e:
        return error_response(str(e))
    except PeeweeException as e:
        current_app.logger.error(f"Failed to save questions for event {event.id}: {e}")
        return error_response('Failed to save questions.', 500)

    return jsonify({'success': True, 'questions': [q.to_dict() for q in saved]})


@bp.route('/events/<int:event_id>/questions/generate', methods=['POST'])
@organizer_required
def generate_event_questions(event_id):
    """Draft questions with the AI form generator; nothing is saved"""
    event = _get_event(event_id)
    if not event:
        return not_found('Event')

    try:
        generated = generate_form_questions(event.name, event.description)
    except AIGatewayError as e:
        current_app.logger.error(f"Failed to generate questions for event {event.id}: {e}")
        return error_response(f"Failed to generate questions: {e}", e.status_code)

    return jsonify({'success': True, 'questions': survey.questions_from_generated(generated)})
