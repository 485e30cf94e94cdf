"""
Matching API endpoints

AI match suggestions for an event and turning a suggestion into a meeting
request.
"""

from flask import Blueprint, jsonify, current_app
from flask_login import current_user
from peewee import PeeweeException

from meetspark import matching, meetings
from meetspark.decorators import participant_or_organizer_required
from meetspark.models.event import Event
from meetspark.models.registration import Registration
from meetspark.utils import error_response, not_found, get_json_body

bp = Blueprint('matching', __name__)


@bp.route('/events/<int:event_id>/matches', methods=['POST'])
@participant_or_organizer_required
def generate_matches(event_id):
    """Suggest pairs; a selected participant gets their own matches first"""
    event = Event.get_or_none(Event.id == event_id)
    if not event:
        return not_found('Event')

    data = get_json_body()
    if 'focal_id' in data:
        try:
            focal_id = int(data['focal_id']) if data['focal_id'] is not None else None
        except (TypeError, ValueError):
            return error_response('Invalid participant id.')
    else:
        focal_id = current_user.id if current_user.is_authenticated else None

    participants = list(Registration.select().where(Registration.event == event).order_by(Registration.created_at))
    try:
        suggestions = matching.suggest_matches(event, participants, focal_id=focal_id)
    except matching.SuggestionError as e:
        current_app.logger.error(f"Failed to generate matches for event {event.id}: {e}")
        return error_response(str(e), e.status_code)

    return jsonify({
        'success': True,
        'suggestions': [s.to_dict() for s in suggestions],
        'message': f"Found {len(suggestions)} great matches",
    })


@bp.route('/events/<int:event_id>/matches/create-meeting', methods=['POST'])
@participant_or_organizer_required
def create_meeting(event_id):
    """Create a pending, AI-suggested request from participant1 to participant2"""
    event = Event.get_or_none(Event.id == event_id)
    if not event:
        return not_found('Event')

    data = get_json_body()
    first = Registration.get_or_none((Registration.id == data.get('participant1_id')) & (Registration.event == event))
    second = Registration.get_or_none((Registration.id == data.get('participant2_id')) & (Registration.event == event))
    if not first or not second:
        return not_found('Participant')

    suggestion = matching.Suggestion(
        participant1=first,
        participant2=second,
        reason=data.get('reason') or '',
        compatibility_score=matching.coerce_score(data.get('compatibility_score')),
    )
    try:
        request, _ = matching.create_meeting_from_suggestion(event, suggestion)
    except meetings.TransitionError as e:
        return error_response(str(e))
    except PeeweeException as e:
        current_app.logger.error(f"Failed to create meeting from suggestion in event {event.id}: {e}")
        return error_response('Failed to create meeting.', 500)

    current_app.logger.info(f"Meeting request {request.id} created from suggestion: {first.name} -> {second.name}")
    return jsonify({
        'success': True,
        'meeting': request.to_dict(),
        'message': f"Sent to {first.name} and {second.name}",
    }), 201
