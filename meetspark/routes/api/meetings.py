"""
Meeting API endpoints

Meeting requests between participants, their booking transitions and the
per-meeting chat.
"""

from dataclasses import asdict

from flask import Blueprint, jsonify, current_app
from flask_login import current_user
from peewee import PeeweeException

from meetspark import meetings
from meetspark.decorators import participant_required
from meetspark.models.event import Event
from meetspark.models.meeting_request import MeetingRequest
from meetspark.models.registration import Registration
from meetspark.utils import error_response, not_found, get_json_body

bp = Blueprint('meetings', __name__)


def _request_entry(request, viewer_id):
    """Request as seen by one of its participants"""
    other = Registration.get_or_none(Registration.id == request.other_participant_id(viewer_id))
    data = request.to_dict()
    data['is_requester'] = request.is_requester(viewer_id)
    data['other_participant'] = other.to_dict() if other else None
    data['actions'] = meetings.allowed_actions(request.status, request.is_requester(viewer_id))
    return data


def _get_own_meeting(meeting_id):
    """Meeting the current participant is part of, or an error response"""
    request = MeetingRequest.get_or_none(MeetingRequest.id == meeting_id)
    if not request:
        return None, not_found('Meeting')
    if not request.is_participant(current_user.id):
        return None, error_response('You are not part of this meeting.', 403)
    return request, None


@bp.route('/events/<int:event_id>/meetings')
@participant_required
def list_meetings(event_id):
    """Requests list of the current participant, grouped for display"""
    event = Event.get_or_none(Event.id == event_id)
    if not event:
        return not_found('Event')

    overview = meetings.list_requests(event, current_user.id)

    def entries(requests):
        return [_request_entry(r, current_user.id) for r in requests]

    return jsonify({
        'success': True,
        'active': entries(overview.active),
        'pending_received': entries(overview.pending_received),
        'pending_sent': entries(overview.pending_sent),
        'declined': entries(overview.declined),
    })


@bp.route('/events/<int:event_id>/meetings', methods=['POST'])
@participant_required
def request_meeting(event_id):
    event = Event.get_or_none(Event.id == event_id)
    if not event:
        return not_found('Event')

    data = get_json_body()
    try:
        target_id = int(data.get('target_id'))
    except (TypeError, ValueError):
        return error_response('Pick someone to meet.')

    try:
        request = meetings.propose_meeting(event, current_user.id, target_id, message=data.get('message'))
    except meetings.TransitionError as e:
        return error_response(str(e))
    except PeeweeException as e:
        current_app.logger.error(f"Failed to send meeting request {current_user.id} -> {target_id}: {e}")
        return error_response('Failed to send request.', 500)

    return jsonify({'success': True, 'meeting': _request_entry(request, current_user.id)}), 201


@bp.route('/meetings/<int:meeting_id>')
@participant_required
def get_meeting(meeting_id):
    """Meeting with the booking card view for the current participant"""
    request, error = _get_own_meeting(meeting_id)
    if error:
        return error

    other = Registration.get_or_none(Registration.id == request.other_participant_id(current_user.id))
    if not other:
        return not_found('Participant')

    view = meetings.booking_view(request, current_user.id, other)
    return jsonify({
        'success': True,
        'meeting': _request_entry(request, current_user.id),
        'booking': asdict(view),
    })


@bp.route('/meetings/<int:meeting_id>/<action>', methods=['POST'])
@participant_required
def meeting_action(meeting_id, action):
    """Run one transition: accept, decline, schedule, confirm, request_reschedule, propose_new_time"""
    request, error = _get_own_meeting(meeting_id)
    if error:
        return error

    data = get_json_body()
    try:
        request = meetings.perform_action(
            request, current_user.id, action,
            meeting_date=data.get('meeting_date'),
            meeting_time=data.get('meeting_time'),
            meeting_location=data.get('meeting_location'),
            message=data.get('message'),
            reschedule_message=data.get('reschedule_message'),
        )
    except meetings.TransitionError as e:
        return error_response(str(e))
    except PeeweeException as e:
        current_app.logger.error(f"Failed to {action} meeting {meeting_id}: {e}")
        return error_response(f"Failed to {action.replace('_', ' ')} meeting.", 500)

    return jsonify({'success': True, 'meeting': _request_entry(request, current_user.id)})


@bp.route('/meetings/<int:meeting_id>/messages')
@participant_required
def get_messages(meeting_id):
    request, error = _get_own_meeting(meeting_id)
    if error:
        return error
    return jsonify({
        'success': True,
        'messages': [m.to_dict() for m in meetings.list_messages(request)],
    })


@bp.route('/meetings/<int:meeting_id>/messages', methods=['POST'])
@participant_required
def post_message(meeting_id):
    request, error = _get_own_meeting(meeting_id)
    if error:
        return error

    try:
        message = meetings.send_message(request, current_user.id, get_json_body().get('message'))
    except meetings.TransitionError as e:
        return error_response(str(e))
    except PeeweeException as e:
        current_app.logger.error(f"Failed to send message in meeting {meeting_id}: {e}")
        return error_response('Failed to send message.', 500)

    return jsonify({'success': True, 'message': message.to_dict()}), 201
