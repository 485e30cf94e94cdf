"""
Notification API endpoints

Badge counters, live notifications queued since the last poll and the
seen / read receipts that clear them.
"""

from flask import Blueprint, jsonify, current_app
from flask_login import current_user

from meetspark import notifications
from meetspark.decorators import participant_required
from meetspark.models.event import Event
from meetspark.models.meeting_request import MeetingRequest
from meetspark.utils import error_response, not_found

bp = Blueprint('notifications', __name__)


def _registry():
    return current_app.extensions['notifications']


@bp.route('/events/<int:event_id>/notifications')
@participant_required
def poll_notifications(event_id):
    """Counters plus notifications received since the previous poll"""
    if not Event.get_or_none(Event.id == event_id):
        return not_found('Event')

    aggregator = _registry().get(event_id, current_user.id)
    return jsonify({
        'success': True,
        'counts': aggregator.refresh().to_dict(),
        'notifications': [n.to_dict() for n in aggregator.drain()],
    })


@bp.route('/events/<int:event_id>/notifications', methods=['DELETE'])
@participant_required
def stop_notifications(event_id):
    """Tear down the live subscription when the page goes away"""
    _registry().release(event_id, current_user.id)
    return jsonify({'success': True})


@bp.route('/meetings/<int:meeting_id>/seen', methods=['POST'])
@participant_required
def mark_seen(meeting_id):
    request = MeetingRequest.get_or_none(MeetingRequest.id == meeting_id)
    if not request:
        return not_found('Meeting')
    if request.target_id != current_user.id:
        return error_response('Only the receiver can mark a request as seen.', 403)

    notifications.mark_request_seen(meeting_id)
    counts = notifications.unread_counts(request.event_id, current_user.id)
    return jsonify({'success': True, 'counts': counts.to_dict()})


@bp.route('/meetings/<int:meeting_id>/read', methods=['POST'])
@participant_required
def mark_read(meeting_id):
    request = MeetingRequest.get_or_none(MeetingRequest.id == meeting_id)
    if not request:
        return not_found('Meeting')
    if not request.is_participant(current_user.id):
        return error_response('You are not part of this meeting.', 403)

    notifications.mark_messages_read(meeting_id, current_user.id)
    counts = notifications.unread_counts(request.event_id, current_user.id)
    return jsonify({'success': True, 'counts': counts.to_dict()})
