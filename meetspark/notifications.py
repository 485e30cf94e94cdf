"""
Notification and unread aggregator

Maintains the two badge counters a participant sees (unseen incoming meeting
requests and unread chat messages) and turns live inserts from the change
feed into short transient notifications.
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime

from meetspark.database import database
from meetspark.models.meeting_request import MeetingRequest, PENDING, ACCEPTED
from meetspark.models.meeting_message import MeetingMessage
from meetspark.models.registration import Registration
from meetspark.realtime import INSERT

logger = logging.getLogger(__name__)

MESSAGE_PREVIEW_LENGTH = 50
UNKNOWN_SENDER = 'Someone'


@dataclass
class UnreadCounts:
    pending_requests: int = 0
    unread_messages: int = 0

    @property
    def total(self):
        return self.pending_requests + self.unread_messages

    def to_dict(self):
        return {
            'pending_requests': self.pending_requests,
            'unread_messages': self.unread_messages,
            'total': self.total,
        }


@dataclass
class Notification:
    """Transient toast shown for a live event"""
    kind: str
    title: str
    body: str
    meeting_request_id: int

    def to_dict(self):
        return {
            'kind': self.kind,
            'title': self.title,
            'body': self.body,
            'meeting_request_id': self.meeting_request_id,
        }


def unread_counts(event, participant_id):
    """
    Recompute both counters from storage.

    Unread messages only count in meetings that are currently 'accepted';
    messages in scheduled or confirmed meetings stay out of the badge.
    """
    pending_requests = (MeetingRequest.select()
                        .where((MeetingRequest.event == event) &
                               (MeetingRequest.target == participant_id) &
                               (MeetingRequest.status == PENDING) &
                               (MeetingRequest.seen_by_target == False))  # noqa: E712
                        .count())

    accepted_ids = [r.id for r in MeetingRequest.select(MeetingRequest.id).where(
        (MeetingRequest.event == event) &
        (MeetingRequest.status == ACCEPTED) &
        ((MeetingRequest.requester == participant_id) | (MeetingRequest.target == participant_id)))]

    unread_messages = 0
    if accepted_ids:
        unread_messages = (MeetingMessage.select()
                           .where((MeetingMessage.meeting_request.in_(accepted_ids)) &
                                  (MeetingMessage.sender != participant_id) &
                                  (MeetingMessage.read_at.is_null()))
                           .count())

    return UnreadCounts(pending_requests=pending_requests, unread_messages=unread_messages)


def mark_request_seen(request_id):
    """Flag an incoming request as seen; returns the updated request or None"""
    try:
        request = MeetingRequest.get_by_id(request_id)
    except MeetingRequest.DoesNotExist:
        return None
    if not request.seen_by_target:
        request.seen_by_target = True
        request.save()
    return request


def mark_messages_read(meeting_id, participant_id):
    """Set read_at on unread messages from the other side; idempotent"""
    # Bulk update: the change feed does not see read receipts
    with database.atomic():
        updated = (MeetingMessage.update(read_at=datetime.now())
                   .where((MeetingMessage.meeting_request == meeting_id) &
                          (MeetingMessage.sender != participant_id) &
                          (MeetingMessage.read_at.is_null()))
                   .execute())
    if updated:
        logger.debug(f"Marked {updated} messages read in meeting {meeting_id} for {participant_id}")
    return updated


def _participant_name(participant_id):
    registration = Registration.get_or_none(Registration.id == participant_id)
    return registration.name if registration and registration.name else UNKNOWN_SENDER


def request_notification(request_row):
    name = _participant_name(request_row.get('requester'))
    return Notification(
        kind='meeting_request',
        title="New Meeting Request! 🎉",
        body=f"{name} wants to meet you",
        meeting_request_id=request_row.get('id'),
    )


def message_notification(message_row):
    name = _participant_name(message_row.get('sender'))
    text = message_row.get('message') or ''
    preview = text[:MESSAGE_PREVIEW_LENGTH] + ('...' if len(text) > MESSAGE_PREVIEW_LENGTH else '')
    return Notification(
        kind='message',
        title="New Message 💬",
        body=f"{name}: {preview}",
        meeting_request_id=message_row.get('meeting_request'),
    )


class NotificationAggregator:
    """
    Live notification state for one participant in one event.

    Subscribes to new meeting requests addressed to the participant and to all
    new chat messages. Messages are filtered here: own messages and messages
    from meetings the participant is not part of are ignored. Call close()
    when the surface goes away.
    """

    def __init__(self, event_id, participant_id, feed):
        self.event_id = event_id
        self.participant_id = participant_id
        self.feed = feed
        self._queue = deque()
        self._lock = threading.Lock()
        self.counts = unread_counts(event_id, participant_id)
        self._subscriptions = [
            feed.subscribe(MeetingRequest._meta.table_name, self._on_request,
                           event_type=INSERT, target=participant_id),
            feed.subscribe(MeetingMessage._meta.table_name, self._on_message,
                           event_type=INSERT),
        ]

    @property
    def closed(self):
        return not self._subscriptions

    def _push(self, notification):
        with self._lock:
            self._queue.append(notification)
        self.refresh()

    def _on_request(self, change):
        if change.new.get('event') != self.event_id:
            return
        self._push(request_notification(change.new))

    def _on_message(self, change):
        row = change.new
        if row.get('sender') == self.participant_id:
            return
        meeting = MeetingRequest.get_or_none(MeetingRequest.id == row.get('meeting_request'))
        if meeting is None or meeting.event_id != self.event_id or not meeting.is_participant(self.participant_id):
            return
        self._push(message_notification(row))

    def refresh(self):
        self.counts = unread_counts(self.event_id, self.participant_id)
        return self.counts

    def drain(self):
        """Pop every queued notification, oldest first"""
        with self._lock:
            notifications = list(self._queue)
            self._queue.clear()
        return notifications

    def close(self):
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []


class AggregatorRegistry:
    """One aggregator per (event, participant)"""

    def __init__(self, feed):
        self.feed = feed
        self._aggregators = {}
        self._lock = threading.Lock()

    def get(self, event_id, participant_id):
        key = (event_id, participant_id)
        with self._lock:
            aggregator = self._aggregators.get(key)
            if aggregator is None or aggregator.closed:
                aggregator = NotificationAggregator(event_id, participant_id, self.feed)
                self._aggregators[key] = aggregator
                logger.debug(f"Opened notification aggregator for participant {participant_id} in event {event_id}")
            return aggregator

    def release(self, event_id, participant_id):
        with self._lock:
            aggregator = self._aggregators.pop((event_id, participant_id), None)
        if aggregator:
            aggregator.close()

    def close_all(self):
        with self._lock:
            aggregators = list(self._aggregators.values())
            self._aggregators.clear()
        for aggregator in aggregators:
            aggregator.close()

    def __len__(self):
        return len(self._aggregators)
