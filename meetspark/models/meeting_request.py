"""
Meeting request between two participants of an event
"""

from datetime import datetime
from peewee import CharField, TextField, DateField, DateTimeField, BooleanField, ForeignKeyField
from meetspark.models import BaseModel
from meetspark.models.event import Event
from meetspark.models.registration import Registration

PENDING = 'pending'
ACCEPTED = 'accepted'
DECLINED = 'declined'
SCHEDULED = 'scheduled'
RESCHEDULE_REQUESTED = 'reschedule_requested'
CONFIRMED = 'confirmed'

ACTIVE_STATUSES = (PENDING, ACCEPTED, SCHEDULED, RESCHEDULE_REQUESTED, CONFIRMED)


class MeetingRequest(BaseModel):
    """Lifecycle of a proposed one-on-one meeting"""
    event = ForeignKeyField(Event, null=True, backref='meeting_requests', on_delete='CASCADE')
    requester = ForeignKeyField(Registration, backref='sent_requests', on_delete='CASCADE')
    target = ForeignKeyField(Registration, backref='received_requests', on_delete='CASCADE')

    status = CharField(default=PENDING, choices=[
        (PENDING, 'Pending'),
        (ACCEPTED, 'Accepted'),
        (DECLINED, 'Declined'),
        (SCHEDULED, 'Scheduled'),
        (RESCHEDULE_REQUESTED, 'Reschedule Requested'),
        (CONFIRMED, 'Confirmed'),
    ])

    message = TextField(null=True)
    is_ai_suggested = BooleanField(default=False)
    suggested_time = CharField(null=True)  # Legacy, unused by the booking flow
    seen_by_target = BooleanField(default=False)

    # Booking details, set by the requester once accepted
    meeting_date = DateField(null=True)
    meeting_time = CharField(null=True)  # "HH:MM" from the half-hour slot grid
    meeting_location = CharField(null=True)
    reschedule_message = TextField(null=True)

    created_at = DateTimeField(default=datetime.now)
    updated_at = DateTimeField(default=datetime.now)

    class Meta:
        table_name = 'meeting_requests'

    def __str__(self):
        return f"MeetingRequest({self.requester_id} -> {self.target_id}: {self.status})"

    def is_participant(self, participant_id):
        return participant_id in (self.requester_id, self.target_id)

    def is_requester(self, participant_id):
        return self.requester_id == participant_id

    def other_participant_id(self, participant_id):
        """Id of the other side of the meeting, as seen by participant_id"""
        return self.target_id if self.requester_id == participant_id else self.requester_id

    def to_dict(self):
        return {
            'id': self.id,
            'event_id': self.event_id,
            'requester_id': self.requester_id,
            'target_id': self.target_id,
            'status': self.status,
            'message': self.message,
            'is_ai_suggested': self.is_ai_suggested,
            'suggested_time': self.suggested_time,
            'seen_by_target': self.seen_by_target,
            'meeting_date': self.meeting_date.isoformat() if self.meeting_date else None,
            'meeting_time': self.meeting_time,
            'meeting_location': self.meeting_location,
            'reschedule_message': self.reschedule_message,
            'created_at': self.created_at.isoformat(),
        }
