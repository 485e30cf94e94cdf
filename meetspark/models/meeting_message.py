"""
Chat message inside a meeting request
"""

from datetime import datetime
from peewee import TextField, DateTimeField, ForeignKeyField
from meetspark.models import BaseModel
from meetspark.models.meeting_request import MeetingRequest
from meetspark.models.registration import Registration


class MeetingMessage(BaseModel):
    """Append-only chat message; read_at is set by the receiving side"""
    meeting_request = ForeignKeyField(MeetingRequest, backref='messages', on_delete='CASCADE')
    sender = ForeignKeyField(Registration, backref='sent_messages', on_delete='CASCADE')
    message = TextField()
    created_at = DateTimeField(default=datetime.now)
    read_at = DateTimeField(null=True)

    class Meta:
        table_name = 'meeting_messages'

    def __str__(self):
        return f"MeetingMessage({self.sender_id} in {self.meeting_request_id})"

    def to_dict(self):
        return {
            'id': self.id,
            'meeting_request_id': self.meeting_request_id,
            'sender_id': self.sender_id,
            'message': self.message,
            'created_at': self.created_at.isoformat(),
            'read_at': self.read_at.isoformat() if self.read_at else None,
        }
