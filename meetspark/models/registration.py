"""
Registration model: a participant of an event
"""

from datetime import datetime
from peewee import CharField, TextField, DateTimeField, ForeignKeyField
from flask_login import UserMixin
from meetspark.models import BaseModel, JSONField
from meetspark.models.event import Event

ROLES = ('Dev', 'Designer', 'Business')
DEFAULT_ROLE = 'Dev'
MAX_INTERESTS = 5


class Registration(UserMixin, BaseModel):
    """Participant registration, also the flask_login user for a session"""
    event = ForeignKeyField(Event, null=True, backref='registrations', on_delete='CASCADE')

    name = CharField()
    role = CharField(default=DEFAULT_ROLE)
    interests = JSONField(default=list)
    telegram_handle = CharField()  # Contact handle, URL or free text
    how_to_find_me = TextField(null=True)
    match = ForeignKeyField('self', null=True, backref='matched_by', on_delete='SET NULL')

    # Legacy survey answers, used when the event has no custom questions
    vibe = CharField(null=True)
    superpower = CharField(null=True)
    ideal_copilot = CharField(null=True)
    offscreen_life = CharField(null=True)
    bio = TextField(null=True)

    created_at = DateTimeField(default=datetime.now)

    class Meta:
        table_name = 'registrations'

    def __str__(self):
        return f"Registration({self.name} - {self.role})"

    def __repr__(self):
        return f"<Registration: {self.id} (event {self.event_id})>"

    def get_role_icon(self):
        """Icon key for the role, unknown roles fall back to the developer icon"""
        return self.role if self.role in ROLES else DEFAULT_ROLE

    def get_interests(self):
        return list(self.interests or [])

    def to_dict(self):
        return {
            'id': self.id,
            'event_id': self.event_id,
            'name': self.name,
            'role': self.role,
            'role_icon': self.get_role_icon(),
            'interests': self.get_interests(),
            'telegram_handle': self.telegram_handle,
            'how_to_find_me': self.how_to_find_me,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
