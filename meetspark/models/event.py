"""
Event model for networking events
"""

import secrets
from datetime import datetime
from peewee import CharField, TextField, DateField, DateTimeField, IntegerField
from meetspark.models import BaseModel


def generate_code():
    """Short random token used in share and organizer links"""
    return secrets.token_hex(4)


class Event(BaseModel):
    """Networking event created by an organizer"""
    name = CharField()
    description = TextField(null=True)
    event_date = DateField(null=True)
    location = CharField(null=True)

    # Public registration link token and private organizer token
    share_code = CharField(unique=True, default=generate_code)
    organizer_code = CharField(unique=True, default=generate_code)

    networking_duration = IntegerField(default=5)  # Minutes per meeting
    creator_name = CharField(null=True)  # Organizer display name, not an account

    created_at = DateTimeField(default=datetime.now)

    class Meta:
        table_name = 'events'

    def __str__(self):
        return f"{self.name} ({self.share_code})"

    def is_created_by(self, organizer_name):
        """Name-based ownership check used by the dashboard"""
        if not organizer_name or not self.creator_name:
            return False
        return self.creator_name.strip().lower() == organizer_name.strip().lower()

    def participant_count(self):
        return self.registrations.count()

    def to_dict(self, include_private=False):
        data = {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'event_date': self.event_date.isoformat() if self.event_date else None,
            'location': self.location,
            'share_code': self.share_code,
            'networking_duration': self.networking_duration,
            'creator_name': self.creator_name,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
        if include_private:
            data['organizer_code'] = self.organizer_code
        return data
