"""
Custom registration question authored by an event organizer
"""

from peewee import CharField, TextField, BooleanField, IntegerField, ForeignKeyField
from meetspark.models import BaseModel, JSONField
from meetspark.models.event import Event


class EventQuestion(BaseModel):
    """One field of an event's registration survey"""
    event = ForeignKeyField(Event, backref='questions', on_delete='CASCADE')
    question_text = TextField()
    field_type = CharField(default='text')
    options = JSONField(null=True)  # Only for radio, checkbox and select
    is_required = BooleanField(default=False)
    sort_order = IntegerField(default=0)
    placeholder = CharField(null=True)

    class Meta:
        table_name = 'event_questions'
        indexes = (
            (('event', 'sort_order'), True),  # Dense, unique order per event
        )

    def __str__(self):
        return f"{self.sort_order}. {self.question_text} ({self.field_type})"

    def to_dict(self):
        return {
            'id': self.id,
            'event_id': self.event_id,
            'question_text': self.question_text,
            'field_type': self.field_type,
            'options': self.options,
            'is_required': self.is_required,
            'sort_order': self.sort_order,
            'placeholder': self.placeholder,
        }
