"""
Typed answer of a participant to a custom event question
"""

from peewee import ForeignKeyField
from meetspark.models import BaseModel, JSONField
from meetspark.models.registration import Registration
from meetspark.models.event_question import EventQuestion


class QuestionResponse(BaseModel):
    """Answer value: a string, a list of strings or an integer rating"""
    registration = ForeignKeyField(Registration, backref='responses', on_delete='CASCADE')
    question = ForeignKeyField(EventQuestion, backref='responses', on_delete='CASCADE')
    response = JSONField()

    class Meta:
        table_name = 'question_responses'
        indexes = (
            (('registration', 'question'), True),  # One answer per question per participant
        )

    def __str__(self):
        return f"Response({self.registration_id} -> {self.question_id})"
