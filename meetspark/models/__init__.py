"""
Base model for all database models
"""

import json
from peewee import TextField
from playhouse.signals import Model
from meetspark.database import database


class JSONField(TextField):
    """Text column holding a JSON document (lists of interests, options, answers)"""

    def db_value(self, value):
        if value is None:
            return None
        return json.dumps(value)

    def python_value(self, value):
        if value is None:
            return None
        try:
            return json.loads(value)
        except (json.JSONDecodeError, TypeError):
            return None


class BaseModel(Model):
    """Base model class that all models should inherit from

    Saves and deletes go through playhouse.signals so the change feed in
    meetspark.realtime sees every row written through the model API.
    """

    class Meta:
        database = database
