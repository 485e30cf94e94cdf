import pytest

from meetspark.app import create_app
from meetspark.database import database
from meetspark.models.event import Event
from meetspark.models.registration import Registration


@pytest.fixture
def app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret',
        'DATABASE_PATH': str(tmp_path / 'meetspark-test.db'),
    })
    yield app
    app.extensions['notifications'].close_all()
    if not database.is_closed():
        database.close()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def event(app):
    return Event.create(name='Demo Day', creator_name='Olga')


@pytest.fixture
def make_participant(event):
    def _make(name, role='Dev', interests=None, target_event=None, **fields):
        return Registration.create(
            event=target_event or event,
            name=name,
            role=role,
            interests=interests or ['AI/ML'],
            telegram_handle=f"@{name.lower()}",
            **fields,
        )
    return _make
