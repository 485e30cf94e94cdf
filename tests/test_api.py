import json

import requests

from meetspark.models.registration import Registration


def organizer_client(app, name='Olga'):
    client = app.test_client()
    client.post('/api/organizer/session', json={'name': name})
    return client


def register(client, code, name, **extra):
    body = {'name': name, 'role': 'Dev', 'interests': ['AI/ML'], 'telegram_handle': '@' + name.lower()}
    body.update(extra)
    return client.post(f'/api/register/{code}', json=body)


def test_demo_day_end_to_end(app):
    organizer = organizer_client(app)
    response = organizer.post('/api/events', json={'name': 'Demo Day', 'event_date': '2025-01-01'})
    assert response.status_code == 201
    event = response.get_json()['event']
    code = event['share_code']

    alice_client, bob_client = app.test_client(), app.test_client()
    alice = register(alice_client, code, 'Alice').get_json()['registration']
    bob = register(bob_client, code, 'Bob', role='Designer', how_to_find_me='Blue cap').get_json()['registration']

    response = alice_client.post(f"/api/events/{event['id']}/meetings",
                                 json={'target_id': bob['id'], 'message': "Let's chat"})
    assert response.status_code == 201
    meeting = response.get_json()['meeting']
    assert meeting['status'] == 'pending'
    assert meeting['seen_by_target'] is False

    notes = bob_client.get(f"/api/events/{event['id']}/notifications").get_json()
    assert notes['counts']['pending_requests'] == 1

    response = bob_client.post(f"/api/meetings/{meeting['id']}/accept")
    assert response.get_json()['meeting']['status'] == 'accepted'

    response = alice_client.post(f"/api/meetings/{meeting['id']}/schedule", json={
        'meeting_date': '2025-01-01', 'meeting_time': '10:00', 'meeting_location': 'lobby'})
    assert response.get_json()['meeting']['status'] == 'scheduled'

    response = bob_client.post(f"/api/meetings/{meeting['id']}/confirm")
    assert response.get_json()['meeting']['status'] == 'confirmed'

    alice_view = alice_client.get(f"/api/meetings/{meeting['id']}").get_json()['booking']
    bob_view = bob_client.get(f"/api/meetings/{meeting['id']}").get_json()['booking']
    assert alice_view['kind'] == bob_view['kind'] == 'confirmed'
    assert alice_view['booking'] == bob_view['booking'] == {
        'meeting_date': '2025-01-01',
        'meeting_time': '10:00',
        'meeting_location': 'lobby',
        'location_label': 'Lobby',
    }
    assert alice_view['how_to_find_me'] == 'Blue cap'


def test_wrong_side_transition_is_rejected(app, event, make_participant):
    alice, bob = make_participant('Alice'), make_participant('Bob')
    client = app.test_client()
    client.post(f'/api/registrations/{alice.id}/session')

    meeting = client.post(f'/api/events/{event.id}/meetings', json={'target_id': bob.id}).get_json()['meeting']
    response = client.post(f"/api/meetings/{meeting['id']}/accept")

    assert response.status_code == 400
    assert response.get_json()['success'] is False


def test_participant_routes_require_session(client, event):
    response = client.get(f'/api/events/{event.id}/meetings')
    assert response.status_code == 401
    assert client.post('/api/events', json={'name': 'Nope'}).status_code == 401


def test_not_found(client):
    response = client.get('/api/events/share/missing')
    assert response.status_code == 404
    assert response.get_json() == {'success': False, 'error': 'Event not found'}


def test_dashboard_lists_own_events_with_counts(app, make_participant, event):
    make_participant('Alice')
    organizer = organizer_client(app, name='olga')
    organizer.post('/api/events', json={'name': 'Second'})
    organizer_client(app, name='Someone Else').post('/api/events', json={'name': 'Not mine'})

    events = organizer.get('/api/events').get_json()['events']
    assert {e['name']: e['participant_count'] for e in events} == {'Demo Day': 1, 'Second': 0}


def test_question_builder_round_trip(app, event):
    organizer = organizer_client(app)
    questions = [
        {'question_text': 'Pick a track', 'field_type': 'radio', 'options': ['AI', 'Web3'], 'is_required': True},
        {'question_text': 'Anything else?', 'field_type': 'textarea'},
    ]
    response = organizer.put(f'/api/events/{event.id}/questions', json={'questions': questions})
    assert response.status_code == 200

    bad = [{'question_text': 'Pick', 'field_type': 'checkbox', 'options': ['Only one']}]
    response = organizer.put(f'/api/events/{event.id}/questions', json={'questions': bad})
    assert response.status_code == 400

    stored = organizer.get(f'/api/events/{event.id}/questions').get_json()
    assert stored['mode'] == 'custom'
    assert [q['sort_order'] for q in stored['questions']] == [0, 1]

    stranger = organizer_client(app, name='Mallory')
    assert stranger.put(f'/api/events/{event.id}/questions', json={'questions': []}).status_code == 403


def test_returning_participant_is_suggested_and_updated(app, event):
    client = app.test_client()
    first = register(client, event.share_code, 'Alice').get_json()['registration']

    matches = client.get(f'/api/register/{event.share_code}/lookup?name=ali').get_json()['matches']
    assert matches == [{'id': first['id'], 'name': 'Alice'}]
    assert client.get(f'/api/register/{event.share_code}/lookup?name=al').get_json()['matches'] == []

    response = register(client, event.share_code, 'Alice', role='Business', existing_id=first['id'])
    assert response.status_code == 200
    assert response.get_json()['registration']['id'] == first['id']
    assert Registration.select().count() == 1


def test_welcome_back_logs_in(app, event, make_participant):
    alice = make_participant('Alice')
    client = app.test_client()
    response = client.post(f'/api/register/{event.share_code}/welcome-back', json={'registration_id': alice.id})
    assert response.get_json() == {'success': True, 'event_id': event.id, 'registration_id': alice.id}
    assert client.get(f'/api/events/{event.id}/meetings').status_code == 200


def test_chat_and_read_receipts(app, event, make_participant):
    alice, bob = make_participant('Alice'), make_participant('Bob')
    alice_client, bob_client = app.test_client(), app.test_client()
    alice_client.post(f'/api/registrations/{alice.id}/session')
    bob_client.post(f'/api/registrations/{bob.id}/session')

    meeting = alice_client.post(f'/api/events/{event.id}/meetings', json={'target_id': bob.id}).get_json()['meeting']
    bob_client.post(f"/api/meetings/{meeting['id']}/seen")
    bob_client.post(f"/api/meetings/{meeting['id']}/accept")
    bob_client.get(f'/api/events/{event.id}/notifications')

    response = alice_client.post(f"/api/meetings/{meeting['id']}/messages", json={'message': 'Hi Bob'})
    assert response.status_code == 201

    notes = bob_client.get(f'/api/events/{event.id}/notifications').get_json()
    assert notes['counts'] == {'pending_requests': 0, 'unread_messages': 1, 'total': 1}
    assert [n['body'] for n in notes['notifications']] == ['Alice: Hi Bob']

    counts = bob_client.post(f"/api/meetings/{meeting['id']}/read").get_json()['counts']
    assert counts['unread_messages'] == 0
    messages = bob_client.get(f"/api/meetings/{meeting['id']}/messages").get_json()['messages']
    assert [m['message'] for m in messages] == ['Hi Bob']


def test_matches_fall_back_for_focal_participant(app, event, make_participant, monkeypatch):
    monkeypatch.setenv('AI_GATEWAY_API_KEY', 'test-key')

    class Unavailable:
        status_code = 503
        text = 'unavailable'

        def json(self):
            return {}

    monkeypatch.setattr(requests, 'post', lambda *args, **kwargs: Unavailable())
    alice, bob = make_participant('Alice'), make_participant('Bob')
    client = app.test_client()
    client.post(f'/api/registrations/{alice.id}/session')

    suggestions = client.post(f'/api/events/{event.id}/matches', json={}).get_json()['suggestions']
    assert len(suggestions) == 1
    assert suggestions[0]['participant1_id'] == alice.id
    assert suggestions[0]['participant2_id'] == bob.id

    organizer = organizer_client(app)
    response = organizer.post(f'/api/events/{event.id}/matches', json={})
    assert response.status_code == 502
    assert response.get_json()['success'] is False


def test_create_meeting_from_suggestion_route(app, event, make_participant):
    alice, bob = make_participant('Alice'), make_participant('Bob')
    organizer = organizer_client(app)
    response = organizer.post(f'/api/events/{event.id}/matches/create-meeting', json={
        'participant1_id': alice.id, 'participant2_id': bob.id, 'reason': 'Both love robots'})

    assert response.status_code == 201
    meeting = response.get_json()['meeting']
    assert meeting['is_ai_suggested'] is True
    assert meeting['message'] == 'Both love robots'
    assert json.loads(response.data)['message'] == 'Sent to Alice and Bob'


def test_generate_questions_rate_limited(app, event, monkeypatch):
    monkeypatch.setenv('AI_GATEWAY_API_KEY', 'test-key')

    class RateLimited:
        status_code = 429
        text = 'slow down'

    monkeypatch.setattr(requests, 'post', lambda *args, **kwargs: RateLimited())
    organizer = organizer_client(app)
    response = organizer.post(f'/api/events/{event.id}/questions/generate')
    assert response.status_code == 429


def test_wrongly_typed_bodies_are_rejected(app, event, make_participant):
    response = app.test_client().post(f'/api/register/{event.share_code}', json={
        'name': 123, 'role': 'Dev', 'interests': ['AI/ML'], 'telegram_handle': '@alice'})
    assert response.status_code == 400
    response = register(app.test_client(), event.share_code, 'Alice', role=7)
    assert response.status_code == 400

    response = register(app.test_client(), event.share_code, 'Alice', interests='AI')
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Interests must be a list.'
    assert Registration.select().count() == 0

    organizer = organizer_client(app)
    questions = [{'question_text': 'Tools', 'field_type': 'checkbox', 'options': ['Figma', 'VS Code']}]
    check_id = organizer.put(f'/api/events/{event.id}/questions',
                             json={'questions': questions}).get_json()['questions'][0]['id']
    response = register(app.test_client(), event.share_code, 'Alice', answers={str(check_id): 5})
    assert response.status_code == 400

    assert organizer.post('/api/events', json={'name': 'Expo', 'event_date': 20250101}).status_code == 400
    assert organizer.post('/api/events', json={'name': ['Expo']}).status_code == 400

    alice, bob = make_participant('Alice'), make_participant('Bob')
    alice_client, bob_client = app.test_client(), app.test_client()
    alice_client.post(f'/api/registrations/{alice.id}/session')
    bob_client.post(f'/api/registrations/{bob.id}/session')
    meeting = alice_client.post(f'/api/events/{event.id}/meetings', json={'target_id': bob.id}).get_json()['meeting']
    bob_client.post(f"/api/meetings/{meeting['id']}/accept")

    response = alice_client.post(f"/api/meetings/{meeting['id']}/schedule", json={
        'meeting_date': '2025-01-01', 'meeting_time': '10:00', 'meeting_location': ['lobby']})
    assert response.status_code == 400
    assert response.get_json()['success'] is False
    response = alice_client.post(f"/api/meetings/{meeting['id']}/messages", json={'message': 42})
    assert response.status_code == 400


def test_registration_keeps_interests_whole(app, event):
    response = register(app.test_client(), event.share_code, 'Alice', interests=['AI', 'Web3'])
    assert response.status_code == 201
    assert response.get_json()['registration']['interests'] == ['AI', 'Web3']
