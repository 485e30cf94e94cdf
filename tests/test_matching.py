import random

import pytest

from meetspark import matching
from meetspark.ai_gateway import AIGatewayError, RateLimitedError
from meetspark.models.meeting_request import MeetingRequest


def failing_client(error=None):
    def client(event_id, participants, focal_id):
        raise error or AIGatewayError('AI gateway error: 500')
    return client


def answering_client(suggestions, calls=None):
    def client(event_id, participants, focal_id):
        if calls is not None:
            calls.append((event_id, participants, focal_id))
        return suggestions
    return client


def test_participant_summaries(make_participant):
    alice = make_participant('Alice', interests=['AI/ML', 'Web3'])
    assert matching.participant_summaries([alice]) == [
        {'id': alice.id, 'name': 'Alice', 'role': 'Dev', 'interests': ['AI/ML', 'Web3']}]


def test_suggestions_mapped_and_cleaned(event, make_participant):
    alice, bob, carol = make_participant('Alice'), make_participant('Bob'), make_participant('Carol')
    raw = [
        {'participant1_id': alice.id, 'participant2_id': bob.id, 'reason': 'Both into AI', 'compatibility_score': 0.7},
        {'participant1_id': bob.id, 'participant2_id': alice.id, 'reason': 'Duplicate pair', 'compatibility_score': 0.9},
        {'participant1_id': carol.id, 'participant2_id': carol.id, 'reason': 'Self', 'compatibility_score': 1},
        {'participant1_id': alice.id, 'participant2_id': 999, 'reason': 'Unknown', 'compatibility_score': 1},
        {'participant1_id': str(bob.id), 'participant2_id': str(carol.id), 'reason': 'Ids as strings',
         'compatibility_score': '0.8'},
    ]
    calls = []
    suggestions = matching.suggest_matches(event, [alice, bob, carol], client=answering_client(raw, calls))

    assert [(s.participant1.name, s.participant2.name) for s in suggestions] == [('Alice', 'Bob'), ('Bob', 'Carol')]
    assert suggestions[1].compatibility_score == 0.8
    assert calls[0][0] == event.id
    assert calls[0][2] is None


def test_focal_suggestions_come_first(event, make_participant):
    alice, bob, carol = make_participant('Alice'), make_participant('Bob'), make_participant('Carol')
    raw = [
        {'participant1_id': alice.id, 'participant2_id': bob.id, 'reason': 'a', 'compatibility_score': 0.95},
        {'participant1_id': carol.id, 'participant2_id': alice.id, 'reason': 'b', 'compatibility_score': 0.6},
        {'participant1_id': carol.id, 'participant2_id': bob.id, 'reason': 'c', 'compatibility_score': 0.9},
    ]
    suggestions = matching.suggest_matches(event, [alice, bob, carol], focal_id=carol.id,
                                           client=answering_client(raw))
    assert [s.reason for s in suggestions] == ['c', 'b', 'a']


def test_not_enough_participants(event, make_participant):
    calls = []
    with pytest.raises(matching.SuggestionError, match='Not enough participants'):
        matching.suggest_matches(event, [make_participant('Alice')], client=answering_client([], calls))
    assert calls == []


def test_fallback_with_two_participants(event, make_participant):
    alice, bob = make_participant('Alice'), make_participant('Bob')
    suggestions = matching.suggest_matches(event, [alice, bob], focal_id=alice.id,
                                           client=failing_client(), rng=random.Random(3))

    assert len(suggestions) == 1
    suggestion = suggestions[0]
    assert (suggestion.participant1, suggestion.participant2) == (alice, bob)
    assert suggestion.reason in matching.FALLBACK_REASONS
    assert 0.5 <= suggestion.compatibility_score < 0.8
    assert suggestion.is_fallback


def test_fallback_caps_at_three(event, make_participant):
    people = [make_participant(name) for name in ('Alice', 'Bob', 'Carol', 'Dave', 'Erin')]
    suggestions = matching.suggest_matches(event, people, focal_id=people[0].id,
                                           client=failing_client(), rng=random.Random(1))
    assert len(suggestions) == 3
    assert all(s.participant1 == people[0] for s in suggestions)
    assert len({s.participant2.id for s in suggestions}) == 3


def test_fallback_with_single_participant_is_empty(make_participant):
    alice = make_participant('Alice')
    assert matching.fallback_suggestions([alice], alice.id, random.Random(0)) == []


def test_failure_without_focal_is_reported(event, make_participant):
    people = [make_participant('Alice'), make_participant('Bob')]
    with pytest.raises(matching.SuggestionError) as excinfo:
        matching.suggest_matches(event, people, client=failing_client(RateLimitedError('Rate limit exceeded')))
    assert excinfo.value.status_code == 429


def test_create_meeting_from_suggestion(event, make_participant):
    alice, bob, carol = make_participant('Alice'), make_participant('Bob'), make_participant('Carol')
    first = matching.Suggestion(alice, bob, 'Both love robots', 0.9)
    second = matching.Suggestion(bob, carol, 'Design buddies', 0.7)

    request, remaining = matching.create_meeting_from_suggestion(event, first, [first, second])

    assert remaining == [second]
    stored = MeetingRequest.get_by_id(request.id)
    assert stored.status == 'pending'
    assert stored.requester_id == alice.id
    assert stored.target_id == bob.id
    assert stored.message == 'Both love robots'
    assert stored.is_ai_suggested is True
