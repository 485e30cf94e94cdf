"""
Match suggestion orchestrator

Builds participant summaries, asks the AI gateway for pairings, maps the
answer back onto known participants and falls back to local random pairings
for a focal participant when the gateway is unavailable.
"""

import logging
import random
from dataclasses import dataclass

from meetspark import ai_gateway
from meetspark import meetings

logger = logging.getLogger(__name__)

MAX_FALLBACK_SUGGESTIONS = 3
FALLBACK_MIN_SCORE = 0.5
FALLBACK_SCORE_SPREAD = 0.3

FALLBACK_REASONS = [
    "You both showed up to meet new people. That's a great start for a conversation!",
    "Different backgrounds make for the best conversations. Go say hi!",
    "There's a good chance you can learn something from each other today.",
    "A fresh face with fresh ideas. Worth a five minute chat!",
]


class SuggestionError(Exception):
    """Raised when no suggestions can be produced; message is shown to the user"""

    def __init__(self, message, status_code=502):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class Suggestion:
    participant1: object
    participant2: object
    reason: str
    compatibility_score: float
    is_fallback: bool = False

    def involves(self, participant_id):
        return participant_id in (self.participant1.id, self.participant2.id)

    def to_dict(self):
        return {
            'participant1': self.participant1.to_dict(),
            'participant2': self.participant2.to_dict(),
            'participant1_id': self.participant1.id,
            'participant2_id': self.participant2.id,
            'reason': self.reason,
            'compatibility_score': self.compatibility_score,
            'is_fallback': self.is_fallback,
        }


def participant_summaries(participants):
    """Payload entries the suggestion service gets for each participant"""
    return [{
        'id': p.id,
        'name': p.name,
        'role': p.role,
        'interests': p.get_interests(),
    } for p in participants]


def coerce_score(value):
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _as_id(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def map_suggestions(raw_suggestions, participants):
    """
    Turn raw service output into Suggestions over known participants.

    Drops entries that reference unknown ids, pair someone with themselves or
    repeat a pair already seen.
    """
    by_id = {p.id: p for p in participants}
    seen_pairs = set()
    suggestions = []
    for raw in raw_suggestions or []:
        if not isinstance(raw, dict):
            continue
        first = by_id.get(_as_id(raw.get('participant1_id')))
        second = by_id.get(_as_id(raw.get('participant2_id')))
        if first is None or second is None or first.id == second.id:
            continue
        pair = frozenset((first.id, second.id))
        if pair in seen_pairs:
            continue
        seen_pairs.add(pair)
        suggestions.append(Suggestion(
            participant1=first,
            participant2=second,
            reason=(raw.get('reason') or '').strip(),
            compatibility_score=coerce_score(raw.get('compatibility_score')),
        ))
    return suggestions


def rank_suggestions(suggestions, focal_id=None):
    """Stable sort: focal-involving first, then descending score"""
    if focal_id is None:
        return list(suggestions)
    return sorted(suggestions, key=lambda s: (not s.involves(focal_id), -s.compatibility_score))


def fallback_suggestions(participants, focal_id, rng=None):
    """
    Local pairings of the focal participant with up to 3 random others.

    Returns an empty list when the focal participant is unknown or alone.
    """
    rng = rng or random.Random()
    focal = next((p for p in participants if p.id == focal_id), None)
    if focal is None:
        return []
    others = [p for p in participants if p.id != focal_id]
    picked = rng.sample(others, min(MAX_FALLBACK_SUGGESTIONS, len(others)))
    return [Suggestion(
        participant1=focal,
        participant2=other,
        reason=rng.choice(FALLBACK_REASONS),
        compatibility_score=FALLBACK_MIN_SCORE + rng.random() * FALLBACK_SCORE_SPREAD,
        is_fallback=True,
    ) for other in picked]


def suggest_matches(event, participants, focal_id=None, client=None, rng=None):
    """
    Ranked match suggestions for an event

    Args:
        event: Event the participants belong to
        participants: list of Registration
        focal_id: participant whose own matches are wanted first, if any
        client: callable(event_id, summaries, focal_id) returning raw suggestions;
            defaults to the AI gateway
        rng: random.Random used by the fallback

    Raises:
        SuggestionError: fewer than 2 participants, or the service failed and
            no fallback could be produced
    """
    participants = list(participants)
    if len(participants) < 2:
        raise SuggestionError("Not enough participants", status_code=400)

    client = client or ai_gateway.request_match_suggestions
    try:
        raw = client(event.id, participant_summaries(participants), focal_id)
    except ai_gateway.AIGatewayError as e:
        logger.warning(f"Match suggestions failed for event {event.id}: {e}")
        if focal_id is None:
            raise SuggestionError(str(e), status_code=e.status_code) from e
        fallback = fallback_suggestions(participants, focal_id, rng)
        if not fallback:
            raise SuggestionError("Failed to generate matches. Please try again later", status_code=e.status_code) from e
        logger.info(f"Using {len(fallback)} fallback suggestions for participant {focal_id}")
        return fallback

    suggestions = rank_suggestions(map_suggestions(raw, participants), focal_id)
    logger.info(f"Found {len(suggestions)} match suggestions for event {event.id}")
    return suggestions


def create_meeting_from_suggestion(event, suggestion, suggestions=None):
    """
    Turn a suggestion into a pending meeting request from participant1 to
    participant2, carrying the reason as the opening message.

    Returns:
        Tuple of (meeting request, remaining suggestions without this one)
    """
    request = meetings.propose_meeting(
        event,
        suggestion.participant1.id,
        suggestion.participant2.id,
        message=suggestion.reason,
        is_ai_suggested=True,
    )
    remaining = list(suggestions or [])
    if suggestion in remaining:
        remaining.remove(suggestion)
    return request, remaining
