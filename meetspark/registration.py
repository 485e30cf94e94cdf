"""
Registration resolver

Decides whether a public registration is a new participant or a returning
one recognised by name, and writes the participant row together with its
survey answers.
"""

import logging

from peewee import PeeweeException

from meetspark.database import database
from meetspark.models.registration import Registration, ROLES, MAX_INTERESTS
from meetspark import survey

logger = logging.getLogger(__name__)

MIN_LOOKUP_CHARACTERS = 3

INTEREST_SUGGESTIONS = [
    "AI/ML", "Web3", "Mobile", "Backend", "Frontend", "DevOps",
    "UI/UX", "Data Science", "Blockchain", "IoT", "AR/VR", "Gaming",
]


class RegistrationError(Exception):
    """Raised when registration input is incomplete or invalid"""
    pass


def load_known_participants(event):
    """
    Existing (id, name) pairs of an event, in store order.

    Lookup is a convenience: on storage failure this logs and returns an
    empty list so registration falls back to a fresh insert.
    """
    try:
        query = (Registration.select(Registration.id, Registration.name)
                 .where(Registration.event == event)
                 .order_by(Registration.created_at, Registration.id))
        return [(r.id, r.name) for r in query]
    except PeeweeException as e:
        logger.warning(f"Could not load participants for event {getattr(event, 'id', event)}: {e}")
        return []


def match_names(known, typed):
    """
    Case-insensitive substring matches for the name being typed.

    Returns no suggestions until at least 3 characters are typed; matches keep
    the order of the known list.
    """
    query = (typed or '').strip().lower()
    if len(query) < MIN_LOOKUP_CHARACTERS:
        return []
    return [(participant_id, name) for participant_id, name in known if query in (name or '').lower()]


def find_event_registration(event, registration_id):
    """Registration with this id inside the event, or None"""
    if registration_id is None:
        return None
    try:
        return Registration.get((Registration.id == registration_id) & (Registration.event == event))
    except (Registration.DoesNotExist, ValueError, TypeError):
        return None


def welcome_back(event, registration_id):
    """
    Shortcut for a recognised returning participant: skip the form and go
    straight to the event.

    Returns:
        Registration or None when the id does not belong to the event
    """
    registration = find_event_registration(event, registration_id)
    if registration:
        logger.info(f"Welcome back {registration.name} ({registration.id}) to event {event.id}")
    return registration


def clean_interests(interests):
    """Strip, drop empties and duplicates, keep order"""
    if interests is None:
        return []
    if not isinstance(interests, list):
        raise RegistrationError("Interests must be a list.")
    cleaned = []
    for interest in interests:
        interest = str(interest).strip()
        if interest and interest not in cleaned:
            cleaned.append(interest)
    return cleaned


def _text(form, key):
    value = form.get(key)
    if value is None:
        return ''
    if not isinstance(value, str):
        raise RegistrationError(f"{key.replace('_', ' ').capitalize()} must be text.")
    return value.strip()


def validate_profile(form):
    """
    Check the base profile fields shared by every registration.

    Returns:
        dict: cleaned name, role, interests, telegram_handle, how_to_find_me
    """
    form = form or {}
    name = _text(form, 'name')
    role = _text(form, 'role')
    interests = clean_interests(form.get('interests'))
    telegram_handle = _text(form, 'telegram_handle')
    how_to_find_me = _text(form, 'how_to_find_me')

    if not name or not role or not interests or not telegram_handle:
        raise RegistrationError("Please fill in all required fields: name, role, interests and contact handle.")
    if role not in ROLES:
        raise RegistrationError(f"Role must be one of: {', '.join(ROLES)}.")
    if len(interests) > MAX_INTERESTS:
        raise RegistrationError(f"Pick at most {MAX_INTERESTS} interests.")
    if len(name) > 255:
        raise RegistrationError(f"Name must be 255 characters or less. Current length: {len(name)}")

    return {
        'name': name,
        'role': role,
        'interests': interests,
        'telegram_handle': telegram_handle,
        'how_to_find_me': how_to_find_me or None,
    }


def submit_registration(event, form, answers=None, existing_id=None):
    """
    Register a participant for an event, or update a returning one.

    Args:
        event: Event being registered for
        form: base profile fields (name, role, interests, telegram_handle,
            how_to_find_me)
        answers: survey answers, keyed by question id for custom questions or
            by legacy column for the legacy set
        existing_id: id picked from the name lookup; the submission then
            updates that row and fully replaces its answers. An id from
            another event is ignored and a new row is inserted.

    Returns:
        Tuple of (registration, created)
    """
    profile = validate_profile(form)
    questions = survey.get_questions(event)
    existing = find_event_registration(event, existing_id)
    if existing_id is not None and existing is None:
        logger.warning(f"Registration {existing_id} not found in event {event.id}, creating a new one")

    if questions:
        # Validate before writing anything
        survey.validate_answers(questions, answers)
        legacy_values = None
    else:
        legacy_values = survey.validate_legacy_answers(answers)

    with database.atomic():
        if existing:
            registration = existing
            for key, value in profile.items():
                setattr(registration, key, value)
            created = False
        else:
            registration = Registration(event=event, **profile)
            created = True

        if legacy_values is not None:
            for key, value in legacy_values.items():
                setattr(registration, key, value)
        registration.save()

        if questions:
            survey.replace_responses(registration, questions, answers)

    action = "Registered" if created else "Updated registration for"
    logger.info(f"{action} {registration.name} ({registration.id}) in event {event.id}")
    return registration, created


def update_profile(registration, form):
    """Profile page edit of the base fields"""
    profile = validate_profile(form)
    for key, value in profile.items():
        setattr(registration, key, value)
    registration.save()
    return registration
