"""
Survey schema engine

Defines the shape of an event's registration form and validates, encodes and
renders participant answers against it.

Events without custom questions use the fixed legacy question set, whose
answers live in the registration's own columns instead of question_responses.
Both the question set and the responses are replaced wholesale on save
(delete then insert); two organizer sessions saving at once overwrite each
other and the last save wins.
"""

import logging

from meetspark.database import database
from meetspark.models.event_question import EventQuestion
from meetspark.models.question_response import QuestionResponse

logger = logging.getLogger(__name__)

FIELD_TYPES = {
    'text': 'Short Text',
    'textarea': 'Long Text',
    'radio': 'Single Choice',
    'checkbox': 'Multiple Choice',
    'select': 'Dropdown',
    'number': 'Number',
    'rating': 'Rating (1-5)',
}
CHOICE_TYPES = ('radio', 'checkbox', 'select')
TEXT_TYPES = ('text', 'textarea', 'radio', 'select')
MIN_OPTIONS = 2
MISSING_VALUE = '—'
BIO_MAX_LENGTH = 300


class SurveyValidationError(Exception):
    """Raised when a question set or a set of answers fails validation"""
    pass


# Legacy question set: (value, label) options stored on the registration row

VIBE_OPTIONS = [
    ('productivity', '⚡ Productivity & Automation'),
    ('creative', '🎨 Creative Arts (Media/Music)'),
    ('health', '🏥 Health & Wellness'),
    ('social', '🌍 Social Impact'),
    ('knowledge', '🧠 Knowledge & "Second Brains"'),
    ('fintech', '💰 FinTech & Money'),
    ('education', '💼 Education & Jobs'),
    ('shopping', '🛒 Shopping & Retail'),
    ('infrastructure', '🛠️ Infrastructure (The "Pipes")'),
    ('gaming', '🎮 Gaming & Entertainment'),
]

SUPERPOWER_OPTIONS = [
    ('builds', '💻 Builds'),
    ('shapes', '🎨 Shapes'),
    ('plans', '📈 Plans'),
    ('speaks', '🗣️ Speaks'),
]

COPILOT_OPTIONS = [
    ('technical', '🛠️ Technical Engine'),
    ('creative', '🌈 Creative Spark'),
    ('strategic', '🗺️ Strategic Guide'),
    ('doer', '🚀 High-Speed Doer'),
    ('thinker', '🧐 Deep Thinker'),
]

OFFSCREEN_OPTIONS = [
    ('outdoor', '🏔️ In the wild'),
    ('city', '🖼️ In the city'),
    ('home', '🍳 In the kitchen'),
    ('gaming', '🕹️ In the game'),
]

LEGACY_QUESTIONS = [
    {'key': 'vibe', 'question_text': 'My Vibe', 'field_type': 'radio', 'options': VIBE_OPTIONS},
    {'key': 'superpower', 'question_text': 'My Superpower', 'field_type': 'radio', 'options': SUPERPOWER_OPTIONS},
    {'key': 'ideal_copilot', 'question_text': 'My Ideal Co-Pilot', 'field_type': 'radio', 'options': COPILOT_OPTIONS},
    {'key': 'offscreen_life', 'question_text': 'My Off-Screen Life', 'field_type': 'radio', 'options': OFFSCREEN_OPTIONS},
    {'key': 'bio', 'question_text': 'Bio', 'field_type': 'textarea', 'options': None},
]
LEGACY_FIELDS = [q['key'] for q in LEGACY_QUESTIONS]


# Question set authoring

def needs_options(field_type):
    return field_type in CHOICE_TYPES


def new_question(question_text='', field_type='text', options=None, is_required=False, placeholder=None):
    """Blank question as added by the form builder"""
    return {
        'question_text': question_text,
        'field_type': field_type,
        'options': options,
        'is_required': is_required,
        'sort_order': 0,
        'placeholder': placeholder,
    }


def normalize_order(questions):
    """Reassign sort_order densely from 0 in current list order"""
    for index, question in enumerate(questions):
        question['sort_order'] = index
    return questions


def add_question(questions, **fields):
    return normalize_order(list(questions) + [new_question(**fields)])


def remove_question(questions, index):
    return normalize_order([q for i, q in enumerate(questions) if i != index])


def move_question(questions, index, direction):
    """Swap a question with its neighbour; moving past either end is a no-op"""
    questions = list(questions)
    if direction not in ('up', 'down'):
        raise ValueError(f"Unknown direction: {direction}")
    swap_index = index - 1 if direction == 'up' else index + 1
    if not 0 <= index < len(questions) or not 0 <= swap_index < len(questions):
        return normalize_order(questions)
    questions[index], questions[swap_index] = questions[swap_index], questions[index]
    return normalize_order(questions)


def _clean_options(options):
    return [str(o).strip() for o in (options or []) if o is not None and str(o).strip()]


def validate_question_set(questions):
    """
    Check an organizer's question list before it is saved.

    Raises:
        SurveyValidationError: naming the first offending question
    """
    for position, question in enumerate(questions, 1):
        text = (question.get('question_text') or '').strip()
        if not text:
            raise SurveyValidationError(f"Question {position} must have text.")

        field_type = question.get('field_type')
        if field_type not in FIELD_TYPES:
            raise SurveyValidationError(f'Question {position} ("{text}") has an unknown field type: {field_type}')

        if needs_options(field_type) and len(_clean_options(question.get('options'))) < MIN_OPTIONS:
            raise SurveyValidationError(
                f'Question {position} ("{text}") is a choice question and needs at least {MIN_OPTIONS} options.')


def _question_row(question):
    field_type = question['field_type']
    placeholder = (question.get('placeholder') or '').strip()
    return {
        'question_text': question['question_text'].strip(),
        'field_type': field_type,
        'options': _clean_options(question.get('options')) if needs_options(field_type) else None,
        'is_required': bool(question.get('is_required')),
        'placeholder': placeholder or None,
    }


def get_questions(event):
    return list(EventQuestion.select()
                .where(EventQuestion.event == event)
                .order_by(EventQuestion.sort_order))


def has_custom_questions(event):
    if event is None:
        return False
    return EventQuestion.select().where(EventQuestion.event == event).exists()


def replace_questions(event, questions):
    """
    Replace the whole question set of an event.

    The existing set is deleted and the new one inserted with a contiguous
    0..n-1 sort order inside one transaction. Saving the same list twice
    yields the same stored set. Responses to deleted questions go with them.

    Returns:
        list: the stored EventQuestion rows in order
    """
    validate_question_set(questions)
    rows = [_question_row(q) for q in questions]

    with database.atomic():
        EventQuestion.delete().where(EventQuestion.event == event).execute()
        for sort_order, row in enumerate(rows):
            EventQuestion.create(event=event, sort_order=sort_order, **row)

    logger.info(f"Saved {len(rows)} questions for event {event.id}")
    return get_questions(event)


def questions_from_generated(generated):
    """Map questions returned by the form generator onto the builder's shape"""
    questions = []
    for item in generated or []:
        questions.append({
            'question_text': item.get('question_text') or '',
            'field_type': item.get('field_type') or 'text',
            'options': item.get('options') or None,
            'is_required': bool(item.get('is_required', False)),
            'sort_order': 0,
            'placeholder': item.get('placeholder') or None,
        })
    return normalize_order(questions)


# Answers

def encode_response(field_type, raw):
    """
    Turn raw form input into the stored value for a field type.

    Returns None for empty input; callers omit those instead of storing an
    empty string, so "unanswered" stays distinguishable.

    Raises:
        SurveyValidationError: for non-numeric numbers, out of range ratings
            or unknown field types
    """
    if field_type not in FIELD_TYPES:
        raise SurveyValidationError(f"Unknown field type: {field_type}")
    if raw is None:
        return None

    if field_type == 'checkbox':
        if isinstance(raw, str):
            raw = [raw]
        if not isinstance(raw, list):
            raise SurveyValidationError("Checkbox answers must be a list of options.")
        values = raw
        values = [str(v).strip() for v in values if v is not None and str(v).strip()]
        return values or None

    if field_type == 'rating':
        if isinstance(raw, str):
            raw = raw.strip()
            if not raw:
                return None
        if isinstance(raw, bool):
            raise SurveyValidationError("Rating must be a whole number between 1 and 5.")
        try:
            rating = int(raw)
        except (TypeError, ValueError):
            raise SurveyValidationError("Rating must be a whole number between 1 and 5.")
        if isinstance(raw, float) and not raw.is_integer():
            raise SurveyValidationError("Rating must be a whole number between 1 and 5.")
        if not 1 <= rating <= 5:
            raise SurveyValidationError("Rating must be a whole number between 1 and 5.")
        return rating

    if isinstance(raw, (list, dict)):
        raise SurveyValidationError(f"A {field_type} answer must be a single value.")
    text = str(raw).strip()
    if not text:
        return None

    if field_type == 'number':
        try:
            float(text)
        except ValueError:
            raise SurveyValidationError(f'"{text}" is not a number.')
    return text


def render_value(field_type, value):
    """Display string for a stored value"""
    if value is None or value == '' or value == []:
        return MISSING_VALUE
    if isinstance(value, (list, tuple)):
        return ', '.join(str(v) for v in value)
    return str(value)


def _raw_answer(answers, question_id):
    if question_id in answers:
        return answers[question_id]
    return answers.get(str(question_id))


def _answers_dict(answers):
    if answers is None:
        return {}
    if not isinstance(answers, dict):
        raise SurveyValidationError("Answers must be an object keyed by question.")
    return answers


def validate_answers(questions, answers):
    """
    Encode and check answers against a custom question set.

    Args:
        questions: EventQuestion rows
        answers: dict of question id (int or str) -> raw input

    Returns:
        dict: question id -> encoded value, unanswered questions omitted
    """
    answers = _answers_dict(answers)
    encoded = {}
    for question in questions:
        value = encode_response(question.field_type, _raw_answer(answers, question.id))
        if value is None:
            if question.is_required:
                raise SurveyValidationError(f'"{question.question_text}" is required.')
            continue

        if needs_options(question.field_type):
            options = question.options or []
            chosen = value if isinstance(value, list) else [value]
            unknown = [v for v in chosen if v not in options]
            if unknown:
                raise SurveyValidationError(
                    f'"{", ".join(unknown)}" is not an option of "{question.question_text}".')

        encoded[question.id] = value
    return encoded


def get_responses(registration):
    """Stored answers of a participant as question id -> value"""
    responses = QuestionResponse.select().where(QuestionResponse.registration == registration)
    return {r.question_id: r.response for r in responses}


def replace_responses(registration, questions, answers):
    """Replace all custom answers of a participant (delete then insert, atomic)"""
    encoded = validate_answers(questions, answers)
    with database.atomic():
        QuestionResponse.delete().where(QuestionResponse.registration == registration).execute()
        for question_id, value in encoded.items():
            QuestionResponse.create(registration=registration, question=question_id, response=value)
    logger.info(f"Stored {len(encoded)} answers for registration {registration.id}")
    return encoded


# Legacy mode

def legacy_option_label(options, value):
    if not value:
        return MISSING_VALUE
    for option_value, label in options:
        if option_value == value:
            return label
    return value


def validate_legacy_answers(answers):
    """
    Encode answers to the legacy question set.

    Returns:
        dict: legacy column -> value or None, for every legacy column
    """
    answers = _answers_dict(answers)
    values = {}
    for question in LEGACY_QUESTIONS:
        key = question['key']
        value = encode_response(question['field_type'], answers.get(key))
        if value is not None and question['options']:
            if value not in [option_value for option_value, _ in question['options']]:
                raise SurveyValidationError(f'"{value}" is not an option of "{question["question_text"]}".')
        if key == 'bio' and value and len(value) > BIO_MAX_LENGTH:
            raise SurveyValidationError(f"Bio must be {BIO_MAX_LENGTH} characters or less. Current length: {len(value)}")
        values[key] = value
    return values


def apply_legacy_answers(registration, answers):
    """Write legacy answers onto the registration row (not saved)"""
    for key, value in validate_legacy_answers(answers).items():
        setattr(registration, key, value)
    return registration


def legacy_survey_view(registration):
    items = []
    for question in LEGACY_QUESTIONS:
        value = getattr(registration, question['key'])
        if question['options']:
            display = legacy_option_label(question['options'], value)
        else:
            display = render_value(question['field_type'], value)
        items.append({
            'key': question['key'],
            'question': question['question_text'],
            'field_type': question['field_type'],
            'value': value,
            'display': display,
        })
    return items


def survey_view(registration):
    """
    Read model of a participant's answers, custom or legacy.

    Returns:
        dict: {'mode': 'custom' | 'legacy', 'items': [...]}
    """
    questions = get_questions(registration.event) if registration.event_id else []
    if not questions:
        return {'mode': 'legacy', 'items': legacy_survey_view(registration)}

    responses = get_responses(registration)
    items = []
    for question in questions:
        value = responses.get(question.id)
        items.append({
            'question_id': question.id,
            'question': question.question_text,
            'field_type': question.field_type,
            'is_required': question.is_required,
            'options': question.options,
            'value': value,
            'display': render_value(question.field_type, value),
        })
    return {'mode': 'custom', 'items': items}


def update_survey(registration, answers):
    """Self-service edit of a participant's answers in whichever mode applies"""
    questions = get_questions(registration.event) if registration.event_id else []
    if questions:
        replace_responses(registration, questions, answers)
    else:
        apply_legacy_answers(registration, answers)
        registration.save()
    return survey_view(registration)
