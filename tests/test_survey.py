import pytest

from meetspark import survey
from meetspark.models.event_question import EventQuestion
from meetspark.models.question_response import QuestionResponse


def sample_questions():
    return [
        {'question_text': 'What are you building?', 'field_type': 'text', 'is_required': True},
        {'question_text': 'Pick a track', 'field_type': 'radio', 'options': ['AI', 'Web3', 'Health'],
         'is_required': True},
        {'question_text': 'Tools you use', 'field_type': 'checkbox', 'options': ['Figma', 'VS Code']},
        {'question_text': 'Energy level', 'field_type': 'rating'},
    ]


def stored_shape(event):
    return [(q.question_text, q.field_type, q.options, q.is_required, q.sort_order)
            for q in survey.get_questions(event)]


def test_move_question_swaps_neighbours():
    questions = survey.normalize_order([{'question_text': t} for t in 'abc'])
    moved = survey.move_question(questions, 1, 'up')
    assert [q['question_text'] for q in moved] == ['b', 'a', 'c']
    assert [q['sort_order'] for q in moved] == [0, 1, 2]


def test_move_question_past_either_end_is_noop():
    questions = survey.normalize_order([{'question_text': t} for t in 'abc'])
    assert [q['question_text'] for q in survey.move_question(questions, 0, 'up')] == ['a', 'b', 'c']
    assert [q['question_text'] for q in survey.move_question(questions, 2, 'down')] == ['a', 'b', 'c']
    with pytest.raises(ValueError):
        survey.move_question(questions, 0, 'sideways')


def test_add_and_remove_keep_order_dense():
    questions = survey.add_question([], question_text='First')
    questions = survey.add_question(questions, question_text='Second', field_type='textarea')
    questions = survey.add_question(questions, question_text='Third')
    questions = survey.remove_question(questions, 0)
    assert [(q['question_text'], q['sort_order']) for q in questions] == [('Second', 0), ('Third', 1)]


def test_validate_question_set_requires_text():
    with pytest.raises(survey.SurveyValidationError, match='Question 2 must have text'):
        survey.validate_question_set([{'question_text': 'Ok', 'field_type': 'text'},
                                      {'question_text': '   ', 'field_type': 'text'}])


def test_validate_question_set_rejects_unknown_field_type():
    with pytest.raises(survey.SurveyValidationError, match='unknown field type'):
        survey.validate_question_set([{'question_text': 'Color', 'field_type': 'color'}])


def test_choice_question_with_one_option_is_not_saved(event):
    survey.replace_questions(event, sample_questions())
    before = stored_shape(event)

    bad = [{'question_text': 'Pick one', 'field_type': 'select', 'options': ['Only', '  ']}]
    with pytest.raises(survey.SurveyValidationError, match='at least 2 options'):
        survey.replace_questions(event, bad)

    assert stored_shape(event) == before


def test_saving_same_questions_twice_is_idempotent(event):
    survey.replace_questions(event, sample_questions())
    first = stored_shape(event)
    survey.replace_questions(event, sample_questions())
    survey.replace_questions(event, sample_questions())

    assert stored_shape(event) == first
    assert [row[4] for row in first] == [0, 1, 2, 3]
    assert EventQuestion.select().where(EventQuestion.event == event).count() == 4


def test_options_dropped_for_non_choice_types(event):
    questions = [{'question_text': 'Name your stack', 'field_type': 'text', 'options': ['x', 'y']}]
    saved = survey.replace_questions(event, questions)
    assert saved[0].options is None


def test_encode_response():
    assert survey.encode_response('text', '  hello ') == 'hello'
    assert survey.encode_response('textarea', '   ') is None
    assert survey.encode_response('checkbox', ['a', '', ' b ']) == ['a', 'b']
    assert survey.encode_response('checkbox', []) is None
    assert survey.encode_response('number', ' 42 ') == '42'
    assert survey.encode_response('rating', '4') == 4
    assert survey.encode_response('rating', None) is None

    with pytest.raises(survey.SurveyValidationError):
        survey.encode_response('number', 'forty')
    with pytest.raises(survey.SurveyValidationError):
        survey.encode_response('rating', 6)
    with pytest.raises(survey.SurveyValidationError):
        survey.encode_response('rating', 2.5)
    with pytest.raises(survey.SurveyValidationError):
        survey.encode_response('rating', True)


def test_render_value():
    assert survey.render_value('checkbox', ['Figma', 'VS Code']) == 'Figma, VS Code'
    assert survey.render_value('checkbox', []) == '—'
    assert survey.render_value('text', None) == '—'
    assert survey.render_value('rating', 3) == '3'


def test_validate_answers(event):
    questions = survey.replace_questions(event, sample_questions())
    text_q, radio_q, checkbox_q, rating_q = questions

    encoded = survey.validate_answers(questions, {
        str(text_q.id): 'A robot',
        radio_q.id: 'AI',
        str(checkbox_q.id): [],
    })
    assert encoded == {text_q.id: 'A robot', radio_q.id: 'AI'}

    with pytest.raises(survey.SurveyValidationError, match='is required'):
        survey.validate_answers(questions, {text_q.id: 'A robot'})
    with pytest.raises(survey.SurveyValidationError, match='not an option'):
        survey.validate_answers(questions, {text_q.id: 'A robot', radio_q.id: 'Crypto'})


def test_replace_responses_supersedes_previous_answers(event, make_participant):
    questions = survey.replace_questions(event, sample_questions())
    text_q, radio_q, checkbox_q, rating_q = questions
    alice = make_participant('Alice')

    survey.replace_responses(alice, questions, {text_q.id: 'A robot', radio_q.id: 'AI', rating_q.id: 5})
    survey.replace_responses(alice, questions, {text_q.id: 'A garden', radio_q.id: 'Health'})

    assert survey.get_responses(alice) == {text_q.id: 'A garden', radio_q.id: 'Health'}
    assert QuestionResponse.select().where(QuestionResponse.registration == alice).count() == 2


def test_survey_view_custom_mode(event, make_participant):
    questions = survey.replace_questions(event, sample_questions())
    alice = make_participant('Alice')
    survey.replace_responses(alice, questions, {
        questions[0].id: 'A robot', questions[1].id: 'AI', questions[2].id: ['Figma', 'VS Code']})

    view = survey.survey_view(alice)
    assert view['mode'] == 'custom'
    assert [item['display'] for item in view['items']] == ['A robot', 'AI', 'Figma, VS Code', '—']


def test_legacy_mode_uses_registration_columns(event, make_participant):
    bob = make_participant('Bob')
    view = survey.update_survey(bob, {'vibe': 'gaming', 'superpower': 'builds', 'bio': '  Loves Rust  '})

    bob = type(bob).get_by_id(bob.id)
    assert bob.vibe == 'gaming'
    assert bob.bio == 'Loves Rust'
    assert bob.ideal_copilot is None
    assert view['mode'] == 'legacy'
    displays = {item['key']: item['display'] for item in view['items']}
    assert displays['vibe'] == '🎮 Gaming & Entertainment'
    assert displays['offscreen_life'] == '—'
    assert QuestionResponse.select().count() == 0


def test_legacy_unknown_value_renders_raw(event, make_participant):
    carol = make_participant('Carol', vibe='space')
    displays = {item['key']: item['display'] for item in survey.legacy_survey_view(carol)}
    assert displays['vibe'] == 'space'


def test_legacy_answers_validated():
    with pytest.raises(survey.SurveyValidationError, match='not an option'):
        survey.validate_legacy_answers({'superpower': 'flies'})
    with pytest.raises(survey.SurveyValidationError, match='Bio must be'):
        survey.validate_legacy_answers({'bio': 'x' * 301})


def test_questions_from_generated():
    generated = [
        {'question_text': 'Favourite track?', 'field_type': 'radio', 'options': ['AI', 'Web3'], 'is_required': True},
        {'question_text': 'Say hi', 'field_type': 'text', 'options': []},
    ]
    questions = survey.questions_from_generated(generated)
    assert questions[0]['is_required'] is True
    assert questions[1]['options'] is None
    assert questions[1]['is_required'] is False
    assert [q['sort_order'] for q in questions] == [0, 1]


def test_encode_response_rejects_wrong_shapes():
    assert survey.encode_response('checkbox', 'Figma') == ['Figma']
    with pytest.raises(survey.SurveyValidationError, match='must be a list'):
        survey.encode_response('checkbox', 5)
    with pytest.raises(survey.SurveyValidationError, match='must be a list'):
        survey.encode_response('checkbox', {'a': 1})
    with pytest.raises(survey.SurveyValidationError, match='single value'):
        survey.encode_response('text', ['a', 'b'])


def test_answers_must_be_keyed(event):
    questions = survey.replace_questions(event, sample_questions())
    with pytest.raises(survey.SurveyValidationError, match='keyed by question'):
        survey.validate_answers(questions, ['A robot'])
    with pytest.raises(survey.SurveyValidationError, match='keyed by question'):
        survey.validate_legacy_answers('bio')
