import random

import pytest

from gnomegarden.helpers import QuestionHelper
from gnomegarden.models import (
    Answer,
    AnswerOutcome,
    ContentCatalog,
    Malformed,
    Ok,
    QuestionScript,
    SessionState,
    SlotFill,
    UserProgress,
)


def question(category, text, first, second):
    return QuestionScript(
        category=category,
        question_tts=text,
        answers=(
            Answer(key=first, update=SlotFill(asset_id=first, category=category, label=first)),
            Answer(key=second, update=SlotFill(asset_id=second, category=category, label=second)),
        ),
    )


@pytest.fixture
def tiny_catalog():
    return ContentCatalog(
        questions={
            "flowers": (
                question("flowers", "Red or blue?", "red", "blue"),
                question("flowers", "Sun or moon?", "sun", "moon"),
                question("flowers", "Cats or dogs?", "cats", "dogs"),
            ),
            "background": (
                question("background", "Oak or birch?", "oak", "birch"),
                question("background", "Apple or cherry?", "apple", "cherry"),
            ),
        },
        gnome_responses={
            "question_prefixes": ["Next! "],
            "question_nomatch_1": ["Pardon?"],
            "question_nomatch_2": ["Once more?"],
            "question_nomatch_3": ["Bye!"],
        },
    )


@pytest.fixture
def helper(tiny_catalog):
    return QuestionHelper(tiny_catalog, random.Random(0))


def test_flowers_wrap_to_one_not_zero(helper):
    progress = UserProgress(flowers=2)

    helper.advance("flowers", progress)

    assert progress.flowers == 1


def test_other_categories_wrap_to_zero(helper):
    progress = UserProgress(background=1)

    helper.advance("background", progress)

    assert progress.background == 0


def test_next_question_follows_progress(helper):
    assert helper.next_question("flowers", UserProgress(flowers=1)).question_tts == "Sun or moon?"


def test_out_of_range_progress_falls_back_to_the_wrap_target(helper):
    assert helper.next_question("flowers", UserProgress(flowers=9)).question_tts == "Sun or moon?"
    assert helper.next_question("background", UserProgress(background=-3)).question_tts == "Oak or birch?"


def test_category_without_questions_raises(helper):
    with pytest.raises(KeyError):
        helper.next_question("hero", UserProgress())


def test_onboarding_flower_questions_have_no_prefix(helper):
    assert helper.question_prefix("flowers", UserProgress(flowers=0)) == ""
    assert helper.question_prefix("flowers", UserProgress(flowers=1)) == ""
    assert helper.question_prefix("flowers", UserProgress(flowers=2)) == "Next! "
    assert helper.question_prefix("background", UserProgress()) == "Next! "


@pytest.mark.parametrize("raw", [None, 42, "", "   "])
def test_unusable_input_is_malformed(raw):
    assert isinstance(QuestionHelper.parse_answer(raw), Malformed)


def test_answers_are_normalized():
    assert QuestionHelper.parse_answer("  Wind   CHIMES ") == Ok("wind chimes")


def test_three_rejections_give_up(helper):
    session = SessionState(user_id=1)
    current = helper.next_question("flowers", UserProgress())

    results = [helper.resolve_answer(current, "purple", session) for _ in range(3)]

    assert [r.error_count for r in results] == [1, 2, 3]
    assert [r.give_up for r in results] == [False, False, True]
    assert all(r.outcome is AnswerOutcome.REJECTED for r in results)


def test_accepting_resets_the_error_counter(helper):
    session = SessionState(user_id=1)
    current = helper.next_question("flowers", UserProgress())
    helper.resolve_answer(current, "purple", session)
    helper.resolve_answer(current, None, session)

    result = helper.resolve_answer(current, "Blue", session)

    assert result.outcome is AnswerOutcome.ACCEPTED
    assert result.answer_key == "blue"
    assert session.error_count == 0


def test_both_and_repeat_leave_the_counter_alone(helper):
    session = SessionState(user_id=1, error_count=1)
    current = helper.next_question("flowers", UserProgress())

    assert helper.resolve_answer(current, "both", session).outcome is AnswerOutcome.AMBIGUOUS
    assert helper.resolve_answer(current, "repeat", session).outcome is AnswerOutcome.REPEATED
    assert session.error_count == 1


def test_retry_line_per_error_level(helper):
    assert helper.retry_line(1) == "Pardon?"
    assert helper.retry_line(2) == "Once more?"
    assert helper.retry_line(5) == "Bye!"
