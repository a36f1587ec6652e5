"""Tests for question selection rules and intent bucketing."""

from authority_coach import selection
from authority_coach.models import AudienceQuestion


def test_toggle_adds_in_pick_order():
    sel = ()
    for i in (9, 0, 3):
        sel = selection.toggle(sel, i)
    assert sel == (9, 0, 3)


def test_toggle_ignores_additions_past_the_limit():
    full = (0, 1, 2, 3, 4)
    assert selection.toggle(full, 7) == full


def test_toggle_removes_even_when_full():
    assert selection.toggle((0, 1, 2, 3, 4), 2) == (0, 1, 3, 4)


def test_can_submit_needs_one_to_five():
    assert not selection.can_submit(())
    assert selection.can_submit((4,))
    assert selection.can_submit((0, 1, 2, 3, 4))
    assert not selection.can_submit((0, 1, 2, 3, 4, 5))


def test_intent_bucket_matches_info_substring_case_insensitively():
    def q(intent):
        return AudienceQuestion(question="?", intent=intent)

    assert selection.intent_bucket(q("Informational")) == selection.INFORMATIONAL
    assert selection.intent_bucket(q("INFO")) == selection.INFORMATIONAL
    assert selection.intent_bucket(q("needs more info please")) == selection.INFORMATIONAL
    assert selection.intent_bucket(q("Commercial")) == selection.ACTIONABLE
    assert selection.intent_bucket(q("Navigational")) == selection.ACTIONABLE
    assert selection.intent_bucket(q("")) == selection.ACTIONABLE


def test_bucket_questions_keeps_original_indices():
    questions = [
        AudienceQuestion(question="a", intent="Informational"),
        AudienceQuestion(question="b", intent="Transactional"),
        AudienceQuestion(question="c", intent="informational"),
        AudienceQuestion(question="d", intent="Commercial"),
    ]

    informational, actionable = selection.bucket_questions(questions)

    assert informational == [0, 2]
    assert actionable == [1, 3]
