import pytest

from hint_engine.signals.intent import Intent, classify, is_follow_up, prompt_modifier


def test_empty_input_is_new_question_with_half_confidence():
    result = classify("   ")
    assert result.intent == Intent.NEW_QUESTION
    assert result.confidence == 0.5
    assert result.is_follow_up is False


@pytest.mark.parametrize(
    "text,expected,confidence",
    [
        ("Please optimize the algorithm for me", Intent.OPTIMIZE, 0.8),
        ("There is a bug in the loop somewhere", Intent.DEBUG, 0.3),
        ("What if the input array is already sorted", Intent.CONSTRAINT_CHANGE, 0.7),
        ("Okay moving on to the next part now", Intent.NEW_QUESTION, 0.9),
    ],
)
def test_longest_match_wins(text, expected, confidence):
    result = classify(text)
    assert result.intent == expected
    assert result.confidence == pytest.approx(confidence)


def test_ties_go_to_declaration_order():
    # "improve" (refine) and "what if" (constraint_change) are both 7 chars
    result = classify("improve what if")
    assert result.intent == Intent.REFINE


def test_classification_is_case_insensitive():
    assert classify("OPTIMIZE THIS PLEASE NOW OK").intent == Intent.OPTIMIZE


def test_confidence_is_capped_at_one():
    result = classify("can you make it more readable and also shorter")
    assert result.intent == Intent.REFINE
    assert result.confidence == 1.0


@pytest.mark.parametrize(
    "text,expected",
    [
        ("and then?", True),
        ("what about using a heap instead of sorting", True),
        ("can you explain this code to me again please", True),
        ("you said earlier that hashing would work here", True),
        ("walk me through your approach to this problem", False),
        ("", False),
    ],
)
def test_follow_up_detection(text, expected):
    assert is_follow_up(text) is expected


def test_requires_context():
    assert classify("make it faster").requires_context is True
    assert classify("describe the architecture of your previous system in detail").requires_context is False


def test_prompt_modifiers():
    assert "more efficient" in prompt_modifier(Intent.OPTIMIZE)
    assert prompt_modifier("debug").startswith("Identify and fix")
    assert prompt_modifier(Intent.NEW_QUESTION) == ""
    assert prompt_modifier("not-an-intent") == ""
