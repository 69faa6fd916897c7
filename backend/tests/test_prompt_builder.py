from hint_engine.prompts import build_prompt, resolve_mode
from hint_engine.prompts.builder import MODE_ACTIONS, build_context_header, truncate_transcript
from hint_engine.session.memory import SessionMemory
from hint_engine.session.models import InterviewMeta
from hint_engine.signals.intent import classify
from hint_engine.vision import VisualContext


def _context(transcript="We store sessions in redis.", question="How would you design a cache?"):
    return {"recentTranscript": transcript, "latestQuestion": question}


def test_help_prompt_sections_and_parameters():
    bundle = build_prompt("help", InterviewMeta(), context=_context())

    assert bundle.mode == "help"
    assert bundle.temperature == 0.5
    assert bundle.max_tokens == 200
    assert bundle.user_prompt.startswith(
        "[Interview Context: role=Software Engineer | level=Mid-level (2-5 years) | "
        "type=Technical Interview | company=Startup]"
    )
    assert 'The interviewer asked: "How would you design a cache?"' in bundle.user_prompt
    assert "We store sessions in redis." in bundle.user_prompt
    assert bundle.user_prompt.endswith(MODE_ACTIONS["help"])


def test_system_message_notes_follow_meta():
    meta = InterviewMeta.from_dict({
        "level": "senior",
        "companyType": "faang",
        "weakAreas": "graphs",
        "responseStyle": "short",
    })
    system = build_prompt("answer", meta).system_message

    assert "senior-level candidate" in system
    assert "time/space complexity" in system
    assert "weak areas in: graphs" in system
    assert "maximum 2-3 sentences" in system


def test_junior_and_detailed_notes():
    meta = InterviewMeta(experience_level="junior", response_style="detailed")
    system = build_prompt("explain", meta).system_message
    assert "junior-level candidate" in system
    assert "thorough, detailed responses" in system


def test_context_header_includes_non_default_stack():
    meta = InterviewMeta(role="Backend Engineer", tech_stack="Go, Postgres")
    assert "stack=Go, Postgres" in build_context_header(meta)
    assert "stack=" not in build_context_header(InterviewMeta())


def test_transcript_is_truncated_to_last_800_chars():
    text = "a" * 200 + "b" * 800
    truncated = truncate_transcript(text)
    assert truncated == "..." + "b" * 800
    assert truncate_transcript("short") == "short"

    bundle = build_prompt("help", InterviewMeta(), context=_context(transcript=text))
    assert "a" * 10 not in bundle.user_prompt.split("What you've been hearing:")[1]


def test_missing_transcript_placeholder():
    bundle = build_prompt("help", InterviewMeta(), context={})
    assert "(No recent conversation captured yet)" in bundle.user_prompt
    assert "The interviewer asked" not in bundle.user_prompt


def test_custom_prompt_is_used_verbatim():
    bundle = build_prompt("custom", InterviewMeta(), context=_context(), custom_prompt="Give me three follow-up questions")
    assert bundle.user_prompt.endswith("Give me three follow-up questions")
    for action in MODE_ACTIONS.values():
        assert action not in bundle.user_prompt


def test_code_mode_names_language_and_lowers_temperature_for_static_languages():
    java = build_prompt("code", InterviewMeta(), context=_context(), language="java")
    python = build_prompt("code", InterviewMeta(), context=_context(), language="python")

    assert "Language: java" in java.user_prompt
    assert java.temperature == 0.1
    assert python.temperature == 0.2
    assert java.max_tokens == 800


def test_follow_up_custom_prompt_includes_previous_exchange():
    memory = SessionMemory()
    memory.add("Give me the code", "def lru(): ...", "code")
    intent = classify("make it faster")

    bundle = build_prompt(
        "custom",
        InterviewMeta(),
        context=_context(),
        memory=memory,
        custom_prompt="make it faster",
        intent=intent,
    )

    assert "more efficient solution" in bundle.system_message
    assert "Previous request (code): Give me the code" in bundle.user_prompt
    assert "def lru(): ..." in bundle.user_prompt


def test_follow_up_without_memory_is_treated_as_fresh():
    bundle = build_prompt(
        "custom",
        InterviewMeta(),
        context=_context(),
        memory=SessionMemory(),
        custom_prompt="make it faster",
        intent=classify("make it faster"),
    )
    assert "more efficient solution" not in bundle.system_message
    assert "Previous request" not in bundle.user_prompt


def test_screen_context_block_precedes_question():
    visual = VisualContext(problem_statement="Given an array of integers", code="def solve(nums):\n    pass")
    bundle = build_prompt("code", InterviewMeta(), context=_context(), visual_context=visual, language="python")

    screen_at = bundle.user_prompt.index("[LIVE SCREEN CONTEXT")
    question_at = bundle.user_prompt.index("The interviewer asked")
    assert screen_at < question_at
    assert "Given an array of integers" in bundle.user_prompt


def test_mode_resolution():
    assert resolve_mode("hint") == "help"
    assert resolve_mode("system-design") == "system_design"
    assert resolve_mode("SQL") == "sql"
    assert resolve_mode("nonsense") == "help"
    assert build_prompt("nonsense", InterviewMeta()).mode == "help"
