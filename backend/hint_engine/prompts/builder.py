from __future__ import annotations

from dataclasses import dataclass

from hint_engine.prompts.modes import get_mode
from hint_engine.session.memory import SessionMemory
from hint_engine.session.models import InterviewMeta
from hint_engine.signals import language as language_resolver
from hint_engine.signals.intent import Intent, IntentResult, prompt_modifier
from hint_engine.vision import VisualContext

TRANSCRIPT_CHAR_LIMIT = 800
SCREEN_TEXT_CHAR_LIMIT = 800

LEVEL_LABELS = {
    "junior": "Junior (0-2 years)",
    "mid": "Mid-level (2-5 years)",
    "senior": "Senior (5+ years)",
}

INTERVIEW_TYPE_LABELS = {
    "technical": "Technical Interview",
    "behavioral": "Behavioral Interview",
    "system-design": "System Design Interview",
    "hr": "HR/Culture Fit",
}

COMPANY_LABELS = {
    "startup": "Startup",
    "mid-size": "Mid-size Company",
    "enterprise": "Enterprise",
    "faang": "FAANG/Big Tech",
}

MODE_ACTIONS = {
    "help": "Quick - give me the key talking points to nail this question!",
    "explain": "Help me understand what they're really testing here.",
    "code": "Give me the code solution for this problem.",
    "answer": "Give me a complete answer I can deliver right now.",
    "sql": "Give me the SQL query for this problem.",
    "system_design": "Walk me through a design I can present right now.",
}

SENIOR_NOTE = "Note: This is a senior-level candidate. Expect and provide depth, architectural thinking, and leadership examples."
JUNIOR_NOTE = "Note: This is a junior-level candidate. Focus on fundamentals and learning potential rather than extensive experience."
FAANG_NOTE = "Note: This is for a FAANG/Big Tech interview. Include time/space complexity analysis and scalability considerations."
SHORT_STYLE_NOTE = "IMPORTANT: Keep responses very concise - bullet points preferred, maximum 2-3 sentences per point."
DETAILED_STYLE_NOTE = "IMPORTANT: Provide thorough, detailed responses with examples and explanations."


@dataclass(frozen=True)
class PromptBundle:
    system_message: str
    user_prompt: str
    temperature: float
    max_tokens: int
    mode: str

    def to_dict(self) -> dict:
        return {
            "systemMessage": self.system_message,
            "userPrompt": self.user_prompt,
            "temperature": self.temperature,
            "maxTokens": self.max_tokens,
            "mode": self.mode,
        }


def build_system_message(base_prompt: str, meta: InterviewMeta) -> str:
    parts = [base_prompt]

    if meta.experience_level == "senior":
        parts.append(SENIOR_NOTE)
    elif meta.experience_level == "junior":
        parts.append(JUNIOR_NOTE)

    if meta.company_type == "faang":
        parts.append(FAANG_NOTE)

    if meta.weak_areas.strip():
        parts.append(
            f"Note: The candidate mentioned weak areas in: {meta.weak_areas.strip()}. "
            "Be especially helpful in these topics."
        )

    if meta.response_style == "short":
        parts.append(SHORT_STYLE_NOTE)
    elif meta.response_style == "detailed":
        parts.append(DETAILED_STYLE_NOTE)

    return "\n\n".join(parts)


def build_context_header(meta: InterviewMeta) -> str:
    fields = []
    if meta.role.strip():
        fields.append(f"role={meta.role.strip()}")
    if meta.experience_level:
        fields.append(f"level={LEVEL_LABELS.get(meta.experience_level, meta.experience_level)}")
    if meta.tech_stack.strip() and meta.tech_stack.strip().lower() != "general":
        fields.append(f"stack={meta.tech_stack.strip()}")
    if meta.interview_type:
        fields.append(f"type={INTERVIEW_TYPE_LABELS.get(meta.interview_type, meta.interview_type)}")
    if meta.company_type:
        fields.append(f"company={COMPANY_LABELS.get(meta.company_type, meta.company_type)}")

    if not fields:
        return ""
    return f"[Interview Context: {' | '.join(fields)}]"


def truncate_transcript(text: str, limit: int = TRANSCRIPT_CHAR_LIMIT) -> str:
    if len(text) > limit:
        return "..." + text[-limit:]
    return text


def build_screen_block(visual: VisualContext) -> str:
    lines = ["[LIVE SCREEN CONTEXT - The candidate is looking at this right now]:"]
    if visual.problem_statement:
        lines.append(f'> Problem Description:\n"{visual.problem_statement.strip()}"')
    if visual.code:
        lines.append(f"> Code Editor State:\n{visual.code.strip()}")
    if not visual.problem_statement and not visual.code and visual.extracted_texts:
        text = "\n".join(visual.extracted_texts)
        suffix = "..." if len(text) > SCREEN_TEXT_CHAR_LIMIT else ""
        lines.append(f'> Visible Screen Text:\n"{text[:SCREEN_TEXT_CHAR_LIMIT]}{suffix}"')
    lines.append("(End of screen context)")
    return "\n".join(lines)


def build_prompt(
    mode: str,
    meta: InterviewMeta,
    context: dict | None = None,
    memory: SessionMemory | None = None,
    custom_prompt: str | None = None,
    visual_context: VisualContext | None = None,
    language: str | None = None,
    intent: IntentResult | None = None,
) -> PromptBundle:
    """
    Turn mode + interview metadata + rolling context into a system/user prompt pair.

    `context` is the rolling window snapshot (recentTranscript, latestQuestion).
    `intent` is only honored for custom prompts that follow an earlier hint.
    """
    config = get_mode(mode)
    context = dict(context or {})

    system_message = build_system_message(config.system_prompt, meta)

    follow_up = (
        config.name == "custom"
        and intent is not None
        and intent.requires_context
        and memory is not None
        and memory.last() is not None
    )
    if follow_up and intent.intent != Intent.NEW_QUESTION:
        modifier = prompt_modifier(intent.intent)
        if modifier:
            system_message += f"\n\n{modifier}"

    sections: list[str] = []

    header = build_context_header(meta)
    if header:
        sections.append(header)

    if visual_context is not None and not visual_context.is_empty():
        sections.append(build_screen_block(visual_context))

    latest_question = context.get("latestQuestion")
    if latest_question:
        sections.append(f'The interviewer asked: "{latest_question}"')

    transcript = str(context.get("recentTranscript") or "").strip()
    if transcript:
        sections.append(f'What you\'ve been hearing:\n"{truncate_transcript(transcript)}"')
    else:
        sections.append("(No recent conversation captured yet)")

    if follow_up:
        previous = memory.last()
        sections.append(
            f"Previous request ({previous.mode}): {previous.question}\n"
            f"Previous response:\n{truncate_transcript(previous.response)}"
        )

    temperature = config.temperature
    if config.name in {"code", "sql"} and language:
        sections.append(f"Language: {language}")
        temperature = language_resolver.adjust_temperature(temperature, language)

    if config.name == "custom" and custom_prompt:
        sections.append(custom_prompt)
    else:
        sections.append(MODE_ACTIONS.get(config.name, "Help me with this!"))

    return PromptBundle(
        system_message=system_message,
        user_prompt="\n\n".join(sections),
        temperature=temperature,
        max_tokens=config.max_tokens,
        mode=config.name,
    )
