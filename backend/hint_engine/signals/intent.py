from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum


class Intent(str, Enum):
    REFINE = "refine"
    OPTIMIZE = "optimize"
    DEBUG = "debug"
    EXPLAIN_MORE = "explain_more"
    CONSTRAINT_CHANGE = "constraint_change"
    NEW_QUESTION = "new_question"


def _compile(*patterns: str) -> list[re.Pattern]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


# Declaration order breaks score ties.
INTENT_PATTERNS: dict[Intent, list[re.Pattern]] = {
    Intent.REFINE: _compile(
        r"can you (make it |be )?(more |less )?(.+)",
        r"refine",
        r"improve",
        r"clean(er)? up",
        r"simplify",
        r"make it better",
    ),
    Intent.OPTIMIZE: _compile(
        r"optimi[sz]e",
        r"faster",
        r"more efficient",
        r"reduce (time|space|complexity)",
        r"o\(n\)",
        r"better complexity",
        r"can we do better",
    ),
    Intent.DEBUG: _compile(
        r"debug",
        r"what('s| is) wrong",
        r"fix (this|the|my)",
        r"error",
        r"doesn't work",
        r"not working",
        r"bug",
        r"issue",
    ),
    Intent.EXPLAIN_MORE: _compile(
        r"explain (more|again|further)",
        r"what do you mean",
        r"can you clarify",
        r"i don't understand",
        r"elaborate",
        r"why (does|is|did)",
        r"how does",
    ),
    Intent.CONSTRAINT_CHANGE: _compile(
        r"what if",
        r"but now",
        r"changed? to",
        r"instead of",
        r"new constraint",
        r"updated",
        r"different",
    ),
    Intent.NEW_QUESTION: _compile(
        r"new question",
        r"next (question|problem)",
        r"moving on",
        r"another one",
    ),
}

FOLLOW_UP_INDICATORS = _compile(
    r"^(and|but|also|or|what about|how about)\b",
    r"this (code|solution|approach)",
    r"you (said|mentioned|showed)",
    r"the (same|previous)",
)

PROMPT_MODIFIERS: dict[Intent, str] = {
    Intent.REFINE: "Improve upon the previous solution while maintaining correctness.",
    Intent.OPTIMIZE: "Provide a more efficient solution with better time/space complexity.",
    Intent.DEBUG: "Identify and fix the issue. Explain what was wrong.",
    Intent.EXPLAIN_MORE: "Provide more detailed explanation of the concept.",
    Intent.CONSTRAINT_CHANGE: "Adapt the solution to the new constraint.",
    Intent.NEW_QUESTION: "",
}


@dataclass(frozen=True)
class IntentResult:
    intent: Intent
    confidence: float
    is_follow_up: bool

    @property
    def requires_context(self) -> bool:
        return self.is_follow_up or self.intent != Intent.NEW_QUESTION

    def to_dict(self) -> dict:
        return {
            "intent": self.intent.value,
            "confidence": self.confidence,
            "isFollowUp": self.is_follow_up,
            "requiresContext": self.requires_context,
        }


def _match_score(text: str, pattern: re.Pattern) -> int:
    match = pattern.search(text)
    return len(match.group(0)) if match else 0


def is_follow_up(text: str) -> bool:
    normalized = str(text or "").strip().lower()
    if not normalized:
        return False
    if len(normalized.split()) < 5:
        return True
    return any(pattern.search(normalized) for pattern in FOLLOW_UP_INDICATORS)


def classify(text: str, history: list | None = None) -> IntentResult:
    """
    Score every intent by its longest single pattern match.
    `history` is accepted for callers that track prior turns; scoring is
    purely lexical.
    """
    normalized = str(text or "").strip().lower()
    if not normalized:
        return IntentResult(intent=Intent.NEW_QUESTION, confidence=0.5, is_follow_up=False)

    best_intent = Intent.NEW_QUESTION
    best_score = 0
    for intent, patterns in INTENT_PATTERNS.items():
        score = max(_match_score(normalized, pattern) for pattern in patterns)
        if score > best_score:
            best_intent = intent
            best_score = score

    return IntentResult(
        intent=best_intent,
        confidence=min(best_score / 10.0, 1.0),
        is_follow_up=is_follow_up(normalized),
    )


def prompt_modifier(intent: Intent | str) -> str:
    try:
        return PROMPT_MODIFIERS[Intent(intent)]
    except ValueError:
        return ""
