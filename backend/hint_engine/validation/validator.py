from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from hint_engine.signals import language as language_resolver

# AI self-disclosure boilerplate; never shown to the user.
BANNED_PHRASES = [
    re.compile(r"as an AI( language model)?", re.IGNORECASE),
    re.compile(r"I cannot", re.IGNORECASE),
    re.compile(r"I can['’]t", re.IGNORECASE),
    re.compile(r"here is the solution", re.IGNORECASE),
    re.compile(r"here['’]s the solution", re.IGNORECASE),
    re.compile(r"I['’]m happy to", re.IGNORECASE),
    re.compile(r"I['’]d be glad to", re.IGNORECASE),
    re.compile(r"certainly!", re.IGNORECASE),
    re.compile(r"absolutely!", re.IGNORECASE),
    re.compile(r"let me help", re.IGNORECASE),
    re.compile(r"I['’]ll help", re.IGNORECASE),
    re.compile(r"great question", re.IGNORECASE),
    re.compile(r"good question", re.IGNORECASE),
    re.compile(r"sure thing", re.IGNORECASE),
    re.compile(r"of course!", re.IGNORECASE),
]

ROBOTIC_PATTERNS = [
    re.compile(r"^[ \t]*Step \d+[:.][ \t]*", re.IGNORECASE | re.MULTILINE),
    re.compile(r"^[ \t]*(First|Second|Third|Finally),[ \t]*", re.IGNORECASE | re.MULTILINE),
    re.compile(r"^[ \t]*(In conclusion|To summarize),[ \t]*", re.IGNORECASE | re.MULTILINE),
]

EMOJI_PATTERN = re.compile(
    "["
    "\U0001F600-\U0001F64F"
    "\U0001F300-\U0001F5FF"
    "\U0001F680-\U0001F6FF"
    "\U0001F1E0-\U0001F1FF"
    "\u2600-\u26FF"
    "\u2700-\u27BF"
    "]"
)

THINKING_BLOCK = re.compile(r"<thinking>.*?</thinking>", re.DOTALL | re.IGNORECASE)
MARKDOWN_HEADER = re.compile(r"^#{1,3}\s+.*$", re.MULTILINE)
FENCED_BLOCK = re.compile(r"```.*?```", re.DOTALL)
FENCE_MARKER = re.compile(r"```\w*\n?")
CODE_START = re.compile(r"^(def |function |class |public |const |let |var |import |SELECT |WITH )", re.MULTILINE)

HELP_REWRITES = [
    (re.compile(r"The answer is", re.IGNORECASE), "Consider that"),
    (re.compile(r"You should use", re.IGNORECASE), "You might explore"),
    (re.compile(r"The solution is", re.IGNORECASE), "One approach could be"),
]

FUNCTION_NAME_PATTERNS = [
    re.compile(r"def\s+(\w+)\s*\("),
    re.compile(r"function\s+(\w+)\s*\("),
    re.compile(r"const\s+(\w+)\s*=\s*\("),
    re.compile(r"public\s+\w+\s+(\w+)\s*\("),
    re.compile(r"void\s+(\w+)\s*\("),
]

COMMON_HELPERS = {"helper", "solve", "main", "solution", "dfs", "bfs"}

CODE_MODES = {"code", "sql"}
EXPLAIN_LINE_CAP = 5
EXPLAIN_LINE_LIMIT = 7
PROSE_BEFORE_CODE_LIMIT = 50
MAX_BANNED_PASSES = 5

_COMMENT_PREFIX = {"python": "#", "sql": "--"}


@dataclass(frozen=True)
class ValidatedResponse:
    text: str
    issues: tuple[str, ...] = ()
    metrics: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "metrics", MappingProxyType(dict(self.metrics)))

    @property
    def valid(self) -> bool:
        return not self.issues

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "valid": self.valid,
            "issues": list(self.issues),
            "metrics": dict(self.metrics),
        }


def strip_thinking(text: str) -> str:
    return THINKING_BLOCK.sub("", text).strip()


def strip_banned_phrases(text: str) -> tuple[str, int]:
    hits = 0
    for _ in range(MAX_BANNED_PASSES):
        matched = False
        for pattern in BANNED_PHRASES:
            if pattern.search(text):
                hits += 1
                matched = True
                text = pattern.sub("", text).strip()
        if not matched:
            break
    return text, hits


def remove_emojis(text: str) -> str:
    return EMOJI_PATTERN.sub("", text)


def strip_robotic(text: str) -> str:
    for pattern in ROBOTIC_PATTERNS:
        text = pattern.sub("", text)
    return text.strip()


def _non_blank_lines(text: str) -> list[str]:
    return [line for line in text.split("\n") if line.strip()]


def enforce_explain_mode(text: str, issues: list[str]) -> str:
    text = MARKDOWN_HEADER.sub("", text).strip()

    if FENCED_BLOCK.search(text):
        text = FENCED_BLOCK.sub("[code snippet removed]", text)
        issues.append("Code removed from explain mode")

    lines = _non_blank_lines(text)
    if len(lines) > EXPLAIN_LINE_LIMIT:
        issues.append(f"Exceeds {EXPLAIN_LINE_LIMIT} line limit for explain mode")
    if len(lines) > EXPLAIN_LINE_CAP:
        text = "\n".join(lines[:EXPLAIN_LINE_CAP])
    return text


def is_balanced(text: str) -> bool:
    return text.count("{") == text.count("}") and text.count("(") == text.count(")")


def enforce_code_mode(text: str, language: str | None = None) -> str:
    match = CODE_START.search(text)
    if match and match.start() > 0 and match.start() > PROSE_BEFORE_CODE_LIMIT:
        text = text[match.start():]

    text = FENCE_MARKER.sub("", text).strip()

    if not is_balanced(text):
        lang = language_resolver.normalize(language or "") or language_resolver.detect_from_text(text) or ""
        prefix = _COMMENT_PREFIX.get(lang, "//")
        text += f"\n\n{prefix} Warning: Output may be truncated. Check syntax."
    return text


def enforce_help_mode(text: str) -> str:
    for pattern, replacement in HELP_REWRITES:
        text = pattern.sub(replacement, text)
    return text


def extract_function_names(text: str) -> list[str]:
    names: list[str] = []
    for pattern in FUNCTION_NAME_PATTERNS:
        for match in pattern.finditer(text or ""):
            if match.group(1) not in names:
                names.append(match.group(1))
    return names


def grounding_check(response: str, source_text: str) -> list[str]:
    source_names = extract_function_names(source_text)
    if not source_names:
        return []

    issues = []
    for name in extract_function_names(response):
        if name in source_names or name.lower() in COMMON_HELPERS:
            continue
        issues.append(f"New function name not in source: {name}")
    return issues


def validate(raw_text: str | None, mode: str, source: dict | None = None) -> ValidatedResponse:
    """
    Sanitize raw LLM output for display.

    Order matters: reasoning blocks and banned phrases go first so later
    stages never see them. `valid` is advisory; the cleaned text is always
    returned. `source` may carry `ocrText` (grounding) and `language`.
    """
    source = dict(source or {})
    if not str(raw_text or "").strip():
        return ValidatedResponse(
            text="",
            issues=("Empty response",),
            metrics={"bannedPhraseHits": 0, "lineCount": 0},
        )

    issues: list[str] = []
    text = strip_thinking(str(raw_text).strip())
    text, banned_hits = strip_banned_phrases(text)

    if mode not in CODE_MODES:
        text = strip_robotic(text)
        text = remove_emojis(text)

    if mode == "explain":
        text = enforce_explain_mode(text, issues)
    elif mode in CODE_MODES:
        text = enforce_code_mode(text, language=source.get("language"))
    elif mode == "help":
        text = enforce_help_mode(text)

    ocr_text = source.get("ocrText")
    if ocr_text:
        issues.extend(grounding_check(text, ocr_text))

    text = re.sub(r"\n{3,}", "\n\n", text).strip()

    return ValidatedResponse(
        text=text,
        issues=tuple(issues),
        metrics={
            "bannedPhraseHits": banned_hits,
            "lineCount": len(_non_blank_lines(text)),
        },
    )
