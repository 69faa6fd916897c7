from __future__ import annotations

import re
from dataclasses import dataclass

DEFAULT_LANGUAGE = "python"
MIN_DETECTION_SCORE = 4


@dataclass(frozen=True)
class LanguageProfile:
    keywords: tuple[str, ...]
    signature: re.Pattern


LANGUAGE_PROFILES: dict[str, LanguageProfile] = {
    "python": LanguageProfile(
        keywords=("def ", "import ", "from ", "elif ", "self.", "print(", "__init__", "lambda "),
        signature=re.compile(r"def\s+\w+\s*\("),
    ),
    "javascript": LanguageProfile(
        keywords=("const ", "let ", "var ", "function ", "=>", "console.log", "require(", "export "),
        signature=re.compile(r"function\s+\w+\s*\(|const\s+\w+\s*=\s*\("),
    ),
    "typescript": LanguageProfile(
        keywords=("interface ", ": string", ": number", ": boolean", "<T>", "type ", "as "),
        signature=re.compile(r":\s*(string|number|boolean|void)"),
    ),
    "java": LanguageProfile(
        keywords=("public class", "private ", "protected ", "void ", "String[]", "System.out", "new "),
        signature=re.compile(r"public\s+(static\s+)?\w+\s+\w+\s*\("),
    ),
    "cpp": LanguageProfile(
        keywords=("#include", "std::", "cout", "cin", "vector<", "int main", "::"),
        signature=re.compile(r"int\s+main\s*\(|#include\s*<"),
    ),
    "c": LanguageProfile(
        keywords=("#include", "printf", "scanf", "malloc", "sizeof", "NULL"),
        signature=re.compile(r"int\s+main\s*\(|#include\s*<"),
    ),
    "sql": LanguageProfile(
        keywords=("SELECT ", "FROM ", "WHERE ", "INSERT ", "UPDATE ", "DELETE ", "JOIN ", "GROUP BY"),
        signature=re.compile(r"SELECT\s+.+\s+FROM", re.IGNORECASE),
    ),
    "go": LanguageProfile(
        keywords=("package ", "func ", "import (", "fmt.", ":= ", "go func"),
        signature=re.compile(r"func\s+\w+\s*\("),
    ),
    "rust": LanguageProfile(
        keywords=("fn ", "let mut", "impl ", "pub fn", "-> ", "use ", "mod "),
        signature=re.compile(r"fn\s+\w+\s*\("),
    ),
}

SQL_DIALECTS: dict[str, tuple[str, ...]] = {
    "mysql": ("AUTO_INCREMENT", "LIMIT", "ENGINE=", "TINYINT"),
    "postgresql": ("SERIAL", "RETURNING", "::text", "ILIKE"),
    "sqlserver": ("TOP ", "IDENTITY", "NVARCHAR", "GETDATE()"),
}

_ALIASES = {
    "js": "javascript",
    "ts": "typescript",
    "py": "python",
    "c++": "cpp",
    "c#": "csharp",
}

STATIC_LANGUAGES = {"java", "cpp", "c", "go", "rust", "typescript"}


def normalize(language: str) -> str:
    lowered = str(language or "").strip().lower()
    return _ALIASES.get(lowered, lowered)


def is_valid_language(language: str | None) -> bool:
    if not language:
        return False
    return normalize(language) in LANGUAGE_PROFILES


def score_languages(text: str) -> dict[str, int]:
    scores: dict[str, int] = {}
    for language, profile in LANGUAGE_PROFILES.items():
        score = sum(2 for keyword in profile.keywords if keyword in text)
        if profile.signature.search(text):
            score += 5
        scores[language] = score
    return scores


def detect_from_text(text: str | None) -> str | None:
    if not text:
        return None

    best_language = None
    best_score = 0
    for language, score in score_languages(text).items():
        if score > best_score:
            best_language = language
            best_score = score

    return best_language if best_score >= MIN_DETECTION_SCORE else None


def detect_from_signature(text: str | None) -> str | None:
    """First language whose signature regex matches the given code."""
    if not text:
        return None
    for language, profile in LANGUAGE_PROFILES.items():
        if profile.signature.search(text):
            return language
    return None


@dataclass
class LanguageSignals:
    editor_language: str | None = None
    signature_language: str | None = None
    code: str | None = None
    ocr_text: str | None = None
    session_language: str | None = None
    user_preference: str | None = None


def resolve(signals: LanguageSignals) -> str:
    """
    Priority: editor > code signature > OCR content > session > user preference > python.
    """
    if is_valid_language(signals.editor_language):
        return normalize(signals.editor_language)

    signature_language = signals.signature_language or detect_from_signature(signals.code)
    if is_valid_language(signature_language):
        return normalize(signature_language)

    detected = detect_from_text(signals.ocr_text)
    if detected:
        return detected

    if is_valid_language(signals.session_language):
        return normalize(signals.session_language)

    if is_valid_language(signals.user_preference):
        return normalize(signals.user_preference)

    return DEFAULT_LANGUAGE


def detect_sql_dialect(text: str | None) -> str:
    if not text:
        return "mysql"
    upper = text.upper()
    for dialect, markers in SQL_DIALECTS.items():
        if any(marker.upper() in upper for marker in markers):
            return dialect
    return "mysql"


def confidence(text: str, expected_language: str) -> float:
    detected = detect_from_text(text)
    if not detected:
        return 0.0
    return 1.0 if detected == normalize(expected_language) else 0.3


def adjust_temperature(base_temperature: float, language: str | None) -> float:
    if normalize(language or "") in STATIC_LANGUAGES:
        return max(0.1, round(base_temperature - 0.1, 2))
    return base_temperature
