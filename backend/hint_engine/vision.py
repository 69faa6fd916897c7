from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Protocol

logger = logging.getLogger("hint_engine.vision")


@dataclass
class VisualContext:
    problem_statement: str = ""
    code: str = ""
    extracted_texts: list[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.problem_statement or self.code or self.extracted_texts)

    @property
    def ocr_text(self) -> str:
        parts = [self.problem_statement, self.code, *self.extracted_texts]
        return "\n".join(part for part in parts if part)


class VisionPreprocessor(Protocol):
    async def extract(self, image: Any) -> VisualContext:
        ...


_LINE_NUMBERS = re.compile(r"^\s*\d+[\s|:]+", re.MULTILINE)
_UI_WORDS = re.compile(r"\b(Submit|Run|Test|Copy|Share)\b", re.IGNORECASE)
_TIMESTAMPS = re.compile(r"\d{1,2}:\d{2}\s*(AM|PM)?", re.IGNORECASE)
_HANDLES = re.compile(r"@\w+")
_VERDICTS = re.compile(r"\b(Accepted|Wrong Answer|Runtime Error|Time Limit|Memory Limit)\b", re.IGNORECASE)
_DIFFICULTY = re.compile(r"\b(Easy|Medium|Hard)\b", re.IGNORECASE)


def clean_ocr_text(text: str | None) -> str:
    if not text:
        return ""
    cleaned = _LINE_NUMBERS.sub("", text)
    cleaned = _UI_WORDS.sub("", cleaned)
    cleaned = _TIMESTAMPS.sub("", cleaned)
    cleaned = _HANDLES.sub("", cleaned)
    cleaned = _VERDICTS.sub("", cleaned)
    cleaned = _DIFFICULTY.sub("", cleaned)
    cleaned = re.sub(r"\n{3,}", "\n\n", cleaned)
    cleaned = re.sub(r"[ \t]+", " ", cleaned)
    return cleaned.strip()


def remove_duplicates(texts: list[str]) -> list[str]:
    seen: set[str] = set()
    unique: list[str] = []
    for text in texts:
        normalized = re.sub(r"\s+", " ", text.lower()).strip()
        if len(normalized) > 20 and normalized not in seen:
            seen.add(normalized)
            unique.append(text)
    return unique


def merge_visual_contexts(contexts: list[VisualContext]) -> VisualContext:
    merged = VisualContext()
    texts: list[str] = []
    for ctx in contexts:
        if not merged.problem_statement and ctx.problem_statement:
            merged.problem_statement = clean_ocr_text(ctx.problem_statement)
        if ctx.code:
            # latest editor state wins
            merged.code = ctx.code.strip()
        texts.extend(clean_ocr_text(text) for text in ctx.extracted_texts)
    merged.extracted_texts = remove_duplicates([text for text in texts if text])
    return merged


async def preprocess_images(preprocessor: VisionPreprocessor | None, images: list[Any]) -> VisualContext | None:
    if preprocessor is None or not images:
        return None

    contexts: list[VisualContext] = []
    for image in images:
        try:
            contexts.append(await preprocessor.extract(image))
        except Exception as exc:
            logger.warning("vision preprocessing failed | err=%s", exc)
    if not contexts:
        return None
    return merge_visual_contexts(contexts)
