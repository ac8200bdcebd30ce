# review_engine/services/keyword_matcher.py
"""
Keyword presence matching for long-answer responses.

Both the answer text and every keyword are normalized the same way
(case-folded, separator runs such as whitespace, hyphens and sentence
punctuation collapsed to one space). Symbols like "+" or "#" stay part of
their token, so "C++" and "C#" remain distinct keywords. A keyword counts as
found when its tokens appear as whole tokens in the answer, otherwise when
its normalized form occurs anywhere in the normalized answer.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, List

from review_engine.core.errors import KeywordConfigError

_SEPARATORS = re.compile(r"""[\s\-_/\\.,;:!?'"()\[\]{}<>]+""")

TOKEN_MATCH = "token"
SUBSTRING_MATCH = "substring"


@dataclass(frozen=True)
class KeywordMatch:
    found: List[str]
    missing: List[str]
    match_fraction: float
    match_details: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "found": list(self.found),
            "missing": list(self.missing),
            "match_fraction": self.match_fraction,
            "match_details": dict(self.match_details),
        }


def normalize(text: str) -> str:
    return _SEPARATORS.sub(" ", text.casefold()).strip()


def _unique_keywords(keywords: Any) -> list[tuple[str, str]]:
    """
    Validate the configured keywords and return (keyword, normalized) pairs.

    Keywords normalizing to the same form keep the first occurrence.
    """
    if not isinstance(keywords, (list, tuple)):
        raise KeywordConfigError(
            f"keywords must be a list, got {type(keywords).__name__}"
        )
    if not keywords:
        raise KeywordConfigError("keyword-based question has no keywords configured")

    pairs: list[tuple[str, str]] = []
    seen: set[str] = set()
    for keyword in keywords:
        if not isinstance(keyword, str):
            raise KeywordConfigError(f"keyword {keyword!r} is not a string")
        norm = normalize(keyword)
        if not norm:
            raise KeywordConfigError(f"keyword {keyword!r} is blank after normalization")
        if norm in seen:
            continue
        seen.add(norm)
        pairs.append((keyword, norm))
    return pairs


def match_keywords(raw_text: str | None, keywords: Any) -> KeywordMatch:
    pairs = _unique_keywords(keywords)

    text = normalize(raw_text or "")
    # pad so " kw " only matches on token boundaries
    padded = f" {text} "

    found: list[str] = []
    missing: list[str] = []
    details: dict[str, str] = {}
    for keyword, norm in pairs:
        if not text:
            missing.append(keyword)
        elif f" {norm} " in padded:
            found.append(keyword)
            details[keyword] = TOKEN_MATCH
        elif norm in text:
            found.append(keyword)
            details[keyword] = SUBSTRING_MATCH
        else:
            missing.append(keyword)

    return KeywordMatch(
        found=found,
        missing=missing,
        match_fraction=len(found) / len(pairs),
        match_details=details,
    )
