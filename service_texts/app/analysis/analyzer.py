"""
Text analyzer for Texts Service.
"""

import re
from typing import List

from ..domain.models import TextAnalysis


_NON_WORD = re.compile(r"[^A-Za-z0-9_\s]")
_WHITESPACE = re.compile(r"\s+")
_SENTENCE_BREAK = re.compile(r"[.!?]+")
_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")


def utf16_length(text: str) -> int:
    """Length in UTF-16 code units; characters outside the BMP count as two."""
    return len(text.encode("utf-16-le", "surrogatepass")) // 2


def tokenize(text: str) -> List[str]:
    """Lower-cased words with punctuation stripped."""
    cleaned = _NON_WORD.sub("", text.lower())
    return [word for word in _WHITESPACE.split(cleaned) if word]


def longest_words(paragraphs: List[str]) -> List[str]:
    """Longest words of every paragraph, unique, in first-seen order."""
    result: List[str] = []
    seen = set()
    for paragraph in paragraphs:
        words = tokenize(paragraph)
        if not words:
            continue
        max_length = max(len(word) for word in words)
        for word in words:
            if len(word) == max_length and word not in seen:
                seen.add(word)
                result.append(word)
    return result


def analyze_text(content: str) -> TextAnalysis:
    """Compute the full set of metrics for ``content``.

    Empty or whitespace-only content yields all zeros. Otherwise the
    content is trimmed and:

    - characters count the UTF-16 code units of non-whitespace text;
    - sentences are the non-blank parts between runs of ``.``, ``!``, ``?``;
    - paragraphs are the non-blank parts between blank lines.
    """
    if not content or not content.strip():
        return TextAnalysis()

    cleaned = content.strip()

    sentences = [part for part in _SENTENCE_BREAK.split(cleaned) if part.strip()]
    paragraphs = [part for part in _PARAGRAPH_BREAK.split(cleaned) if part.strip()]

    return TextAnalysis(
        word_count=len(tokenize(cleaned)),
        character_count=utf16_length(_WHITESPACE.sub("", cleaned)),
        sentence_count=len(sentences),
        paragraph_count=len(paragraphs),
        longest_words=longest_words(paragraphs),
    )
