"""
Text Segmenter for the Batched TTS Pipeline.

Each upstream audio request accepts a bounded amount of text, so long input
is cut into segments before synthesis. Splitting happens in two tiers:

    1. Sentence terminators (。？！.?! and newline), each kept at the end of
       the sentence it closes.
    2. Sentences that are still longer than ``max_len`` are cut again at
       commas (, and ，), greedily packing consecutive pieces together.

A comma-free run longer than ``max_len`` cannot be cut any further and is
emitted as one oversized segment. Segment order always follows the input.

Usage:
    segments = split_text(article, max_len=200)
    async for chunk in assembler.iter_chunks(segments, voice="DeepSeek"):
        ...
"""

import re
from typing import List

DEFAULT_MAX_LEN = 200

_SENTENCE_DELIMITERS = re.compile(r"([。？！.?!\n])")
_COMMA_DELIMITERS = re.compile(r"([,，])")


def _split_sentences(text: str) -> List[str]:
    """Split at sentence terminators, re-attaching each terminator."""
    parts = _SENTENCE_DELIMITERS.split(text)
    sentences = []
    for i in range(0, len(parts), 2):
        content = parts[i]
        delimiter = parts[i + 1] if i + 1 < len(parts) else ""
        if content or delimiter:
            sentences.append(content + delimiter)
    return sentences


def _pack_commas(sentence: str, max_len: int) -> List[str]:
    """
    Cut an overlong sentence at commas and pack the pieces greedily.

    Comma characters are pieces of their own, so they stay in the output
    exactly where they appeared in the sentence.
    """
    packed = []
    current = ""
    for part in _COMMA_DELIMITERS.split(sentence):
        if len(current) + len(part) <= max_len:
            current += part
        else:
            if current:
                packed.append(current)
            current = part
    if current:
        packed.append(current)
    return packed


def split_text(text: str, max_len: int = DEFAULT_MAX_LEN) -> List[str]:
    """
    Split ``text`` into ordered segments of at most ``max_len`` characters.

    Text that already fits is returned unchanged as a single segment, without
    any filtering. Otherwise whitespace-only segments are dropped.

    Args:
        text: Input text to synthesize
        max_len: Soft upper bound on segment length

    Returns:
        Segments in input order
    """
    if len(text) <= max_len:
        return [text]

    segments: List[str] = []
    for sentence in _split_sentences(text):
        if len(sentence) <= max_len:
            segments.append(sentence)
        else:
            segments.extend(_pack_commas(sentence, max_len))

    return [segment for segment in segments if segment.strip()]
