"""Post-processing for transcript text: placeholder translation and sentence reflow."""

import re


TRANSLATION_PREFIX = "[SIMULATED TRANSLATION]"

_SENTENCE_END = re.compile(r'[.!?]+')


def translate_text(text: str) -> str:
    """Placeholder translation: tags the text, does not translate it."""
    return f"{TRANSLATION_PREFIX} {text}"


def format_text(text: str) -> str:
    """
    Reflow text as one sentence per paragraph.

    Splits on runs of . ! ?, drops empty pieces, and joins the trimmed
    sentences with a period and a blank line. The result always ends with
    a period, so text with no sentences becomes ".".
    """
    sentences = [s.strip() for s in _SENTENCE_END.split(text or '') if s.strip()]
    return '.\n\n'.join(sentences) + '.'


def process_text(text: str, should_translate: bool, should_format: bool) -> str:
    """Apply translation then formatting, each only when requested."""
    processed = text
    if should_translate:
        processed = translate_text(processed)
    if should_format:
        processed = format_text(processed)
    return processed
