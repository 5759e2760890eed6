"""
Text processing utilities for the chatbox translator.
"""

import re
import logging
import typing as t

from chatbox_translator.models.transcription import CHATBOX_MAX_CHARS

logger = logging.getLogger(__name__)

# Quote pairs a chat model sometimes wraps a translation in
_QUOTE_PAIRS = [('"', '"'), ("'", "'"), ('“', '”'), ('「', '」'), ('『', '』'), ('«', '»')]


class TextProcessor:
    """Cleans transcribed and translated text before it reaches the chatbox."""

    def post_process_text(self, text):
        """
        Clean up text returned by the remote API.

        Args:
            text: Raw text

        Returns:
            Text with collapsed spacing and surrounding quotes removed
        """
        if not text:
            return ""

        text = text.strip()

        # Keep line breaks but collapse runs of spaces and tabs
        text = re.sub(r'[ \t]+', ' ', text)
        text = re.sub(r'\n\s*\n+', '\n', text)

        for opening, closing in _QUOTE_PAIRS:
            if len(text) >= 2 and text.startswith(opening) and text.endswith(closing):
                text = text[len(opening):-len(closing)].strip()
                break

        return text


def split_into_chunks(text: str, max_chunks: int,
                      chunk_size: int = CHATBOX_MAX_CHARS) -> t.Tuple[t.List[str], bool]:
    """
    Split text into chatbox-sized chunks.

    Python strings index by code point, so multi-byte characters are never cut.

    Returns:
        (chunks, truncated) where chunks holds at most ``max_chunks`` items
    """
    if not text:
        return [], False
    chunks = [text[i:i + chunk_size] for i in range(0, len(text), chunk_size)]
    truncated = len(chunks) > max_chunks
    if truncated:
        logger.warning(f"Message needs {len(chunks)} chunks, truncating to {max_chunks}")
        chunks = chunks[:max_chunks]
    return chunks, truncated
