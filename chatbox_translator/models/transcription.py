"""
Transcription and chatbox message models.
"""

from dataclasses import dataclass
import typing as t

# VRChat truncates chatbox input beyond this many characters
CHATBOX_MAX_CHARS = 144


@dataclass
class TranscriptionResult:
    """
    Text produced for one audio segment.

    ``translated_text`` is only set when translation is enabled. When the
    original message is not requested alongside a translation,
    ``original_text`` is left as None.
    """
    segment_id: int
    original_text: t.Optional[str] = None
    translated_text: t.Optional[str] = None
    target_language: t.Optional[str] = None

    @property
    def display_text(self) -> str:
        parts = [text for text in (self.translated_text, self.original_text) if text]
        return "\n".join(parts)


@dataclass
class ChatboxMessage:
    """Ordered chatbox chunks for a single result."""
    chunks: t.List[str]
    display_time: int  # milliseconds each chunk stays on screen
    segment_id: int = -1
    truncated: bool = False

    @property
    def total_chunks(self) -> int:
        return len(self.chunks)

    def __iter__(self):
        total = self.total_chunks
        for index, chunk in enumerate(self.chunks):
            yield index, total, chunk
