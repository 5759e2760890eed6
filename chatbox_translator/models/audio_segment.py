"""
Audio segment data model for the chatbox translator.
"""

from dataclasses import dataclass, field
import numpy as np


@dataclass
class AudioSegment:
    """One closed utterance, ready to be transcribed."""
    audio_data: np.ndarray  # mono float32 in [-1, 1]
    sample_rate: int
    timestamp: float  # Wall-clock time of the first sample
    segment_id: int   # For ordering
    envelope: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.float32))

    @property
    def duration(self) -> float:
        """Length of the segment in seconds."""
        if self.sample_rate <= 0:
            return 0.0
        return len(self.audio_data) / float(self.sample_rate)
