"""
Dispatches audio segments to the remote API under the rate limit.
"""

import logging
import queue
import typing as t
from chatbox_translator.models.audio_segment import AudioSegment
from chatbox_translator.models.transcription import TranscriptionResult
from chatbox_translator.utils.error_handling import TranscriptionError, log_exceptions
from chatbox_translator.utils.text_processing import TextProcessor


class Dispatcher:
    """
    Turns AudioSegments into TranscriptionResults, one at a time and in order.

    Segments wait in a bounded queue so the segmenter never blocks on the
    network; the rate limiter wait and the remote calls happen on the
    dispatcher's own thread.
    """
    SEGMENT_QUEUE_SIZE = 32
    QUEUE_POLL_TIMEOUT = 0.2

    def __init__(self, settings, transcriber, rate_limiter, audio_processor,
                 text_processor=None, price_estimator=None,
                 on_result: t.Optional[t.Callable[[TranscriptionResult], None]] = None,
                 on_segment_done: t.Optional[t.Callable[[], None]] = None):
        self.logger = logging.getLogger(__name__)
        self.settings = settings
        self.transcriber = transcriber
        self.rate_limiter = rate_limiter
        self.audio_processor = audio_processor
        self.text_processor = text_processor or TextProcessor()
        self.price_estimator = price_estimator
        self.on_result = on_result
        self.on_segment_done = on_segment_done
        self.segment_queue = queue.Queue(maxsize=self.SEGMENT_QUEUE_SIZE)
        self.dropped_segments = 0
        self.failed_segments = 0

    def submit(self, segment: AudioSegment):
        """Queue a segment without blocking; the oldest waiting one is dropped if the queue is full."""
        try:
            self.segment_queue.put_nowait(segment)
        except queue.Full:
            try:
                stale = self.segment_queue.get_nowait()
                self.segment_queue.task_done()
                self.dropped_segments += 1
                self.logger.warning(f"Segment queue full, dropped segment #{stale.segment_id}")
            except queue.Empty:
                pass
            self.segment_queue.put_nowait(segment)
        self.logger.debug(f"Queued segment #{segment.segment_id} ({self.segment_queue.qsize()} waiting)")

    def process_segment(self, segment: AudioSegment, stop_event=None) -> t.Optional[TranscriptionResult]:
        """
        Transcribe (and optionally translate) one segment.

        Returns:
            The result, or None if the segment was dropped because of a remote
            error or because shutdown was requested
        """
        try:
            if not self.rate_limiter.acquire(stop_event):
                self.logger.info(f"Shutdown while waiting for rate limit, segment #{segment.segment_id} abandoned")
                return None

            wav_bytes = self.audio_processor.encode_segment(segment)
            original = self.text_processor.post_process_text(self.transcriber.transcribe(wav_bytes))
            if not original:
                raise TranscriptionError("Transcription was empty after cleanup")

            prompt = ""
            translated = None
            if self.settings.translation_enabled:
                prompt = self.transcriber.build_prompt(original, self.settings.target_language)
                translated = self.text_processor.post_process_text(self.transcriber.translate(original))
                if not translated:
                    raise TranscriptionError("Translation was empty after cleanup")

            if self.price_estimator is not None:
                self.price_estimator.record(segment.duration, prompt, translated or "")

            if stop_event is not None and stop_event.is_set():
                self.logger.info(f"Shutdown requested, result for segment #{segment.segment_id} discarded")
                return None

            return self.build_result(segment, original, translated)
        except TranscriptionError as e:
            self.failed_segments += 1
            self.logger.error(f"Dropping segment #{segment.segment_id}: {e}")
            return None
        finally:
            if self.on_segment_done is not None:
                try:
                    self.on_segment_done()
                except Exception as e:
                    self.logger.error(f"Error in segment-done callback: {e}")

    def build_result(self, segment, original, translated):
        if translated is None:
            return TranscriptionResult(segment_id=segment.segment_id, original_text=original)
        return TranscriptionResult(
            segment_id=segment.segment_id,
            original_text=original if self.settings.include_original_message else None,
            translated_text=translated,
            target_language=self.settings.target_language,
        )

    @log_exceptions
    def run(self, termination_event):
        """Process queued segments until termination is requested."""
        self.logger.info("Dispatcher started")
        while not termination_event.is_set():
            try:
                segment = self.segment_queue.get(timeout=self.QUEUE_POLL_TIMEOUT)
            except queue.Empty:
                continue

            try:
                result = self.process_segment(segment, termination_event)
                if result is not None and self.on_result is not None:
                    self.on_result(result)
            except Exception as e:
                # Keep the pipeline alive; this segment is lost
                self.failed_segments += 1
                self.logger.error(f"Unexpected error processing segment #{segment.segment_id}: {e}",
                                  exc_info=True)
            finally:
                self.segment_queue.task_done()
        self.logger.info("Dispatcher stopped")
