"""
VRChat chatbox output over OSC.
Splits text into chatbox-sized chunks and paces them on screen.
"""

import logging
import threading
import typing as t
from pythonosc.udp_client import SimpleUDPClient
from chatbox_translator.models.transcription import ChatboxMessage, TranscriptionResult
from chatbox_translator.utils.error_handling import TransportError, log_exceptions
from chatbox_translator.utils.text_processing import split_into_chunks

CHATBOX_INPUT_ADDRESS = "/chatbox/input"
CHATBOX_TYPING_ADDRESS = "/chatbox/typing"


class ChatboxEmitter:
    """
    Sends messages to the VRChat chatbox.

    Only the newest message matters: submitting a message while another one
    is still being paced interrupts it, and nothing older is queued.
    """
    IDLE_POLL_TIMEOUT = 0.2

    def __init__(self, settings, client: t.Optional[SimpleUDPClient] = None):
        self.logger = logging.getLogger(__name__)
        self.settings = settings
        self.client = client
        self._condition = threading.Condition()
        self._pending: t.Optional[ChatboxMessage] = None
        self._interrupt = threading.Event()
        self._client_lock = threading.Lock()
        self.sent_chunks = 0
        self.failed_chunks = 0

    def load_client(self):
        # Typing updates and chunks arrive from several threads
        with self._client_lock:
            if self.client is None:
                self.logger.info(f"Sending chatbox messages to {self.settings.osc_address}:{self.settings.osc_output_port}")
                self.client = SimpleUDPClient(self.settings.osc_address, self.settings.osc_output_port)
            return self.client

    def build_message(self, text, segment_id=-1):
        chunks, truncated = split_into_chunks(text, self.settings.max_message_chunks)
        return ChatboxMessage(
            chunks=chunks,
            display_time=self.settings.display_time,
            segment_id=segment_id,
            truncated=truncated,
        )

    def submit(self, result: TranscriptionResult):
        """Hand a result to the emitter thread, preempting whatever is on display."""
        message = self.build_message(result.display_text, result.segment_id)
        if not message.chunks:
            self.logger.debug(f"Nothing to display for segment #{result.segment_id}")
            return message
        with self._condition:
            if self._pending is not None:
                self.logger.info(f"Message for segment #{self._pending.segment_id} replaced before display")
            self._pending = message
            self._interrupt.set()
            self._condition.notify_all()
        return message

    def stop(self):
        """Wake the emitter thread so it can notice termination."""
        with self._condition:
            self._interrupt.set()
            self._condition.notify_all()

    @log_exceptions
    def run(self, termination_event):
        """Display submitted messages until termination is requested."""
        self.logger.info("Chatbox emitter started")
        while not termination_event.is_set():
            with self._condition:
                if self._pending is None:
                    self._condition.wait(timeout=self.IDLE_POLL_TIMEOUT)
                message = self._pending
                self._pending = None
                if message is not None:
                    self._interrupt.clear()
            if message is not None and not termination_event.is_set():
                self.display(message, termination_event)
        self.logger.info("Chatbox emitter stopped")

    def display(self, message: ChatboxMessage, termination_event=None):
        """
        Send each chunk and keep it visible for ``display_time`` ms.

        Returns:
            True if every chunk was shown, False if a newer message or
            termination cut the display short
        """
        wait_seconds = message.display_time / 1000.0
        for index, total, chunk in message:
            if self._interrupt.is_set() or (termination_event is not None and termination_event.is_set()):
                self.logger.info(f"Display of segment #{message.segment_id} preempted at chunk {index + 1}/{total}")
                return False
            self.send_chunk(chunk, notify=(index == 0))
            self.logger.debug(f"Sent chunk {index + 1}/{total} of segment #{message.segment_id}")
            if self._interrupt.wait(wait_seconds):
                if index + 1 < total:
                    self.logger.info(f"Display of segment #{message.segment_id} preempted "
                                     f"after chunk {index + 1}/{total}")
                return False
        return True

    def send_chunk(self, text, notify=False):
        """Send one chunk; failures are logged and the chunk is dropped."""
        try:
            # Arguments: text, send immediately (skip the keyboard), play notification sound
            self._send(CHATBOX_INPUT_ADDRESS, [text, True, notify])
            self.sent_chunks += 1
            return True
        except TransportError as e:
            self.failed_chunks += 1
            self.logger.error(f"Dropping chatbox chunk: {e}")
            return False

    def set_typing(self, is_typing):
        """Show or hide the chatbox typing indicator."""
        try:
            self._send(CHATBOX_TYPING_ADDRESS, is_typing)
            return True
        except TransportError as e:
            self.logger.error(f"Error sending typing indicator: {e}")
            return False

    def _send(self, address, value):
        try:
            self.load_client().send_message(address, value)
        except OSError as e:
            raise TransportError(f"OSC send to {address} failed: {e}") from e
