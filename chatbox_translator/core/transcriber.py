"""
Transcription functionality for the chatbox translator.
Handles the remote speech-to-text and translation calls.
"""

import logging
import typing as t
import openai
from chatbox_translator.models.settings import Settings
from chatbox_translator.utils.error_handling import TranscriptionError

TRANSLATION_PROMPT = (
    "You are a language translation app for VRChat. Answer only in the target language. "
    "Do not quote the translation. target_language={target_language} Text:\n\n{text}"
)

# Raised by the SDK or while reading a response that is missing fields
_MALFORMED_RESPONSE_ERRORS = (AttributeError, IndexError, KeyError, TypeError, ValueError)


class Transcriber:
    """Handles speech transcription and translation through the OpenAI API."""

    def __init__(self, settings: Settings, client: t.Optional[openai.OpenAI] = None):
        """Initialize the transcriber with the given settings."""
        self.logger = logging.getLogger(__name__)
        self.settings = settings
        self.client = client

    def load_client(self) -> openai.OpenAI:
        """Create the API client on first use."""
        if self.client is None:
            self.logger.info(f"Creating OpenAI client (transcription: {self.settings.transcription_model}, "
                             f"translation: {self.settings.model})")
            # No SDK retries
            self.client = openai.OpenAI(
                api_key=self.settings.api_key,
                timeout=self.settings.request_timeout,
                max_retries=0,
            )
        return self.client

    def transcribe(self, wav_bytes: bytes) -> str:
        """
        Transcribe the given audio.

        Args:
            wav_bytes: Complete WAV file contents

        Returns:
            Transcribed text

        Raises:
            TranscriptionError: on timeout, quota or HTTP errors and malformed or empty responses
        """
        if not wav_bytes:
            raise TranscriptionError("Audio data is empty")

        client = self.load_client()
        self.logger.debug(f"Sending {len(wav_bytes)} bytes to the transcription endpoint")
        try:
            response = client.audio.transcriptions.create(
                model=self.settings.transcription_model,
                file=("audio.wav", wav_bytes, "audio/wav"),
            )
            text = response.text
        except openai.APIError as e:
            raise TranscriptionError(f"Transcription request failed: {self._describe(e)}") from e
        except _MALFORMED_RESPONSE_ERRORS as e:
            raise TranscriptionError(f"Malformed transcription response: {e}") from e

        if not isinstance(text, str) or not text.strip():
            raise TranscriptionError("Received empty transcription from API")
        self.logger.info(f"Transcription: {text}")
        return text

    def translate(self, text: str, target_language: t.Optional[str] = None) -> str:
        """
        Translate text with the configured chat model.

        Raises:
            TranscriptionError: on request failure or an empty/malformed response
        """
        target_language = target_language or self.settings.target_language
        prompt = self.build_prompt(text, target_language)
        client = self.load_client()
        try:
            response = client.chat.completions.create(
                model=self.settings.model,
                messages=[{"role": "user", "content": prompt}],
            )
            translation = response.choices[0].message.content
        except openai.APIError as e:
            raise TranscriptionError(f"Translation request failed: {self._describe(e)}") from e
        except _MALFORMED_RESPONSE_ERRORS as e:
            raise TranscriptionError(f"Malformed translation response: {e}") from e

        if not isinstance(translation, str) or not translation.strip():
            raise TranscriptionError("Received empty translation from API")
        self.logger.info(f"Translation ({target_language}): {translation}")
        return translation

    @staticmethod
    def build_prompt(text: str, target_language: str) -> str:
        return TRANSLATION_PROMPT.format(target_language=target_language, text=text)

    @staticmethod
    def _describe(error: openai.APIError) -> str:
        if isinstance(error, openai.APITimeoutError):
            return "request timed out"
        if isinstance(error, openai.RateLimitError):
            return f"quota or rate limit exceeded ({error.message})"
        if isinstance(error, openai.APIStatusError):
            return f"HTTP {error.status_code}: {error.message}"
        return str(error)
