from chatbox_translator.models.transcription import TranscriptionResult
from chatbox_translator.utils.text_processing import TextProcessor, split_into_chunks


def test_post_process_collapses_spacing():
    processor = TextProcessor()

    assert processor.post_process_text("  hello   there\t friend  ") == "hello there friend"


def test_post_process_strips_wrapping_quotes():
    processor = TextProcessor()

    assert processor.post_process_text('"Bonjour"') == "Bonjour"
    assert processor.post_process_text("『こんにちは』") == "こんにちは"
    assert processor.post_process_text('He said "hi"') == 'He said "hi"'


def test_post_process_handles_empty_text():
    assert TextProcessor().post_process_text(None) == ""
    assert TextProcessor().post_process_text("   ") == ""


def test_empty_text_has_no_chunks():
    assert split_into_chunks("", 9) == ([], False)


def test_display_text_puts_translation_first():
    result = TranscriptionResult(segment_id=0, original_text="hello", translated_text="hola")

    assert result.display_text == "hola\nhello"
