import threading
import time

from chatbox_translator.core import chatbox
from chatbox_translator.core.chatbox import CHATBOX_INPUT_ADDRESS, CHATBOX_TYPING_ADDRESS, ChatboxEmitter
from chatbox_translator.models.transcription import CHATBOX_MAX_CHARS, TranscriptionResult
from chatbox_translator.utils.text_processing import split_into_chunks


class RecordingClient:
    def __init__(self, fail_first: int = 0) -> None:
        self.sent: list[tuple[float, str, object]] = []
        self.fail_first = fail_first
        self.calls = 0
        self._lock = threading.Lock()

    def send_message(self, address, value):
        with self._lock:
            self.calls += 1
            if self.calls <= self.fail_first:
                raise OSError("network unreachable")
            self.sent.append((time.monotonic(), address, value))

    def inputs(self):
        with self._lock:
            return [entry for entry in self.sent if entry[1] == CHATBOX_INPUT_ADDRESS]

    def wait_for_inputs(self, count: int, timeout: float) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if len(self.inputs()) >= count:
                return True
            time.sleep(0.01)
        return False


def _result(text, segment_id=0):
    return TranscriptionResult(segment_id=segment_id, original_text=text)


def _start(emitter):
    stop = threading.Event()
    thread = threading.Thread(target=emitter.run, args=(stop,), daemon=True)
    thread.start()
    return stop, thread


def _stop(emitter, stop, thread):
    stop.set()
    emitter.stop()
    thread.join(timeout=2)
    assert not thread.is_alive()


def test_split_truncates_to_max_chunks():
    text = "a" * (CHATBOX_MAX_CHARS * 12)

    chunks, truncated = split_into_chunks(text, 9)

    assert len(chunks) == 9
    assert truncated is True
    assert all(len(chunk) == CHATBOX_MAX_CHARS for chunk in chunks)


def test_split_keeps_multibyte_characters_whole():
    text = "あ" * 200

    chunks, truncated = split_into_chunks(text, 9)

    assert [len(chunk) for chunk in chunks] == [144, 56]
    assert "".join(chunks) == text
    assert truncated is False


def test_emitter_sends_exactly_max_chunks(settings):
    settings.display_time = 0
    settings.max_message_chunks = 9
    client = RecordingClient()
    emitter = ChatboxEmitter(settings, client=client)

    message = emitter.build_message("x" * (CHATBOX_MAX_CHARS * 12))
    assert emitter.display(message) is True

    inputs = client.inputs()
    assert len(inputs) == 9
    assert message.truncated is True
    # Notification sound only for the first chunk
    assert [value[2] for _, _, value in inputs] == [True] + [False] * 8
    assert all(value[1] is True for _, _, value in inputs)


def test_send_failure_drops_chunk_and_continues(settings):
    settings.display_time = 0
    client = RecordingClient(fail_first=1)
    emitter = ChatboxEmitter(settings, client=client)

    message = emitter.build_message("y" * (CHATBOX_MAX_CHARS * 2))
    emitter.display(message)

    assert emitter.failed_chunks == 1
    assert emitter.sent_chunks == 1
    assert len(client.inputs()) == 1


def test_newer_message_preempts_display(settings):
    settings.display_time = 3000
    client = RecordingClient()
    emitter = ChatboxEmitter(settings, client=client)
    stop, thread = _start(emitter)
    try:
        emitter.submit(_result("first", 0))
        assert client.wait_for_inputs(1, timeout=1.0)
        time.sleep(0.5)
        emitter.submit(_result("second", 1))
        assert client.wait_for_inputs(2, timeout=1.5)
    finally:
        _stop(emitter, stop, thread)

    (t_first, _, first), (t_second, _, second) = client.inputs()[:2]
    assert first[0] == "first"
    assert second[0] == "second"
    assert 0.4 <= t_second - t_first < 3.0


def test_preempted_message_does_not_send_remaining_chunks(settings):
    settings.display_time = 3000
    client = RecordingClient()
    emitter = ChatboxEmitter(settings, client=client)
    stop, thread = _start(emitter)
    try:
        emitter.submit(_result("a" * (CHATBOX_MAX_CHARS * 3), 0))
        assert client.wait_for_inputs(1, timeout=1.0)
        time.sleep(0.5)
        emitter.submit(_result("b", 1))
        assert client.wait_for_inputs(2, timeout=1.5)
        time.sleep(0.2)
    finally:
        _stop(emitter, stop, thread)

    texts = [value[0] for _, _, value in client.inputs()]
    assert texts == ["a" * CHATBOX_MAX_CHARS, "b"]


def test_chunks_are_paced_by_display_time(settings):
    settings.display_time = 200
    client = RecordingClient()
    emitter = ChatboxEmitter(settings, client=client)
    stop, thread = _start(emitter)
    try:
        emitter.submit(_result("c" * (CHATBOX_MAX_CHARS * 2)))
        assert client.wait_for_inputs(2, timeout=2.0)
    finally:
        _stop(emitter, stop, thread)

    (t_first, _, _), (t_second, _, _) = client.inputs()[:2]
    assert t_second - t_first >= 0.18


def test_typing_indicator(settings):
    client = RecordingClient()
    emitter = ChatboxEmitter(settings, client=client)

    assert emitter.set_typing(True) is True
    assert emitter.set_typing(False) is True

    assert [(address, value) for _, address, value in client.sent] == [
        (CHATBOX_TYPING_ADDRESS, True),
        (CHATBOX_TYPING_ADDRESS, False),
    ]


def test_empty_result_is_not_queued(settings):
    client = RecordingClient()
    emitter = ChatboxEmitter(settings, client=client)

    message = emitter.submit(TranscriptionResult(segment_id=3))

    assert message.chunks == []
    assert emitter._pending is None


def test_concurrent_senders_share_one_client(settings, monkeypatch):
    created = []

    class SlowClient(RecordingClient):
        def __init__(self, address, port) -> None:
            time.sleep(0.05)
            super().__init__()
            created.append((address, port))

    monkeypatch.setattr(chatbox, "SimpleUDPClient", SlowClient)
    emitter = ChatboxEmitter(settings)
    barrier = threading.Barrier(4)

    def typing():
        barrier.wait()
        emitter.set_typing(True)

    threads = [threading.Thread(target=typing) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=2)

    assert created == [(settings.osc_address, settings.osc_output_port)]
    assert len(emitter.client.sent) == 4
