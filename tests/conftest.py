import io
import os
import signal
import sys
import pytest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from logging_config import DecoderError
from tunes.audio import Decoder
from tunes.search import Track


class FakeDecoder(Decoder):
    """Decoder stand-in that never spawns a process.

    ``exit_code`` is what poll() reports once ``polls_before_exit`` polls
    have passed; None keeps it running until stop() is called.
    """

    def __init__(self, exit_code=None, polls_before_exit=0, fail_start=False):
        super().__init__("fake-decoder")
        self.exit_code = exit_code
        self.polls_before_exit = polls_before_exit
        self.fail_start = fail_start
        self.started_with = None
        self.stop_calls = 0
        self.polls = 0
        self.killed = False

    def command(self, stream_url):
        return [self.executable, stream_url]

    def start(self, stream_url):
        if self.fail_start:
            raise DecoderError("failed to start fake-decoder: not found")
        self.started_with = stream_url

    def poll(self):
        self.polls += 1
        if self.killed:
            return -signal.SIGTERM
        if self.exit_code is not None and self.polls > self.polls_before_exit:
            return self.exit_code
        return None

    def stop(self):
        self.stop_calls += 1
        self.killed = True


class FakeResolver:
    """Resolver stand-in returning a fixed stream URL."""

    def __init__(self, stream_url="https://stream.example/audio"):
        self.stream_url = stream_url
        self.calls = []

    def resolve(self, url):
        self.calls.append(url)
        return self.stream_url


class KeyPipe:
    """os.pipe() pair standing in for the terminal's stdin."""

    def __init__(self):
        self.read_fd, self.write_fd = os.pipe()
        self.reader = os.fdopen(self.read_fd, "rb", buffering=0)

    def fileno(self):
        return self.read_fd

    def press(self, data):
        os.write(self.write_fd, data)

    def close(self):
        self.reader.close()
        os.close(self.write_fd)


@pytest.fixture
def key_pipe():
    """Provide a pipe to feed keystrokes into a playback session."""
    pipe = KeyPipe()
    yield pipe
    pipe.close()


@pytest.fixture
def out():
    """Capture session output."""
    return io.StringIO()


@pytest.fixture
def restore_sigint():
    """Make sure a test never leaks a SIGINT handler."""
    previous = signal.getsignal(signal.SIGINT)
    yield previous
    signal.signal(signal.SIGINT, previous)


@pytest.fixture
def three_tracks():
    """Three tracks as the search adapter would return them."""
    return [
        Track("lofi hip hop radio", "aaa111", "https://www.youtube.com/watch?v=aaa111", "1:02:03", "Lofi Girl"),
        Track("beats to relax/study to", "bbb222", "https://www.youtube.com/watch?v=bbb222", "3:45", "Chillhop"),
        Track("rainy day lofi", "ccc333", "https://www.youtube.com/watch?v=ccc333", "2:10", "Ambient"),
    ]
