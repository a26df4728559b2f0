"""
Audio streaming for ytbeats.

A playback session resolves a direct audio URL with yt-dlp, hands it to an
external decoder (ffplay or mpv) and supervises that process from a single
select() loop. The loop multiplexes four event sources:

- keystrokes on the terminal (Escape stops playback),
- SIGINT (stops playback and exits the program),
- decoder exit,
- the one-second progress timer.

Every listener completes the session through the same one-shot
``Settlement`` and the same idempotent cleanup, so a session settles exactly
once and always releases the terminal, the timer and its SIGINT handler
first.
"""
import os
import select
import shutil
import signal
import subprocess
import sys
import termios
import time
import tty
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, TextIO

from logging_config import (
    get_logger,
    ConfigurationError,
    DecoderError,
    DecoderExitError,
    PlaybackError,
    ResolverError,
)
from tunes.progress import draw_progress, parse_duration

logger = get_logger('audio')

STOP_KEY: int = 27  # Escape
TICK_INTERVAL: float = 1.0
POLL_INTERVAL: float = 0.05
TERMINATE_TIMEOUT: float = 1.0


@dataclass(frozen=True)
class PlaybackOutcome:
    """How a playback session ended."""
    stopped_by_user: bool


# =============================================================================
# External processes
# =============================================================================
class StreamResolver:
    """Turns a video URL into a direct audio stream URL using yt-dlp."""

    def __init__(self, executable: str = "yt-dlp", audio_format: str = "bestaudio"):
        self.executable = executable
        self.audio_format = audio_format

    def command(self, url: str) -> List[str]:
        return [self.executable, "-f", self.audio_format, "-g", url]

    def resolve(self, url: str) -> str:
        """Return the stream URL for ``url``.

        Raises:
            ResolverError: when the resolver cannot run or prints nothing
        """
        cmd = self.command(url)
        logger.debug(f"Resolving stream: {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                check=False,
            )
        except (subprocess.SubprocessError, OSError) as e:
            logger.error(f"Failed to start {self.executable}: {e}")
            raise ResolverError(f"failed to run {self.executable}: {e}")

        lines = [line.strip() for line in (result.stdout or "").splitlines() if line.strip()]
        if not lines:
            if result.stderr:
                logger.warning(f"{self.executable} stderr: {result.stderr.strip()}")
            raise ResolverError("no stream URL")
        return lines[0]


class Decoder:
    """Base class for external decoders."""

    def __init__(self, executable: str):
        self.executable = executable
        self.process: Optional[subprocess.Popen] = None
        self.stream_url: Optional[str] = None

    def command(self, stream_url: str) -> List[str]:
        """Build the decoder command line."""
        raise NotImplementedError("Subclasses must implement command()")

    def start(self, stream_url: str) -> None:
        """Spawn the decoder against ``stream_url``.

        The decoder gets its own process group so that stop() can signal it
        and any helpers it forks in one go.
        """
        try:
            self.process = subprocess.Popen(
                self.command(stream_url),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                preexec_fn=os.setsid,
            )
        except (subprocess.SubprocessError, OSError) as e:
            logger.error(f"Failed to start {self.executable}: {e}")
            raise DecoderError(f"failed to start {self.executable}: {e}")

        self.stream_url = stream_url
        logger.info(f"Started {self.executable}: {self.process.pid}")

    def poll(self) -> Optional[int]:
        """Return the exit status, or None while the decoder is running."""
        if self.process is None:
            return None
        return self.process.poll()

    def stop(self) -> None:
        """Terminate the decoder process group, escalating to SIGKILL."""
        if not self.process or self.process.poll() is not None:
            return
        try:
            os.killpg(os.getpgid(self.process.pid), signal.SIGTERM)
            logger.info(f"Stopping decoder process: {self.process.pid}")
            self.process.wait(timeout=TERMINATE_TIMEOUT)
        except (ProcessLookupError, PermissionError) as e:
            logger.warning(f"Process termination error: {e}")
        except subprocess.TimeoutExpired:
            try:
                os.killpg(os.getpgid(self.process.pid), signal.SIGKILL)
                logger.warning(f"Force killed decoder process: {self.process.pid}")
                self.process.wait(timeout=0.5)
            except (ProcessLookupError, PermissionError, subprocess.TimeoutExpired) as e:
                logger.warning(f"Force kill failed: {e}")


class FFPlayDecoder(Decoder):
    """ffplay: audio only, no window, exits at end of stream."""

    def __init__(self, executable: str = "ffplay"):
        super().__init__(executable)

    def command(self, stream_url: str) -> List[str]:
        return [self.executable, "-nodisp", "-autoexit", "-loglevel", "quiet", stream_url]


class MPVDecoder(Decoder):
    """mpv: exits at end of stream on its own."""

    def __init__(self, executable: str = "mpv"):
        super().__init__(executable)

    def command(self, stream_url: str) -> List[str]:
        return [self.executable, "--no-video", "--really-quiet", stream_url]


_DECODERS = {
    "ffplay": FFPlayDecoder,
    "mpv": MPVDecoder,
}


def detect_available_decoder() -> str:
    """Pick the first supported decoder found on PATH."""
    for name in _DECODERS:
        if shutil.which(name):
            return name

    logger.warning("No supported decoder found on PATH")
    return "ffplay"


def get_decoder(name: str = "auto") -> Decoder:
    """Get a decoder instance by name."""
    if name == "auto":
        name = detect_available_decoder()
    try:
        return _DECODERS[name]()
    except KeyError:
        raise ConfigurationError(f"Unsupported decoder: {name}")


# =============================================================================
# Playback session
# =============================================================================
class Settlement:
    """One-shot completion cell shared by every session listener.

    The first call to resolve(), reject() or abort() wins; later calls
    return False and change nothing.
    """

    PENDING = "pending"
    RESOLVED = "resolved"
    REJECTED = "rejected"
    ABORTED = "aborted"

    def __init__(self):
        self.status = self.PENDING
        self.outcome: Optional[PlaybackOutcome] = None
        self.error: Optional[BaseException] = None

    @property
    def settled(self) -> bool:
        return self.status != self.PENDING

    def _settle(self, status: str) -> bool:
        if self.settled:
            logger.debug(f"Ignoring {status}: session already {self.status}")
            return False
        self.status = status
        return True

    def resolve(self, outcome: PlaybackOutcome) -> bool:
        if not self._settle(self.RESOLVED):
            return False
        self.outcome = outcome
        return True

    def reject(self, error: BaseException) -> bool:
        if not self._settle(self.REJECTED):
            return False
        self.error = error
        return True

    def abort(self) -> bool:
        return self._settle(self.ABORTED)

    def result(self) -> PlaybackOutcome:
        """Return the outcome, or raise the rejection error."""
        if self.status == self.RESOLVED:
            return self.outcome
        if self.status == self.REJECTED:
            raise self.error
        if self.status == self.ABORTED:
            raise PlaybackError("playback aborted by interrupt")
        raise PlaybackError("playback session has not settled")


class PlaybackSession:
    """Supervises one decoder run until it settles.

    Progress is estimated from a wall-clock timer, not read from the
    decoder.

    Args:
        decoder: Decoder to run
        stream_url: Direct audio URL
        total_seconds: Track length; 0 disables the progress bar
        keys: Binary stream to watch for the stop key (default: stdin)
        out: Text stream for progress and notices (default: stdout)
        tick_interval: Seconds between progress ticks
        exit_fn: Called with status 0 after an interrupt
    """

    def __init__(
        self,
        decoder: Decoder,
        stream_url: str,
        total_seconds: int,
        keys: Any = None,
        out: Optional[TextIO] = None,
        tick_interval: float = TICK_INTERVAL,
        exit_fn: Callable[[int], Any] = sys.exit,
    ):
        self.decoder = decoder
        self.stream_url = stream_url
        self.total_seconds = total_seconds
        self.keys = keys if keys is not None else sys.stdin
        self.out = out if out is not None else sys.stdout
        self.tick_interval = tick_interval
        self.exit_fn = exit_fn

        self.gate = Settlement()
        self.elapsed = 0
        self.timer_active = False
        self.key_fd: Optional[int] = None
        self.interrupt_installed = False

        self._next_tick = 0.0
        self._tty_fd: Optional[int] = None
        self._saved_tty: Optional[list] = None
        self._previous_sigint: Any = None
        self._cleaned_up = False

    # -- lifecycle ---------------------------------------------------------
    def start(self) -> None:
        """Spawn the decoder and register the timer and listeners."""
        try:
            self.decoder.start(self.stream_url)
        except (DecoderError, OSError) as e:
            self.on_error(e)
            return

        self._enable_cbreak()
        self._start_timer()
        self._install_listeners()

    def run(self) -> PlaybackOutcome:
        """Run the session to completion.

        Returns:
            The playback outcome

        Raises:
            PlaybackError: the decoder failed to start or exited with an error
        """
        try:
            self.start()
            while not self.gate.settled:
                self._wait_for_events()
        except BaseException as e:
            if not self.gate.settled:
                logger.error(f"Playback session failed: {e!r}")
                self.decoder.stop()
                self._cleanup()
                self.gate.reject(e)
            raise
        return self.gate.result()

    def _wait_for_events(self) -> None:
        now = time.monotonic()
        timeout = POLL_INTERVAL
        if self.timer_active:
            timeout = max(0.0, min(timeout, self._next_tick - now))

        if self.key_fd is not None:
            readable, _, _ = select.select([self.key_fd], [], [], timeout)
            if readable:
                self._read_keys()
        else:
            time.sleep(timeout)

        if self.gate.settled:
            return

        code = self.decoder.poll()
        if code is not None:
            self.on_exit(code)
            return

        if self.timer_active and time.monotonic() >= self._next_tick:
            self._next_tick += self.tick_interval
            self.on_tick()

    def _read_keys(self) -> None:
        try:
            data = os.read(self.key_fd, 64)
        except OSError as e:
            logger.warning(f"Key input error: {e}")
            data = b""

        if not data:
            logger.debug("Key input closed")
            self.key_fd = None
            return

        for byte in data:
            self.on_key(byte)
            if self.gate.settled:
                break

    # -- listeners ---------------------------------------------------------
    def on_tick(self) -> None:
        """Timer listener: advance the estimate and redraw."""
        if not self.timer_active:
            return
        self.elapsed += 1
        if self.elapsed <= self.total_seconds:
            draw_progress(self.elapsed, self.total_seconds, self.out)

    def on_key(self, byte: int) -> None:
        """Key listener: Escape stops playback."""
        if byte != STOP_KEY or self.gate.settled:
            return
        logger.info("Stop key pressed")
        self.decoder.stop()
        self._notify("⏹️  Playback stopped")
        self._cleanup()
        self.gate.resolve(PlaybackOutcome(stopped_by_user=True))

    def on_interrupt(self, signum: Optional[int] = None, frame: Any = None) -> None:
        """Interrupt listener: stop playback and leave the program."""
        logger.info(f"Interrupt received (signal {signum})")
        self.decoder.stop()
        self._notify("⏹️  Playback stopped")
        self._cleanup()
        self.gate.abort()
        self.exit_fn(0)

    def on_exit(self, code: int) -> None:
        """Decoder exit listener."""
        if self.gate.settled:
            # Killed by one of our own listeners; already handled there.
            return
        self._cleanup()
        if code == 0:
            self._notify("✅ Playback finished")
            self.gate.resolve(PlaybackOutcome(stopped_by_user=False))
        elif code < 0:
            self.gate.reject(DecoderExitError(f"decoder killed by signal {-code}", code))
        else:
            self.gate.reject(DecoderExitError(f"decoder exited with code {code}", code))

    def on_error(self, error: BaseException) -> None:
        """Decoder error listener."""
        if self.gate.settled:
            return
        self._cleanup()
        self.gate.reject(error)

    # -- resources ---------------------------------------------------------
    def _keys_fileno(self) -> Optional[int]:
        try:
            return self.keys.fileno()
        except (AttributeError, OSError, ValueError):
            return None

    def _enable_cbreak(self) -> None:
        """Deliver single keystrokes immediately while keeping Ctrl+C as SIGINT."""
        fd = self._keys_fileno()
        if fd is None or not os.isatty(fd):
            return
        try:
            self._saved_tty = termios.tcgetattr(fd)
            tty.setcbreak(fd)
            self._tty_fd = fd
        except termios.error as e:
            logger.warning(f"Could not enable cbreak mode: {e}")
            self._saved_tty = None

    def _restore_terminal(self) -> None:
        if self._tty_fd is None or self._saved_tty is None:
            return
        try:
            termios.tcsetattr(self._tty_fd, termios.TCSADRAIN, self._saved_tty)
        except termios.error as e:
            logger.warning(f"Could not restore terminal mode: {e}")
        finally:
            self._tty_fd = None
            self._saved_tty = None

    def _start_timer(self) -> None:
        self.timer_active = True
        self._next_tick = time.monotonic() + self.tick_interval

    def _install_listeners(self) -> None:
        self.key_fd = self._keys_fileno()
        self._previous_sigint = signal.signal(signal.SIGINT, self.on_interrupt)
        self.interrupt_installed = True

    def _remove_listeners(self) -> None:
        self.key_fd = None
        if self.interrupt_installed:
            previous = self._previous_sigint
            if previous is None:
                previous = signal.SIG_DFL
            signal.signal(signal.SIGINT, previous)
            self.interrupt_installed = False
            self._previous_sigint = None

    def _cleanup(self) -> None:
        if self._cleaned_up:
            return
        self._cleaned_up = True
        self.timer_active = False
        self._restore_terminal()
        self._remove_listeners()
        try:
            self.out.write("\n")
            self.out.flush()
        except (OSError, ValueError) as e:
            logger.warning(f"Could not write to output: {e}")

    def _notify(self, message: str) -> None:
        self.out.write(f"\n\n{message}\n")
        self.out.flush()


def play(
    url: str,
    duration_text: str,
    resolver: Optional[StreamResolver] = None,
    decoder: Optional[Decoder] = None,
    **session_options: Any,
) -> PlaybackOutcome:
    """Stream the audio of ``url`` and block until playback ends.

    Args:
        url: Video page URL
        duration_text: "M:SS" or "H:MM:SS" length used for the progress bar
        resolver: Stream resolver (default: yt-dlp, best audio)
        decoder: Decoder to run (default: first available)
        **session_options: Passed to PlaybackSession

    Returns:
        PlaybackOutcome telling whether the user stopped playback

    Raises:
        PlaybackError: resolving, spawning or decoding failed
    """
    out = session_options.get("out") or sys.stdout
    out.write("\n🎵 Getting audio stream...\n\n")
    out.flush()

    resolver = resolver or StreamResolver()
    stream_url = resolver.resolve(url)

    total_seconds = parse_duration(duration_text)
    session = PlaybackSession(
        decoder or get_decoder(),
        stream_url,
        total_seconds,
        **session_options,
    )
    return session.run()
