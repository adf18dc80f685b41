"""
Audio recorder state model.

Tracks a single voice query from capture to submission:

    idle -> recording -> stopped (has blob) -> playing / idle (has blob) -> submitted

Capture is delegated to an AudioSource (a browser bridge, a sound device
wrapper, a file in tests). Submission hands the blob to a transcriber.
"""
import logging
import time
from enum import Enum
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "audio/webm;codecs=opus"


class RecorderState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    STOPPED = "stopped"
    PLAYING = "playing"
    SUBMITTED = "submitted"


class AudioSource(Protocol):
    """Something that can capture microphone audio."""

    def start(self) -> None:
        """Begin capturing. Raises PermissionError if the microphone is denied."""
        ...

    def stop(self) -> bytes:
        """Stop capturing and return the encoded audio."""
        ...


class MicrophoneAccessError(Exception):
    """The runtime refused access to the microphone."""


class InvalidRecorderAction(Exception):
    """The requested action is not allowed in the current state."""


def format_time(seconds: int) -> str:
    """Format elapsed seconds as M:SS."""
    return f"{seconds // 60}:{seconds % 60:02d}"


class AudioRecorder:
    """
    Recorder for one voice query.

    Usage:
        recorder = AudioRecorder(source, transcribe=service.transcribe)
        recorder.start()
        recorder.stop()
        text = recorder.submit()
    """

    def __init__(
        self,
        source: AudioSource,
        transcribe: Callable[[bytes], str],
        mime_type: str = DEFAULT_MIME_TYPE,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.source = source
        self.transcribe = transcribe
        self.mime_type = mime_type
        self.clock = clock

        self.state = RecorderState.IDLE
        self.blob: Optional[bytes] = None
        self.error: Optional[str] = None
        self.transcription: Optional[str] = None
        self._started_at: Optional[float] = None
        self._duration = 0.0

    @property
    def has_blob(self) -> bool:
        return self.blob is not None

    @property
    def recording_time(self) -> int:
        """Whole seconds recorded so far (or in total once stopped)."""
        if self.state == RecorderState.RECORDING and self._started_at is not None:
            return int(self.clock() - self._started_at)
        return int(self._duration)

    def _require(self, *states: RecorderState, action: str) -> None:
        if self.state not in states:
            raise InvalidRecorderAction(f"Cannot {action} while {self.state.value}")

    def start(self) -> None:
        """Start a new recording, discarding any previous one."""
        self._require(RecorderState.IDLE, RecorderState.STOPPED, action="start recording")
        self.error = None
        try:
            self.source.start()
        except PermissionError as e:
            self.error = "Failed to start recording. Please check microphone permissions."
            logger.warning(f"Microphone access denied: {e}")
            raise MicrophoneAccessError(self.error) from e

        self.blob = None
        self.transcription = None
        self._duration = 0.0
        self._started_at = self.clock()
        self.state = RecorderState.RECORDING

    def stop(self) -> None:
        """Stop recording and keep the captured audio."""
        self._require(RecorderState.RECORDING, action="stop")
        self.blob = self.source.stop()
        self._duration = self.clock() - self._started_at
        self._started_at = None
        self.state = RecorderState.STOPPED

    def play(self) -> None:
        self._require(RecorderState.STOPPED, RecorderState.IDLE, action="play")
        if not self.has_blob:
            raise InvalidRecorderAction("Nothing recorded to play")
        self.state = RecorderState.PLAYING

    def pause(self) -> None:
        """Pause playback (also used when playback ends)."""
        self._require(RecorderState.PLAYING, action="pause")
        self.state = RecorderState.IDLE

    def delete(self) -> None:
        """Discard the recording."""
        self._require(RecorderState.STOPPED, RecorderState.PLAYING, RecorderState.IDLE, action="delete")
        self.blob = None
        self._duration = 0.0
        self.state = RecorderState.IDLE

    def submit(self) -> str:
        """Hand the recording to the transcriber and return its text."""
        self._require(RecorderState.STOPPED, RecorderState.IDLE, action="submit")
        if not self.has_blob:
            raise InvalidRecorderAction("Nothing recorded to submit")

        self.transcription = self.transcribe(self.blob)
        self.state = RecorderState.SUBMITTED
        logger.info(f"Submitted {len(self.blob)} bytes ({format_time(self.recording_time)})")
        return self.transcription
