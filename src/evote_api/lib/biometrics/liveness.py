"""Last-resort anti-replay check over captured frames.

Head-turn and blink challenges are handled by the capture client; this gate
only rejects short or partly empty captures and captures of a single image
repeated.
"""

import hashlib
from collections.abc import Sequence
from dataclasses import dataclass

DEFAULT_MIN_FRAMES = 3


@dataclass(frozen=True)
class LivenessResult:
    passed: bool
    reason: str
    frame_count: int
    distinct_frames: int


def check_liveness(frames: Sequence[bytes] | None, min_frames: int = DEFAULT_MIN_FRAMES) -> LivenessResult:
    """Validate that a frame sequence could come from a live, moving subject.

    Args:
        frames: Captured frames in capture order (raw image bytes).
        min_frames: Minimum number of frames required.

    Returns:
        LivenessResult with a human-readable reason.
    """
    frames = list(frames or [])
    if len(frames) < min_frames:
        return LivenessResult(
            passed=False,
            reason=f"At least {min_frames} frames are required for liveness detection.",
            frame_count=len(frames),
            distinct_frames=len({hashlib.sha256(f).hexdigest() for f in frames}),
        )

    if any(not f for f in frames):
        return LivenessResult(
            passed=False,
            reason="One or more frames are empty.",
            frame_count=len(frames),
            distinct_frames=len({hashlib.sha256(f).hexdigest() for f in frames if f}),
        )

    distinct = len({hashlib.sha256(f).hexdigest() for f in frames})
    if distinct < 2:
        return LivenessResult(
            passed=False,
            reason="Frames are too similar. Please move your head and blink as instructed.",
            frame_count=len(frames),
            distinct_frames=distinct,
        )

    return LivenessResult(
        passed=True,
        reason="Liveness check passed.",
        frame_count=len(frames),
        distinct_frames=distinct,
    )


def select_reference_frame(frames: Sequence[bytes]) -> bytes:
    """Pick the middle frame of a capture as the embedding source."""
    if not frames:
        msg = "No frames to select from"
        raise ValueError(msg)
    return frames[len(frames) // 2]
