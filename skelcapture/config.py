from __future__ import annotations

"""
Capture session constants and the session JSON loader.
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
import json

# ---------- Tunable constants ----------
REC_FILE_PREFIX = "_cam"
REC_FILE_SUFFIX = ".rec"
SESSION_TIME_FORMAT = "%H_%M_%S"   # followed by "_mmm" milliseconds

# Max distance between two cameras' records for them to count as one frame.
# Kinect tracks skeletons at ~30 FPS (~33 ms).
FRAME_TIME_THRESHOLD_MS = 24


@dataclass(frozen=True)
class SessionConfig:
    session_dir: Path
    session_timestamp: datetime
    num_cameras: int
    frame_time_threshold_ms: int = FRAME_TIME_THRESHOLD_MS


def format_session_time(ts: datetime) -> str:
    """datetime -> 'HH_MM_SS_mmm', the timestamp part of camera file names."""
    return f"{ts.strftime(SESSION_TIME_FORMAT)}_{ts.microsecond // 1000:03d}"


def parse_session_time(text: str) -> datetime:
    """
    Inverse of format_session_time. Only the time of day is encoded in file
    names, so the date part of the result is meaningless.
    """
    parts = text.split("_")
    if len(parts) != 4:
        raise ValueError(f"Expected session time as HH_MM_SS_mmm, got {text!r}")
    try:
        base = datetime.strptime("_".join(parts[:3]), SESSION_TIME_FORMAT)
        ms = int(parts[3])
    except ValueError as exc:
        raise ValueError(f"Invalid session time {text!r}") from exc
    if not 0 <= ms < 1000 or len(parts[3]) != 3:
        raise ValueError(f"Invalid milliseconds in session time {text!r}")
    return base.replace(microsecond=ms * 1000)


def load_session_config(path: str | Path) -> SessionConfig:
    """
    Reads a session JSON and returns a SessionConfig.

    The JSON is expected to look like:

        {
            "session_dir": "recordings/day1",
            "session_time": "14_03_59_120",
            "num_cameras": 2,
            "frame_time_threshold_ms": 24        (optional)
        }

    A relative session_dir is resolved against the folder holding the JSON.
    """
    p = Path(path)
    with p.open("r", encoding="utf-8") as f:
        raw = json.load(f)

    if not isinstance(raw, dict):
        raise ValueError(f"Expected a JSON object at top level in {p}, got {type(raw).__name__}")

    session_dir = Path(raw["session_dir"])
    if not session_dir.is_absolute():
        session_dir = p.parent / session_dir

    session_timestamp = parse_session_time(str(raw["session_time"]))

    num_cameras = int(raw["num_cameras"])
    if num_cameras < 1:
        raise ValueError(f"num_cameras must be >= 1, got {num_cameras}")

    threshold = int(raw.get("frame_time_threshold_ms", FRAME_TIME_THRESHOLD_MS))
    if threshold <= 0:
        raise ValueError(f"frame_time_threshold_ms must be > 0, got {threshold}")

    return SessionConfig(
        session_dir=session_dir,
        session_timestamp=session_timestamp,
        num_cameras=num_cameras,
        frame_time_threshold_ms=threshold,
    )
