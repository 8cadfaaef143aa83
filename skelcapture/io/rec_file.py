from __future__ import annotations

"""
Per-camera skeleton recording files (".rec").

Little-endian binary layout:

    <camera_id:int32>                                   file header
    <skel_id:int32> <frame_offset:uint32>               record header
    20 x ( <joint_type:uint8> <x:f32> <y:f32> <z:f32> )
    <skel_id:int32> <frame_offset:uint32>
    ...

Untracked joints carry UNTRACKED_POSITION_VALUE in all three coordinates.
"""

from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Dict, Iterator, List, Optional
import sys

import numpy as np

from skelcapture.config import REC_FILE_PREFIX, REC_FILE_SUFFIX, format_session_time
from skelcapture.skeleton.datatypes import UNTRACKED_POSITION_VALUE, SkelJointsData
from skelcapture.skeleton.joints import NUM_JOINTS


HEADER_DTYPE = np.dtype("<i4")

JOINT_DTYPE = np.dtype([
    ("joint_type", "u1"),
    ("xyz", "<f4", (3,)),
])

RECORD_DTYPE = np.dtype([
    ("skel_id", "<i4"),
    ("frame_offset", "<u4"),
    ("joints", JOINT_DTYPE, (NUM_JOINTS,)),
])

# Joint types written in id order; the reader accepts any order.
_JOINT_TYPES = np.arange(NUM_JOINTS, dtype=np.uint8)


def camera_filename(session_timestamp: datetime, camera_id: int) -> str:
    return f"{format_session_time(session_timestamp)}{REC_FILE_PREFIX}{int(camera_id)}{REC_FILE_SUFFIX}"


def encode_record(frame: SkelJointsData) -> bytes:
    rec = np.zeros((), dtype=RECORD_DTYPE)
    rec["skel_id"] = frame.skel_id
    rec["frame_offset"] = frame.frame_offset
    rec["joints"]["joint_type"] = _JOINT_TYPES
    rec["joints"]["xyz"] = frame.to_array().reshape(NUM_JOINTS, 3)
    return rec.tobytes()


def _decode_record(rec: np.void, camera_id: int, index: int) -> SkelJointsData:
    joint_types = rec["joints"]["joint_type"]
    if np.any(joint_types >= NUM_JOINTS):
        bad = int(joint_types[joint_types >= NUM_JOINTS][0])
        raise ValueError(f"Record #{index} of camera {camera_id} has invalid joint type {bad}")

    values = np.empty((NUM_JOINTS, 3), dtype=np.float32)
    values[:] = UNTRACKED_POSITION_VALUE
    values[joint_types] = rec["joints"]["xyz"]

    return SkelJointsData.from_array(
        camera_id,
        int(rec["skel_id"]),
        int(rec["frame_offset"]),
        values,
    )


class SkelRecorder:
    """
    Records skeleton frames of several cameras to one file per camera.

    All files of a session share the session timestamp, which names the
    files and is the baseline for every record's frame offset.
    """

    def __init__(self, out_dir: str | Path = ".", session_timestamp: Optional[datetime] = None):
        self.out_dir = Path(out_dir)
        self.session_timestamp = session_timestamp or datetime.now()
        self._camera_files: Dict[int, BinaryIO] = {}

    def camera_path(self, camera_id: int) -> Path:
        return self.out_dir / camera_filename(self.session_timestamp, camera_id)

    def create_file(self, camera_id: int) -> Path:
        """Creates an empty camera file holding only the header."""
        camera_id = int(camera_id)
        if camera_id in self._camera_files:
            raise RuntimeError(f"SkelRecorder already has a file for camera #{camera_id}")

        path = self.camera_path(camera_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        f = path.open("wb")
        try:
            f.write(np.array(camera_id, dtype=HEADER_DTYPE).tobytes())
        except OSError:
            f.close()
            raise

        self._camera_files[camera_id] = f
        print(f"[SkelRecorder] camera #{camera_id} -> {path}")
        return path

    def offset_ms(self, timestamp: datetime) -> int:
        """Whole milliseconds between the session start and timestamp."""
        span = timestamp - self.session_timestamp
        ms = int(span.total_seconds() * 1000.0)
        if ms < 0:
            raise ValueError(f"Timestamp {timestamp} precedes session start {self.session_timestamp}")
        return ms

    def record_frame(self, frame: SkelJointsData) -> None:
        # Called once per tracked skeleton per frame; the camera file must
        # exist already (KeyError otherwise).
        self._camera_files[frame.camera_id].write(encode_record(frame))

    def close(self) -> None:
        for f in self._camera_files.values():
            f.close()
        self._camera_files.clear()

    def __enter__(self) -> "SkelRecorder":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def iter_camera_file(path: str | Path, camera_id: Optional[int] = None) -> Iterator[SkelJointsData]:
    """
    Yields the records of one camera file in file (chronological) order.

    If camera_id is given, the file header must match it.
    """
    p = Path(path)
    with p.open("rb") as f:
        header = f.read(HEADER_DTYPE.itemsize)
        if len(header) != HEADER_DTYPE.itemsize:
            raise ValueError(f"Camera file {p} is missing its header")
        parsed_id = int(np.frombuffer(header, dtype=HEADER_DTYPE)[0])
        if camera_id is not None and parsed_id != int(camera_id):
            raise ValueError(f"Camera file #{camera_id} contains an illegal header: {parsed_id}")

        index = 0
        while True:
            chunk = f.read(RECORD_DTYPE.itemsize)
            if not chunk:
                break
            if len(chunk) != RECORD_DTYPE.itemsize:
                raise ValueError(
                    f"Camera file {p} is truncated: record #{index} has {len(chunk)} of "
                    f"{RECORD_DTYPE.itemsize} bytes"
                )
            rec = np.frombuffer(chunk, dtype=RECORD_DTYPE)[0]
            yield _decode_record(rec, parsed_id, index)
            index += 1


def read_camera_file(path: str | Path, camera_id: Optional[int] = None) -> List[SkelJointsData]:
    """Reads an entire camera file into memory."""
    p = Path(path)
    print(f"[SkelReplay] Loading camera file {p.name}...")
    frames = list(iter_camera_file(p, camera_id=camera_id))
    if not frames:
        print(f"[SkelReplay] warning: {p.name} holds no records", file=sys.stderr)
    return frames
