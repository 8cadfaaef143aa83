from __future__ import annotations

"""
Replays a recorded multi-camera skeleton session frame by frame.

Each camera's records are queued in chronological order. A replayed frame
holds exactly one record per camera, all within frame_time_threshold_ms of
each other; records that cannot be matched with the other cameras are
dropped.
"""

from collections import deque
from datetime import datetime
from pathlib import Path
from typing import Callable, Deque, Dict, Iterator, Mapping, Optional, Sequence

from skelcapture.config import FRAME_TIME_THRESHOLD_MS, SessionConfig
from skelcapture.io.rec_file import camera_filename, read_camera_file
from skelcapture.skeleton.datatypes import SkelJointsData


FrameData = Dict[int, SkelJointsData]
ReplayFrameHandler = Callable[[FrameData], None]


class SkelReplay:
    def __init__(
        self,
        session_dir: str | Path,
        session_timestamp: datetime,
        num_cameras: int,
        frame_time_threshold_ms: int = FRAME_TIME_THRESHOLD_MS,
    ):
        if num_cameras < 1:
            raise ValueError(f"num_cameras must be >= 1, got {num_cameras}")

        session_dir = Path(session_dir)
        print(f"[SkelReplay] Loading camera files for session {session_timestamp:%H:%M:%S} from {session_dir}")

        # ~28 MB per camera-hour once loaded.
        frames: Dict[int, Sequence[SkelJointsData]] = {}
        for camera_id in range(num_cameras):
            path = session_dir / camera_filename(session_timestamp, camera_id)
            if not path.exists():
                raise FileNotFoundError(f"Camera file {path} not found")
            frames[camera_id] = read_camera_file(path, camera_id=camera_id)

        self._init_queues(frames, frame_time_threshold_ms)
        print("[SkelReplay] Skeleton capture session replay loaded successfully.")

    @classmethod
    def from_config(cls, cfg: SessionConfig) -> "SkelReplay":
        return cls(
            session_dir=cfg.session_dir,
            session_timestamp=cfg.session_timestamp,
            num_cameras=cfg.num_cameras,
            frame_time_threshold_ms=cfg.frame_time_threshold_ms,
        )

    @classmethod
    def from_frames(
        cls,
        frames_by_camera: Mapping[int, Sequence[SkelJointsData]],
        frame_time_threshold_ms: int = FRAME_TIME_THRESHOLD_MS,
    ) -> "SkelReplay":
        """Builds a replay over in-memory records instead of camera files."""
        if not frames_by_camera:
            raise ValueError("frames_by_camera must hold at least one camera")
        replay = cls.__new__(cls)
        replay._init_queues(frames_by_camera, frame_time_threshold_ms)
        return replay

    def _init_queues(
        self,
        frames_by_camera: Mapping[int, Sequence[SkelJointsData]],
        frame_time_threshold_ms: int,
    ) -> None:
        if frame_time_threshold_ms <= 0:
            raise ValueError(f"frame_time_threshold_ms must be > 0, got {frame_time_threshold_ms}")
        for cam, frames in frames_by_camera.items():
            for rec in frames:
                if rec.camera_id != int(cam):
                    raise ValueError(
                        f"Record of camera {rec.camera_id} queued under camera {cam} "
                        f"(frame_offset={rec.frame_offset})"
                    )
        self.frame_time_threshold_ms = int(frame_time_threshold_ms)
        self._queues: Dict[int, Deque[SkelJointsData]] = {
            int(cam): deque(frames) for cam, frames in sorted(frames_by_camera.items())
        }
        self.dropped = 0

    @property
    def camera_ids(self) -> list[int]:
        return list(self._queues.keys())

    def remaining(self, camera_id: int) -> int:
        return len(self._queues[camera_id])

    def next_frame(self) -> Optional[FrameData]:
        """
        Pops the next synced frame, or returns None once any camera's
        recording has ended.
        """
        while True:
            if any(not q for q in self._queues.values()):
                return None

            min_offset = min(q[0].frame_offset for q in self._queues.values())
            in_frame = [
                cam for cam, q in self._queues.items()
                if q[0].frame_offset - min_offset < self.frame_time_threshold_ms
            ]

            frame: FrameData = {cam: self._queues[cam].popleft() for cam in in_frame}
            if len(frame) == len(self._queues):
                return frame

            # Not every camera saw this frame; drop the partial match.
            self.dropped += len(frame)

    def replay_session_frame(self, handler: ReplayFrameHandler) -> bool:
        """
        Replays a single synced frame through handler.

        Returns True if a frame was replayed, False if the recording has ended.
        """
        frame = self.next_frame()
        if frame is None:
            return False
        handler(frame)
        return True

    def iter_synced_frames(self) -> Iterator[FrameData]:
        while True:
            frame = self.next_frame()
            if frame is None:
                return
            yield frame
