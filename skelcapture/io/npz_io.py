from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping, Sequence

import numpy as np

from skelcapture.skeleton.datatypes import SkelJointsData
from skelcapture.skeleton.joints import NUM_JOINTS


def save_npz_compressed(path: str | Path, **arrays: Any) -> Path:
    """Writes arrays to a compressed .npz, creating parent folders. Returns the path."""
    out = Path(path)
    if out.suffix != ".npz":
        out = out.with_name(out.name + ".npz")
    out.parent.mkdir(parents=True, exist_ok=True)
    with out.open("wb") as f:
        np.savez_compressed(f, **arrays)
    return out


def load_npz(path: str | Path) -> Dict[str, np.ndarray]:
    """Loads every array of an .npz eagerly; object arrays are refused."""
    with np.load(Path(path), allow_pickle=False) as archive:
        return {name: archive[name] for name in archive.files}


def frames_to_arrays(frames: Sequence[Mapping[int, SkelJointsData]]) -> Dict[str, np.ndarray]:
    """
    Stack synced frames (camera_id -> record) into arrays:

        camera_ids    (C,)        int32
        frame_offset  (T, C)      uint32
        skel_id       (T, C)      int32
        joints        (T, C, 60)  float32, flat layout of SkelJointsData.to_array

    Every frame must hold the same set of cameras.
    """
    if not frames:
        return {
            "camera_ids": np.zeros((0,), dtype=np.int32),
            "frame_offset": np.zeros((0, 0), dtype=np.uint32),
            "skel_id": np.zeros((0, 0), dtype=np.int32),
            "joints": np.zeros((0, 0, NUM_JOINTS * 3), dtype=np.float32),
        }

    camera_ids = sorted(frames[0].keys())
    T = len(frames)
    C = len(camera_ids)

    frame_offset = np.zeros((T, C), dtype=np.uint32)
    skel_id = np.zeros((T, C), dtype=np.int32)
    joints = np.zeros((T, C, NUM_JOINTS * 3), dtype=np.float32)

    for t, frame in enumerate(frames):
        if sorted(frame.keys()) != camera_ids:
            raise ValueError(
                f"Frame {t} has cameras {sorted(frame.keys())}, expected {camera_ids}"
            )
        for c, cam in enumerate(camera_ids):
            rec = frame[cam]
            frame_offset[t, c] = rec.frame_offset
            skel_id[t, c] = rec.skel_id
            joints[t, c] = rec.to_array()

    return {
        "camera_ids": np.asarray(camera_ids, dtype=np.int32),
        "frame_offset": frame_offset,
        "skel_id": skel_id,
        "joints": joints,
    }
