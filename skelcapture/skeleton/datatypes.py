from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np

from skelcapture.skeleton.joints import NUM_JOINTS, JointType, joint_index


# Minimum finite float32 marks a joint that was not tracked. It is a legal
# coordinate, but a joint reported there is distorted anyway.
UNTRACKED_POSITION_VALUE = float(np.finfo(np.float32).min)
_FLOAT32_MAX = float(np.finfo(np.float32).max)

# Identity fields are stored as <i4 / <u4 in recordings.
_INT32_MIN = -(2 ** 31)
_INT32_MAX = 2 ** 31 - 1
_UINT32_MAX = 2 ** 32 - 1

JointId = Union[JointType, int]


def _check_int32(name: str, value: int) -> int:
    value = int(value)
    if not _INT32_MIN <= value <= _INT32_MAX:
        raise ValueError(f"{name} must fit in int32, got {value}")
    return value


def _check_coords(values: np.ndarray) -> np.ndarray:
    # Finite values beyond float32 range would turn into +-inf on the wire.
    if np.any(np.isfinite(values) & (np.abs(values) > _FLOAT32_MAX)):
        raise ValueError(f"Joint coordinates must be representable as float32, got {values.tolist()}")
    return values


@dataclass(frozen=True)
class SkeletonPoint:
    """
    Position of a skeleton joint in camera space (meters).
    """
    x: float
    y: float
    z: float

    @classmethod
    def untracked(cls) -> "SkeletonPoint":
        return cls(UNTRACKED_POSITION_VALUE, UNTRACKED_POSITION_VALUE, UNTRACKED_POSITION_VALUE)

    @property
    def is_tracked(self) -> bool:
        return not (
            self.x == UNTRACKED_POSITION_VALUE
            and self.y == UNTRACKED_POSITION_VALUE
            and self.z == UNTRACKED_POSITION_VALUE
        )


class SkelJointsData:
    """
    A single skeleton tracked by a single camera at a certain frame.

    camera_id, skel_id and frame_offset are fixed at construction. Joint
    positions start out as the untracked sentinel and change only through
    update_joint / update_joint_coords.

    Note: different cameras may assign different skeleton ids to the same
    person; nothing here resolves identity across cameras.
    """

    __slots__ = ("_camera_id", "_skel_id", "_frame_offset", "_joints")

    def __init__(self, camera_id: int, skel_id: int, frame_offset: int):
        frame_offset = int(frame_offset)
        if not 0 <= frame_offset <= _UINT32_MAX:
            raise ValueError(f"frame_offset must be uint32 milliseconds, got {frame_offset}")

        self._camera_id = _check_int32("camera_id", camera_id)
        self._skel_id = _check_int32("skel_id", skel_id)
        self._frame_offset = frame_offset
        self._joints = np.full((NUM_JOINTS, 3), UNTRACKED_POSITION_VALUE, dtype=np.float64)

    @property
    def camera_id(self) -> int:
        return self._camera_id

    @property
    def skel_id(self) -> int:
        return self._skel_id

    @property
    def frame_offset(self) -> int:
        """Milliseconds since the beginning of the recording session."""
        return self._frame_offset

    @property
    def joints(self) -> np.ndarray:
        """Read-only (NUM_JOINTS, 3) copy of the joint positions."""
        out = self._joints.copy()
        out.flags.writeable = False
        return out

    def update_joint(self, joint_type: JointId, pos: SkeletonPoint) -> None:
        idx = joint_index(joint_type)
        self._joints[idx] = _check_coords(np.array([pos.x, pos.y, pos.z], dtype=np.float64))

    def update_joint_coords(self, joint_type: JointId, x: float, y: float, z: float) -> None:
        row = self._joints[joint_index(joint_type)]
        _check_coords(np.array([x, y, z], dtype=np.float64))
        row[0] = x
        row[1] = y
        row[2] = z

    def get_joint(self, joint_type: JointId) -> SkeletonPoint:
        x, y, z = self._joints[joint_index(joint_type)]
        return SkeletonPoint(float(x), float(y), float(z))

    def is_joint_tracked(self, joint_type: JointId) -> bool:
        return self.get_joint(joint_type).is_tracked

    def tracked_mask(self) -> np.ndarray:
        """(NUM_JOINTS,) bool, False where all three coordinates hold the sentinel."""
        return ~np.all(self._joints == UNTRACKED_POSITION_VALUE, axis=1)

    def to_array(self) -> np.ndarray:
        """
        Flatten to [x0, y0, z0, x1, ..., z19] as float32, in joint id order.

        This ordering is the wire format shared with the recording file and
        downstream consumers. Coordinates are kept within float32 range by
        the update operations, so the cast never overflows.
        """
        return self._joints.astype(np.float32).reshape(NUM_JOINTS * 3)

    @classmethod
    def from_array(
        cls,
        camera_id: int,
        skel_id: int,
        frame_offset: int,
        values: Sequence[float],
    ) -> "SkelJointsData":
        arr = np.asarray(values, dtype=np.float64).reshape(-1)
        if arr.size != NUM_JOINTS * 3:
            raise ValueError(f"Expected {NUM_JOINTS * 3} values, got {arr.size}")
        _check_coords(arr)

        data = cls(camera_id, skel_id, frame_offset)
        data._joints[:] = arr.reshape(NUM_JOINTS, 3)
        return data

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SkelJointsData):
            return NotImplemented
        return (
            self._camera_id == other._camera_id
            and self._skel_id == other._skel_id
            and self._frame_offset == other._frame_offset
            and bool(np.array_equal(self._joints, other._joints))
        )

    __hash__ = None  # mutable

    def __repr__(self) -> str:
        n_tracked = int(self.tracked_mask().sum())
        return (
            f"SkelJointsData(camera_id={self._camera_id}, skel_id={self._skel_id}, "
            f"frame_offset={self._frame_offset}, tracked={n_tracked}/{NUM_JOINTS})"
        )
