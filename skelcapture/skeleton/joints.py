from __future__ import annotations

"""
Kinect v1 skeleton joint enumeration.

Ids follow the Microsoft Kinect SDK numbering and double as array indices
and as the joint-type byte of the recording format.
"""

from enum import IntEnum
from typing import List, Union

import numpy as np


class JointType(IntEnum):
    HIP_CENTER = 0
    SPINE = 1
    SHOULDER_CENTER = 2
    HEAD = 3
    SHOULDER_LEFT = 4
    ELBOW_LEFT = 5
    WRIST_LEFT = 6
    HAND_LEFT = 7
    SHOULDER_RIGHT = 8
    ELBOW_RIGHT = 9
    WRIST_RIGHT = 10
    HAND_RIGHT = 11
    HIP_LEFT = 12
    KNEE_LEFT = 13
    ANKLE_LEFT = 14
    FOOT_LEFT = 15
    HIP_RIGHT = 16
    KNEE_RIGHT = 17
    ANKLE_RIGHT = 18
    FOOT_RIGHT = 19


NUM_JOINTS = len(JointType)

JOINT_NAMES: List[str] = [j.name.lower() for j in sorted(JointType)]


def joint_index(joint_type: Union[JointType, int]) -> int:
    """
    Map a joint type (enum member or raw SDK id) to its slot index.

    Raises IndexError for ids outside [0, NUM_JOINTS); negative ids are
    rejected rather than wrapping around.
    """
    if isinstance(joint_type, bool) or not isinstance(joint_type, (int, np.integer)):
        raise TypeError(f"Joint type must be an integer id, got {type(joint_type).__name__}")

    idx = int(joint_type)
    if not 0 <= idx < NUM_JOINTS:
        raise IndexError(f"Joint type {idx} out of range [0, {NUM_JOINTS})")
    return idx
