import numpy as np
import pytest

from skelcapture.skeleton.datatypes import UNTRACKED_POSITION_VALUE, SkeletonPoint, SkelJointsData
from skelcapture.skeleton.joints import NUM_JOINTS, JointType


def _filled(camera_id=0, skel_id=1, frame_offset=0) -> SkelJointsData:
    data = SkelJointsData(camera_id, skel_id, frame_offset)
    for j in JointType:
        data.update_joint(j, SkeletonPoint(j * 1.5, j * -0.25, j + 2.0))
    return data


def test_sentinel_is_min_finite_float32():
    assert UNTRACKED_POSITION_VALUE == float(np.finfo(np.float32).min)
    assert np.isfinite(UNTRACKED_POSITION_VALUE)


def test_construction_fields():
    data = SkelJointsData(1, 2, 500)
    assert data.camera_id == 1
    assert data.skel_id == 2
    assert data.frame_offset == 500
    assert data.joints.shape == (NUM_JOINTS, 3)


def test_identity_is_read_only():
    data = SkelJointsData(1, 2, 500)
    with pytest.raises(AttributeError):
        data.camera_id = 5
    with pytest.raises(AttributeError):
        data.frame_offset = 0


def test_negative_frame_offset_rejected():
    with pytest.raises(ValueError):
        SkelJointsData(0, 0, -1)


def test_new_record_is_untracked():
    data = SkelJointsData(0, 0, 0)
    assert np.all(data.joints == UNTRACKED_POSITION_VALUE)
    assert not data.tracked_mask().any()
    for j in JointType:
        assert data.get_joint(j) == SkeletonPoint.untracked()
        assert not data.is_joint_tracked(j)


def test_read_after_write():
    data = SkelJointsData(0, 0, 0)
    for j in JointType:
        p = SkeletonPoint(0.1 * j, -0.2, 3.7)
        data.update_joint(j, p)
        assert data.get_joint(j) == p
        assert data.is_joint_tracked(j)


def test_update_by_coords_matches_update_by_point():
    a = SkelJointsData(3, 4, 100)
    b = SkelJointsData(3, 4, 100)
    for i in range(NUM_JOINTS):
        a.update_joint(i, SkeletonPoint(i, i + 0.5, -i))
        b.update_joint_coords(i, i, i + 0.5, -i)
    assert a == b
    assert np.array_equal(a.to_array(), b.to_array())


def test_update_coords_on_fresh_slot():
    data = SkelJointsData(0, 0, 0)
    data.update_joint_coords(JointType.HEAD, 0.0, 1.6, 2.5)
    assert data.get_joint(JointType.HEAD) == SkeletonPoint(0.0, 1.6, 2.5)
    assert data.tracked_mask().sum() == 1


@pytest.mark.parametrize("bad", [20, -1, 100])
def test_update_out_of_range(bad):
    data = SkelJointsData(0, 0, 0)
    with pytest.raises(IndexError):
        data.update_joint(bad, SkeletonPoint(1.0, 2.0, 3.0))
    with pytest.raises(IndexError):
        data.update_joint_coords(bad, 1.0, 2.0, 3.0)
    assert np.all(data.joints == UNTRACKED_POSITION_VALUE)


def test_to_array_layout():
    data = _filled()
    flat = data.to_array()
    assert flat.shape == (60,)
    assert flat.dtype == np.float32
    for i in range(NUM_JOINTS):
        assert tuple(flat[3 * i:3 * i + 3]) == (i * 1.5, i * -0.25, i + 2.0)


def test_to_array_untracked_record_has_sixty_sentinels():
    flat = SkelJointsData(0, 0, 0).to_array()
    assert flat.size == 60
    assert np.all(flat == np.finfo(np.float32).min)


def test_to_array_is_independent_copy():
    data = _filled()
    flat = data.to_array()
    flat[:] = 0.0
    assert data.get_joint(JointType.FOOT_RIGHT) == SkeletonPoint(19 * 1.5, 19 * -0.25, 21.0)

    data.update_joint(JointType.HIP_CENTER, SkeletonPoint(9.0, 9.0, 9.0))
    assert flat[0] == 0.0


def test_joints_view_cannot_mutate_record():
    data = _filled()
    joints = data.joints
    with pytest.raises(ValueError):
        joints[0, 0] = 42.0
    assert data.get_joint(0) == SkeletonPoint(0.0, 0.0, 2.0)


def test_from_array_inverts_to_array():
    data = _filled(camera_id=2, skel_id=7, frame_offset=1234)
    back = SkelJointsData.from_array(2, 7, 1234, data.to_array())
    assert back == data


def test_from_array_wrong_length():
    with pytest.raises(ValueError):
        SkelJointsData.from_array(0, 0, 0, [0.0] * 59)


def test_partially_untracked_point_counts_as_tracked():
    p = SkeletonPoint(UNTRACKED_POSITION_VALUE, 0.0, UNTRACKED_POSITION_VALUE)
    assert p.is_tracked
    assert not SkeletonPoint.untracked().is_tracked


def test_equality_includes_identity():
    assert _filled(camera_id=0) != _filled(camera_id=1)
    assert _filled(frame_offset=10) != _filled(frame_offset=11)
    assert _filled() == _filled()


@pytest.mark.parametrize("offset", [2 ** 32, 2 ** 32 + 5])
def test_frame_offset_must_fit_uint32(offset):
    with pytest.raises(ValueError):
        SkelJointsData(0, 1, offset)


def test_frame_offset_uint32_max_accepted():
    assert SkelJointsData(0, 1, 2 ** 32 - 1).frame_offset == 2 ** 32 - 1


@pytest.mark.parametrize("value", [2 ** 31, -(2 ** 31) - 1])
def test_ids_must_fit_int32(value):
    with pytest.raises(ValueError):
        SkelJointsData(value, 0, 0)
    with pytest.raises(ValueError):
        SkelJointsData(0, value, 0)


def test_int32_bounds_accepted():
    data = SkelJointsData(2 ** 31 - 1, -(2 ** 31), 0)
    assert data.camera_id == 2 ** 31 - 1
    assert data.skel_id == -(2 ** 31)


def test_coordinates_beyond_float32_rejected():
    data = SkelJointsData(0, 0, 0)
    with pytest.raises(ValueError):
        data.update_joint(JointType.HEAD, SkeletonPoint(-3.5e38, 0.0, 0.0))
    with pytest.raises(ValueError):
        data.update_joint_coords(JointType.HEAD, 0.0, 1e39, 0.0)
    with pytest.raises(ValueError):
        SkelJointsData.from_array(0, 0, 0, [1e300] + [0.0] * 59)
    assert not data.is_joint_tracked(JointType.HEAD)


def test_float32_extremes_survive_to_array():
    data = SkelJointsData(0, 0, 0)
    top = float(np.finfo(np.float32).max)
    data.update_joint_coords(JointType.HEAD, top, UNTRACKED_POSITION_VALUE, 0.0)
    flat = data.to_array()
    assert np.all(np.isfinite(flat))
    head = 3 * int(JointType.HEAD)
    assert flat[head] == top
    assert flat[head + 1] == UNTRACKED_POSITION_VALUE
