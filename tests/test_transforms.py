import math

import numpy as np
import pytest

from licalib.transforms import (
    get_trans_between,
    make_transform,
    matrix_to_quaternion,
    quaternion_to_matrix,
)


def _random_quaternions(seed, count=8):
    rng = np.random.default_rng(seed)
    out = []
    for _ in range(count):
        q = rng.normal(size=4)
        q /= np.linalg.norm(q)
        if q[3] < 0:
            q = -q
        out.append(q)
    return out


def test_identity_quaternion_gives_identity_matrix():
    assert np.allclose(quaternion_to_matrix([0.0, 0.0, 0.0, 1.0]), np.eye(3))


def test_quarter_turn_about_z():
    half = math.pi / 4
    r = quaternion_to_matrix([0.0, 0.0, math.sin(half), math.cos(half)])
    expected = np.array([[0.0, -1.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.0, 1.0]])
    assert np.allclose(r, expected)


@pytest.mark.parametrize("q", _random_quaternions(7))
def test_quaternion_round_trip(q):
    r = quaternion_to_matrix(q)
    assert np.allclose(r @ r.T, np.eye(3))
    assert np.isclose(np.linalg.det(r), 1.0)
    assert np.allclose(matrix_to_quaternion(r), q)


@pytest.mark.parametrize(
    "rotation",
    [np.diag([1.0, -1.0, -1.0]), np.diag([-1.0, 1.0, -1.0]), np.diag([-1.0, -1.0, 1.0])],
)
def test_half_turns_round_trip(rotation):
    q = matrix_to_quaternion(rotation)
    assert np.isclose(np.linalg.norm(q), 1.0)
    assert np.allclose(quaternion_to_matrix(q), rotation)


def test_quaternion_is_normalised_before_use():
    q = np.array([0.1, -0.2, 0.3, 0.9])
    assert np.allclose(quaternion_to_matrix(q * 5.0), quaternion_to_matrix(q))


def test_zero_quaternion_is_rejected():
    with pytest.raises(ValueError):
        quaternion_to_matrix([0.0, 0.0, 0.0, 0.0])


def test_matrix_to_quaternion_rejects_wrong_shape():
    with pytest.raises(ValueError):
        matrix_to_quaternion(np.eye(2))


def test_make_transform_layout():
    r = quaternion_to_matrix(_random_quaternions(1)[0])
    t = np.array([1.0, 2.0, 3.0])
    m = make_transform(r, t)
    assert np.allclose(m[:3, :3], r)
    assert np.allclose(m[:3, 3], t)
    assert np.allclose(m[3], [0.0, 0.0, 0.0, 1.0])


def test_make_transform_rejects_bad_translation():
    with pytest.raises(ValueError):
        make_transform(np.eye(3), [1.0, 2.0])


def test_trans_between_same_pose_is_identity():
    q = _random_quaternions(2)[0]
    t = np.array([0.5, -1.5, 2.0])
    assert np.allclose(get_trans_between(t, q, t, q), np.eye(4))


def test_trans_between_composes_to_end_pose():
    q_s, q_e = _random_quaternions(3, count=2)
    t_s = np.array([1.0, 0.0, -2.0])
    t_e = np.array([-0.5, 3.0, 1.0])
    rel = get_trans_between(t_s, q_s, t_e, q_e)
    start = make_transform(quaternion_to_matrix(q_s), t_s)
    end = make_transform(quaternion_to_matrix(q_e), t_e)
    assert np.allclose(start @ rel, end)


def test_trans_between_reversed_is_inverse():
    q_s, q_e = _random_quaternions(4, count=2)
    t_s = np.array([0.2, 0.4, 0.6])
    t_e = np.array([-1.0, 0.0, 5.0])
    forward = get_trans_between(t_s, q_s, t_e, q_e)
    backward = get_trans_between(t_e, q_e, t_s, q_s)
    assert np.allclose(forward @ backward, np.eye(4))