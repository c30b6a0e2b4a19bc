import math

import numpy as np
import pytest

from licalib.lie_groups import (
    hat,
    left_jacobian_inv_so3,
    left_jacobian_so3,
    right_jacobian_inv_se3_decoupled,
    right_jacobian_inv_sim3_decoupled,
    right_jacobian_inv_so3,
    right_jacobian_se3_decoupled,
    right_jacobian_sim3_decoupled,
    right_jacobian_so3,
    se3_expd,
    se3_logd,
    sim3_expd,
    sim3_logd,
    so3_exp,
    so3_log,
)

DELTA = 1e-6


def _random_vectors(seed, count=5, scale=1.0):
    rng = np.random.default_rng(seed)
    return [rng.uniform(-scale, scale, 3) for _ in range(count)]


def test_hat_matches_cross_product():
    a = np.array([0.3, -1.2, 2.0])
    b = np.array([-0.7, 0.4, 1.1])
    assert np.allclose(hat(a) @ b, np.cross(a, b))
    assert np.allclose(hat(a), -hat(a).T)


def test_hat_rejects_wrong_size():
    with pytest.raises(ValueError):
        hat([1.0, 2.0])


def test_so3_exp_quarter_turn_about_z():
    r = so3_exp([0.0, 0.0, math.pi / 2])
    expected = np.array([[0.0, -1.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.0, 1.0]])
    assert np.allclose(r, expected)


@pytest.mark.parametrize("scale", [1e-8, 0.5, 3.0])
def test_so3_exp_is_rotation_and_log_round_trips(scale):
    for omega in _random_vectors(1, scale=scale / math.sqrt(3)):
        r = so3_exp(omega)
        assert np.allclose(r @ r.T, np.eye(3))
        assert np.isclose(np.linalg.det(r), 1.0)
        assert np.allclose(so3_log(r), omega, atol=1e-9)


def test_so3_log_of_identity_is_zero():
    assert np.allclose(so3_log(np.eye(3)), np.zeros(3))


def test_so3_log_rejects_wrong_shape():
    with pytest.raises(ValueError):
        so3_log(np.eye(4))


def test_se3_round_trip():
    v = np.array([1.0, -2.0, 0.5, 0.2, -0.4, 0.9])
    r, t = se3_expd(v)
    assert np.allclose(t, v[:3])
    assert np.allclose(r, so3_exp(v[3:]))
    assert np.allclose(se3_logd(r, t), v)


def test_sim3_round_trip():
    v = np.array([0.3, 0.1, -0.8, -0.5, 0.25, 0.1, math.log(2.0)])
    s, r, t = sim3_expd(v)
    assert np.isclose(s, 2.0)
    assert np.allclose(t, v[:3])
    assert np.allclose(sim3_logd(s, r, t), v)


def test_sim3_logd_rejects_non_positive_scale():
    with pytest.raises(ValueError):
        sim3_logd(0.0, np.eye(3), np.zeros(3))


def test_se3_expd_rejects_wrong_size():
    with pytest.raises(ValueError):
        se3_expd(np.zeros(5))


@pytest.mark.parametrize("phi", _random_vectors(2) + [np.array([1e-7, 2e-7, -1e-7])])
def test_right_jacobian_first_order(phi):
    for eps in np.eye(3) * DELTA:
        lhs = so3_log(so3_exp(phi).T @ so3_exp(phi + eps))
        assert np.allclose(lhs, right_jacobian_so3(phi) @ eps, atol=1e-11)


@pytest.mark.parametrize("phi", _random_vectors(3))
def test_left_jacobian_first_order(phi):
    for eps in np.eye(3) * DELTA:
        lhs = so3_log(so3_exp(phi + eps) @ so3_exp(phi).T)
        assert np.allclose(lhs, left_jacobian_so3(phi) @ eps, atol=1e-11)


@pytest.mark.parametrize("phi", _random_vectors(4))
def test_right_inverse_jacobian_first_order(phi):
    for eps in np.eye(3) * DELTA:
        lhs = so3_log(so3_exp(phi) @ so3_exp(eps)) - phi
        assert np.allclose(lhs, right_jacobian_inv_so3(phi) @ eps, atol=1e-11)


@pytest.mark.parametrize("phi", _random_vectors(5))
def test_left_inverse_jacobian_first_order(phi):
    for eps in np.eye(3) * DELTA:
        lhs = so3_log(so3_exp(eps) @ so3_exp(phi)) - phi
        assert np.allclose(lhs, left_jacobian_inv_so3(phi) @ eps, atol=1e-11)


@pytest.mark.parametrize(
    "phi", _random_vectors(6) + [np.array([1e-6, -2e-6, 3e-6]), np.zeros(3)]
)
def test_jacobians_invert_each_other(phi):
    assert np.allclose(right_jacobian_so3(phi) @ right_jacobian_inv_so3(phi), np.eye(3))
    assert np.allclose(left_jacobian_so3(phi) @ left_jacobian_inv_so3(phi), np.eye(3))


def test_left_jacobian_is_right_jacobian_of_negated_angle():
    phi = np.array([0.4, -0.9, 0.3])
    assert np.allclose(left_jacobian_so3(phi), right_jacobian_so3(-phi))
    assert np.allclose(left_jacobian_inv_so3(phi), right_jacobian_inv_so3(-phi))


def test_jacobian_small_angle_branch_is_continuous():
    direction = np.array([1.0, 2.0, -1.0]) / math.sqrt(6.0)
    below = right_jacobian_so3(direction * math.sqrt(0.9e-10))
    above = right_jacobian_so3(direction * math.sqrt(1.1e-10))
    assert np.allclose(below, above, atol=1e-6)


def test_right_jacobian_se3_decoupled_first_order():
    phi = np.array([0.5, -1.0, 2.0, 0.3, -0.2, 0.7])
    j = right_jacobian_se3_decoupled(phi)
    r0, t0 = se3_expd(phi)
    for eps in np.eye(6) * DELTA:
        r1, t1 = se3_expd(phi + eps)
        # relative pose (r0, t0)^-1 * (r1, t1) in decoupled coordinates
        rel = se3_logd(r0.T @ r1, r0.T @ (t1 - t0))
        assert np.allclose(rel, j @ eps, atol=1e-11)


def test_right_jacobian_se3_decoupled_inverse():
    phi = np.array([0.5, -1.0, 2.0, 0.3, -0.2, 0.7])
    product = right_jacobian_se3_decoupled(phi) @ right_jacobian_inv_se3_decoupled(phi)
    assert np.allclose(product, np.eye(6))


def test_right_jacobian_sim3_decoupled_first_order():
    phi = np.array([0.5, -1.0, 2.0, 0.3, -0.2, 0.7, 0.4])
    j = right_jacobian_sim3_decoupled(phi)
    s0, r0, t0 = sim3_expd(phi)
    for eps in np.eye(7) * DELTA:
        s1, r1, t1 = sim3_expd(phi + eps)
        rel = sim3_logd(s1 / s0, r0.T @ r1, r0.T @ (t1 - t0) / s0)
        assert np.allclose(rel, j @ eps, atol=1e-11)


def test_right_jacobian_sim3_decoupled_inverse_and_scale_entry():
    phi = np.array([0.1, 0.2, 0.3, -0.6, 0.1, 0.2, -0.3])
    j = right_jacobian_sim3_decoupled(phi)
    j_inv = right_jacobian_inv_sim3_decoupled(phi)
    assert np.allclose(j @ j_inv, np.eye(7))
    assert j[6, 6] == 1.0
    assert np.allclose(j[6, :6], 0.0)