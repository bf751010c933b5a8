import numpy as np
from numpy.testing import assert_allclose
import pytest
from menpo.shape import PointCloud

from aamfilter.transform import (apply_affine, similarity_alignment,
                                 estimate_similarity, align_shape)


def rotation(theta):
    return np.array([[np.cos(theta), -np.sin(theta)],
                     [np.sin(theta), np.cos(theta)]])


def test_estimate_similarity_exact():
    rng = np.random.RandomState(0)
    src = rng.uniform(-10, 10, size=(12, 2))
    scale, theta, t = 1.7, 0.4, np.array([3., -2.])
    tgt = scale * src.dot(rotation(theta).T) + t

    matrix = estimate_similarity(src, tgt)

    assert_allclose(matrix[:, :2], scale * rotation(theta), atol=1e-10)
    assert_allclose(matrix[:, 2], t, atol=1e-10)
    assert_allclose(apply_affine(matrix, src), tgt, atol=1e-10)


def test_estimate_similarity_no_reflection():
    src = np.array([[0., 0.], [4., 0.], [4., 1.], [0., 3.]])
    tgt = src * np.array([-1., 1.])
    matrix = estimate_similarity(src, tgt)
    assert np.linalg.det(matrix[:, :2]) > 0


def test_estimate_similarity_coincident_source():
    src = np.ones((4, 2))
    with pytest.raises(ValueError):
        estimate_similarity(src, np.random.RandomState(1).rand(4, 2))


def test_estimate_similarity_mismatch():
    with pytest.raises(ValueError):
        estimate_similarity(np.zeros((4, 2)), np.zeros((5, 2)))


def test_similarity_alignment_set_target():
    src = np.array([[0., 0.], [2., 0.], [2., 1.], [0., 1.]])
    alignment = similarity_alignment(src, src)
    assert_allclose(alignment.aligned_source().points, src, atol=1e-12)
    tgt = 3. * src.dot(rotation(0.7).T) - 4.
    alignment.set_target(PointCloud(tgt))
    assert_allclose(alignment.aligned_source().points, tgt, atol=1e-10)


def test_align_shape():
    src = np.array([[0., 0.], [2., 0.], [2., 1.], [0., 1.]])
    tgt = 0.5 * src.dot(rotation(-1.2).T) + 10.
    aligned = align_shape(src.ravel(), tgt.ravel())
    assert aligned.shape == (8,)
    assert_allclose(aligned, tgt.ravel(), atol=1e-10)
