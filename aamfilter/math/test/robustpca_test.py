import numpy as np
from numpy.testing import assert_allclose
import pytest

from aamfilter.math import robust_pca, recover_low_rank, RobustRecoveryWarning


def corrupted_low_rank(seed=0):
    rng = np.random.RandomState(seed)
    low_rank = np.outer(rng.normal(size=60), rng.normal(size=40))
    sparse = np.zeros_like(low_rank)
    mask = rng.rand(*low_rank.shape) < 0.03
    sparse[mask] = rng.uniform(-10, 10, size=mask.sum())
    return low_rank, sparse


def test_robust_pca_recovers_low_rank():
    low_rank, sparse = corrupted_low_rank()
    a, e, converged, n_iters = robust_pca(low_rank + sparse)
    assert converged
    assert n_iters > 0
    assert_allclose(a + e, low_rank + sparse, atol=1e-4)
    assert np.linalg.norm(a - low_rank) / np.linalg.norm(low_rank) < 1e-2


def test_robust_pca_zero_matrix():
    a, e, converged, n_iters = robust_pca(np.zeros((5, 4)))
    assert converged
    assert n_iters == 0
    assert_allclose(a, 0)
    assert_allclose(e, 0)


def test_recover_low_rank_is_transposed():
    low_rank, sparse = corrupted_low_rank(1)
    samples = (low_rank + sparse).T
    recovered, converged = recover_low_rank(samples)
    assert converged
    assert recovered.shape == samples.shape
    assert (np.linalg.norm(recovered - low_rank.T) /
            np.linalg.norm(low_rank)) < 1e-2


def test_recover_low_rank_fallback():
    low_rank, sparse = corrupted_low_rank(2)
    samples = low_rank + sparse
    with pytest.warns(RobustRecoveryWarning):
        recovered, converged = recover_low_rank(samples, max_iters=1)
    assert not converged
    assert_allclose(recovered, samples)
