import warnings
import numpy as np
from scipy.linalg import svd, norm
from menpo.visualize import print_dynamic


class RobustRecoveryWarning(Warning):
    r"""
    A warning that the robust low-rank recovery did not converge and the raw
    data were used instead.
    """
    pass


def robust_pca(data, lmbda=None, tol=1e-7, max_iters=1000, rho=1.5):
    r"""
    Robust Principal Component Analysis by the inexact Augmented Lagrange
    Multiplier method [1]. Decomposes `data` into a low-rank matrix ``A`` and
    a sparse error matrix ``E`` such that ``data = A + E``, by minimizing
    ``||A||_* + lmbda * ||E||_1``.

    Parameters
    ----------
    data : ``(m, n)`` `ndarray`
        The data matrix.
    lmbda : `float` or ``None``, optional
        The weight of the sparse term. If ``None``, ``1 / sqrt(max(m, n))``.
    tol : `float`, optional
        The solver stops once ``||data - A - E||_F / ||data||_F < tol``.
    max_iters : `int`, optional
        The maximum number of iterations.
    rho : `float`, optional
        The growth factor of the penalty parameter.

    Returns
    -------
    low_rank : ``(m, n)`` `ndarray`
        The recovered low-rank matrix ``A``.
    sparse : ``(m, n)`` `ndarray`
        The sparse error matrix ``E``.
    converged : `bool`
        Whether the stopping criterion was met within `max_iters`.
    n_iters : `int`
        The number of iterations that were performed.

    References
    ----------
    .. [1] Z. Lin, M. Chen, and Y. Ma. "The Augmented Lagrange Multiplier
        Method for Exact Recovery of Corrupted Low-Rank Matrices", arXiv
        1009.5055, 2010.
    """
    d = np.asarray(data, dtype=np.float64)
    m, n = d.shape
    low_rank = np.zeros_like(d)
    sparse = np.zeros_like(d)

    d_norm = norm(d, 'fro')
    if d_norm == 0:
        return low_rank, sparse, True, 0

    if lmbda is None:
        lmbda = 1. / np.sqrt(max(m, n))
    norm_two = svd(d, compute_uv=False)[0]
    norm_inf = np.abs(d).max() / lmbda
    y = d / max(norm_two, norm_inf)
    mu = 1.25 / norm_two
    mu_bar = mu * 1e7

    for k in range(1, max_iters + 1):
        # sparse part: element-wise shrinkage
        t = d - low_rank + y / mu
        sparse = (np.maximum(t - lmbda / mu, 0) +
                  np.minimum(t + lmbda / mu, 0))

        # low-rank part: singular value thresholding
        u, s, vt = svd(d - sparse + y / mu, full_matrices=False)
        n_sv = np.count_nonzero(s > 1. / mu)
        low_rank = (u[:, :n_sv] * (s[:n_sv] - 1. / mu)).dot(vt[:n_sv])

        z = d - low_rank - sparse
        y = y + mu * z
        mu = min(mu * rho, mu_bar)

        if norm(z, 'fro') / d_norm < tol:
            return low_rank, sparse, True, k

    return low_rank, sparse, False, max_iters


def recover_low_rank(samples, name='data', verbose=False, **kwargs):
    r"""
    Replaces a ``(n_samples, n_features)`` data matrix by its low-rank
    component. The decomposition is computed on the transposed matrix, i.e.
    with one sample per column.

    If the solver does not converge, a :map:`RobustRecoveryWarning` is raised
    and the raw samples are returned.

    Parameters
    ----------
    samples : ``(n_samples, n_features)`` `ndarray`
        The data matrix.
    name : `str`, optional
        The name of the data used in the printed and warning messages.
    verbose : `bool`, optional
        If ``True``, then the number of solver iterations is printed.
    kwargs : `dict`
        Passed to :map:`robust_pca`.

    Returns
    -------
    recovered : ``(n_samples, n_features)`` `ndarray`
        The low-rank component, or `samples` when the recovery failed.
    converged : `bool`
        Whether the recovery succeeded.
    """
    low_rank, _, converged, n_iters = robust_pca(np.asarray(samples).T,
                                                 **kwargs)
    if not converged:
        warnings.warn('Robust recovery of the {} matrix did not converge in '
                      '{} iterations; the raw {} are used instead.'.format(
                          name, n_iters, name), RobustRecoveryWarning)
        return np.asarray(samples, dtype=np.float64), False
    if verbose:
        print_dynamic('  - Recovered low-rank {} in {} iterations\n'.format(
            name, n_iters))
    return low_rank.T, True
