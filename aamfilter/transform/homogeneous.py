import numpy as np
from menpo.shape import PointCloud
from menpo.transform import AlignmentSimilarity


def apply_affine(matrix, points):
    r"""
    Applies a ``(2, 3)`` affine matrix to a set of points.

    Parameters
    ----------
    matrix : ``(2, 3)`` `ndarray`
        The affine transform ``[A | t]``.
    points : ``(n_points, 2)`` `ndarray`
        The ``(x, y)`` points.

    Returns
    -------
    transformed : ``(n_points, 2)`` `ndarray`
        ``A p + t`` for every point ``p``.
    """
    points = np.asarray(points, dtype=np.float64)
    return points.dot(matrix[:, :2].T) + matrix[:, 2]


def check_spread(points, var_name='source'):
    r"""
    Checks that a ``(n_points, 2)`` point set is not collapsed to a single
    point, which has no scale to align.
    """
    points = np.asarray(points, dtype=np.float64)
    if np.all(points == points[0]):
        raise ValueError('{} points are all coincident'.format(var_name))
    return points


def similarity_alignment(source, target):
    r"""
    Builds the `menpo.transform.AlignmentSimilarity` that aligns `source` to
    `target`. Mirroring is not allowed, so the rotation is always proper.

    Parameters
    ----------
    source : ``(n_points, 2)`` `ndarray`
        The points to align.
    target : ``(n_points, 2)`` `ndarray`
        The points to align to, in the same order as `source`.

    Returns
    -------
    alignment : `menpo.transform.AlignmentSimilarity`
        The alignment. Its target can be updated with ``set_target``.

    Raises
    ------
    ValueError
        source and target must have the same number of points
    ValueError
        source points are all coincident
    """
    p = np.asarray(source, dtype=np.float64)
    q = np.asarray(target, dtype=np.float64)
    if p.shape != q.shape or p.ndim != 2 or p.shape[1] != 2:
        raise ValueError('source and target must be (n_points, 2) arrays '
                         'with the same number of points')
    check_spread(p)
    return AlignmentSimilarity(PointCloud(p), PointCloud(q),
                               allow_mirror=False)


def estimate_similarity(source, target):
    r"""
    Estimates the similarity transform (uniform scale, rotation and
    translation) that maps `source` onto `target`.

    The centroids are matched, the scale is the ratio of the norms of the
    centred point sets and the rotation is the orthogonal Procrustes solution
    of the rescaled sets. For exact correspondences this is the transform
    that generated `target`.

    Parameters
    ----------
    source : ``(n_points, 2)`` `ndarray`
        The points to align.
    target : ``(n_points, 2)`` `ndarray`
        The points to align to, in the same order as `source`.

    Returns
    -------
    matrix : ``(2, 3)`` `ndarray`
        The similarity transform ``[s R | t]``.
    """
    return similarity_alignment(source, target).h_matrix[:2].copy()


def align_shape(source, target):
    r"""
    Aligns a flat shape vector to another one with the optimal similarity
    transform.

    Parameters
    ----------
    source : ``(2 * n_points,)`` `ndarray`
        The shape to align.
    target : ``(2 * n_points,)`` `ndarray`
        The shape to align to.

    Returns
    -------
    aligned : ``(2 * n_points,)`` `ndarray`
        The aligned shape vector.
    """
    p = np.asarray(source, dtype=np.float64).reshape(-1, 2)
    q = np.asarray(target, dtype=np.float64).reshape(-1, 2)
    return similarity_alignment(p, q).aligned_source().points.ravel()
