import numpy as np
from menpo.shape import PointCloud
from menpo.transform import AlignmentAffine


class DegenerateTriangleWarning(Warning):
    r"""
    A warning that a triangle of the mesh is degenerate (its vertices are
    collinear) for a given shape and it is therefore ignored.
    """
    pass


def _doubled_areas(points, trilist):
    a = points[trilist[:, 0]]
    b = points[trilist[:, 1]]
    c = points[trilist[:, 2]]
    ab = b - a
    ac = c - a
    cross = ab[:, 0] * ac[:, 1] - ab[:, 1] * ac[:, 0]
    scale = np.maximum(np.sum(ab ** 2, axis=1), np.sum(ac ** 2, axis=1))
    return np.abs(cross), scale


def degenerate_triangles(points, trilist, eps=1e-8):
    r"""
    Returns a boolean mask of the triangles whose vertices are (numerically)
    collinear for the given points.

    Parameters
    ----------
    points : ``(n_points, 2)`` `ndarray`
        The vertices.
    trilist : ``(n_triangles, 3)`` `ndarray`
        The triangulation.
    eps : `float`, optional
        Relative tolerance on the doubled triangle area with respect to the
        squared length of its longest edge at the first vertex.

    Returns
    -------
    mask : ``(n_triangles,)`` `ndarray` of `bool`
        ``True`` for every degenerate triangle.
    """
    areas, scale = _doubled_areas(np.asarray(points, dtype=np.float64),
                                  trilist)
    return areas <= eps * np.maximum(scale, 1.)


def triangle_affine(source, target):
    r"""
    Computes the affine transform that maps the three vertices of `source`
    exactly onto the three vertices of `target`, together with its inverse.

    Parameters
    ----------
    source : ``(3, 2)`` `ndarray`
        The vertices of the source triangle. They must not be collinear.
    target : ``(3, 2)`` `ndarray`
        The vertices of the target triangle. They must not be collinear.

    Returns
    -------
    matrix : ``(2, 3)`` `ndarray`
        The affine transform ``[A | t]``.
    inverse : ``(2, 3)`` `ndarray`
        The inverse affine transform.
    """
    alignment = AlignmentAffine(PointCloud(source), PointCloud(target))
    return (alignment.h_matrix[:2].copy(),
            alignment.pseudoinverse().h_matrix[:2].copy())


class PiecewiseAffine(object):
    r"""
    A piecewise affine transform between two shapes that share a
    triangulation. Every triangle has its own affine map, computed
    independently from its three vertex correspondences, together with the
    inverse map.

    Unlike `menpo.transform.PiecewiseAffine`, points are not assigned to
    triangles here: the maps are applied to the pixels of a
    :map:`PixelMap`, which already knows the triangle of every pixel.
    Triangles that are degenerate in either the `source` or the `target`
    shape have no valid map; their entries in :attr:`transforms` and
    :attr:`inverse_transforms` are zero and they are flagged in
    :attr:`valid`.

    Parameters
    ----------
    source : ``(n_points, 2)`` `ndarray`
        The source vertices.
    target : ``(n_points, 2)`` `ndarray`
        The target vertices.
    trilist : ``(n_triangles, 3)`` `ndarray`
        The triangulation shared by both shapes.
    eps : `float`, optional
        The relative tolerance used to detect degenerate triangles.
    """
    def __init__(self, source, target, trilist, eps=1e-8):
        self.source = np.asarray(source, dtype=np.float64)
        self.target = np.asarray(target, dtype=np.float64)
        self.trilist = np.asarray(trilist)
        n_triangles = self.trilist.shape[0]

        self.valid = ~(degenerate_triangles(self.source, self.trilist, eps) |
                       degenerate_triangles(self.target, self.trilist, eps))
        self.transforms = np.zeros((n_triangles, 2, 3))
        self.inverse_transforms = np.zeros((n_triangles, 2, 3))
        for j in np.nonzero(self.valid)[0]:
            self.transforms[j], self.inverse_transforms[j] = triangle_affine(
                self.source[self.trilist[j]], self.target[self.trilist[j]])

    @property
    def n_triangles(self):
        r"""
        The number of triangles.

        :type: `int`
        """
        return self.trilist.shape[0]

    @property
    def degenerate(self):
        r"""
        The indices of the triangles that have no valid map.

        :type: ``(n_degenerate,)`` `ndarray`
        """
        return np.nonzero(~self.valid)[0]
