import numpy as np


class AAMFilterError(Exception):
    r"""
    Base class of the errors raised while building the appearance model or
    filtering outliers.
    """
    pass


class ShapeMismatchError(AAMFilterError, ValueError):
    r"""
    Error raised when the landmark configurations of the dataset do not agree
    with each other or with the triangulation.

    Parameters
    ----------
    message : `str`
        The error message.
    index : `int` or ``None``, optional
        The index of the offending sample, if there is one.
    """
    def __init__(self, message, index=None):
        super(ShapeMismatchError, self).__init__(message)
        self.index = index


class EmptySubsetError(AAMFilterError, ValueError):
    r"""
    Error raised when the active subset of samples is empty or when a
    detection pass would remove every remaining sample.

    Parameters
    ----------
    message : `str`
        The error message.
    iteration : `int` or ``None``, optional
        The detection pass during which the error occurred.
    indices : `list` of `int` or ``None``, optional
        The active indices at the time of the error.
    """
    def __init__(self, message, iteration=None, indices=None):
        super(EmptySubsetError, self).__init__(message)
        self.iteration = iteration
        self.indices = indices


def as_points(shape):
    r"""
    Returns a flat ``(2 * n_points,)`` shape vector ``(x0, y0, x1, y1, ...)``
    as an ``(n_points, 2)`` array of ``(x, y)`` points.
    """
    return np.asarray(shape, dtype=np.float64).reshape(-1, 2)


def as_vector(points):
    r"""
    Returns an ``(n_points, 2)`` array of points as a flat shape vector.
    """
    return np.asarray(points, dtype=np.float64).ravel()
