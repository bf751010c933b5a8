import numpy as np

from aamfilter.base import ShapeMismatchError, EmptySubsetError


def check_shapes(shapes):
    r"""
    Checks that the provided shapes all have the same, even, number of
    coordinates and stacks them into a single array.

    Parameters
    ----------
    shapes : `list` of ``(2 * n_points,)`` or ``(n_points, 2)`` `ndarray`
        The landmark configurations of the samples.

    Returns
    -------
    shapes : ``(n_samples, 2 * n_points)`` `ndarray`
        The stacked shape vectors.

    Raises
    ------
    ShapeMismatchError
        Shape {i} has {n} points, but shape 0 has {n0} points
    """
    if len(shapes) == 0:
        raise EmptySubsetError('At least one shape must be provided')
    vectors = [np.asarray(s, dtype=np.float64).ravel() for s in shapes]
    n_coords = vectors[0].shape[0]
    if n_coords == 0 or n_coords % 2 != 0:
        raise ShapeMismatchError('Shape 0 has {} coordinates, which is not a '
                                 'valid set of 2D points'.format(n_coords),
                                 index=0)
    for i, v in enumerate(vectors):
        if v.shape[0] != n_coords:
            raise ShapeMismatchError(
                'Shape {} has {} points, but shape 0 has {} points'.format(
                    i, v.shape[0] // 2, n_coords // 2), index=i)
        if not np.all(np.isfinite(v)):
            raise ShapeMismatchError(
                'Shape {} contains non-finite coordinates'.format(i), index=i)
    return np.vstack(vectors)


def check_trilist(trilist, n_points):
    r"""
    Checks that the triangle list is an ``(n_triangles, 3)`` array of vertex
    indices within ``[0, n_points)`` that references every point.

    Parameters
    ----------
    trilist : ``(n_triangles, 3)`` `ndarray` or `list` of `tuple`
        The triangulation (0-based).
    n_points : `int`
        The number of points of every shape.

    Returns
    -------
    trilist : ``(n_triangles, 3)`` `ndarray` of `int`
        The triangulation.

    Raises
    ------
    ShapeMismatchError
        The triangulation references vertex {v}, but shapes have {n} points
    ShapeMismatchError
        The triangulation does not reference every point of the shapes
    """
    trilist = np.asarray(trilist)
    if trilist.ndim != 2 or trilist.shape[1] != 3 or trilist.shape[0] == 0:
        raise ValueError('trilist must be a non-empty (n_triangles, 3) array')
    if not np.issubdtype(trilist.dtype, np.integer):
        if not np.all(np.equal(np.mod(trilist, 1), 0)):
            raise ValueError('trilist must contain integer vertex indices')
    trilist = trilist.astype(np.int64)
    if trilist.min() < 0 or trilist.max() >= n_points:
        bad = trilist.max() if trilist.max() >= n_points else trilist.min()
        raise ShapeMismatchError(
            'The triangulation references vertex {}, but shapes have {} '
            'points'.format(bad, n_points))
    n_referenced = np.unique(trilist).size
    if n_referenced != n_points:
        raise ShapeMismatchError(
            'The triangulation references {} distinct vertices, but shapes '
            'have {} points'.format(n_referenced, n_points))
    return trilist


def check_images(images, n_samples):
    r"""
    Checks that there is one ``(height, width, 3)`` image per shape.

    Parameters
    ----------
    images : `list` of ``(height, width, 3)`` `ndarray`
        The RGB images with values in ``[0, 1]``.
    n_samples : `int`
        The number of shapes.

    Returns
    -------
    images : `list` of ``(height, width, 3)`` `ndarray`
        The images as ``float64`` arrays.
    """
    if len(images) != n_samples:
        raise ShapeMismatchError('{} images were provided for {} '
                                 'shapes'.format(len(images), n_samples))
    checked = []
    for i, image in enumerate(images):
        image = np.asarray(image, dtype=np.float64)
        if image.ndim == 2:
            image = np.repeat(image[..., None], 3, axis=-1)
        if image.ndim != 3 or image.shape[-1] != 3:
            raise ValueError('Image {} must be a (height, width, 3) '
                             'array'.format(i))
        if image.shape[0] < 2 or image.shape[1] < 2:
            raise ValueError('Image {} is smaller than 2x2 pixels'.format(i))
        checked.append(image)
    return checked


def check_indices(indices, n_samples):
    r"""
    Checks the active subset of sample indices. If ``None``, then all the
    samples are active.

    Returns
    -------
    indices : `list` of `int`
        The sorted, unique active indices.

    Raises
    ------
    EmptySubsetError
        The active subset is empty
    """
    if indices is None:
        return list(range(n_samples))
    indices = sorted(set(int(i) for i in indices))
    if len(indices) == 0:
        raise EmptySubsetError('The active subset is empty', indices=indices)
    if indices[0] < 0 or indices[-1] >= n_samples:
        raise ValueError('Sample indices must be within [0, {})'.format(
            n_samples))
    return indices


def check_max_components(max_components, var_name='max_components'):
    r"""
    Checks the number of components to keep, which is either an `int` (the
    exact number of components), a `float` in ``(0, 1]`` (the fraction of the
    variance to retain) or ``None`` (keep all).
    """
    if max_components is None:
        return max_components
    if isinstance(max_components, (bool, np.bool_)):
        raise ValueError('{} must be None, an int > 0 or a float in '
                         '(0, 1]'.format(var_name))
    if isinstance(max_components, (int, np.integer)):
        if max_components <= 0:
            raise ValueError('{} must be > 0'.format(var_name))
        return int(max_components)
    if isinstance(max_components, (float, np.floating)):
        if not 0 < max_components <= 1:
            raise ValueError('{} must be in (0, 1]'.format(var_name))
        return float(max_components)
    raise ValueError('{} must be None, an int > 0 or a float in '
                     '(0, 1]'.format(var_name))


def check_positive(value, var_name, allow_zero=False):
    r"""
    Checks that a numerical setting is positive (or non-negative).
    """
    if allow_zero and value < 0:
        raise ValueError('{} must be >= 0'.format(var_name))
    if not allow_zero and value <= 0:
        raise ValueError('{} must be > 0'.format(var_name))
    return value


def check_damping(damping):
    r"""
    Checks that the damping factor of the mean texture update is in
    ``(0, 1]``.
    """
    if not 0 < damping <= 1:
        raise ValueError('damping must be in (0, 1]')
    return float(damping)


def check_n_workers(n_workers):
    r"""
    Checks the number of workers of the scoring pool. ``None`` lets the
    executor decide.
    """
    if n_workers is None:
        return n_workers
    if not isinstance(n_workers, (int, np.integer)) or n_workers < 1:
        raise ValueError('n_workers must be None or an int >= 1')
    return int(n_workers)
