from functools import partial
import warnings
import numpy as np
from menpo.shape import PointCloud, mean_pointcloud
from menpo.visualize import print_dynamic

from aamfilter.base import as_points
from aamfilter.image import extract_texture
from aamfilter.transform import (PiecewiseAffine, DegenerateTriangleWarning,
                                 similarity_alignment)
from aamfilter.visualize import print_progress


class NonConvergenceWarning(Warning):
    r"""
    A warning that an iterative estimate (mean shape or mean texture) reached
    its maximum number of iterations before meeting its tolerance. The last
    iterate is used.
    """
    pass


class TextureNormalizationWarning(Warning):
    r"""
    A warning that a texture has no photometric scale with respect to the
    reference texture and is therefore only offset-corrected.
    """
    pass


def scale_shape(shape, size):
    r"""
    Rescales and translates a shape so that it fits in a ``size x size``
    square: the longest side of its bounding box becomes ``0.95 * size`` and
    the centre of the bounding box moves to ``(size / 2, size / 2)``. The
    aspect ratio is preserved.

    Parameters
    ----------
    shape : ``(2 * n_points,)`` `ndarray`
        The shape vector.
    size : `float`
        The side of the square.

    Returns
    -------
    scaled : ``(2 * n_points,)`` `ndarray`
        The rescaled shape vector.
    """
    points = as_points(shape)
    min_xy = points.min(axis=0)
    max_xy = points.max(axis=0)
    centre = 0.5 * (max_xy + min_xy)
    extent = np.max(max_xy - min_xy)
    if extent == 0:
        raise ValueError('Cannot rescale a shape whose points all coincide')
    factor = 0.95 * size / extent
    return ((points - centre) * factor + 0.5 * size).ravel()


def compute_mean_shape(shapes, reference_size=250, max_iters=100, tol=1e-3,
                       return_diffs=False, verbose=False):
    r"""
    Computes the mean shape of a set of shapes by iterative Procrustes
    alignment.

    The mean is initialised with the arithmetic average of the shapes. Then,
    at every iteration, each shape is aligned to the current mean with a
    `menpo.transform.AlignmentSimilarity`, the aligned shapes are averaged
    and the average is rescaled to the reference size. The loop stops when
    the mean moves less than `tol`.

    This is the Generalized Procrustes Analysis loop of
    `menpo.transform.GeneralizedProcrustesAnalysis`, except that the mean
    is rescaled to the reference square (rather than to the norm of the
    initial target) and that the tolerance and iteration cap are
    configurable.

    Parameters
    ----------
    shapes : ``(n_shapes, 2 * n_points)`` `ndarray`
        The shape vectors.
    reference_size : `float`, optional
        The side of the square the mean shape is fitted to (see
        :map:`scale_shape`).
    max_iters : `int`, optional
        The maximum number of iterations.
    tol : `float`, optional
        The displacement norm under which the mean is considered converged.
    return_diffs : `bool`, optional
        If ``True``, the displacement norm of every iteration is also
        returned.
    verbose : `bool`, optional
        If ``True``, the displacement of every iteration is printed.

    Returns
    -------
    mean_shape : ``(2 * n_points,)`` `ndarray`
        The mean shape.
    diffs : `list` of `float`
        The displacement norm per iteration. Returned only if `return_diffs`
        is ``True``.
    """
    shapes = np.asarray(shapes, dtype=np.float64)
    mean_shape = scale_shape(shapes.mean(axis=0), reference_size)
    target = PointCloud(as_points(mean_shape))
    alignments = [similarity_alignment(as_points(s), target.points)
                  for s in shapes]

    diffs = []
    for k in range(max_iters):
        aligned = mean_pointcloud([t.aligned_source() for t in alignments])
        new_mean_shape = scale_shape(aligned.as_vector(), reference_size)
        diff = np.linalg.norm(new_mean_shape - mean_shape)
        diffs.append(diff)
        mean_shape = new_mean_shape
        if verbose:
            print_dynamic('- Computing mean shape: iter {}, diff = {:.6f}'
                          .format(k, diff))
        if diff < tol:
            break
        target = PointCloud(as_points(mean_shape))
        for t in alignments:
            t.set_target(target)
    else:
        warnings.warn('The mean shape did not converge in {} iterations '
                      '(last displacement {:.3g} >= {:.3g}).'.format(
                          max_iters, diffs[-1], tol), NonConvergenceWarning)
    if verbose:
        print_dynamic('- Computing mean shape: done in {} '
                      'iterations\n'.format(len(diffs)))

    if return_diffs:
        return mean_shape, diffs
    return mean_shape


def compute_transforms(shapes, mean_shape, trilist, indices=None):
    r"""
    Builds the piecewise affine transform from every shape to the mean shape.
    Degenerate triangles are reported with a :map:`DegenerateTriangleWarning`
    and have no valid map.

    Parameters
    ----------
    shapes : ``(n_shapes, 2 * n_points)`` `ndarray`
        The shape vectors.
    mean_shape : ``(2 * n_points,)`` `ndarray`
        The mean shape.
    trilist : ``(n_triangles, 3)`` `ndarray`
        The triangulation.
    indices : `list` of `int` or ``None``, optional
        The sample index of every shape, used in the warning messages.

    Returns
    -------
    transforms : `list` of :map:`PiecewiseAffine`
        The transforms from the frame of each shape to the mean shape frame.
    """
    if indices is None:
        indices = list(range(len(shapes)))
    target = as_points(mean_shape)
    transforms = []
    for i, s in zip(indices, shapes):
        pwa = PiecewiseAffine(as_points(s), target, trilist)
        if len(pwa.degenerate) > 0:
            warnings.warn('Sample {}: triangles {} are degenerate and are '
                          'ignored.'.format(i, pwa.degenerate.tolist()),
                          DegenerateTriangleWarning)
        transforms.append(pwa)
    return transforms


def warp_textures(images, transforms, pixel_map, prefix='', verbose=False):
    r"""
    Warps every image into the reference frame and collects its texture
    vector, i.e. the colours of the pixels of `pixel_map` in pixel-map order.

    Parameters
    ----------
    images : `list` of ``(height, width, 3)`` `ndarray`
        The images.
    transforms : `list` of :map:`PiecewiseAffine`
        The transform from each image frame to the reference frame.
    pixel_map : :map:`PixelMap`
        The pixel map of the reference frame.
    prefix : `str`, optional
        The prefix of the printed information.
    verbose : `bool`, optional
        Flag that controls information and progress printing.

    Returns
    -------
    textures : ``(n_images, n_pixels, 3)`` `ndarray`
        The texture vectors.
    """
    wrap = partial(print_progress, prefix='{}Warping images'.format(prefix),
                   end_with_newline=not prefix, verbose=verbose)
    textures = np.zeros((len(images), pixel_map.n_pixels, 3))
    for k, (image, pwa) in enumerate(wrap(list(zip(images, transforms)))):
        textures[k] = extract_texture(image, pwa.inverse_transforms,
                                      pixel_map, valid=pwa.valid)
    return textures


def normalize_texture(texture, reference):
    r"""
    Removes the photometric scale and offset of a texture with respect to a
    reference texture.

    The scale is the projection of the texture on the reference,
    ``alpha = <reference, texture>``, and the offset is the mean of every
    colour channel, ``beta``. The normalized texture is
    ``(texture - beta) / alpha``. If the texture is (numerically) orthogonal
    to the reference, a :map:`TextureNormalizationWarning` is raised and only
    the offset is removed.

    Parameters
    ----------
    texture : ``(n_pixels, n_channels)`` `ndarray`
        The texture.
    reference : ``(n_pixels, n_channels)`` `ndarray`
        The reference texture.

    Returns
    -------
    normalized : ``(n_pixels, n_channels)`` `ndarray`
        The normalized texture.
    alpha : `float`
        The photometric scale.
    beta : ``(n_channels,)`` `ndarray`
        The per-channel offset.
    """
    alpha = np.vdot(reference, texture)
    beta = texture.mean(axis=0)
    bound = np.linalg.norm(reference) * np.linalg.norm(texture)
    if not np.isfinite(alpha) or np.abs(alpha) <= 1e-12 * bound:
        warnings.warn('The texture has no projection on the reference '
                      'texture; only its offset is removed.',
                      TextureNormalizationWarning)
        alpha = 1.
    return (texture - beta) / alpha, alpha, beta


def unnormalize_texture(texture, mean_texture, alpha, beta):
    r"""
    Inverse of the normalization of a mean-subtracted texture, i.e.
    ``(texture + mean_texture) * alpha + beta``.
    """
    return (texture + mean_texture) * alpha + beta


def compute_mean_texture(textures, max_iters=100, tol=1e-6, damping=0.75,
                         return_diffs=False, verbose=False):
    r"""
    Computes the mean texture of a set of textures as the fixed point of the
    photometric normalization.

    The reference is initialised with the per-pixel average of the raw
    textures. At every iteration all the textures are normalized against the
    reference and averaged. If the average moved less than `tol` the loop
    stops, otherwise the reference becomes
    ``damping * average + (1 - damping) * reference``.

    The textures are finally normalized against the converged mean texture
    and the mean texture is subtracted from them, which gives the input of
    the texture model.

    Parameters
    ----------
    textures : ``(n_textures, n_pixels, n_channels)`` `ndarray`
        The raw texture vectors.
    max_iters : `int`, optional
        The maximum number of iterations.
    tol : `float`, optional
        The displacement norm under which the mean is considered converged.
    damping : `float`, optional
        The weight of the new average in the update of the reference.
    return_diffs : `bool`, optional
        If ``True``, the displacement norm of every iteration is also
        returned.
    verbose : `bool`, optional
        If ``True``, the displacement of every iteration is printed.

    Returns
    -------
    mean_texture : ``(n_pixels, n_channels)`` `ndarray`
        The mean texture.
    normalized : ``(n_textures, n_pixels, n_channels)`` `ndarray`
        The normalized textures minus the mean texture.
    alphas : ``(n_textures,)`` `ndarray`
        The photometric scale of every texture.
    betas : ``(n_textures, n_channels)`` `ndarray`
        The photometric offset of every texture.
    diffs : `list` of `float`
        The displacement norm per iteration. Returned only if `return_diffs`
        is ``True``.
    """
    textures = np.asarray(textures, dtype=np.float64)
    mean_texture = textures.mean(axis=0)

    diffs = []
    for k in range(max_iters):
        new_mean_texture = np.mean(
            [normalize_texture(t, mean_texture)[0] for t in textures], axis=0)
        diff = np.linalg.norm(new_mean_texture - mean_texture)
        diffs.append(diff)
        if verbose:
            print_dynamic('- Computing mean texture: iter {}, diff = {:.6f}, '
                          'norm = {:.6f}'.format(
                              k, diff, np.linalg.norm(new_mean_texture)))
        if diff < tol:
            break
        mean_texture = (damping * new_mean_texture +
                        (1. - damping) * mean_texture)
    else:
        warnings.warn('The mean texture did not converge in {} iterations '
                      '(last displacement {:.3g} >= {:.3g}).'.format(
                          max_iters, diffs[-1], tol), NonConvergenceWarning)
    if verbose:
        print_dynamic('- Computing mean texture: done in {} '
                      'iterations\n'.format(len(diffs)))

    normalized = np.empty_like(textures)
    alphas = np.empty(textures.shape[0])
    betas = np.empty((textures.shape[0], textures.shape[-1]))
    for k, t in enumerate(textures):
        normalized[k], alphas[k], betas[k] = normalize_texture(t, mean_texture)
    normalized -= mean_texture

    if return_diffs:
        return mean_texture, normalized, alphas, betas, diffs
    return mean_texture, normalized, alphas, betas
