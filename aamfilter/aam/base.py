import numpy as np

from aamfilter.builder import (compute_mean_shape, compute_transforms,
                               warp_textures, compute_mean_texture,
                               unnormalize_texture)
from aamfilter.image import (rasterize, fill_image, warp_image, draw_shape)
from aamfilter.model import PCAModel


def _frozen(array):
    array = np.array(array, dtype=np.float64)
    array.flags.writeable = False
    return array


class AAMSnapshot(object):
    r"""
    The derived state of an appearance model for one active subset of
    samples: the mean shape, the pixel map of the reference frame, the per
    sample piecewise affine transforms and pixel maps, the warped textures and
    their photometric normalization against the mean texture.

    A snapshot is built once and never modified. Every change of the active
    subset, or of the configuration, results in a new snapshot.

    Parameters
    ----------
    images : `list` of ``(height, width, 3)`` `ndarray`
        All the images of the dataset.
    shapes : ``(n_samples, 2 * n_points)`` `ndarray`
        All the shapes of the dataset.
    trilist : ``(n_triangles, 3)`` `ndarray`
        The triangulation.
    indices : `tuple` of `int`
        The sorted indices of the active samples.
    generation : `int`, optional
        The configuration generation the snapshot was built for.
    reference_size : `int`, optional
        The side of the square reference frame.
    max_shape_iters : `int`, optional
        The maximum number of mean shape iterations.
    shape_tol : `float`, optional
        The convergence tolerance of the mean shape.
    max_texture_iters : `int`, optional
        The maximum number of mean texture iterations.
    texture_tol : `float`, optional
        The convergence tolerance of the mean texture.
    texture_damping : `float`, optional
        The weight of the new average in the mean texture update.
    verbose : `bool`, optional
        If ``True``, the progress of the build is printed.
    """
    def __init__(self, images, shapes, trilist, indices, generation=0,
                 reference_size=250, max_shape_iters=100, shape_tol=1e-3,
                 max_texture_iters=100, texture_tol=1e-6,
                 texture_damping=0.75, verbose=False):
        self.indices = tuple(int(i) for i in indices)
        self.generation = generation
        self.trilist = trilist
        self.reference_size = reference_size
        self.images = [images[i] for i in self.indices]
        self.shapes = _frozen(np.asarray(shapes)[list(self.indices)])
        self._positions = dict((i, k) for k, i in enumerate(self.indices))

        if verbose:
            print('- Building snapshot {} over {} samples'.format(
                generation, self.n_samples))
        self.mean_shape = _frozen(compute_mean_shape(
            self.shapes, reference_size=reference_size,
            max_iters=max_shape_iters, tol=shape_tol, verbose=verbose))
        self.reference_frame = rasterize(self.mean_shape, trilist,
                                         (reference_size, reference_size))
        self.transforms = compute_transforms(self.shapes, self.mean_shape,
                                             trilist, indices=self.indices)
        # degenerate triangles of a sample cover none of its pixels
        self.pixel_maps = [rasterize(s, trilist, image.shape, valid=pwa.valid)
                           for s, image, pwa in zip(self.shapes, self.images,
                                                    self.transforms)]
        self.textures = _frozen(warp_textures(
            self.images, self.transforms, self.reference_frame,
            prefix='  - ', verbose=verbose))

        mean_texture, normalized, alphas, betas = compute_mean_texture(
            self.textures, max_iters=max_texture_iters, tol=texture_tol,
            damping=texture_damping, verbose=verbose)
        self.mean_texture = _frozen(mean_texture)
        self.normalized = _frozen(normalized)
        self.alphas = _frozen(alphas)
        self.betas = _frozen(betas)

    @property
    def n_samples(self):
        r"""
        The number of active samples.

        :type: `int`
        """
        return len(self.indices)

    @property
    def n_pixels(self):
        r"""
        The number of pixels of the reference frame covered by the mesh.

        :type: `int`
        """
        return self.reference_frame.n_pixels

    def position(self, index):
        r"""
        The position of a sample index within the active subset.

        Raises
        ------
        KeyError
            If the sample is not active in this snapshot.
        """
        return self._positions[index]

    def unnormalize(self, k, texture):
        r"""
        Maps a mean-subtracted normalized texture back to the photometry of
        the sample at position `k`.
        """
        return unnormalize_texture(texture, self.mean_texture,
                                   self.alphas[k], self.betas[k])

    def texture_image(self, texture):
        r"""
        Renders a raw texture in the reference frame.
        """
        return fill_image(texture, self.reference_frame)

    def fit_image(self, k, texture):
        r"""
        Renders a mean-subtracted normalized texture in the frame of the
        sample at position `k`. The texture is unnormalized with the
        photometric parameters of the sample, filled in the reference frame
        and warped onto the pixels covered by the sample's mesh.

        Parameters
        ----------
        k : `int`
            The position of the sample in the active subset.
        texture : ``(n_pixels, 3)`` `ndarray`
            The mean-subtracted normalized texture.

        Returns
        -------
        fitted : ``(height, width, 3)`` `ndarray`
            The image of the texture in the sample frame, black outside the
            mesh.
        """
        canonical = self.texture_image(self.unnormalize(k, texture))
        pwa = self.transforms[k]
        return warp_image(canonical, pwa.transforms, self.pixel_maps[k],
                          valid=pwa.valid)

    def annotated_image(self, k):
        r"""
        The image of the sample at position `k` with its mesh and landmarks
        drawn on it.
        """
        return draw_shape(self.images[k], self.shapes[k], trilist=self.trilist)

    def __str__(self):
        return ('AAM snapshot (generation {})\n'
                ' - # samples:            {}\n'
                ' - # points:             {}\n'
                ' - # triangles:          {}\n'
                ' - # reference pixels:   {}\n'.format(
                    self.generation, self.n_samples,
                    self.mean_shape.shape[0] // 2, len(self.trilist),
                    self.n_pixels))


class AppearanceModel(object):
    r"""
    A pair of linear models, one of shape and one of texture, built from the
    same samples.

    Parameters
    ----------
    shapes : ``(n_samples, 2 * n_points)`` `ndarray`
        The shape vectors.
    textures : ``(n_samples, n_pixels, 3)`` `ndarray`
        The mean-subtracted normalized textures.
    max_shape_components : `int` or `float` or ``None``, optional
        The number of shape components to keep (see :map:`PCAModel`).
    max_texture_components : `int` or `float` or ``None``, optional
        The number of texture components to keep (see :map:`PCAModel`).
    """
    def __init__(self, shapes, textures, max_shape_components=0.98,
                 max_texture_components=0.98):
        textures = np.asarray(textures)
        self.shape_model = PCAModel(shapes, max_shape_components)
        self.texture_model = PCAModel(
            textures.reshape(textures.shape[0], -1), max_texture_components)

    def reconstruct_texture(self, texture):
        r"""
        Projects a mean-subtracted normalized texture onto the texture model
        and rebuilds it.

        Parameters
        ----------
        texture : ``(n_pixels, 3)`` `ndarray`
            The texture.

        Returns
        -------
        reconstruction : ``(n_pixels, 3)`` `ndarray`
            The reconstructed texture.
        """
        texture = np.asarray(texture)
        return self.texture_model.reconstruct(texture).reshape(texture.shape)

    def __str__(self):
        return 'Shape model\n{}Texture model\n{}'.format(
            str(self.shape_model).split('\n', 1)[1],
            str(self.texture_model).split('\n', 1)[1])
