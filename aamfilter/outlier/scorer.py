import numpy as np

from aamfilter.image import compute_rmse


class Scorer(object):
    r"""
    Abstract class for the measure of how badly a sample is explained by an
    appearance model. Given the reconstruction of a sample's texture, a scorer
    returns a non-negative score; larger means worse.
    """
    name = None

    def score(self, snapshot, k, reconstruction):
        r"""
        Scores the sample at position `k` of `snapshot`.

        Parameters
        ----------
        snapshot : :map:`AAMSnapshot`
            The derived state of the active subset.
        k : `int`
            The position of the sample in the active subset.
        reconstruction : ``(n_pixels, 3)`` `ndarray`
            The model reconstruction of the mean-subtracted normalized
            texture of the sample.

        Returns
        -------
        score : `float`
            The score of the sample.
        """
        raise NotImplementedError()

    def __str__(self):
        return self.name


class TextureErrorScorer(Scorer):
    r"""
    Scores a sample with the L2 norm of the difference between its
    mean-subtracted normalized texture and the reconstruction of it.
    """
    name = 'texture'

    def score(self, snapshot, k, reconstruction):
        return np.linalg.norm(snapshot.normalized[k] - reconstruction)


class FittingErrorScorer(Scorer):
    r"""
    Scores a sample with the root mean squared colour error in its own image
    frame. The reconstruction is unnormalized with the photometric parameters
    of the sample, warped back onto the sample's mesh and compared with the
    sample's image over the pixels the mesh covers.
    """
    name = 'fitting'

    def score(self, snapshot, k, reconstruction):
        fitted = snapshot.fit_image(k, reconstruction)
        return compute_rmse(fitted, snapshot.images[k], snapshot.pixel_maps[k])
