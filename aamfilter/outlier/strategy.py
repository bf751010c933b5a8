from concurrent.futures import ThreadPoolExecutor, as_completed
import numpy as np

from aamfilter.aam import AppearanceModel
from aamfilter.math import recover_low_rank
from aamfilter.visualize import print_progress


class Strategy(object):
    r"""
    Abstract class for the way the appearance models that score the samples
    of an active subset are built.

    Parameters
    ----------
    max_shape_components : `int` or `float` or ``None``, optional
        The number of shape components to keep.
    max_texture_components : `int` or `float` or ``None``, optional
        The number of texture components to keep.
    """
    name = None

    def __init__(self, max_shape_components=0.98, max_texture_components=0.98):
        self.max_shape_components = max_shape_components
        self.max_texture_components = max_texture_components

    def _build_model(self, shapes, textures):
        return AppearanceModel(
            shapes, textures,
            max_shape_components=self.max_shape_components,
            max_texture_components=self.max_texture_components)

    def evaluate(self, snapshot, scorer, n_workers=None, verbose=False):
        r"""
        Reconstructs and scores every sample of a snapshot.

        Parameters
        ----------
        snapshot : :map:`AAMSnapshot`
            The derived state of the active subset.
        scorer : :map:`Scorer`
            The score of a reconstruction.
        n_workers : `int` or ``None``, optional
            The maximum number of worker threads, where applicable.
        verbose : `bool`, optional
            If ``True``, the progress is printed.

        Returns
        -------
        scores : ``(n_samples,)`` `ndarray`
            The score of every sample, in subset order.
        reconstructions : ``(n_samples, n_pixels, 3)`` `ndarray`
            The reconstruction of the mean-subtracted normalized texture of
            every sample.
        """
        raise NotImplementedError()

    def __str__(self):
        return self.name


class SingleModelStrategy(Strategy):
    r"""
    Builds one appearance model over the whole active subset and scores every
    sample against it.
    """
    name = 'single'

    def _training_data(self, snapshot, verbose=False):
        return snapshot.shapes, snapshot.normalized

    def evaluate(self, snapshot, scorer, n_workers=None, verbose=False):
        shapes, textures = self._training_data(snapshot, verbose=verbose)
        model = self._build_model(shapes, textures)
        if verbose:
            print(model)

        scores = np.empty(snapshot.n_samples)
        reconstructions = np.empty(snapshot.normalized.shape)
        for k in print_progress(range(snapshot.n_samples),
                                prefix='  - Scoring samples',
                                verbose=verbose):
            reconstructions[k] = model.reconstruct_texture(
                snapshot.normalized[k])
            scores[k] = scorer.score(snapshot, k, reconstructions[k])
        return scores, reconstructions


class RobustPCAStrategy(SingleModelStrategy):
    r"""
    Builds one appearance model over the whole active subset from the
    low-rank components of the shape and texture data matrices, recovered by
    robust PCA, so that the anomalies of individual samples do not leak into
    the model. If a recovery fails, the raw data matrix is used instead.

    Parameters
    ----------
    max_shape_components : `int` or `float` or ``None``, optional
        The number of shape components to keep.
    max_texture_components : `int` or `float` or ``None``, optional
        The number of texture components to keep.
    rpca_kwargs : `dict` or ``None``, optional
        Passed to :map:`robust_pca`.
    """
    name = 'rpca'

    def __init__(self, max_shape_components=0.98, max_texture_components=0.98,
                 rpca_kwargs=None):
        super(RobustPCAStrategy, self).__init__(
            max_shape_components=max_shape_components,
            max_texture_components=max_texture_components)
        self.rpca_kwargs = rpca_kwargs or {}

    def _training_data(self, snapshot, verbose=False):
        shapes, _ = recover_low_rank(snapshot.shapes, name='shape',
                                     verbose=verbose, **self.rpca_kwargs)
        textures, _ = recover_low_rank(
            snapshot.normalized.reshape(snapshot.n_samples, -1),
            name='texture', verbose=verbose, **self.rpca_kwargs)
        return shapes, textures


class LeaveOneOutStrategy(Strategy):
    r"""
    Scores every sample of the active subset against an appearance model
    built from all the other active samples. The per-sample models are built
    in parallel on a thread pool; every worker fills its own slot of the
    output arrays.

    A subset of a single sample has no other samples, so that sample is
    scored against its own model.
    """
    name = 'loo'

    def _evaluate_sample(self, snapshot, scorer, k):
        n_samples = snapshot.n_samples
        others = np.arange(n_samples)
        if n_samples > 1:
            others = np.delete(others, k)
        model = self._build_model(snapshot.shapes[others],
                                  snapshot.normalized[others])
        reconstruction = model.reconstruct_texture(snapshot.normalized[k])
        return k, scorer.score(snapshot, k, reconstruction), reconstruction

    def evaluate(self, snapshot, scorer, n_workers=None, verbose=False):
        scores = np.empty(snapshot.n_samples)
        reconstructions = np.empty(snapshot.normalized.shape)
        with ThreadPoolExecutor(max_workers=n_workers) as executor:
            futures = [executor.submit(self._evaluate_sample, snapshot,
                                       scorer, k)
                       for k in range(snapshot.n_samples)]
            for future in print_progress(as_completed(futures),
                                         prefix='  - Leave-one-out models',
                                         n_items=len(futures),
                                         verbose=verbose):
                k, scores[k], reconstructions[k] = future.result()
        return scores, reconstructions
