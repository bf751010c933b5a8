import numpy as np

from aamfilter import checks
from aamfilter.aam import AAMSnapshot
from aamfilter.base import EmptySubsetError

from .result import DetectionPass, DetectionResult
from .scorer import Scorer, TextureErrorScorer, FittingErrorScorer
from .strategy import (Strategy, LeaveOneOutStrategy, RobustPCAStrategy,
                       SingleModelStrategy)


_DEFAULT_CONFIG = {
    'strategy': 'loo',
    'metric': 'texture',
    'reference_size': 250,
    'max_shape_components': 0.98,
    'max_texture_components': 0.98,
    'n_std': 2,
    'inspection_n_std': 3,
    'max_shape_iters': 100,
    'shape_tol': 1e-3,
    'max_texture_iters': 100,
    'texture_tol': 1e-6,
    'texture_damping': 0.75,
    'n_workers': None,
    'score_atol': 1e-8,
    'verbose': False,
}


def check_strategy(strategy, max_shape_components=0.98,
                   max_texture_components=0.98):
    r"""
    Checks the outlier strategy. It can be ``'loo'`` (leave-one-out),
    ``'rpca'`` (robust PCA) or a :map:`Strategy` instance, which is returned
    as is.
    """
    if isinstance(strategy, Strategy):
        return strategy
    if strategy == 'loo':
        return LeaveOneOutStrategy(
            max_shape_components=max_shape_components,
            max_texture_components=max_texture_components)
    if strategy == 'rpca':
        return RobustPCAStrategy(
            max_shape_components=max_shape_components,
            max_texture_components=max_texture_components)
    raise ValueError("strategy must be 'loo', 'rpca' or a Strategy instance, "
                     "not {!r}".format(strategy))


def check_metric(metric):
    r"""
    Checks the outlier score. It can be ``'texture'`` (texture
    reconstruction error), ``'fitting'`` (image fitting error) or a
    :map:`Scorer` instance, which is returned as is.
    """
    if isinstance(metric, Scorer):
        return metric
    if metric == 'texture':
        return TextureErrorScorer()
    if metric == 'fitting':
        return FittingErrorScorer()
    raise ValueError("metric must be 'texture', 'fitting' or a Scorer "
                     "instance, not {!r}".format(metric))


def find_outliers(scores, n_std, atol=1e-8):
    r"""
    Flags the scores that are at least `n_std` standard deviations above the
    mean score. If the standard deviation is not larger than `atol`, nothing
    is flagged.

    Parameters
    ----------
    scores : ``(n_samples,)`` `ndarray`
        The scores.
    n_std : `float`
        The number of standard deviations.
    atol : `float`, optional
        The standard deviation under which the scores are considered equal.

    Returns
    -------
    mask : ``(n_samples,)`` `ndarray` of `bool`
        ``True`` for the outliers.
    """
    scores = np.asarray(scores, dtype=np.float64)
    std = scores.std()
    if std <= atol:
        return np.zeros(scores.shape[0], dtype=bool)
    return scores >= scores.mean() + n_std * std


class AAMFilter(object):
    r"""
    Class for finding the samples of a dataset of annotated images that are
    inconsistent with the rest of it, e.g. because of wrong landmarks or
    corrupted images.

    An appearance model of shape and texture is built over an active subset
    of samples and every sample is scored by how badly the model explains it.
    Samples whose score is at least `n_std` standard deviations above the
    mean score are flagged as outliers. :meth:`find_inliers` removes the
    outliers and repeats until a pass flags nothing.

    Parameters
    ----------
    images : `list` of ``(height, width, 3)`` `ndarray`
        The RGB images with values in ``[0, 1]``. Grey images are replicated
        to 3 channels.
    shapes : `list` of ``(2 * n_points,)`` or ``(n_points, 2)`` `ndarray`
        The landmarks of every image, as ``(x, y)`` points.
    trilist : ``(n_triangles, 3)`` `ndarray`
        The 0-based triangulation of the landmarks.
    strategy : ``{'loo', 'rpca'}`` or :map:`Strategy`, optional
        How the scoring models are built: leave-one-out, or a single model on
        the robust PCA recovery of the data.
    metric : ``{'texture', 'fitting'}`` or :map:`Scorer`, optional
        The score of a sample: the texture reconstruction error or the image
        fitting error.
    reference_size : `int`, optional
        The side of the square reference frame of the textures.
    max_shape_components : `int` or `float` or ``None``, optional
        The number of shape components to keep. If `float`, the fraction of
        variance to retain.
    max_texture_components : `int` or `float` or ``None``, optional
        The number of texture components to keep. If `float`, the fraction of
        variance to retain.
    n_std : `float`, optional
        The outlier threshold of the detection passes, in standard
        deviations above the mean score.
    inspection_n_std : `float`, optional
        The outlier threshold of :meth:`inspect`.
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
    n_workers : `int` or ``None``, optional
        The maximum number of threads of the leave-one-out strategy. If
        ``None``, the default of `concurrent.futures.ThreadPoolExecutor`.
    score_atol : `float`, optional
        If the standard deviation of the scores of a pass is not larger than
        this, nothing is flagged.
    verbose : `bool`, optional
        If ``True``, the progress is printed.
    """
    def __init__(self, images, shapes, trilist, **kwargs):
        self.shapes = checks.check_shapes(shapes)
        self.images = checks.check_images(images, self.n_samples)
        self._generation = -1
        self._snapshot = None
        config = dict(_DEFAULT_CONFIG)
        config['trilist'] = trilist
        self._configure(config, kwargs)

    @property
    def n_samples(self):
        r"""
        The number of samples of the dataset.

        :type: `int`
        """
        return self.shapes.shape[0]

    @property
    def n_points(self):
        r"""
        The number of landmarks of every shape.

        :type: `int`
        """
        return self.shapes.shape[1] // 2

    @property
    def generation(self):
        r"""
        The number of times the filter was reconfigured.

        :type: `int`
        """
        return self._generation

    @property
    def config(self):
        r"""
        A copy of the current configuration.

        :type: `dict`
        """
        return dict(self._config)

    def _configure(self, config, kwargs):
        for key in kwargs:
            if key not in config:
                raise TypeError('Unknown configuration option: {}'.format(key))
        config = dict(config, **kwargs)

        # Validate everything before anything is replaced
        trilist = checks.check_trilist(config['trilist'], self.n_points)
        max_shape_components = checks.check_max_components(
            config['max_shape_components'], 'max_shape_components')
        max_texture_components = checks.check_max_components(
            config['max_texture_components'], 'max_texture_components')
        strategy = check_strategy(config['strategy'], max_shape_components,
                                  max_texture_components)
        metric = check_metric(config['metric'])
        reference_size = int(checks.check_positive(config['reference_size'],
                                                   'reference_size'))
        n_std = checks.check_positive(config['n_std'], 'n_std',
                                      allow_zero=True)
        inspection_n_std = checks.check_positive(
            config['inspection_n_std'], 'inspection_n_std', allow_zero=True)
        max_shape_iters = int(checks.check_positive(config['max_shape_iters'],
                                                    'max_shape_iters'))
        shape_tol = checks.check_positive(config['shape_tol'], 'shape_tol')
        max_texture_iters = int(checks.check_positive(
            config['max_texture_iters'], 'max_texture_iters'))
        texture_tol = checks.check_positive(config['texture_tol'],
                                            'texture_tol')
        texture_damping = checks.check_damping(config['texture_damping'])
        n_workers = checks.check_n_workers(config['n_workers'])
        score_atol = checks.check_positive(config['score_atol'], 'score_atol',
                                           allow_zero=True)

        self._config = config
        self.trilist = trilist
        self.strategy = strategy
        self.metric = metric
        self.reference_size = reference_size
        self.max_shape_components = max_shape_components
        self.max_texture_components = max_texture_components
        self.n_std = n_std
        self.inspection_n_std = inspection_n_std
        self.max_shape_iters = max_shape_iters
        self.shape_tol = shape_tol
        self.max_texture_iters = max_texture_iters
        self.texture_tol = texture_tol
        self.texture_damping = texture_damping
        self.n_workers = n_workers
        self.score_atol = score_atol
        self.verbose = bool(config['verbose'])
        self._generation += 1
        self._snapshot = None

    def reconfigure(self, **kwargs):
        r"""
        Replaces some of the configuration options. All the options are
        validated before any of them is replaced, and every snapshot built
        with the previous configuration is discarded.

        Parameters
        ----------
        kwargs : `dict`
            The options to replace (see :map:`AAMFilter`).
        """
        self._configure(self._config, kwargs)

    def snapshot(self, indices=None):
        r"""
        Returns the derived state of the appearance model over an active
        subset. Only the most recent snapshot is kept; it is reused while
        the subset and the configuration stay the same.

        Parameters
        ----------
        indices : `list` of `int` or ``None``, optional
            The active sample indices. If ``None``, all the samples.

        Returns
        -------
        snapshot : :map:`AAMSnapshot`
            The snapshot.
        """
        indices = tuple(checks.check_indices(indices, self.n_samples))
        cached = self._snapshot
        if (cached is None or cached.indices != indices or
                cached.generation != self._generation):
            self._snapshot = AAMSnapshot(
                self.images, self.shapes, self.trilist, indices,
                generation=self._generation,
                reference_size=self.reference_size,
                max_shape_iters=self.max_shape_iters,
                shape_tol=self.shape_tol,
                max_texture_iters=self.max_texture_iters,
                texture_tol=self.texture_tol,
                texture_damping=self.texture_damping,
                verbose=self.verbose)
        return self._snapshot

    def _run_pass(self, indices, strategy, n_std, iteration=0):
        snapshot = self.snapshot(indices)
        scores, reconstructions = strategy.evaluate(
            snapshot, self.metric, n_workers=self.n_workers,
            verbose=self.verbose)
        mask = find_outliers(scores, n_std, atol=self.score_atol)
        outliers = [i for i, flagged in zip(snapshot.indices, mask)
                    if flagged]
        detection_pass = DetectionPass(
            snapshot, scores, reconstructions, n_std, outliers,
            strategy=str(strategy), metric=str(self.metric),
            iteration=iteration)
        if self.verbose:
            print(detection_pass)
        return detection_pass

    def detect(self, indices=None):
        r"""
        Performs a single detection pass with the configured strategy and
        threshold. The active subset is not changed.

        Parameters
        ----------
        indices : `list` of `int` or ``None``, optional
            The active sample indices. If ``None``, all the samples.

        Returns
        -------
        detection_pass : :map:`DetectionPass`
            The scores and outliers of the pass.
        """
        return self._run_pass(indices, self.strategy, self.n_std)

    def find_inliers(self, indices=None):
        r"""
        Repeats detection passes, removing the flagged samples from the active
        subset after each one, until a pass flags nothing.

        Parameters
        ----------
        indices : `list` of `int` or ``None``, optional
            The initial active sample indices. If ``None``, all the samples.

        Returns
        -------
        result : :map:`DetectionResult`
            All the passes, the final inliers and the removed outliers.

        Raises
        ------
        EmptySubsetError
            A pass flagged every remaining sample.
        """
        indices = checks.check_indices(indices, self.n_samples)
        passes = []
        while True:
            detection_pass = self._run_pass(indices, self.strategy,
                                            self.n_std,
                                            iteration=len(passes))
            if len(detection_pass.inliers) == 0:
                raise EmptySubsetError(
                    'Pass {} flagged all the {} remaining samples as '
                    'outliers'.format(len(passes), len(indices)),
                    iteration=len(passes), indices=list(indices))
            passes.append(detection_pass)
            if detection_pass.n_outliers == 0:
                break
            indices = detection_pass.inliers
        result = DetectionResult(passes)
        if self.verbose:
            print(result)
        return result

    def inspect(self, indices=None):
        r"""
        Scores every active sample against a single model built over the
        whole active subset and flags the samples above the inspection
        threshold. The active subset is not changed.

        Parameters
        ----------
        indices : `list` of `int` or ``None``, optional
            The active sample indices. If ``None``, all the samples.

        Returns
        -------
        detection_pass : :map:`DetectionPass`
            The scores and outliers of the inspection.
        """
        strategy = SingleModelStrategy(
            max_shape_components=self.max_shape_components,
            max_texture_components=self.max_texture_components)
        return self._run_pass(indices, strategy, self.inspection_n_std)

    def __str__(self):
        return ('AAM outlier filter\n'
                ' - # samples:            {}\n'
                ' - # points:             {}\n'
                ' - # triangles:          {}\n'
                ' - strategy:             {}\n'
                ' - metric:               {}\n'
                ' - threshold:            {:g} std\n'.format(
                    self.n_samples, self.n_points, len(self.trilist),
                    self.strategy, self.metric, self.n_std))
