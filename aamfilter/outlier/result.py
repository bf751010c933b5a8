import numpy as np


class DetectionPass(object):
    r"""
    Class for the result of one outlier detection pass over an active subset
    of samples. It holds the score of every active sample, the threshold and
    the partition of the subset into inliers and outliers, as well as the
    snapshot and reconstructions needed to render the diagnostic images.

    Parameters
    ----------
    snapshot : :map:`AAMSnapshot`
        The derived state the pass was computed on.
    scores : ``(n_samples,)`` `ndarray`
        The score of every active sample, in subset order.
    reconstructions : ``(n_samples, n_pixels, 3)`` `ndarray`
        The reconstruction of the mean-subtracted normalized texture of every
        active sample.
    n_std : `float`
        The number of standard deviations above the mean score from which a
        sample is an outlier.
    outliers : `list` of `int`
        The indices of the flagged samples.
    strategy : `str`
        The name of the strategy that built the models.
    metric : `str`
        The name of the scorer.
    iteration : `int`, optional
        The number of the pass in its detection loop.
    """
    def __init__(self, snapshot, scores, reconstructions, n_std, outliers,
                 strategy, metric, iteration=0):
        self.snapshot = snapshot
        self.scores = np.asarray(scores)
        self.reconstructions = reconstructions
        self.n_std = n_std
        self.mean = self.scores.mean()
        self.std = self.scores.std()
        self.threshold = self.mean + n_std * self.std
        self.outliers = sorted(outliers)
        self._outlier_set = set(self.outliers)
        self.inliers = [i for i in snapshot.indices
                        if i not in self._outlier_set]
        self.strategy = strategy
        self.metric = metric
        self.iteration = iteration

    @property
    def indices(self):
        r"""
        The indices of the active samples of the pass.

        :type: `tuple` of `int`
        """
        return self.snapshot.indices

    @property
    def n_outliers(self):
        r"""
        The number of flagged samples.

        :type: `int`
        """
        return len(self.outliers)

    def score(self, index):
        r"""
        The score of a sample.
        """
        return self.scores[self.snapshot.position(index)]

    def is_outlier(self, index):
        r"""
        Whether a sample was flagged by the pass. Samples that are not active
        in the pass are not outliers of it.

        :type: `bool`
        """
        return index in self._outlier_set

    def unnormalized_reconstruction(self, index):
        r"""
        The reconstruction of the texture of a sample in the photometry of
        the sample.

        Parameters
        ----------
        index : `int`
            The sample index.

        Returns
        -------
        texture : ``(n_pixels, 3)`` `ndarray`
            The unnormalized reconstruction.
        """
        k = self.snapshot.position(index)
        return self.snapshot.unnormalize(k, self.reconstructions[k])

    def annotated_image(self, index):
        r"""
        The image of a sample with its mesh and landmarks drawn on it.
        """
        return self.snapshot.annotated_image(self.snapshot.position(index))

    def fitted_texture_image(self, index):
        r"""
        The unnormalized reconstruction of a sample rendered in the reference
        frame.
        """
        return self.snapshot.texture_image(
            self.unnormalized_reconstruction(index))

    def fitted_image(self, index):
        r"""
        The reconstruction of a sample warped back into the sample's own image
        frame.
        """
        k = self.snapshot.position(index)
        return self.snapshot.fit_image(k, self.reconstructions[k])

    def warped_image(self, index):
        r"""
        The true texture of a sample rendered in the reference frame.
        """
        k = self.snapshot.position(index)
        return self.snapshot.texture_image(self.snapshot.textures[k])

    def __str__(self):
        out = ('Pass {} ({}, {} error) over {} samples\n'
               ' - score mean:           {:.6g}\n'
               ' - score std:            {:.6g}\n'
               ' - threshold ({:g} std):  {:.6g}\n'
               ' - outliers:             {}'.format(
                   self.iteration, self.strategy, self.metric,
                   len(self.indices), self.mean, self.std, self.n_std,
                   self.threshold, self.outliers))
        return out


class DetectionResult(object):
    r"""
    Class for the result of the iterative outlier detection: the passes that
    were performed until one of them flagged no sample.

    Parameters
    ----------
    passes : `list` of :map:`DetectionPass`
        The passes, in order. The last one flagged no sample.
    """
    def __init__(self, passes):
        self.passes = passes

    @property
    def n_passes(self):
        r"""
        The number of passes.

        :type: `int`
        """
        return len(self.passes)

    @property
    def final_pass(self):
        r"""
        The last pass.

        :type: :map:`DetectionPass`
        """
        return self.passes[-1]

    @property
    def inliers(self):
        r"""
        The indices of the samples that survived every pass.

        :type: `list` of `int`
        """
        return list(self.final_pass.inliers)

    @property
    def outliers(self):
        r"""
        The indices of the samples removed by the passes, sorted.

        :type: `list` of `int`
        """
        return sorted(i for p in self.passes for i in p.outliers)

    def __str__(self):
        out = 'Outlier detection converged in {} passes.'.format(
            self.n_passes)
        out += '\nInliers ({}): {}'.format(len(self.inliers), self.inliers)
        out += '\nOutliers ({}): {}'.format(len(self.outliers), self.outliers)
        return out
