import numpy as np
from menpo.model import PCAVectorModel

from aamfilter import checks


class PCAModel(object):
    r"""
    A linear model built with Principal Component Analysis on a set of
    vectorized samples. The decomposition is performed by
    `menpo.model.PCAVectorModel`, which is then trimmed to the requested
    number of components.

    Only components with non-negligible variance are kept. Therefore, if all
    the samples are identical, the model has no components and every
    reconstruction is the mean.

    Parameters
    ----------
    samples : ``(n_samples, n_features)`` `ndarray`
        The data matrix, one sample per row.
    max_n_components : `int` or `float` or ``None``, optional
        If `int`, the maximum number of components to keep. If `float` in
        ``(0, 1]``, the minimum number of leading components whose cumulative
        variance ratio reaches that fraction is kept. If ``None``, all the
        components are kept.
    eps : `float`, optional
        A component is negligible if its variance is below `eps` times the
        mean squared norm of the samples.
    """
    def __init__(self, samples, max_n_components=None, eps=1e-20):
        max_n_components = checks.check_max_components(
            max_n_components, var_name='max_n_components')
        # menpo centres the data matrix in place, hence the copy
        samples = np.array(samples, dtype=np.float64)
        if samples.ndim != 2 or samples.shape[0] == 0:
            raise ValueError('samples must be a non-empty (n_samples, '
                             'n_features) array')
        self.n_samples, self.n_features = samples.shape
        scale = np.sum(samples ** 2) / self.n_samples

        self.model = PCAVectorModel(samples)
        self.mean = self.model.mean()

        eigenvalues = self.model.eigenvalues
        eigenvalues = eigenvalues[eigenvalues > eps * scale]
        self._total_variance = eigenvalues.sum()
        self.n_components = _n_components_to_keep(eigenvalues,
                                                   max_n_components)
        if 0 < self.n_components < self.model.n_components:
            self.model.trim_components(self.n_components)

    @property
    def components(self):
        r"""
        The kept principal components, one per row.

        :type: ``(n_components, n_features)`` `ndarray`
        """
        return self.model.components[:self.n_components]

    @property
    def eigenvalues(self):
        r"""
        The variance of every kept component.

        :type: ``(n_components,)`` `ndarray`
        """
        return self.model.eigenvalues[:self.n_components]

    def variance_ratio(self):
        r"""
        The fraction of the total variance explained by the kept components.
        A model without variance explains all of it.

        :type: `float`
        """
        if self._total_variance == 0:
            return 1.
        return self.eigenvalues.sum() / self._total_variance

    def project(self, vector):
        r"""
        Projects a vector onto the model.

        Parameters
        ----------
        vector : ``(n_features,)`` `ndarray`
            The vector to project.

        Returns
        -------
        weights : ``(n_components,)`` `ndarray`
            The coefficients of the projection.
        """
        if self.n_components == 0:
            return np.zeros(0)
        return self.model.project(np.ravel(vector))

    def instance(self, weights):
        r"""
        Creates the vector that corresponds to a set of coefficients.

        Parameters
        ----------
        weights : ``(n_components,)`` `ndarray`
            The coefficients.

        Returns
        -------
        vector : ``(n_features,)`` `ndarray`
            ``mean + weights * components``.
        """
        if self.n_components == 0:
            return self.mean.copy()
        return self.model.instance(np.asarray(weights, dtype=np.float64))

    def reconstruct(self, vector):
        r"""
        Projects a vector onto the model and rebuilds it from the coefficients.
        """
        return self.instance(self.project(vector))

    def __str__(self):
        return ('PCA Model\n'
                ' - # samples:            {}\n'
                ' - # features:           {}\n'
                ' - # components:         {}\n'
                ' - variance retained:    {:.2%}\n'.format(
                    self.n_samples, self.n_features, self.n_components,
                    self.variance_ratio()))


def _n_components_to_keep(eigenvalues, max_n_components):
    n_available = eigenvalues.shape[0]
    if max_n_components is None or n_available == 0:
        return n_available
    if isinstance(max_n_components, int):
        return min(max_n_components, n_available)
    ratio = np.cumsum(eigenvalues) / eigenvalues.sum()
    n = np.searchsorted(ratio, max_n_components, side='left') + 1
    return int(min(n, n_available))
