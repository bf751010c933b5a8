import numpy as np
from numpy.testing import assert_allclose, assert_array_equal
import pytest

from aamfilter import AAMFilter, EmptySubsetError, ShapeMismatchError
from aamfilter.transform import DegenerateTriangleWarning
from aamfilter.outlier import (find_outliers, check_strategy, check_metric,
                               LeaveOneOutStrategy, RobustPCAStrategy,
                               TextureErrorScorer, FittingErrorScorer)
import aamfilter.outlier.detector as detector


@pytest.fixture
def corrupted_dataset(outlier_dataset):
    r"""
    The inliers of `outlier_dataset` and an 11th sample whose image is noise.
    """
    images, shapes = outlier_dataset
    images[10] = np.random.RandomState(0).rand(*images[0].shape)
    shapes[10] = shapes[0].copy()
    return images, shapes


def test_find_outliers():
    scores = np.array([1., 1.1, 0.9, 1., 5.])
    assert_array_equal(find_outliers(scores, 1.5),
                       [False, False, False, False, True])
    assert not np.any(find_outliers(np.full(6, 0.3), 2))
    assert not np.any(find_outliers([1., 1. + 1e-10], 0))


def test_check_strategy_and_metric():
    assert isinstance(check_strategy('loo'), LeaveOneOutStrategy)
    assert isinstance(check_strategy('rpca', 0.9, 5), RobustPCAStrategy)
    assert check_strategy('rpca', 0.9, 5).max_texture_components == 5
    assert isinstance(check_metric('texture'), TextureErrorScorer)
    assert isinstance(check_metric('fitting'), FittingErrorScorer)
    scorer = FittingErrorScorer()
    assert check_metric(scorer) is scorer
    with pytest.raises(ValueError):
        check_strategy('pca')
    with pytest.raises(ValueError):
        check_metric('rmse')


def test_shuffled_landmarks_are_outliers(outlier_dataset, trilist):
    images, shapes = outlier_dataset
    aam_filter = AAMFilter(images, shapes, trilist, n_workers=4)
    result = aam_filter.find_inliers()

    assert result.outliers == [10]
    assert result.inliers == list(range(10))
    assert result.n_passes == 2
    first = result.passes[0]
    assert first.outliers == [10]
    assert first.score(10) >= first.threshold
    assert first.is_outlier(10)
    assert not first.is_outlier(3)
    assert not result.final_pass.is_outlier(10)
    assert first.n_std == 2
    assert result.final_pass.n_outliers == 0


def test_find_inliers_on_subset(outlier_dataset, trilist):
    images, shapes = outlier_dataset
    aam_filter = AAMFilter(images, shapes, trilist, reference_size=100)
    result = aam_filter.find_inliers(indices=range(10))
    assert result.n_passes == 1
    assert result.inliers == list(range(10))
    assert result.outliers == []


def test_identical_samples_are_inliers(identical_dataset, trilist):
    images, shapes = identical_dataset
    aam_filter = AAMFilter(images, shapes, trilist)
    result = aam_filter.find_inliers()
    assert result.n_passes == 1
    assert result.inliers == list(range(5))
    assert_allclose(result.final_pass.scores, 0, atol=1e-8)


@pytest.mark.parametrize('strategy', ['loo', 'rpca'])
@pytest.mark.parametrize('metric', ['texture', 'fitting'])
def test_identical_samples_all_settings(identical_dataset, trilist, strategy,
                                        metric):
    images, shapes = identical_dataset
    aam_filter = AAMFilter(images, shapes, trilist, strategy=strategy,
                           metric=metric, reference_size=80)
    result = aam_filter.find_inliers()
    assert result.inliers == list(range(5))
    assert result.final_pass.strategy == strategy
    assert result.final_pass.metric == metric


def test_fitting_error_flags_corrupted_image(corrupted_dataset, trilist):
    images, shapes = corrupted_dataset
    aam_filter = AAMFilter(images, shapes, trilist, metric='fitting')
    detection_pass = aam_filter.detect()
    assert detection_pass.outliers == [10]
    assert np.argmax(detection_pass.scores) == 10


def test_detection_is_deterministic(outlier_dataset, trilist):
    images, shapes = outlier_dataset
    results = [AAMFilter(images, shapes, trilist, reference_size=120,
                         n_workers=n).find_inliers()
               for n in (1, 4, 4)]
    for result in results[1:]:
        assert result.inliers == results[0].inliers
        assert result.n_passes == results[0].n_passes
        for p, q in zip(result.passes, results[0].passes):
            assert_allclose(p.scores, q.scores, rtol=1e-10, atol=1e-10)


def test_robust_pca_pass(outlier_dataset, trilist):
    images, shapes = outlier_dataset
    aam_filter = AAMFilter(images, shapes, trilist, strategy='rpca',
                           reference_size=80)
    detection_pass = aam_filter.detect()
    assert detection_pass.strategy == 'rpca'
    assert detection_pass.scores.shape == (11,)
    assert np.all(np.isfinite(detection_pass.scores))
    assert sorted(detection_pass.inliers + detection_pass.outliers) == \
        list(range(11))


def test_inspect(outlier_dataset, trilist):
    images, shapes = outlier_dataset
    aam_filter = AAMFilter(images, shapes, trilist, reference_size=100)
    detection_pass = aam_filter.inspect()
    assert detection_pass.n_std == 3
    assert detection_pass.strategy == 'single'
    assert detection_pass.indices == tuple(range(11))
    assert sorted(detection_pass.inliers + detection_pass.outliers) == \
        list(range(11))
    assert detection_pass.threshold == pytest.approx(
        detection_pass.scores.mean() + 3 * detection_pass.scores.std())


def test_empty_subset_raises(identical_dataset, trilist, monkeypatch):
    images, shapes = identical_dataset
    aam_filter = AAMFilter(images, shapes, trilist, reference_size=60)
    monkeypatch.setattr(detector, 'find_outliers',
                        lambda scores, n_std, atol: np.ones(len(scores),
                                                            dtype=bool))
    with pytest.raises(EmptySubsetError) as e:
        aam_filter.find_inliers()
    assert e.value.iteration == 0
    assert e.value.indices == list(range(5))
    with pytest.raises(EmptySubsetError):
        aam_filter.detect(indices=[])


def test_snapshot_cache_and_reconfigure(identical_dataset, trilist):
    images, shapes = identical_dataset
    aam_filter = AAMFilter(images, shapes, trilist, reference_size=60)
    snapshot = aam_filter.snapshot()
    assert aam_filter.snapshot() is snapshot
    assert aam_filter.snapshot(range(5)) is snapshot
    other = aam_filter.snapshot([0, 1])
    assert other is not snapshot
    assert aam_filter.snapshot([0, 1]) is other
    # only the latest subset is kept
    assert aam_filter.snapshot() is not snapshot
    assert snapshot.generation == 0

    aam_filter.reconfigure(n_std=3, metric='fitting')
    assert aam_filter.generation == 1
    assert aam_filter.n_std == 3
    assert isinstance(aam_filter.metric, FittingErrorScorer)
    new_snapshot = aam_filter.snapshot()
    assert new_snapshot.indices == snapshot.indices
    assert new_snapshot is not snapshot
    assert new_snapshot.generation == 1


def test_snapshot_cache_holds_one_subset(outlier_dataset, trilist):
    images, shapes = outlier_dataset
    aam_filter = AAMFilter(images, shapes, trilist, reference_size=60)
    result = aam_filter.find_inliers()
    for indices in ([0, 1, 2, 3], [4, 5, 6, 7], [2, 4, 6, 8, 10]):
        detection_pass = aam_filter.detect(indices)
        assert aam_filter._snapshot is detection_pass.snapshot
    # finished passes keep their own snapshot
    assert result.passes[0].snapshot.indices == tuple(range(11))


def test_reconfigure_is_atomic(identical_dataset, trilist):
    images, shapes = identical_dataset
    aam_filter = AAMFilter(images, shapes, trilist, reference_size=60)
    snapshot = aam_filter.snapshot()
    with pytest.raises(ValueError):
        aam_filter.reconfigure(n_std=1, texture_damping=2.)
    with pytest.raises(TypeError):
        aam_filter.reconfigure(n_sigmas=1)
    assert aam_filter.generation == 0
    assert aam_filter.n_std == 2
    assert aam_filter.config['texture_damping'] == 0.75
    assert aam_filter.snapshot() is snapshot


def test_invalid_input(identical_dataset, trilist):
    images, shapes = identical_dataset
    with pytest.raises(ValueError):
        AAMFilter(images, shapes, trilist, strategy='pca')
    with pytest.raises(ValueError):
        AAMFilter(images[:4], shapes, trilist)
    with pytest.raises(ValueError):
        AAMFilter(images, shapes, trilist + 1)
    with pytest.raises(ShapeMismatchError):
        AAMFilter(images, shapes, trilist[:2])


def test_pass_renderers(identical_dataset, trilist):
    images, shapes = identical_dataset
    aam_filter = AAMFilter(images, shapes, trilist, reference_size=90)
    detection_pass = aam_filter.detect()
    assert detection_pass.annotated_image(2).shape == images[2].shape
    assert detection_pass.fitted_image(2).shape == images[2].shape
    assert detection_pass.fitted_texture_image(2).shape == (90, 90, 3)
    assert detection_pass.warped_image(2).shape == (90, 90, 3)
    assert_allclose(detection_pass.unnormalized_reconstruction(2),
                    detection_pass.snapshot.textures[2], atol=1e-8)
    assert 'outliers' in str(detection_pass)


def test_verbose_output(identical_dataset, trilist, capsys):
    images, shapes = identical_dataset
    aam_filter = AAMFilter(images, shapes, trilist, reference_size=60,
                           verbose=True)
    aam_filter.find_inliers()
    out = capsys.readouterr().out
    assert 'Computing mean shape' in out
    assert 'Computing mean texture' in out
    assert 'Leave-one-out models' in out


@pytest.mark.parametrize('metric', ['texture', 'fitting'])
def test_degenerate_triangle_does_not_abort(degenerate_dataset, trilist,
                                            metric):
    images, shapes = degenerate_dataset
    aam_filter = AAMFilter(images, shapes, trilist, metric=metric,
                           reference_size=60)
    with pytest.warns(DegenerateTriangleWarning, match='Sample 0'):
        result = aam_filter.find_inliers()
    for detection_pass in result.passes:
        assert np.all(np.isfinite(detection_pass.scores))
    assert sorted(result.inliers + result.outliers) == list(range(5))
    assert set(result.inliers) >= set([1, 2, 3, 4])
