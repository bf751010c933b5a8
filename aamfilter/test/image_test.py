import numpy as np
from numpy.testing import assert_allclose, assert_array_equal

from aamfilter.image import (rasterize, bilinear_sample, extract_texture,
                             fill_image, warp_image, compute_rmse, draw_shape)
from aamfilter.transform import PiecewiseAffine


square = np.array([[10., 10.], [40., 10.], [40., 40.], [10., 40.]])
trilist = np.array([[0, 1, 2], [0, 2, 3]])


def smooth_image(h=50, w=60):
    y, x = np.mgrid[:h, :w].astype(np.float64)
    return np.dstack([0.5 + 0.3 * np.sin(0.2 * x + c) * np.cos(0.15 * y)
                      for c in range(3)])


def test_rasterize_idempotent():
    a = rasterize(square.ravel(), trilist, (50, 60))
    b = rasterize(square.ravel(), trilist, (50, 60))
    assert_array_equal(a.labels, b.labels)
    assert a.n_pixels == b.n_pixels


def test_rasterize_labels():
    pixel_map = rasterize(square, trilist, (50, 60))
    assert pixel_map.shape == (50, 60)
    assert pixel_map.labels.min() == -1
    assert pixel_map.labels.max() == 1
    assert pixel_map.labels[0, 0] == -1
    assert pixel_map.labels[15, 35] == 0
    assert pixel_map.labels[35, 15] == 1
    assert pixel_map.n_pixels == np.count_nonzero(pixel_map.labels >= 0)
    assert_array_equal(pixel_map.counts,
                       [np.count_nonzero(pixel_map.labels == j)
                        for j in range(2)])


def test_rasterize_later_triangle_wins():
    # pixels on the shared diagonal belong to the last declared triangle
    pixel_map = rasterize(square, trilist, (50, 60))
    assert pixel_map.labels[20, 20] == 1
    pixel_map = rasterize(square, trilist[::-1], (50, 60))
    assert pixel_map.labels[20, 20] == 1


def test_rasterize_skips_invalid_triangles():
    pixel_map = rasterize(square, trilist, (50, 60),
                          valid=np.array([True, False]))
    assert pixel_map.counts[1] == 0
    assert not np.any(pixel_map.labels == 1)
    # the shared diagonal stays with the valid triangle
    assert pixel_map.labels[20, 20] == 0
    assert pixel_map.labels[35, 15] == -1


def test_pixel_map_order():
    pixel_map = rasterize(square, trilist, (50, 60))
    assert np.all(np.diff(pixel_map.triangle_index) >= 0)
    for j in range(2):
        mask = pixel_map.triangle_index == j
        linear = pixel_map.rows[mask] * 60 + pixel_map.cols[mask]
        assert np.all(np.diff(linear) > 0)
    assert_array_equal(pixel_map.points[:, 0], pixel_map.cols)
    assert_array_equal(pixel_map.points[:, 1], pixel_map.rows)


def test_bilinear_sample():
    image = smooth_image(5, 4)
    points = np.array([[1., 2.], [1.5, 2.], [3., 4.], [-0.5, 1.], [3.01, 1.],
                       [1., 4.5]])
    samples = bilinear_sample(image, points)
    assert_allclose(samples[0], image[2, 1])
    assert_allclose(samples[1], 0.5 * (image[2, 1] + image[2, 2]))
    # the last row and column are in bounds
    assert_allclose(samples[2], image[4, 3])
    assert_allclose(samples[3:], 0)


def test_identity_warp_round_trip():
    image = smooth_image()
    pixel_map = rasterize(square, trilist, image.shape)
    pwa = PiecewiseAffine(square, square, trilist)
    texture = extract_texture(image, pwa.inverse_transforms, pixel_map)
    assert texture.shape == (pixel_map.n_pixels, 3)
    rebuilt = fill_image(texture, pixel_map)
    covered = pixel_map.labels >= 0
    assert_allclose(rebuilt[covered], image[covered], atol=1e-10)
    assert_allclose(rebuilt[~covered], 0)


def test_extract_texture_invalid_triangles_are_black():
    image = smooth_image()
    pixel_map = rasterize(square, trilist, image.shape)
    pwa = PiecewiseAffine(square, square, trilist)
    valid = np.array([True, False])
    texture = extract_texture(image, pwa.inverse_transforms, pixel_map,
                              valid=valid)
    assert_allclose(texture[pixel_map.triangle_index == 1], 0)
    assert np.all(texture[pixel_map.triangle_index == 0] > 0)


def test_warp_image_translation():
    image = smooth_image()
    target = square - 5.
    pixel_map = rasterize(target, trilist, (40, 40))
    # maps the target frame to the image frame
    pwa = PiecewiseAffine(target, square, trilist)
    warped = warp_image(image, pwa.transforms, pixel_map, valid=pwa.valid)
    assert warped.shape == (40, 40, 3)
    assert_allclose(warped[20, 25], image[25, 30], atol=1e-10)


def test_compute_rmse():
    image = smooth_image()
    pixel_map = rasterize(square, trilist, image.shape)
    assert compute_rmse(image, image, pixel_map) == 0
    assert_allclose(compute_rmse(image + 0.1, image, pixel_map),
                    np.sqrt(3 * 0.01))


def test_draw_shape():
    image = np.zeros((50, 60, 3))
    annotated = draw_shape(image, square, trilist=trilist)
    assert annotated.shape == image.shape
    assert np.all(image == 0)
    assert_allclose(annotated[10, 10], [0., 1., 0.])
    assert_allclose(annotated[10, 25], [1., 0.69, 0.69])
