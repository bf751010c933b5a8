import numpy as np
import pytest


# 3x3 grid of landmarks in the coordinates of the base pattern
GRID_X = (30., 55., 80.)
GRID_Y = (28., 55., 82.)
TRILIST = np.array([[0, 1, 4], [0, 4, 3], [1, 2, 5], [1, 5, 4],
                    [3, 4, 7], [3, 7, 6], [4, 5, 8], [4, 8, 7]])
OFFSETS = [(0, 0), (3, 1), (7, 2), (1, 9), (12, 4),
           (5, 13), (18, 7), (9, 16), (15, 11), (2, 19)]
SCALES = [1.0, 0.85, 1.1, 0.95, 0.8, 1.05, 0.9, 1.02, 0.88, 0.97]


def base_pattern(size=140):
    y, x = np.mgrid[:size, :size].astype(np.float64)
    channels = [0.5 + 0.15 * np.sin(0.11 * x + 0.7 * c) *
                np.cos(0.13 * y - 0.4 * c) +
                0.1 * np.sin(0.05 * (x + y) + c)
                for c in range(3)]
    return np.dstack(channels)


def grid_shape(offset=(0, 0)):
    points = [(x - offset[0], y - offset[1]) for y in GRID_Y for x in GRID_X]
    return np.array(points).ravel()


def crop(image, offset, size=100):
    ox, oy = offset
    return image[oy:oy + size, ox:ox + size].copy()


@pytest.fixture
def trilist():
    return TRILIST.copy()


@pytest.fixture
def outlier_dataset():
    r"""
    10 samples of the same face pattern seen through different crops and
    contrasts, and an 11th sample that is the image of the first one with its
    landmarks in reverse order.
    """
    base = base_pattern()
    images = [s * crop(base, o) for o, s in zip(OFFSETS, SCALES)]
    shapes = [grid_shape(o) for o in OFFSETS]
    images.append(images[0].copy())
    shapes.append(shapes[0].reshape(-1, 2)[::-1].ravel())
    return images, shapes


@pytest.fixture
def identical_dataset():
    base = base_pattern()
    images = [crop(base, (4, 4)) for _ in range(5)]
    shapes = [grid_shape((4, 4)) for _ in range(5)]
    return images, shapes


@pytest.fixture
def degenerate_dataset(identical_dataset):
    r"""
    `identical_dataset` where the last declared triangle, ``[4, 8, 7]``, is
    collinear in the shape of the first sample.
    """
    images, shapes = identical_dataset
    points = shapes[0].reshape(-1, 2).copy()
    points[7] = 0.5 * (points[4] + points[8])
    shapes[0] = points.ravel()
    return images, shapes
