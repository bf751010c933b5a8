import os
import shutil

import cv2
import numpy as np

from aamfilter.base import as_vector


def import_settings(path):
    r"""
    Reads a settings file that lists the samples of a dataset, one
    ``image_path points_path`` pair per line. Empty lines and lines starting
    with ``#`` are ignored. Relative paths are relative to the folder of the
    settings file.

    Parameters
    ----------
    path : `str`
        The settings file.

    Returns
    -------
    pairs : `list` of `tuple` of `str`
        The ``(image_path, points_path)`` pairs.
    """
    folder = os.path.dirname(os.path.abspath(path))
    pairs = []
    with open(path) as f:
        for n, line in enumerate(f):
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            tokens = line.split()
            if len(tokens) != 2:
                raise ValueError('{}, line {}: expected an image path and a '
                                 'points path'.format(path, n + 1))
            pairs.append(tuple(os.path.join(folder, t) for t in tokens))
    return pairs


def import_image(path):
    r"""
    Loads an image as an RGB ``float64`` array with values in ``[0, 1]``.
    """
    image = cv2.imread(path, cv2.IMREAD_COLOR)
    if image is None:
        raise IOError('Cannot read image {}'.format(path))
    return cv2.cvtColor(image, cv2.COLOR_BGR2RGB).astype(np.float64) / 255.


def import_points(path):
    r"""
    Loads landmarks from a ``.pts`` file (``version``, ``n_points`` and a
    ``{ }`` block of ``x y`` rows) or from a plain text file of ``x y`` rows.

    Returns
    -------
    shape : ``(2 * n_points,)`` `ndarray`
        The flat shape vector.
    """
    with open(path) as f:
        lines = [l.strip() for l in f]
    if '{' in lines:
        start = lines.index('{') + 1
        lines = lines[start:lines.index('}', start)]
    rows = [[float(v) for v in l.split()] for l in lines if l]
    if any(len(r) != 2 for r in rows):
        raise ValueError('{}: every landmark must have 2 '
                         'coordinates'.format(path))
    return as_vector(rows)


def import_trilist(path, one_based=True):
    r"""
    Loads a triangulation, 3 vertex indices per line.

    Parameters
    ----------
    path : `str`
        The triangulation file.
    one_based : `bool`, optional
        If ``True``, the indices of the file start from 1.

    Returns
    -------
    trilist : ``(n_triangles, 3)`` `ndarray`
        The 0-based triangulation.
    """
    trilist = np.loadtxt(path, dtype=np.int64, ndmin=2)
    if trilist.shape[1] != 3:
        raise ValueError('{}: every triangle must have 3 '
                         'vertices'.format(path))
    if one_based:
        trilist = trilist - 1
    return trilist


def export_image(image, path):
    r"""
    Saves an RGB image with values in ``[0, 1]``.
    """
    pixels = np.clip(np.round(image * 255.), 0, 255).astype(np.uint8)
    if not cv2.imwrite(path, cv2.cvtColor(pixels, cv2.COLOR_RGB2BGR)):
        raise IOError('Cannot write image {}'.format(path))


def _create_clean(path):
    if os.path.exists(path):
        shutil.rmtree(path)
    os.makedirs(path)


def _create_folders(output_path):
    folders = {}
    for group in ('inliers', 'outliers'):
        folders[group] = os.path.join(output_path, group)
        _create_clean(folders[group])
    return folders


def _export_sample(detection_pass, i, folder):
    name = os.path.join(folder, 'image{}'.format(i))
    export_image(detection_pass.annotated_image(i), name + '.jpg')
    export_image(detection_pass.fitted_image(i), name + '_fitted.jpg')
    export_image(detection_pass.fitted_texture_image(i),
                 name + '_fitted_tex.jpg')
    export_image(detection_pass.warped_image(i), name + '_warped.jpg')


def export_pass(detection_pass, output_path):
    r"""
    Saves the diagnostic images of a detection pass. The folders ``inliers``
    and ``outliers`` of `output_path` are recreated and, for every sample,
    the following images are written to the folder of its group:

    - ``image{i}.jpg``: the image with its landmarks,
    - ``image{i}_fitted.jpg``: the model fit in the image frame,
    - ``image{i}_fitted_tex.jpg``: the model fit in the reference frame,
    - ``image{i}_warped.jpg``: the true texture in the reference frame.

    Parameters
    ----------
    detection_pass : :map:`DetectionPass`
        The pass to export.
    output_path : `str`
        The output folder.
    """
    folders = _create_folders(output_path)
    for i in detection_pass.indices:
        group = 'outliers' if detection_pass.is_outlier(i) else 'inliers'
        _export_sample(detection_pass, i, folders[group])


def export_result(result, output_path):
    r"""
    Saves the diagnostic images of an iterative detection (see
    :map:`export_pass` for the files). Every removed outlier is exported from
    the pass that flagged it and the final inliers from the last pass.

    Parameters
    ----------
    result : :map:`DetectionResult`
        The detection to export.
    output_path : `str`
        The output folder.
    """
    folders = _create_folders(output_path)
    for detection_pass in result.passes:
        for i in detection_pass.outliers:
            _export_sample(detection_pass, i, folders['outliers'])
    for i in result.inliers:
        _export_sample(result.final_pass, i, folders['inliers'])
