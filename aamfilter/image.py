import cv2
import numpy as np

from aamfilter.base import as_points


class PixelMap(object):
    r"""
    Per-pixel assignment of the triangle of a mesh that contains each pixel of
    an image grid. Pixels outside the mesh are labelled ``-1``.

    The covered pixels are kept grouped by triangle (in the order of the
    triangulation) and, within a triangle, in row-major order. This is the
    order of the texels of a texture vector.

    Parameters
    ----------
    labels : ``(height, width)`` `ndarray` of `int`
        The triangle index of every pixel, ``-1`` for none.
    n_triangles : `int`
        The number of triangles of the mesh.
    """
    def __init__(self, labels, n_triangles):
        self.labels = labels
        self.n_triangles = n_triangles
        rows, cols = np.nonzero(labels >= 0)
        triangles = labels[rows, cols]
        order = np.argsort(triangles, kind='stable')
        self.rows = rows[order]
        self.cols = cols[order]
        self.triangle_index = triangles[order]
        self.counts = np.bincount(triangles, minlength=n_triangles)

    @property
    def shape(self):
        r"""
        The ``(height, width)`` of the pixel grid.

        :type: `tuple`
        """
        return self.labels.shape

    @property
    def n_pixels(self):
        r"""
        The number of pixels covered by the mesh.

        :type: `int`
        """
        return self.rows.shape[0]

    @property
    def points(self):
        r"""
        The ``(x, y)`` coordinates of the covered pixels.

        :type: ``(n_pixels, 2)`` `ndarray`
        """
        return np.column_stack((self.cols, self.rows)).astype(np.float64)


def rasterize(shape, trilist, image_shape, valid=None):
    r"""
    Builds the pixel map of a mesh over an image grid. Triangles are filled
    in the order of the triangulation, so a pixel shared by several triangles
    belongs to the one declared last. Invalid (degenerate) triangles are not
    filled at all, so they cover no pixels.

    Parameters
    ----------
    shape : ``(2 * n_points,)`` or ``(n_points, 2)`` `ndarray`
        The mesh vertices.
    trilist : ``(n_triangles, 3)`` `ndarray`
        The triangulation.
    image_shape : ``(height, width)`` `tuple`
        The size of the pixel grid.
    valid : ``(n_triangles,)`` `ndarray` of `bool` or ``None``, optional
        The triangles to fill. If ``None``, all of them.

    Returns
    -------
    pixel_map : :map:`PixelMap`
        The pixel map.
    """
    points = as_points(shape)
    labels = np.zeros(tuple(image_shape[:2]), dtype=np.int32)
    for j, triangle in enumerate(trilist):
        if valid is not None and not valid[j]:
            continue
        vertices = np.round(points[triangle]).astype(np.int32)
        cv2.fillConvexPoly(labels, vertices, int(j + 1))
    return PixelMap(labels - 1, len(trilist))


def bilinear_sample(image, points):
    r"""
    Samples an image at sub-pixel locations with bilinear interpolation.
    Locations outside ``[0, width - 1] x [0, height - 1]`` sample black.

    Parameters
    ----------
    image : ``(height, width, n_channels)`` `ndarray`
        The image.
    points : ``(n_points, 2)`` `ndarray`
        The ``(x, y)`` locations.

    Returns
    -------
    samples : ``(n_points, n_channels)`` `ndarray`
        The sampled values.
    """
    h, w = image.shape[:2]
    x = points[:, 0]
    y = points[:, 1]
    inside = (x >= 0) & (y >= 0) & (x <= w - 1) & (y <= h - 1)
    x = np.where(inside, x, 0.)
    y = np.where(inside, y, 0.)

    x0 = np.clip(np.floor(x), 0, w - 2).astype(np.int64)
    y0 = np.clip(np.floor(y), 0, h - 2).astype(np.int64)
    dx = (x - x0)[:, None]
    dy = (y - y0)[:, None]

    samples = (image[y0, x0] * (1 - dx) * (1 - dy) +
               image[y0, x0 + 1] * dx * (1 - dy) +
               image[y0 + 1, x0] * (1 - dx) * dy +
               image[y0 + 1, x0 + 1] * dx * dy)
    samples[~inside] = 0
    return samples


def extract_texture(image, transforms, pixel_map, valid=None):
    r"""
    Samples `image` at the pixels of `pixel_map`, each pixel mapped to the
    image frame through the affine transform of its triangle.

    Parameters
    ----------
    image : ``(height, width, n_channels)`` `ndarray`
        The image to sample.
    transforms : ``(n_triangles, 2, 3)`` `ndarray`
        Per-triangle affine transforms from the frame of `pixel_map` to the
        frame of `image`.
    pixel_map : :map:`PixelMap`
        The pixels to produce.
    valid : ``(n_triangles,)`` `ndarray` of `bool` or ``None``, optional
        Triangles without a valid transform. Their pixels are black.

    Returns
    -------
    texture : ``(n_pixels, n_channels)`` `ndarray`
        The sampled values in pixel-map order.
    """
    points = pixel_map.points
    per_pixel = transforms[pixel_map.triangle_index]
    source = (np.einsum('nij,nj->ni', per_pixel[:, :, :2], points) +
              per_pixel[:, :, 2])
    texture = bilinear_sample(image, source)
    if valid is not None:
        texture[~valid[pixel_map.triangle_index]] = 0
    return texture


def fill_image(texture, pixel_map, n_channels=3):
    r"""
    Writes a texture vector into the pixels of its pixel map. Uncovered
    pixels are black.

    Parameters
    ----------
    texture : ``(n_pixels, n_channels)`` `ndarray`
        The texture in pixel-map order.
    pixel_map : :map:`PixelMap`
        The pixel map of the texture.

    Returns
    -------
    image : ``(height, width, n_channels)`` `ndarray`
        The rendered image.
    """
    image = np.zeros(pixel_map.shape + (n_channels,))
    image[pixel_map.rows, pixel_map.cols] = np.reshape(
        texture, (pixel_map.n_pixels, n_channels))
    return image


def warp_image(image, transforms, pixel_map, valid=None):
    r"""
    Piecewise affine warp of `image` onto the pixel grid of `pixel_map`.

    For every pixel covered by `pixel_map`, the transform of its triangle
    gives the location to sample in `image`.

    Parameters
    ----------
    image : ``(height, width, n_channels)`` `ndarray`
        The image to warp.
    transforms : ``(n_triangles, 2, 3)`` `ndarray`
        Per-triangle affine transforms from the target frame to the frame of
        `image`.
    pixel_map : :map:`PixelMap`
        The pixel map of the target frame.
    valid : ``(n_triangles,)`` `ndarray` of `bool` or ``None``, optional
        Triangles without a valid transform.

    Returns
    -------
    warped : ``(height, width, n_channels)`` `ndarray`
        The warped image, with the shape of `pixel_map`.
    """
    texture = extract_texture(image, transforms, pixel_map, valid=valid)
    return fill_image(texture, pixel_map, n_channels=image.shape[-1])


def compute_rmse(image, reference, pixel_map):
    r"""
    Root mean squared colour difference between two images over the pixels
    covered by `pixel_map`.
    """
    if pixel_map.n_pixels == 0:
        return 0.
    diff = (image[pixel_map.rows, pixel_map.cols] -
            reference[pixel_map.rows, pixel_map.cols])
    return np.sqrt(np.sum(diff ** 2) / pixel_map.n_pixels)


def draw_shape(image, shape, trilist=None, point_colour=(0., 1., 0.),
               line_colour=(1., 0.69, 0.69), radius=1):
    r"""
    Returns a copy of `image` with the landmarks (and optionally the mesh)
    drawn on it.

    Parameters
    ----------
    image : ``(height, width, 3)`` `ndarray`
        The RGB image with values in ``[0, 1]``.
    shape : ``(2 * n_points,)`` or ``(n_points, 2)`` `ndarray`
        The landmarks.
    trilist : ``(n_triangles, 3)`` `ndarray` or ``None``, optional
        If provided, the edges of the mesh are drawn too.

    Returns
    -------
    annotated : ``(height, width, 3)`` `ndarray`
        The annotated copy.
    """
    annotated = np.ascontiguousarray(image, dtype=np.float64).copy()
    points = np.round(as_points(shape)).astype(np.int32)
    if trilist is not None:
        for triangle in trilist:
            cv2.polylines(annotated, [points[triangle]], True, line_colour, 1,
                          cv2.LINE_8)
    for x, y in points:
        cv2.circle(annotated, (int(x), int(y)), radius, point_colour, -1)
    return annotated
