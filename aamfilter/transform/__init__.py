from .homogeneous import (apply_affine, check_spread, similarity_alignment,
                          estimate_similarity, align_shape)
from .piecewiseaffine import (PiecewiseAffine, DegenerateTriangleWarning,
                              degenerate_triangles, triangle_affine)
