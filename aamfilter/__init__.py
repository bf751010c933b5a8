from . import aam
from . import builder
from . import checks
from . import image
from . import io
from . import math
from . import model
from . import outlier
from . import transform
from . import visualize

from .base import AAMFilterError, ShapeMismatchError, EmptySubsetError
from .outlier import AAMFilter

__version__ = '0.1.0'
