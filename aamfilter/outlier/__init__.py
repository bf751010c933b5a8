from .detector import AAMFilter, find_outliers, check_strategy, check_metric
from .result import DetectionPass, DetectionResult
from .scorer import Scorer, TextureErrorScorer, FittingErrorScorer
from .strategy import (Strategy, SingleModelStrategy, LeaveOneOutStrategy,
                       RobustPCAStrategy)
