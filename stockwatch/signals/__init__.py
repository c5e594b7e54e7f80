"""
Signal generation stages.

Key components:
- bars: Bar model, aggregation to N-minute windows, merge, RTH filtering
- labeler: Next-bar direction labels for consecutive bar pairs
- features: Causal 10-feature vectors (returns, RSI, EMA gaps, ATR, context, time)
- scorer: Pluggable FeatureVector -> probability models
"""

from .bars import (
    Bar,
    BarOrderingError,
    aggregate,
    bars_from_frame,
    bars_to_frame,
    filter_rth,
    merge_bars,
    validate_bar_sequence,
)
from .labeler import (
    LabeledBar,
    label_bars,
)
from .features import (
    FEATURE_NAMES,
    FeatureVector,
    build_features,
    features_to_frame,
)
from .scorer import (
    BaseScorer,
    DEFAULT_WEIGHTS,
    EstimatorScorer,
    LinearScorer,
    LinearWeights,
    RuleBasedScorer,
    get_scorer,
)

__all__ = [
    # Bars
    "Bar",
    "BarOrderingError",
    "aggregate",
    "bars_from_frame",
    "bars_to_frame",
    "filter_rth",
    "merge_bars",
    "validate_bar_sequence",
    # Labeler
    "LabeledBar",
    "label_bars",
    # Features
    "FEATURE_NAMES",
    "FeatureVector",
    "build_features",
    "features_to_frame",
    # Scorer
    "BaseScorer",
    "DEFAULT_WEIGHTS",
    "EstimatorScorer",
    "LinearScorer",
    "LinearWeights",
    "RuleBasedScorer",
    "get_scorer",
]
