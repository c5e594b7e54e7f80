"""
Probability scorers: FeatureVector -> P(next close > current close).

All scorers share the BaseScorer interface so the feature builder and the
backtest never care which model produced a probability:

- LinearScorer: fixed linear combination squashed by the logistic function
  (the reference model; weights live in DEFAULT_WEIGHTS)
- RuleBasedScorer: banded threshold rules with volatility damping and an
  agreement boost, clamped to [0.05, 0.95]
- EstimatorScorer: wraps any fitted classifier exposing predict_proba
  (scikit-learn, LightGBM sklearn API, ...)
"""

import math
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any, List, Sequence

import numpy as np

from stockwatch.signals.features import FeatureVector, features_to_frame


# Logit clip keeps the logistic output strictly inside (0, 1) in float64
MAX_LOGIT = 30.0


class BaseScorer(ABC):
    """Maps a FeatureVector to a probability in [0, 1]."""

    name = "base"

    @abstractmethod
    def score(self, features: FeatureVector) -> float:
        """Probability that the next bar closes above this one."""
        pass

    def score_batch(self, vectors: Sequence[FeatureVector]) -> List[float]:
        """Score many vectors; one probability per vector, same order."""
        return [self.score(v) for v in vectors]

    def __call__(self, features: FeatureVector) -> float:
        return self.score(features)


# =============================================================================
# Linear + logistic (reference model)
# =============================================================================

@dataclass(frozen=True)
class LinearWeights:
    """Coefficients of the linear scorer."""
    r1: float = 0.15
    r5: float = 0.8
    r15: float = 0.55
    r60: float = 0.25
    market_return: float = 0.2
    rsi14: float = 0.1  # applied to (rsi14 - 50) / 50
    ema_gap9: float = 0.08
    ema_gap21: float = 0.04
    atr14: float = -0.02
    bias: float = 0.0


DEFAULT_WEIGHTS = LinearWeights()


def sigmoid(x: float) -> float:
    """Logistic function with the input clipped to +/-MAX_LOGIT."""
    x = max(-MAX_LOGIT, min(MAX_LOGIT, x))
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


class LinearScorer(BaseScorer):
    """
    Logistic of a weighted feature sum.

    x = 0.8 r5 + 0.55 r15 + 0.25 r60 + 0.2 market + 0.1 (rsi - 50) / 50
        + 0.08 gap9 + 0.04 gap21 - 0.02 atr14 + 0.15 r1
    """

    name = "linear"

    def __init__(self, weights: LinearWeights = DEFAULT_WEIGHTS):
        self.weights = weights

    def logit(self, f: FeatureVector) -> float:
        w = self.weights
        return (
            w.bias
            + w.r5 * f.r5
            + w.r15 * f.r15
            + w.r60 * f.r60
            + w.market_return * f.market_return
            + w.rsi14 * ((f.rsi14 - 50.0) / 50.0)
            + w.ema_gap9 * f.ema_gap9
            + w.ema_gap21 * f.ema_gap21
            + w.atr14 * f.atr14
            + w.r1 * f.r1
        )

    def score(self, features: FeatureVector) -> float:
        return sigmoid(self.logit(features))

    def to_dict(self) -> dict:
        return {"name": self.name, "weights": asdict(self.weights)}


# =============================================================================
# Threshold rules
# =============================================================================

class RuleBasedScorer(BaseScorer):
    """
    Signal-strength score built from banded indicator rules.

    Starts at 0.5 and nudges up or down for:
    - RSI bands (oversold < 30 / < 40, overbought > 70 / > 60)
    - 5-bar momentum bands (+/-0.1%, +/-0.2%)
    - average EMA gap (trend direction)
    - benchmark return (+/-0.1%)

    High volatility (ATR > 0.02) pulls the score 30% back toward 0.5. When
    more than 70% of the evaluated rules agree in direction, the score is
    pushed another 0.1 away from 0.5. Output is clamped to [0.05, 0.95].
    """

    name = "rule"

    MIN_SCORE = 0.05
    MAX_SCORE = 0.95
    HIGH_ATR = 0.02
    ATR_DAMPING = 0.7
    AGREEMENT_LEVEL = 0.7
    AGREEMENT_BOOST = 0.1

    def _clamp(self, x: float) -> float:
        return max(self.MIN_SCORE, min(self.MAX_SCORE, x))

    def score(self, features: FeatureVector) -> float:
        f = features
        score = 0.5
        votes = 0.0
        rules = 0

        if f.rsi14 > 0:
            rules += 1
            if f.rsi14 < 30:
                score += 0.15
                votes += 1
            elif f.rsi14 < 40:
                score += 0.08
                votes += 0.5
            elif f.rsi14 > 70:
                score -= 0.15
                votes -= 1
            elif f.rsi14 > 60:
                score -= 0.08
                votes -= 0.5

        rules += 1
        if f.r5 > 0.002:
            score += 0.1
            votes += 1
        elif f.r5 > 0.001:
            score += 0.05
            votes += 0.5
        elif f.r5 < -0.002:
            score -= 0.1
            votes -= 1
        elif f.r5 < -0.001:
            score -= 0.05
            votes -= 0.5

        if f.ema_gap9 != 0 or f.ema_gap21 != 0:
            rules += 1
            gap = (f.ema_gap9 + f.ema_gap21) / 2
            if gap > 0.001:
                score += 0.08
                votes += 1
            elif gap > 0:
                score += 0.04
                votes += 0.5
            elif gap < -0.001:
                score -= 0.08
                votes -= 1
            elif gap < 0:
                score -= 0.04
                votes -= 0.5

        if f.market_return != 0:
            rules += 1
            if f.market_return > 0.001:
                score += 0.05
                votes += 0.3
            elif f.market_return < -0.001:
                score -= 0.05
                votes -= 0.3

        if f.atr14 > self.HIGH_ATR:
            score = 0.5 + (score - 0.5) * self.ATR_DAMPING

        score = self._clamp(score)

        agreement = abs(votes) / rules if rules else 0.0
        if agreement > self.AGREEMENT_LEVEL:
            if score > 0.5:
                score = self._clamp(score + self.AGREEMENT_BOOST)
            elif score < 0.5:
                score = self._clamp(score - self.AGREEMENT_BOOST)

        return score


# =============================================================================
# Fitted classifier adapter
# =============================================================================

class EstimatorScorer(BaseScorer):
    """
    Adapter for a fitted binary classifier with predict_proba.

    The estimator sees columns in FEATURE_NAMES order and must have been
    trained with class 1 = next close higher.
    """

    name = "estimator"

    def __init__(self, estimator: Any):
        if not hasattr(estimator, "predict_proba"):
            raise TypeError(
                f"{type(estimator).__name__} has no predict_proba; cannot score with it"
            )
        self.estimator = estimator

    def score(self, features: FeatureVector) -> float:
        return self.score_batch([features])[0]

    def score_batch(self, vectors: Sequence[FeatureVector]) -> List[float]:
        if not vectors:
            return []

        X = features_to_frame(vectors)
        proba = np.asarray(self.estimator.predict_proba(X))

        # sklearn returns (n, 2); some wrappers return P(class 1) directly
        up = proba[:, 1] if proba.ndim == 2 else proba
        return [float(p) for p in np.clip(up, 0.0, 1.0)]


SCORERS = {
    LinearScorer.name: LinearScorer,
    RuleBasedScorer.name: RuleBasedScorer,
}


def get_scorer(name: str) -> BaseScorer:
    """
    Build a scorer by name ('linear' or 'rule').

    Raises:
        ValueError: Unknown name
    """
    try:
        return SCORERS[name]()
    except KeyError:
        raise ValueError(
            f"Unknown scorer {name!r}; expected one of {', '.join(SCORERS)}"
        ) from None

