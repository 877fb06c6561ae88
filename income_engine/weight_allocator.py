"""
income_engine/weight_allocator.py
---------------------------------
Raw weight construction and the cap-and-normalise procedure.

Design contract:
  - No scoring, no selection
  - Input order is preserved: weight ``i`` belongs to candidate ``i``
  - Fully deterministic and stateless (all methods are @staticmethod)
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import numpy as np

from income_engine.config import CAP_MAX_ROUNDS, CAP_TOLERANCE
from income_engine.enums import WeightingMethod
from income_engine.errors import ConfigurationError
from income_engine.models import ScoreRecord

logger = logging.getLogger(__name__)


class WeightAllocator:
    """
    Convert selected candidates into final portfolio weights.

    Supports three raw weighting methods:
        ``"equal"``       – 1 per candidate
        ``"return"``      – ∝ max(0, trailing 1y return)
        ``"risk_parity"`` – ∝ 1 / annualised volatility

    ``"return"`` and ``"risk_parity"`` fall back to equal weights when every
    candidate's raw weight is zero.
    """

    # ------------------------------------------------------------------ #
    #  Public entry points
    # ------------------------------------------------------------------ #

    @staticmethod
    def allocate(
        candidates: Sequence[ScoreRecord],
        method: WeightingMethod,
        max_weight: Optional[float] = None,
    ) -> np.ndarray:
        """Raw weights for *candidates* followed by :meth:`cap_and_normalize`."""
        if not candidates:
            return np.zeros(0)
        raw = WeightAllocator.raw_weights(candidates, method)
        return WeightAllocator.cap_and_normalize(raw, max_weight)

    @staticmethod
    def raw_weights(
        candidates: Sequence[ScoreRecord],
        method: WeightingMethod,
    ) -> np.ndarray:
        """
        Unnormalised weights, one per candidate.

        Raises
        ------
        ConfigurationError
            If *method* is not a known weighting method.
        """
        try:
            method = WeightingMethod(method)
        except ValueError:
            raise ConfigurationError(
                f"Unknown weighting method: {method!r}. "
                "Choose from 'equal', 'return', 'risk_parity'."
            ) from None

        n = len(candidates)
        if method is WeightingMethod.EQUAL:
            return np.ones(n)

        if method is WeightingMethod.RETURN:
            raw = np.array([max(0.0, c.ret1y_raw or 0.0) for c in candidates], dtype=float)
        else:
            raw = np.array(
                [1.0 / c.volatility if c.volatility and c.volatility > 0 else 0.0
                 for c in candidates],
                dtype=float,
            )

        if raw.sum() <= 0:
            logger.debug("All %s weights are zero; using equal weights", method.value)
            return np.ones(n)
        return raw

    @staticmethod
    def cap_and_normalize(weights, max_weight: Optional[float] = None) -> np.ndarray:
        """
        Normalise *weights* to sum to 1 under an optional per-entry cap.

        Algorithm
        ---------
        1. Clamp negatives to 0; an all-zero vector becomes uniform ``1/n``.
        2. Normalise to sum 1.
        3. If ``0 < max_weight < 1``, repeat up to ``CAP_MAX_ROUNDS`` times:
           pin every entry above the cap to the cap and hand the excess to
           the entries below the cap in proportion to their current weight.
           Stop once nothing exceeds the cap.
        4. Renormalise to sum exactly 1.

        .. note::
            This is a bounded heuristic.  When ``max_weight < 1/n`` the cap
            cannot be met; step 4 then returns the uniform vector, which
            still exceeds the cap.
        """
        w = np.clip(np.asarray(weights, dtype=float), 0.0, None)
        n = w.size
        if n == 0:
            return w

        total = w.sum()
        if total <= 0:
            return np.full(n, 1.0 / n)
        w = w / total

        if max_weight is not None and 0 < max_weight < 1:
            for _ in range(CAP_MAX_ROUNDS):
                over = w > max_weight + CAP_TOLERANCE
                if not over.any():
                    break

                excess = float((w[over] - max_weight).sum())
                w[over] = max_weight

                free = w < max_weight - CAP_TOLERANCE
                free_total = float(w[free].sum())
                if free_total <= 0:
                    break
                w[free] += excess * w[free] / free_total

        return w / w.sum()
