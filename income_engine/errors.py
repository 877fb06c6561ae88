"""
income_engine/errors.py
-----------------------
Exception hierarchy for the engine.

Missing per-instrument data is never an exception: those instruments are
simply left out of scoring and selection.  Only caller mistakes raise.
"""


class IncomeEngineError(Exception):
    """Base class for every error raised by ``income_engine``."""


class ConfigurationError(IncomeEngineError, ValueError):
    """
    An option passed to the engine is invalid (unknown weighting method,
    ``top_k < 1``, non-positive capital, ...).

    Reflects a programmer/config mistake, not a transient data gap.
    """


class SnapshotError(IncomeEngineError, ValueError):
    """A snapshot file could not be read or has the wrong shape."""
