"""Environment-variable configuration for framefit.

Explicit arguments always take precedence; these values only fill in
defaults when a caller leaves a parameter unset.

Environment variables:
    FRAMEFIT_DISABLE_JIT: Set to 1/true/yes to run the scaling kernels as
                          plain Python (slow, useful for debugging).
    FRAMEFIT_NUM_WORKERS: Thread count for batch processing.
                          Default: os.cpu_count()
    FRAMEFIT_FILTER:      Default resampling filter (box, bilinear, nearest).
                          Default: box

Usage:
    export FRAMEFIT_NUM_WORKERS=4
    export FRAMEFIT_FILTER=bilinear
"""

import os

DISABLE_JIT_ENV_VAR = "FRAMEFIT_DISABLE_JIT"
NUM_WORKERS_ENV_VAR = "FRAMEFIT_NUM_WORKERS"
FILTER_ENV_VAR = "FRAMEFIT_FILTER"

DEFAULT_FILTER = "box"

_TRUTHY = {"1", "true", "yes", "on"}


def jit_disabled() -> bool:
    """Return True if FRAMEFIT_DISABLE_JIT asks for pure-Python kernels."""
    return os.environ.get(DISABLE_JIT_ENV_VAR, "").strip().lower() in _TRUTHY


def get_num_workers() -> int:
    """Get the default number of batch worker threads.

    Returns FRAMEFIT_NUM_WORKERS if it is set to a positive integer,
    otherwise the machine's CPU count.

    Raises:
        ValueError: If FRAMEFIT_NUM_WORKERS is set but not a positive integer.
    """
    env_value = os.environ.get(NUM_WORKERS_ENV_VAR)
    if env_value:
        try:
            n = int(env_value)
        except ValueError:
            raise ValueError(
                f"{NUM_WORKERS_ENV_VAR} must be a positive integer, got {env_value!r}"
            ) from None
        if n < 1:
            raise ValueError(
                f"{NUM_WORKERS_ENV_VAR} must be a positive integer, got {env_value!r}"
            )
        return n
    return os.cpu_count() or 1


def get_default_filter_name() -> str:
    """Get the default resampling filter name (lower-cased)."""
    return os.environ.get(FILTER_ENV_VAR, DEFAULT_FILTER).strip().lower() or DEFAULT_FILTER


__all__ = [
    "DISABLE_JIT_ENV_VAR",
    "NUM_WORKERS_ENV_VAR",
    "FILTER_ENV_VAR",
    "DEFAULT_FILTER",
    "jit_disabled",
    "get_num_workers",
    "get_default_filter_name",
]
