"""Utility functions for framefit."""

from framefit.utils.config import (
    DISABLE_JIT_ENV_VAR,
    FILTER_ENV_VAR,
    NUM_WORKERS_ENV_VAR,
    get_default_filter_name,
    get_num_workers,
    jit_disabled,
)
from framefit.utils.crop import (
    CropParams,
    check_dimensions,
    compute_center_crop,
    validate_crop,
)

__all__ = [
    # Environment configuration
    "DISABLE_JIT_ENV_VAR",
    "NUM_WORKERS_ENV_VAR",
    "FILTER_ENV_VAR",
    "jit_disabled",
    "get_num_workers",
    "get_default_filter_name",
    # Crop utilities
    "CropParams",
    "check_dimensions",
    "compute_center_crop",
    "validate_crop",
]
