"""Output buffer allocation shared by the transform stages."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import numpy as np

from framefit.errors import AllocationFailureError


@contextmanager
def allocation_guard(what: str) -> Iterator[None]:
    """Re-raise MemoryError inside the block as AllocationFailureError."""
    try:
        yield
    except AllocationFailureError:
        raise
    except MemoryError as e:
        raise AllocationFailureError(f"Could not allocate {what}") from e


def allocate(shape: int | tuple[int, ...]) -> np.ndarray:
    """Allocate an uninitialized uint8 buffer, mapping MemoryError to AllocationFailureError."""
    with allocation_guard(f"output buffer of shape {shape}"):
        return np.empty(shape, dtype=np.uint8)
