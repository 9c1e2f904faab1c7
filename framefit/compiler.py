"""JIT compilation switch for framefit kernels.

Kernels are written as plain Python over numpy arrays and compiled with
Numba on first use. Compiled kernels release the GIL (``nogil=True``), so
independent conversions running on separate threads execute in parallel.

Set ``FRAMEFIT_DISABLE_JIT=1`` (or call ``Compiler.set_enabled(False)``
before the first conversion) to run the same kernels as ordinary Python.
"""

from __future__ import annotations

import threading
import warnings
from typing import Any, Callable

from numba import njit

from framefit.utils.config import DISABLE_JIT_ENV_VAR, jit_disabled

__all__ = ["Compiler", "lazy_kernel"]


class Compiler:
    """JIT compiler for kernel functions."""

    is_enabled: bool = not jit_disabled()

    @classmethod
    def set_enabled(cls, b: bool) -> None:
        cls.is_enabled = b

    @classmethod
    def compile(cls, code: Any, signature: Any = None) -> Any:
        """Compile a function with Numba (or return it unchanged if disabled)."""
        if cls.is_enabled:
            return njit(signature, nogil=True, error_model='numpy')(code)
        warnings.warn(
            f"JIT compilation is disabled ({DISABLE_JIT_ENV_VAR}); "
            f"{code.__name__} runs as plain Python and will be slow",
            RuntimeWarning,
            stacklevel=2,
        )
        return code


def lazy_kernel(code: Callable) -> Callable[[], Callable]:
    """Return a getter that compiles ``code`` once, on first request.

    Compilation is deferred so importing framefit stays cheap, and guarded
    by a lock so concurrent first calls compile only once.
    """
    compiled: list[Callable] = []
    lock = threading.Lock()

    def get() -> Callable:
        if not compiled:
            with lock:
                if not compiled:
                    compiled.append(Compiler.compile(code))
        return compiled[0]

    get.__name__ = f"_get_{code.__name__}"
    return get
