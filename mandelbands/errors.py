from __future__ import annotations

from typing import List, Tuple, Any


class InvalidRenderInput(ValueError):
    """Grid, viewport or render parameters rejected before any work is dispatched."""


class RenderError(RuntimeError):
    """A render could not produce a complete buffer.

    `failures` holds one (band, exception) pair per failed band.
    """

    def __init__(self, message: str, failures: List[Tuple[Any, BaseException]] = None):
        super().__init__(message)
        self.failures = list(failures or [])
