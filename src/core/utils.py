"""
Small shared utilities.
"""
from __future__ import annotations

import re
import time
from contextlib import contextmanager
from typing import Generator

_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9]")


@contextmanager
def timer() -> Generator[dict, None, None]:
    """Context manager that records elapsed wall-clock milliseconds."""
    result: dict = {}
    start = time.perf_counter()
    try:
        yield result
    finally:
        result["elapsed_ms"] = round((time.perf_counter() - start) * 1000, 3)


def slugify(name: str) -> str:
    """Replace every non-alphanumeric character with '-' and lower-case.

    Runs are not collapsed: ``"Reporte Mensual #1"`` -> ``"reporte-mensual--1"``.
    """
    return _NON_ALNUM_RE.sub("-", name).lower()
