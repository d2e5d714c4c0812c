# glue_core/artifacts.py
"""
Failure artifact generation (screenshots, page source dumps).
Resource-specific implementations supply the capture functions.
"""
from __future__ import annotations
import logging
import os
import time
from typing import Any, Callable, Dict, Optional

log = logging.getLogger(__name__)


def _ts() -> str:
    """Generate timestamp string for file naming."""
    return time.strftime("%Y%m%d_%H%M%S")


def ensure_dir(path: str) -> None:
    """Ensure directory exists."""
    os.makedirs(path, exist_ok=True)


def make_artifacts(
    target: Any,
    out_dir: str,
    prefix: str,
    capture_func: Optional[Callable[[Any, str], None]] = None,
    dump_func: Optional[Callable[[Any], str]] = None,
) -> Dict[str, str]:
    """
    Best-effort artifact generation after a failure.

    Errors raised by the capture functions are logged and skipped so that
    artifact collection never hides the failure that triggered it.

    @param target Resource-specific handle passed to the capture functions
    @param out_dir Output directory
    @param prefix File prefix
    @param capture_func Writes a PNG screenshot of ``target`` to the given path
    @param dump_func Returns the UI hierarchy of ``target`` as text
    @return Dict of artifact types to file paths
    """
    artifacts: Dict[str, str] = {}
    ensure_dir(out_dir)
    stem = os.path.join(out_dir, f"{prefix}_{_ts()}")

    if capture_func:
        path = stem + "_screenshot.png"
        try:
            capture_func(target, path)
            artifacts["screenshot"] = path
        except Exception as e:
            log.warning("screenshot capture failed: %s: %s", type(e).__name__, e)

    if dump_func:
        path = stem + "_tree.xml"
        try:
            tree = dump_func(target)
            with open(path, "w", encoding="utf-8") as f:
                f.write(tree)
            artifacts["tree"] = path
        except Exception as e:
            log.warning("tree dump failed: %s: %s", type(e).__name__, e)

    return artifacts
