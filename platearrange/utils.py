"""Shared utilities for platearrange."""

import logging
from typing import Optional, Sequence, Tuple

from rich.console import Console
from rich.logging import RichHandler

# Rich console for pretty output
console = Console()


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Set up logging with Rich handler."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )
    return logging.getLogger("platearrange")


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a module."""
    return logging.getLogger(f"platearrange.{name}")


def format_duration(seconds: float) -> str:
    """Format duration in seconds as human-readable string."""
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    elif seconds < 60:
        return f"{seconds:.1f}s"
    minutes = seconds // 60
    secs = seconds % 60
    return f"{minutes:.0f}m {secs:.0f}s"


def parse_points(text: str) -> Optional[Sequence[Tuple[float, float]]]:
    """Parse an outline given as ``x,y;x,y;...``.

    Returns None for an empty string.
    """
    text = text.strip()
    if not text:
        return None

    points = []
    for pair in text.split(";"):
        pair = pair.strip()
        if not pair:
            continue
        parts = pair.split(",")
        if len(parts) != 2:
            raise ValueError(f"Invalid point: {pair!r}")
        points.append((float(parts[0]), float(parts[1])))
    return points
