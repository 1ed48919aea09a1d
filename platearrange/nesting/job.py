"""Background arrangement job.

Runs the arrangement on a worker thread so the caller stays responsive,
reports progress through a status callback and can be cancelled.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from platearrange.config import Settings, get_settings
from platearrange.model import Model
from platearrange.nesting.arranger import default_placement_config, run_arrangement
from platearrange.nesting.bed_shape import BedShapeHint
from platearrange.nesting.geometry import Point2D
from platearrange.nesting.svg_debug import SvgSnapshotWriter
from platearrange.utils import get_logger

logger = get_logger("nesting.job")

StatusCallback = Callable[[int, str], None]


@dataclass
class ArrangeResult:
    """Result of an arrangement job."""
    success: bool
    num_items: int = 0
    num_bins: int = 0
    cancelled: bool = False
    error_message: Optional[str] = None
    processing_time: float = 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "success": self.success,
            "num_items": self.num_items,
            "num_bins": self.num_bins,
            "cancelled": self.cancelled,
            "error_message": self.error_message,
            "processing_time": self.processing_time,
        }


class ArrangeJob:
    """
    Arranges a model on a worker thread.

    Usage:
        job = ArrangeJob(model, bed=[(0, 0), (250, 0), (250, 210), (0, 210)])
        job.start()
        ...
        job.cancel()
        result = job.wait()
    """

    ARRANGING = "Arranging"
    CANCELED = "Arranging canceled"
    DONE = "Arranging done."
    ERROR_MESSAGE = "Could not arrange model objects! Some geometries may be invalid."

    def __init__(
        self,
        model: Model,
        bed: Optional[Sequence[Point2D]],
        hint: Optional[BedShapeHint] = None,
        settings: Optional[Settings] = None,
        on_status: Optional[StatusCallback] = None,
    ):
        """
        Initialize the job.

        Args:
            model: Model to arrange in place
            bed: Bed outline in mm, None to arrange without bounds
            hint: Bed shape, classified from the outline when not given
            settings: Arrangement settings, global settings when not given
            on_status: Called with (placed count, message); the done
                message carries the final count
        """
        self.model = model
        self.bed = bed
        self.hint = hint
        self.settings = settings or get_settings()
        self.on_status = on_status

        self._arranging = threading.Event()
        self._cancel = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._placed = 0
        self.result: Optional[ArrangeResult] = None

    @property
    def is_running(self) -> bool:
        return self._arranging.is_set()

    def _status(self, count: int, message: str) -> None:
        if self.on_status is not None:
            self.on_status(count, message)

    def _progress(self, count: int) -> None:
        self._placed = count
        self._status(count, self.ARRANGING)

    def start(self) -> bool:
        """Start arranging in the background. Ignored while already running."""
        if self._arranging.is_set():
            return False
        self._arranging.set()
        self._cancel.clear()
        self.result = None
        self._thread = threading.Thread(target=self._run, name="arrange", daemon=True)
        self._thread.start()
        return True

    def cancel(self) -> None:
        """Ask the running arrangement to stop at its next check."""
        if self._arranging.is_set():
            self._cancel.set()
            self._status(0, self.CANCELED)

    def wait(self, timeout: Optional[float] = None) -> Optional[ArrangeResult]:
        """Wait for the background run; returns None on timeout."""
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                return None
        return self.result

    def run(self) -> ArrangeResult:
        """Arrange on the calling thread."""
        if self._arranging.is_set():
            raise RuntimeError("Arrangement already running")
        self._arranging.set()
        self._cancel.clear()
        return self._run()

    def _run(self) -> ArrangeResult:
        start_time = time.monotonic()
        settings = self.settings

        config = default_placement_config()
        config.rotations = list(settings.rotations)
        config.accuracy = settings.accuracy
        config.parallel = settings.parallel

        debug = SvgSnapshotWriter(settings.debug_svg_dir) if settings.debug_svg_dir else None

        self._placed = 0
        self._status(0, self.ARRANGING)
        try:
            outcome = run_arrangement(
                self.model,
                settings.min_object_distance,
                self.bed,
                self.hint,
                settings.first_bin_only,
                self._progress,
                self._cancel.is_set,
                config=config,
                big_threshold=settings.big_item_threshold,
                stride_padding=settings.stride_padding,
                debug=debug,
            )
            result = ArrangeResult(
                success=outcome.success,
                num_items=outcome.num_items,
                num_bins=outcome.num_groups,
                cancelled=outcome.cancelled,
            )
        except Exception as e:
            logger.error(f"Arrange error: {e}")
            result = ArrangeResult(success=False, error_message=self.ERROR_MESSAGE)
        finally:
            self._arranging.clear()

        result.processing_time = time.monotonic() - start_time
        self.result = result
        self._status(self._placed, self.DONE)
        return result
