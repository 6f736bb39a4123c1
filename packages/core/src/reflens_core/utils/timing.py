from __future__ import annotations

import logging
import time
from contextlib import contextmanager

logger = logging.getLogger(__name__)


@contextmanager
def timed(label: str):
    """Log the start and end of a step together with its wall-clock time.

    The finish line is only logged when the step completes; a failing step
    leaves just its "Starting" line, which is enough to tell where a run died.
    """
    started = time.monotonic()
    logger.info("Starting %s", label)
    yield
    elapsed_ms = int((time.monotonic() - started) * 1000)
    logger.info("Finished %s in %dms", label, elapsed_ms)
