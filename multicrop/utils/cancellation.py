"""Cooperative cancellation checkpoints.

Callers running detection on a worker thread pass a ``threading.Event``;
the pipeline polls it between stages and raises ``Cancelled`` once set.
"""

import logging
import threading
from typing import Optional

from multicrop.errors import Cancelled

logger = logging.getLogger(__name__)


def check_cancelled(cancel_event: Optional[threading.Event], stage: str) -> None:
    """Raise ``Cancelled`` if the event has been set.

    Args:
        cancel_event: Event shared with the caller, or None when detection
            cannot be cancelled
        stage: Name of the checkpoint, used in the error and log message

    Raises:
        Cancelled: If ``cancel_event`` is set
    """
    if cancel_event is not None and cancel_event.is_set():
        logger.info(f"Cancellation requested, aborting at {stage}")
        raise Cancelled(stage)
