"""Host system requirement checks used by the assert action."""

import logging
import shutil
from collections.abc import Iterable

from sugo_serialport.errors import RequirementError
from sugo_serialport.protocol import NAME

logger = logging.getLogger(__name__)


def has_bin(name: str) -> bool:
    """Return True if command name is found on PATH."""
    return shutil.which(name) is not None


def assert_bins(bins: Iterable[str]) -> bool:
    """Check that every command exists, in order.

    Returns True when all are present.
    Raises RequirementError naming the first missing command.
    """
    for name in bins:
        if not has_bin(name):
            logger.error(f"Required command not found: {name}")
            raise RequirementError(f"[{NAME}] Command not found: {name}")
        logger.debug(f"Required command found: {name}")
    return True
