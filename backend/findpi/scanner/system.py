"""Host resources: CPU count and open file limit."""

import logging
import os

try:
    import resource
except ImportError:  # Windows has no RLIMIT_NOFILE
    resource = None

logger = logging.getLogger(__name__)


def get_cpu_cores() -> int:
    """Number of logical processors, at least 1."""
    return os.cpu_count() or 1


def default_concurrency(per_core: int = 32) -> int:
    """Probe concurrency for an I/O bound sweep: cores * per_core."""
    return max(1, get_cpu_cores() * per_core)


def raise_file_limit(target: int = 8192) -> None:
    """
    Raise the soft open file limit so hundreds of ping processes fit.
    
    Capped at the hard limit. Failures are logged, never raised.
    """
    if resource is None:
        return
    
    try:
        soft, hard = resource.getrlimit(resource.RLIMIT_NOFILE)
    except (OSError, ValueError) as e:
        logger.warning("Could not get resource limit: %s", e)
        return
    
    wanted = target
    if hard != resource.RLIM_INFINITY and hard < wanted:
        wanted = hard
    if soft == resource.RLIM_INFINITY or soft >= wanted:
        return
    
    try:
        resource.setrlimit(resource.RLIMIT_NOFILE, (wanted, hard))
    except (OSError, ValueError) as e:
        logger.warning("Could not set resource limit: %s", e)
