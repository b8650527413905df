"""
Job Janitor - Periodically evicts finished jobs and deletes their workspaces.

Only runs when JOB_TTL_SECONDS is configured; by default jobs are kept for
the lifetime of the process.
"""

import asyncio
import logging

from montage_maker.services.job_registry import JobRegistry
from montage_maker.services.workspace import WorkspaceManager

logger = logging.getLogger(__name__)


def sweep_finished_jobs(
    registry: JobRegistry,
    workspace_manager: WorkspaceManager,
    ttl_seconds: float,
) -> int:
    """
    Evict terminal jobs older than ttl_seconds and remove their workspaces.

    Returns:
        Number of jobs evicted
    """
    evicted = registry.evict_finished(ttl_seconds)
    for job in evicted:
        if job.workspace:
            workspace_manager.remove(job.workspace)
        logger.debug(f"Job {job.id} evicted ({job.status.value})")
    return len(evicted)


async def run_janitor(
    registry: JobRegistry,
    workspace_manager: WorkspaceManager,
    ttl_seconds: float,
    interval_seconds: float,
) -> None:
    """Sweep forever until cancelled."""
    logger.info(f"Job janitor started (ttl={ttl_seconds}s, every {interval_seconds}s)")
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            sweep_finished_jobs(registry, workspace_manager, ttl_seconds)
        except OSError as e:
            logger.warning(f"Job janitor sweep failed: {e}")
