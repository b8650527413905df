"""
Workspace Manager - Allocates an isolated temporary directory per job.
"""

import logging
import os
import shutil
import tempfile
from typing import Optional

from montage_maker.config import Settings, get_settings

logger = logging.getLogger(__name__)


class WorkspaceManager:
    """Creates and removes per-job working directories under the temp root."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def create(self) -> str:
        """
        Create a fresh, uniquely named workspace directory.

        Raises:
            OSError: If the directory cannot be created
        """
        os.makedirs(self.settings.temp_directory, exist_ok=True)
        workspace = tempfile.mkdtemp(
            prefix=self.settings.workspace_prefix,
            dir=self.settings.temp_directory,
        )
        logger.debug(f"Created workspace: {workspace}")
        return workspace

    def remove(self, workspace: str) -> None:
        """Delete a workspace and everything in it."""
        if os.path.isdir(workspace):
            shutil.rmtree(workspace, ignore_errors=True)
            logger.debug(f"Removed workspace: {workspace}")
