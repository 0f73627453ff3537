"""Scoped temporary working directories."""

import logging
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

logger = logging.getLogger(__name__)


@contextmanager
def temporary_workspace(
    prefix: str = "webapp-deploy-", base_dir: Optional[Path] = None
) -> Iterator[Path]:
    """
    Create a uniquely named directory and remove it recursively on exit.

    Removal runs on every exit path. Errors while removing are logged and
    never replace the outcome of the block.
    """
    workspace = Path(tempfile.mkdtemp(prefix=prefix, dir=base_dir))
    logger.debug(f"Created workspace {workspace}")

    try:
        yield workspace
    finally:
        try:
            shutil.rmtree(workspace)
            logger.debug(f"Removed workspace {workspace}")
        except OSError as e:
            logger.warning(f"⚠️  Could not remove workspace {workspace}: {e}")
