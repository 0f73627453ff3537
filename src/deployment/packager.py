"""Build and package web applications for deployment."""

import logging
import os
import subprocess
import zipfile
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)

SKIPPED_DIRS = [".git", "__pycache__", "obj"]
SKIPPED_SUFFIXES = (".pdb", ".DS_Store")


class BuildError(Exception):
    """Raised when the application build does not produce an artifact."""

    def __init__(self, message: str, returncode: Optional[int] = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class ApplicationPackager:
    """Run the build tool and zip its output into a deployable archive."""

    def __init__(self, build_command: List[str]) -> None:
        """Initialize the packager.

        Args:
            build_command: Command template, ``{project}`` and ``{output}``
                are replaced with the project file and publish directory
        """
        self.build_command: List[str] = list(build_command)

    def build(self, project_path: Path, output_dir: Path) -> None:
        """Publish the project into ``output_dir``.

        Raises:
            BuildError: if the project is missing or the build tool fails
        """
        project_path = Path(project_path)
        if not project_path.exists():
            raise BuildError(f"Project file not found: {project_path}")

        command = [
            part.format(project=project_path, output=output_dir)
            for part in self.build_command
        ]
        logger.info(f"🔨 Building {project_path.name}: {' '.join(command)}")

        try:
            result: subprocess.CompletedProcess[str] = subprocess.run(
                command, capture_output=True, text=True, check=False
            )
        except OSError as e:
            raise BuildError(f"Failed to run {command[0]}: {e}") from e

        if result.returncode != 0:
            logger.error(f"Build failed with code {result.returncode}")
            if result.stderr:
                logger.error(f"STDERR: {result.stderr}")
            raise BuildError(
                f"Build of {project_path} failed with code {result.returncode}",
                returncode=result.returncode,
                stderr=result.stderr,
            )

    def create_archive(self, source_dir: Path, output_file: Path) -> Path:
        """Zip the contents of ``source_dir`` into ``output_file``."""
        source_dir = Path(source_dir)
        output_file = Path(output_file)
        output_file.parent.mkdir(parents=True, exist_ok=True)

        with zipfile.ZipFile(output_file, "w", zipfile.ZIP_DEFLATED) as zipf:
            for root, dirs, files in os.walk(source_dir):
                dirs[:] = [d for d in dirs if d not in SKIPPED_DIRS]

                for file in files:
                    if file.endswith(SKIPPED_SUFFIXES):
                        continue
                    file_path = Path(root) / file
                    zipf.write(file_path, file_path.relative_to(source_dir))

        size_mb: float = output_file.stat().st_size / (1024 * 1024)
        logger.info(f"📦 Package created: {output_file} ({size_mb:.2f} MB)")
        return output_file

    def package(self, project_path: Path, artifact_path: Path) -> Path:
        """Build the project and write the deployable archive.

        Args:
            project_path: Project file to build
            artifact_path: Path of the ZIP file to produce

        Returns:
            Path to the created ZIP file
        """
        artifact_path = Path(artifact_path)
        publish_dir = artifact_path.parent / "publish"
        publish_dir.mkdir(parents=True, exist_ok=True)

        self.build(project_path, publish_dir)

        if not any(publish_dir.iterdir()):
            raise BuildError(f"Build of {project_path} produced no output")

        return self.create_archive(publish_dir, artifact_path)
