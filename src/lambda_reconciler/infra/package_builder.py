"""Build Lambda deployment packages from function source directories.

Each function lives in ``<workspace>/<source_root>/<function>/``. Its package
is written next to the sources as ``<function>.zip``, with paths relative to
the function directory (no wrapping top-level folder), so the handler file
sits at the archive root where Lambda expects it.
"""

import asyncio
import logging
import os
import tempfile
import zipfile
from pathlib import Path

from ..exceptions import PackagingError
from ..models import PackageArtifact

logger = logging.getLogger(__name__)

ARTIFACT_SUFFIX = ".zip"


class PackageBuilder:
    """
    Archives function source directories into deployable zip files.

    Args:
        workspace: Repository root
        source_root: Directory under the workspace holding function sources
        compresslevel: zlib level for ``ZIP_DEFLATED`` (9: maximum compression)
    """

    def __init__(
        self,
        workspace: str | Path,
        source_root: str = "REST",
        compresslevel: int = 9,
    ) -> None:
        self.workspace = Path(workspace)
        self.source_root = source_root
        self.compresslevel = compresslevel

    def source_path(self, function_name: str) -> Path:
        return self.workspace / self.source_root / function_name

    def artifact_path(self, function_name: str) -> Path:
        return self.source_path(function_name) / f"{function_name}{ARTIFACT_SUFFIX}"

    async def build(self, function_name: str) -> PackageArtifact:
        """
        Build the package for a function without blocking the event loop.

        Returns only once the artifact is fully written and closed.

        Raises:
            PackagingError: If the sources are missing or unreadable, or the
                archive cannot be written
        """
        return await asyncio.to_thread(self.build_sync, function_name)

    def build_sync(self, function_name: str) -> PackageArtifact:
        """Synchronous variant of ``build``."""
        source = self.source_path(function_name)
        dest = self.artifact_path(function_name)

        if not source.is_dir():
            raise PackagingError(function_name, f"source directory not found: {source}")

        logger.info("Packaging %s from %s", function_name, source)

        try:
            files = self._collect_files(source, dest)
        except OSError as e:
            raise PackagingError(function_name, f"cannot read {source}: {e}", e) from e

        # Write to a sibling temp file and rename, so the artifact path only
        # ever holds a complete archive
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{function_name}-", suffix=ARTIFACT_SUFFIX, dir=source
            )
        except OSError as e:
            raise PackagingError(function_name, f"cannot write {dest}: {e}", e) from e

        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as fh:
                with zipfile.ZipFile(
                    fh, "w", zipfile.ZIP_DEFLATED, compresslevel=self.compresslevel
                ) as zf:
                    for file_path in files:
                        zf.write(file_path, file_path.relative_to(source).as_posix())
            os.replace(tmp_path, dest)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise PackagingError(function_name, f"archiving into {dest} failed: {e}", e) from e
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

        artifact = PackageArtifact(source_path=source, artifact_path=dest)
        logger.info(
            "Packaged %s: %d files, %.1f KB", function_name, len(files), artifact.size_bytes / 1024
        )
        return artifact

    @staticmethod
    def _collect_files(source: Path, dest: Path) -> list[Path]:
        """
        List regular files under ``source``, excluding the artifact itself.

        Raises:
            OSError: If any directory in the tree cannot be listed
        """

        def _fail(error: OSError) -> None:
            raise error

        result = []
        for root, _dirs, names in os.walk(source, onerror=_fail):
            for name in names:
                file_path = Path(root) / name
                if not file_path.is_file():
                    continue
                if file_path == dest:
                    continue
                # In-progress temp archives from this builder
                if (
                    file_path.parent == source
                    and file_path.name.startswith(f".{dest.stem}-")
                    and file_path.suffix == ARTIFACT_SUFFIX
                ):
                    continue
                result.append(file_path)
        return sorted(result)
