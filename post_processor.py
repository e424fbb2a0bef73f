"""
Post-processing for converted videos

After a successful conversion the output gets the source's metadata tags
(via exiftool) and then the source's timestamps. Timestamps must be copied
last because exiftool rewrites the file and bumps its mtime.
"""

import logging
import os
import platform
import shutil
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from errors import PostProcessingWarning
from process_runner import ProcessRunner
from video_discovery import WorkItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SizeReport:
    """Source vs output size for one item"""
    source_bytes: int
    output_bytes: int
    reduction_percent: Optional[float]


@dataclass
class FinalizeResult:
    """What post-processing managed to do for one item"""
    metadata_copied: bool = False
    timestamps_copied: bool = False
    size: Optional[SizeReport] = None
    warnings: List[str] = field(default_factory=list)


def size_reduction(source_bytes: int, output_bytes: int) -> Optional[float]:
    """
    Percentage saved by the conversion, rounded to one decimal

    Returns:
        (1 - output/source) * 100, or None when the source is empty
    """
    if source_bytes <= 0:
        return None
    return round((1 - output_bytes / source_bytes) * 100, 1)


def exiftool_available() -> bool:
    return shutil.which('exiftool') is not None


class PostProcessor:
    """Copies metadata and timestamps from source to output"""

    def __init__(self, runner: Optional[ProcessRunner] = None, use_exiftool: bool = True):
        self.runner = runner or ProcessRunner()
        self.use_exiftool = use_exiftool

    def copy_metadata(self, source: Path, output: Path):
        """
        Copy every tag from source onto output in place (no _original backup)

        Raises:
            PostProcessingWarning: If exiftool fails
        """
        cmd = [
            'exiftool',
            '-TagsFromFile', str(source),
            '-all:all>all:all',
            '-overwrite_original',
            str(output)
        ]
        result = self.runner.invoke(cmd)
        if result.exit_code != 0:
            detail = result.output.strip().splitlines()[-1] if result.output.strip() else f"exit code {result.exit_code}"
            raise PostProcessingWarning(f"Metadata copy failed: {detail}")

    def copy_timestamps(self, source: Path, output: Path):
        """
        Give output the source's access/modification times, and on macOS
        its creation time as well

        Raises:
            PostProcessingWarning: If the timestamps cannot be read or set
        """
        try:
            st = os.stat(source)
            os.utime(output, ns=(st.st_atime_ns, st.st_mtime_ns))
        except OSError as e:
            raise PostProcessingWarning(f"Timestamp copy failed: {e}") from e

        birthtime = getattr(st, 'st_birthtime', None)
        if birthtime is not None:
            self._apply_birthtime(output, birthtime)

    def _apply_birthtime(self, path: Path, birthtime: float):
        if platform.system() != 'Darwin':
            return
        setfile = shutil.which('SetFile')
        if not setfile:
            logger.debug(f"SetFile unavailable; skipping creation time for {path.name}")
            return
        try:
            dt = datetime.fromtimestamp(birthtime, tz=timezone.utc).astimezone()
        except (OSError, OverflowError, ValueError) as e:
            logger.debug(f"Cannot convert creation time for {path.name}: {e}")
            return
        result = self.runner.invoke([setfile, '-d', dt.strftime('%m/%d/%Y %H:%M:%S'), str(path)])
        if result.exit_code != 0:
            logger.debug(f"SetFile exited with {result.exit_code} for {path.name}")

    def size_report(self, source: Path, output: Path) -> SizeReport:
        source_bytes = source.stat().st_size
        output_bytes = output.stat().st_size
        return SizeReport(
            source_bytes=source_bytes,
            output_bytes=output_bytes,
            reduction_percent=size_reduction(source_bytes, output_bytes),
        )

    def finalize(self, item: WorkItem) -> FinalizeResult:
        """
        Run all post-processing steps for a successfully converted item

        Failures are collected as warnings; they never mark the item failed.

        Args:
            item: WorkItem whose output_path exists

        Returns:
            FinalizeResult describing what was done
        """
        result = FinalizeResult()

        if self.use_exiftool:
            try:
                self.copy_metadata(item.source_path, item.output_path)
                result.metadata_copied = True
            except PostProcessingWarning as e:
                logger.warning(f"{item.name}: {e}")
                result.warnings.append(str(e))

        try:
            self.copy_timestamps(item.source_path, item.output_path)
            result.timestamps_copied = True
        except PostProcessingWarning as e:
            logger.warning(f"{item.name}: {e}")
            result.warnings.append(str(e))

        try:
            result.size = self.size_report(item.source_path, item.output_path)
        except OSError as e:
            logger.warning(f"{item.name}: Cannot read file sizes: {e}")
            result.warnings.append(f"Size comparison unavailable: {e}")

        return result
