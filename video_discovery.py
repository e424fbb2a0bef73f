"""
Video file discovery for VideoBatch

Lists the input directory (one level, no recursion) and turns every
supported video into a WorkItem with its derived output and log paths.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List

from config import LOG_DIR_NAME
from errors import DiscoveryError


# Case-sensitive; each case variant is listed on its own and the scan
# visits them in this order
SUPPORTED_EXTENSIONS = ("mp4", "mov", "avi", "mkv", "m4v", "MP4", "MOV", "AVI", "MKV", "M4V")

OUTPUT_EXTENSION = '.mp4'


@dataclass(frozen=True)
class WorkItem:
    """One discovered input file and where its results go"""
    source_path: Path
    output_path: Path
    log_path: Path

    @property
    def name(self) -> str:
        return self.source_path.name


def make_work_item(source_path: Path, output_dir: Path, stem: str) -> WorkItem:
    return WorkItem(
        source_path=source_path,
        output_path=output_dir / f"{stem}{OUTPUT_EXTENSION}",
        log_path=output_dir / LOG_DIR_NAME / f"{stem}.log",
    )


def _list_files(directory: Path) -> List[os.DirEntry]:
    try:
        with os.scandir(directory) as entries:
            return [entry for entry in entries if entry.is_file(follow_symlinks=False)]
    except OSError as e:
        raise DiscoveryError(f"Cannot read input directory {directory}: {e}") from e


def discover(
    directory: Path,
    output_dir: Path,
    extensions: Iterable[str] = SUPPORTED_EXTENSIONS
) -> List[WorkItem]:
    """
    Find the video files to convert

    Files are grouped by extension in the order given; within an extension
    they keep the directory listing order, so repeated scans of an unchanged
    directory return the same sequence.

    Args:
        directory: Directory to scan (not recursive)
        output_dir: Output directory used to derive output and log paths
        extensions: Extensions to match, without the dot (case-sensitive)

    Returns:
        List of WorkItem objects, possibly empty

    Raises:
        DiscoveryError: If the directory cannot be listed
    """
    files = _list_files(Path(directory))
    items = []

    for ext in extensions:
        suffix = f'.{ext}'
        for entry in files:
            if not entry.name.endswith(suffix):
                continue
            stem = entry.name[:-len(suffix)]
            if not stem:
                continue
            items.append(make_work_item(Path(entry.path), Path(output_dir), stem))

    return items

