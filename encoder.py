"""
Video encoding module for converting videos to compressed H.265 MP4
"""

import logging
import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional

from tqdm import tqdm

from config import DEFAULT_HARDWARE_ENCODER, EncodingMode
from process_runner import ProcessRunner
from resource_planner import ResourcePlan
from video_discovery import WorkItem

logger = logging.getLogger(__name__)


class ConversionStatus(Enum):
    SUCCESS = "success"
    FAILURE = "failure"


def format_elapsed(seconds: float) -> str:
    """
    Format elapsed time as minutes and seconds

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted string like "2m 30s"
    """
    total = max(0, int(seconds))
    minutes, secs = divmod(total, 60)
    return f"{minutes}m {secs}s"


@dataclass(frozen=True)
class ConversionResult:
    """Outcome of one engine invocation for one WorkItem"""
    status: ConversionStatus
    exit_code: Optional[int]
    elapsed: float
    output_exists: bool
    timed_out: bool = False

    @property
    def succeeded(self) -> bool:
        return self.status is ConversionStatus.SUCCESS

    @property
    def elapsed_display(self) -> str:
        return format_elapsed(self.elapsed)


def classify(exit_code: Optional[int], output_exists: bool) -> ConversionStatus:
    """A conversion only counts when the engine exits 0 AND the output is on disk"""
    if exit_code == 0 and output_exists:
        return ConversionStatus.SUCCESS
    return ConversionStatus.FAILURE


class VideoEncoder:
    """Builds and runs one ffmpeg invocation per WorkItem"""

    ENGINE = 'ffmpeg'

    # Software (x265) settings
    SOFTWARE_CODEC = 'libx265'
    PRESET = 'fast'
    CRF = 23

    # Hardware settings
    HARDWARE_BITRATE = '5M'
    HARDWARE_TAG = 'hvc1'  # Apple players expect hvc1 rather than hev1

    # Shared output policy
    MAX_WIDTH = 1920
    MAX_HEIGHT = 1080
    FRAME_RATE = 30
    AUDIO_CODEC = 'aac'
    AUDIO_BITRATE = '128k'
    AUDIO_CHANNELS = 2

    def __init__(
        self,
        runner: Optional[ProcessRunner] = None,
        hw_encoder: str = DEFAULT_HARDWARE_ENCODER,
        timeout: Optional[float] = None,
        verbose: bool = False
    ):
        self.runner = runner or ProcessRunner()
        self.hw_encoder = hw_encoder
        self.timeout = timeout
        self.verbose = verbose

        self._video_options: Dict[EncodingMode, Callable[[ResourcePlan], List[str]]] = {
            EncodingMode.SOFTWARE: self._software_video_options,
            EncodingMode.HARDWARE: self._hardware_video_options,
        }
        self._tag_options: Dict[EncodingMode, List[str]] = {
            EncodingMode.SOFTWARE: [],
            EncodingMode.HARDWARE: ['-tag:v', self.HARDWARE_TAG],
        }

    def filter_expression(self) -> str:
        """Scale down to fit within 1920x1080 (never up) and normalize frame rate"""
        return (
            f"scale='min({self.MAX_WIDTH},iw)':'min({self.MAX_HEIGHT},ih)'"
            f":force_original_aspect_ratio=decrease,fps={self.FRAME_RATE}"
        )

    def _software_video_options(self, plan: ResourcePlan) -> List[str]:
        return [
            '-c:v', self.SOFTWARE_CODEC,
            '-preset', self.PRESET,
            '-crf', str(self.CRF),
            '-x265-params', f"pools={plan.pools}:threads={plan.workers}",
        ]

    def _hardware_video_options(self, plan: ResourcePlan) -> List[str]:
        # Hardware encoders manage their own parallelism
        return [
            '-c:v', self.hw_encoder,
            '-b:v', self.HARDWARE_BITRATE,
        ]

    def encoder_label(self, mode: EncodingMode) -> str:
        if mode is EncodingMode.HARDWARE:
            return f"Hardware ({self.hw_encoder})"
        return f"Software ({self.SOFTWARE_CODEC})"

    def build_command(self, item: WorkItem, plan: ResourcePlan, mode: EncodingMode) -> List[str]:
        """
        Build the ffmpeg command for one item

        Args:
            item: WorkItem to convert
            plan: Thread/pool budget (used in software mode)
            mode: Software or hardware encoding

        Returns:
            Full argument list, ending with the output path
        """
        cmd = [self.ENGINE, '-nostdin', '-i', str(item.source_path)]
        cmd.extend(self._video_options[mode](plan))
        cmd.extend([
            '-vf', self.filter_expression(),
            '-c:a', self.AUDIO_CODEC,
            '-b:a', self.AUDIO_BITRATE,
            '-ac', str(self.AUDIO_CHANNELS),
            '-map_metadata', '0',
            '-movflags', '+faststart',
        ])
        cmd.extend(self._tag_options[mode])
        cmd.extend([
            '-y',  # Overwrite any partial output from an interrupted run
            str(item.output_path)
        ])
        return cmd

    def convert(self, item: WorkItem, plan: ResourcePlan, mode: EncodingMode) -> ConversionResult:
        """
        Convert one item, writing the engine's combined output to item.log_path

        Makes a single attempt; engine failures are reported in the result
        rather than raised.

        Returns:
            ConversionResult classified as success only if ffmpeg exited 0
            and the output file exists
        """
        item.log_path.parent.mkdir(parents=True, exist_ok=True)
        cmd = self.build_command(item, plan, mode)

        if self.verbose:
            tqdm.write(f"  Command: {' '.join(cmd)}")

        start = time.monotonic()
        result = self.runner.invoke(cmd, log_path=item.log_path, timeout=self.timeout)
        elapsed = time.monotonic() - start

        output_exists = item.output_path.exists()
        status = classify(result.exit_code, output_exists)

        if result.exit_code == 0 and not output_exists:
            logger.warning(f"{item.name}: ffmpeg exited 0 but {item.output_path.name} is missing")

        logger.debug(f"{item.name}: exit={result.exit_code} status={status.value} elapsed={elapsed:.1f}s")

        return ConversionResult(
            status=status,
            exit_code=result.exit_code,
            elapsed=elapsed,
            output_exists=output_exists,
            timed_out=result.timed_out,
        )

    def check_ffmpeg_available(self) -> bool:
        """
        Check if ffmpeg is available on the system

        Returns:
            True if ffmpeg is available, False otherwise
        """
        result = self.runner.invoke([self.ENGINE, '-version'], timeout=5)
        return result.exit_code == 0


def log_tail(log_path: Path, lines: int = 20) -> List[str]:
    """Last lines of a retained log, or an empty list if it is missing"""
    try:
        with open(log_path, 'r', encoding='utf-8', errors='replace') as f:
            return [line.rstrip('\n') for line in deque(f, maxlen=lines)]
    except OSError:
        return []
