"""
Synthetic sample videos for exercising VideoBatch against a real ffmpeg
"""

import logging
import shutil
import subprocess
from pathlib import Path


def ffmpeg_available() -> bool:
    return shutil.which('ffmpeg') is not None


def encoder_available(name: str) -> bool:
    """Whether the local ffmpeg build ships the given encoder (e.g. libx265)"""
    if not ffmpeg_available():
        return False
    result = subprocess.run(['ffmpeg', '-hide_banner', '-encoders'], capture_output=True, text=True)
    return result.returncode == 0 and f' {name} ' in result.stdout


def create_sample_video(
    output_path: Path,
    duration: int = 10,
    width: int = 320,
    height: int = 240,
    fps: int = 25
) -> bool:
    """
    Creates a short test-pattern clip with a sine-wave audio track.

    Args:
        output_path (Path): Where to write the clip; the extension picks the container.
        duration (int): Length in seconds.
        width (int): Frame width.
        height (int): Frame height.
        fps (int): Source frame rate.

    Returns:
        True if the clip was created.
    """
    command = [
        'ffmpeg',
        '-nostdin',
        '-f', 'lavfi', '-i', f'testsrc=duration={duration}:size={width}x{height}:rate={fps}',
        '-f', 'lavfi', '-i', f'sine=frequency=440:duration={duration}',
        '-c:v', 'libx264',
        '-pix_fmt', 'yuv420p',
        '-c:a', 'aac',
        '-shortest',
        '-y',  # Overwrite output file if it exists
        str(output_path)
    ]

    result = subprocess.run(command, capture_output=True, text=True)

    if result.returncode == 0 and Path(output_path).exists():
        logging.info(f"Successfully created sample: {output_path}")
        return True

    logging.error(f"Failed to create sample {output_path}: {result.stderr}")
    return False


def create_corrupt_video(output_path: Path, size: int = 4096):
    """Writes bytes that look like nothing ffmpeg can decode."""
    Path(output_path).write_bytes(b'\x00not a video\xff' * (size // 14 + 1))
