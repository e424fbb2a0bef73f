"""
Run configuration for VideoBatch

Validates user input once at startup and freezes it into a RunConfiguration
that the batch driver owns for the whole run.
"""

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from errors import ConfigurationError


ALLOWED_UTILIZATION = (25, 50, 75, 100)
DEFAULT_UTILIZATION = 100

LOG_DIR_NAME = '.logs'

HARDWARE_ENCODERS = ('hevc_videotoolbox', 'hevc_nvenc', 'hevc_qsv')
DEFAULT_HARDWARE_ENCODER = 'hevc_videotoolbox'


class EncodingMode(Enum):
    """Which family of encoder the engine should use"""
    SOFTWARE = "software"
    HARDWARE = "hardware"


# Accepted spellings for the optional HW_ACCEL argument
_MODE_ALIASES = {
    'no': EncodingMode.SOFTWARE,
    'software': EncodingMode.SOFTWARE,
    'yes': EncodingMode.HARDWARE,
    'hardware': EncodingMode.HARDWARE,
}


def parse_utilization(value: Union[int, str, None]) -> int:
    """
    Parse a CPU utilization percentage

    Args:
        value: 25, 50, 75 or 100 (as int or string); None means the default

    Returns:
        The utilization percentage as an int

    Raises:
        ConfigurationError: If the value is not one of the allowed fractions
    """
    if value is None:
        return DEFAULT_UTILIZATION
    try:
        utilization = int(str(value).strip())
    except ValueError:
        utilization = None
    if utilization not in ALLOWED_UTILIZATION:
        raise ConfigurationError(
            f"cpu_percentage must be 25, 50, 75, or 100 (got {value!r})"
        )
    return utilization


def parse_mode(value: Union[EncodingMode, str, None]) -> EncodingMode:
    """Parse the hardware acceleration switch into an EncodingMode"""
    if value is None:
        return EncodingMode.SOFTWARE
    if isinstance(value, EncodingMode):
        return value
    mode = _MODE_ALIASES.get(str(value).strip().lower())
    if mode is None:
        raise ConfigurationError(
            f"hw_accel must be 'yes' or 'no' (got {value!r})"
        )
    return mode


@dataclass(frozen=True)
class RunConfiguration:
    """Validated, immutable settings for one batch run"""
    input_dir: Path
    output_dir: Path
    utilization: int = DEFAULT_UTILIZATION
    mode: EncodingMode = EncodingMode.SOFTWARE
    hw_encoder: str = DEFAULT_HARDWARE_ENCODER
    timeout: Optional[float] = None
    verbose: bool = False

    @property
    def log_dir(self) -> Path:
        """Hidden directory under the output folder for per-item logs"""
        return self.output_dir / LOG_DIR_NAME

    @classmethod
    def create(
        cls,
        input_dir,
        output_dir,
        utilization=None,
        mode=None,
        hw_encoder: str = DEFAULT_HARDWARE_ENCODER,
        timeout: Optional[float] = None,
        verbose: bool = False
    ) -> 'RunConfiguration':
        """
        Validate raw user input and build a RunConfiguration

        Raises:
            ConfigurationError: On any invalid argument or a missing input directory
        """
        input_dir = Path(input_dir).expanduser()
        output_dir = Path(output_dir).expanduser()

        utilization = parse_utilization(utilization)
        mode = parse_mode(mode)

        if hw_encoder not in HARDWARE_ENCODERS:
            raise ConfigurationError(
                f"Unknown hardware encoder: {hw_encoder} "
                f"(choose from {', '.join(HARDWARE_ENCODERS)})"
            )

        if timeout is not None and timeout <= 0:
            raise ConfigurationError(f"timeout must be positive (got {timeout})")

        if not input_dir.exists():
            raise ConfigurationError(f"Input directory does not exist: {input_dir}")
        if not input_dir.is_dir():
            raise ConfigurationError(f"Input path is not a directory: {input_dir}")
        if not os.access(input_dir, os.R_OK | os.X_OK):
            raise ConfigurationError(f"Input directory is not readable: {input_dir}")

        return cls(
            input_dir=input_dir,
            output_dir=output_dir,
            utilization=utilization,
            mode=mode,
            hw_encoder=hw_encoder,
            timeout=timeout,
            verbose=verbose,
        )
