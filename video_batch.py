#!/usr/bin/env python3
"""
VideoBatch - Batch convert a folder of videos to compressed H.265 MP4

Features:
- Converts every mp4/mov/avi/mkv/m4v in a folder (non-recursive)
- Caps CPU usage at 25/50/75/100% of the host's cores
- Software (x265) or hardware-accelerated encoding
- Preserves metadata (exiftool) and file timestamps
- Skips files that were already converted; failures never stop the batch
"""

import argparse
import logging
import sys

from batch_driver import BatchDriver
from config import DEFAULT_HARDWARE_ENCODER, HARDWARE_ENCODERS, RunConfiguration
from encoder import VideoEncoder
from errors import ConfigurationError, DiscoveryError
from post_processor import PostProcessor, exiftool_available
from process_runner import ProcessRunner
from resource_planner import detect_total_units
from ui import warning

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_ITEMS_FAILED = 2
EXIT_INTERRUPTED = 130

EPILOG = """
cpu_percentage options:
  25  = Use 25% of CPU cores
  50  = Use 50% of CPU cores
  75  = Use 75% of CPU cores
  100 = Use 100% of CPU cores (default)

hw_accel options:
  yes = Use hardware acceleration (faster)
  no  = Use software encoding (better quality control) (default)

example:
  video-batch ~/Videos/Original ~/Videos/Compressed 75 no
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='video-batch',
        description='VideoBatch - Convert a folder of videos to compressed H.265 MP4',
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        'input_dir',
        help='Folder containing the videos to convert'
    )

    parser.add_argument(
        'output_dir',
        help='Folder for converted videos (created if missing)'
    )

    # Validated by RunConfiguration so bad values raise ConfigurationError
    parser.add_argument(
        'cpu_percentage',
        nargs='?',
        default=None,
        help='Share of CPU cores to use: 25, 50, 75 or 100 (default: 100)'
    )

    parser.add_argument(
        'hw_accel',
        nargs='?',
        default=None,
        help="Hardware acceleration: 'yes' or 'no' (default: no)"
    )

    parser.add_argument(
        '--hw-encoder',
        default=DEFAULT_HARDWARE_ENCODER,
        choices=HARDWARE_ENCODERS,
        help=f'Encoder used when hw_accel is yes (default: {DEFAULT_HARDWARE_ENCODER})'
    )

    parser.add_argument(
        '--timeout',
        type=float,
        default=None,
        help='Abort a single conversion after this many seconds (default: no limit)'
    )

    parser.add_argument(
        '--no-progress',
        action='store_true',
        help='Hide the overall progress bar'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose output'
    )

    return parser


def setup_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )


def main(argv=None, runner=None, total_units=None) -> int:
    """
    Main entry point for the VideoBatch CLI

    Args:
        argv: Command line arguments (default: sys.argv[1:])
        runner: ProcessRunner used for ffmpeg and exiftool (default: a real one)
        total_units: Processing units to plan for (default: detected from the host)

    Returns:
        Process exit code
    """
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        config = RunConfiguration.create(
            input_dir=args.input_dir,
            output_dir=args.output_dir,
            utilization=args.cpu_percentage,
            mode=args.hw_accel,
            hw_encoder=args.hw_encoder,
            timeout=args.timeout,
            verbose=args.verbose,
        )

        runner = runner or ProcessRunner()
        encoder = VideoEncoder(
            runner=runner,
            hw_encoder=config.hw_encoder,
            timeout=config.timeout,
            verbose=config.verbose,
        )
        if not encoder.check_ffmpeg_available():
            raise ConfigurationError("ffmpeg is not installed or not in PATH")

        use_exiftool = exiftool_available()
        if not use_exiftool:
            warning("exiftool not found; metadata will not be copied (install exiftool to enable)")

        driver = BatchDriver(
            encoder=encoder,
            post_processor=PostProcessor(runner=runner, use_exiftool=use_exiftool),
            total_units=total_units or detect_total_units(),
            show_progress=not args.no_progress,
        )
        summary = driver.run(config)

    except (ConfigurationError, DiscoveryError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FATAL
    except KeyboardInterrupt:
        print("\nInterrupted; the current file's partial output and log were left in place", file=sys.stderr)
        return EXIT_INTERRUPTED

    return EXIT_ITEMS_FAILED if summary.has_failures else EXIT_OK


if __name__ == '__main__':
    sys.exit(main())
