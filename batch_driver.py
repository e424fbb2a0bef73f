"""
Batch driver for VideoBatch

Walks the discovered work list one item at a time:

    Discovered -> Skipped                       (output already exists)
    Discovered -> Converting -> Succeeded -> metadata -> timestamps -> Reported
    Discovered -> Converting -> Failed -> Reported

Items run strictly in discovery order and never overlap; the resource plan
already hands the chosen share of the CPU to a single ffmpeg process.
"""

import logging
from typing import Optional

from tqdm import tqdm

from config import RunConfiguration
from encoder import ConversionResult, VideoEncoder, log_tail
from errors import ConversionFailure
from post_processor import FinalizeResult, PostProcessor
from resource_planner import ResourcePlan, plan
from stats import RunSummary, display_summary, format_size
from ui import console, run_banner
from video_discovery import WorkItem, discover

logger = logging.getLogger(__name__)

LOG_TAIL_LINES = 20


class BatchDriver:
    """Runs the convert/finalize pipeline over every file in a directory"""

    def __init__(
        self,
        encoder: VideoEncoder,
        post_processor: PostProcessor,
        total_units: int,
        show_progress: bool = True
    ):
        """
        Args:
            encoder: VideoEncoder used for every item
            post_processor: PostProcessor applied after each successful conversion
            total_units: Processing units on the host (injected so runs are reproducible)
            show_progress: Show a tqdm bar over the items
        """
        self.encoder = encoder
        self.post_processor = post_processor
        self.total_units = total_units
        self.show_progress = show_progress

    def run(self, config: RunConfiguration) -> RunSummary:
        """
        Convert every supported video in config.input_dir

        Raises:
            DiscoveryError: If the input directory cannot be listed

        Returns:
            RunSummary with per-outcome counts
        """
        config.output_dir.mkdir(parents=True, exist_ok=True)
        config.log_dir.mkdir(parents=True, exist_ok=True)

        resource_plan = plan(config.utilization, self.total_units)
        items = discover(config.input_dir, config.output_dir)

        summary = RunSummary(total=len(items), log_dir=config.log_dir)
        self._print_banner(config, resource_plan, summary.total)

        with tqdm(items, desc="Converting", unit="video", disable=not self.show_progress) as progress:
            for index, item in enumerate(progress, start=1):
                progress.set_postfix_str(item.name)
                self._process_item(item, index, summary, config, resource_plan)

        console.rule()
        console.print("[bold]Conversion complete![/bold]")
        display_summary(summary)
        return summary

    def _print_banner(self, config: RunConfiguration, resource_plan: ResourcePlan, total: int):
        metadata = "exiftool" if self.post_processor.use_exiftool else "skipped (exiftool not found)"
        run_banner([
            ("Input folder", config.input_dir),
            ("Output folder", config.output_dir),
            ("Total videos", total),
            ("CPU cores", f"{resource_plan.total_units} total"),
            ("Using", resource_plan.describe()),
            ("Encoding method", self.encoder.encoder_label(config.mode)),
            ("Metadata", metadata),
        ])

    def _process_item(
        self,
        item: WorkItem,
        index: int,
        summary: RunSummary,
        config: RunConfiguration,
        resource_plan: ResourcePlan
    ):
        tqdm.write(f"[{index}/{summary.total}] Processing: {item.name}")

        if item.output_path.exists():
            tqdm.write("  → Skipping (already exists)")
            tqdm.write("")
            summary.record_skip()
            return

        try:
            self._convert_item(item, summary, config, resource_plan)
        except ConversionFailure as e:
            self._report_failure(item, str(e))
            summary.record_failure(item.source_path)
        except Exception as e:
            logger.exception(f"{item.name}: unexpected error")
            self._report_failure(item, f"Unexpected error: {e}")
            summary.record_failure(item.source_path)

        tqdm.write("")

    def _convert_item(
        self,
        item: WorkItem,
        summary: RunSummary,
        config: RunConfiguration,
        resource_plan: ResourcePlan
    ):
        tqdm.write(f"  → Encoding... (tail -f {item.log_path} for details)")

        result = self.encoder.convert(item, resource_plan, config.mode)
        if not result.succeeded:
            # A leftover partial output would be skipped as done on the next run
            if result.output_exists:
                item.output_path.unlink(missing_ok=True)
                logger.debug(f"{item.name}: removed partial output {item.output_path.name}")
            raise ConversionFailure(self._failure_message(result, config.timeout))

        tqdm.write(f"  ✓ Conversion successful ({result.elapsed_display})")

        finalized = self.post_processor.finalize(item)
        self._report_finalize(finalized)

        item.log_path.unlink(missing_ok=True)

        size = finalized.size
        if size is not None:
            summary.record_success(size.source_bytes, size.output_bytes)
        else:
            summary.record_success()

    @staticmethod
    def _failure_message(result: ConversionResult, timeout: Optional[float]) -> str:
        if result.timed_out:
            return f"Conversion failed (timed out after {timeout}s)"
        if result.exit_code == 0:
            return "Conversion failed (exit code: 0, but no output file was written)"
        if result.exit_code is None:
            return "Conversion failed (ffmpeg could not be started)"
        return f"Conversion failed (exit code: {result.exit_code})"

    def _report_finalize(self, finalized: FinalizeResult):
        if finalized.metadata_copied:
            tqdm.write("  ✓ Metadata copied")
        if finalized.timestamps_copied:
            tqdm.write("  ✓ Timestamps preserved")
        for message in finalized.warnings:
            tqdm.write(f"  ⚠ {message}")

        size = finalized.size
        if size is None:
            return
        sizes = f"{format_size(size.source_bytes)} → {format_size(size.output_bytes)}"
        if size.reduction_percent is not None:
            tqdm.write(f"  ✓ Size: {sizes} ({size.reduction_percent}% reduction)")
        else:
            tqdm.write(f"  ✓ Size: {sizes}")

    def _report_failure(self, item: WorkItem, message: str):
        tqdm.write(f"  ✗ ERROR: {message}")
        tqdm.write(f"  ✗ Check log: {item.log_path}")

        tail = log_tail(item.log_path, LOG_TAIL_LINES)
        if tail:
            tqdm.write("")
            tqdm.write(f"--- Last {LOG_TAIL_LINES} lines of error log ---")
            for line in tail:
                tqdm.write(line)
            tqdm.write("-----------------------------------")
