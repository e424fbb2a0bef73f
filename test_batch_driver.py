#!/usr/bin/env python3
"""
Test script for the batch driver using a fake ffmpeg

This test verifies that:
1. A folder with one video and one non-video converts exactly one file
2. Logs are removed on success and kept (with their tail printed) on failure
3. One failing file does not stop the rest of the batch
4. Existing outputs are skipped without invoking ffmpeg
5. A failed conversion leaves no partial output behind
"""

import io
import os
import tempfile
from contextlib import redirect_stdout
from pathlib import Path

from batch_driver import BatchDriver
from config import RunConfiguration
from encoder import VideoEncoder
from fakes import FakeRunner
from post_processor import PostProcessor

SOURCE_MTIME = 1_500_000_000


def make_driver(runner, total_units=8, use_exiftool=True):
    return BatchDriver(
        encoder=VideoEncoder(runner=runner),
        post_processor=PostProcessor(runner=runner, use_exiftool=use_exiftool),
        total_units=total_units,
        show_progress=False,
    )


def run_batch(driver, config):
    """Run the batch and return (summary, captured stdout)"""
    buffer = io.StringIO()
    with redirect_stdout(buffer):
        summary = driver.run(config)
    return summary, buffer.getvalue()


def write_video(path: Path, size: int = 1000):
    path.write_bytes(b'\x01' * size)
    os.utime(path, (SOURCE_MTIME, SOURCE_MTIME))


def test_single_video_end_to_end():
    print("="*60)
    print("Test 1: one video + one non-video, 50% software")
    print("="*60)

    with tempfile.TemporaryDirectory() as tmpdir:
        tmpdir = Path(tmpdir)
        input_dir = tmpdir / 'input'
        input_dir.mkdir()
        write_video(input_dir / 'holiday.mov')
        (input_dir / 'notes.txt').write_text("not a video")

        config = RunConfiguration.create(input_dir, tmpdir / 'nested' / 'output', utilization=50, mode='no')
        runner = FakeRunner(output_bytes=400)
        summary, output = run_batch(make_driver(runner), config)

        assert summary.total == 1
        assert summary.processed == 1
        assert summary.succeeded == 1
        assert summary.failed == 0
        assert summary.skipped == 0

        outputs = sorted(p.name for p in config.output_dir.iterdir() if p.is_file())
        assert outputs == ['holiday.mp4']
        assert config.log_dir.is_dir()
        assert list(config.log_dir.iterdir()) == [], "log should be removed on success"

        cmd = runner.conversions[0]
        assert cmd[cmd.index('-x265-params') + 1] == 'pools=2:threads=4'

        output_path = config.output_dir / 'holiday.mp4'
        assert int(output_path.stat().st_mtime) == SOURCE_MTIME

        assert "[1/1] Processing: holiday.mov" in output
        assert "✓ Conversion successful" in output
        assert "✓ Timestamps preserved" in output
        assert "(60.0% reduction)" in output
        print("✓ PASS")


def test_failure_keeps_log_and_continues():
    print("="*60)
    print("Test 2: corrupt file fails, batch continues")
    print("="*60)

    with tempfile.TemporaryDirectory() as tmpdir:
        tmpdir = Path(tmpdir)
        input_dir = tmpdir / 'input'
        input_dir.mkdir()
        write_video(input_dir / 'broken.avi')
        write_video(input_dir / 'good.mp4')

        config = RunConfiguration.create(input_dir, tmpdir / 'output')
        runner = FakeRunner(failing_names=['broken.avi'])
        summary, output = run_batch(make_driver(runner), config)

        assert summary.succeeded == 1
        assert summary.failed == 1
        assert summary.failed_items == [input_dir / 'broken.avi']
        assert summary.has_failures

        log_path = config.log_dir / 'broken.log'
        assert log_path.exists(), "failed item's log must be retained"
        assert not (config.log_dir / 'good.log').exists()
        assert not (config.output_dir / 'broken.mp4').exists()

        assert "✗ ERROR: Conversion failed (exit code: 1)" in output
        assert f"Check log: {log_path}" in output
        assert "Last 20 lines of error log" in output
        assert "Invalid data found when processing input" in output
        print("✓ PASS")


def test_corrupt_only_batch():
    """A lone corrupt file: nothing succeeds, one failure, log retained"""
    with tempfile.TemporaryDirectory() as tmpdir:
        tmpdir = Path(tmpdir)
        input_dir = tmpdir / 'input'
        input_dir.mkdir()
        write_video(input_dir / 'corrupt.mkv')

        config = RunConfiguration.create(input_dir, tmpdir / 'output', utilization=50)
        summary, _ = run_batch(make_driver(FakeRunner(failing_names=['corrupt.mkv'])), config)

        assert summary.succeeded == 0
        assert summary.failed == 1
        assert (config.log_dir / 'corrupt.log').exists()


def test_exit_zero_without_output_fails():
    with tempfile.TemporaryDirectory() as tmpdir:
        tmpdir = Path(tmpdir)
        input_dir = tmpdir / 'input'
        input_dir.mkdir()
        write_video(input_dir / 'ghost.mp4')

        config = RunConfiguration.create(input_dir, tmpdir / 'output')
        runner = FakeRunner(exit_code=0, write_output=False)
        summary, output = run_batch(make_driver(runner), config)

        assert summary.succeeded == 0
        assert summary.failed == 1
        assert "no output file was written" in output
        assert runner.exiftool_calls == []


def test_failed_conversion_removes_partial_output():
    """ffmpeg exits non-zero after writing part of the output"""
    with tempfile.TemporaryDirectory() as tmpdir:
        tmpdir = Path(tmpdir)
        input_dir = tmpdir / 'input'
        input_dir.mkdir()
        write_video(input_dir / 'truncated.mov')

        config = RunConfiguration.create(input_dir, tmpdir / 'output')
        runner = FakeRunner(exit_code=1, write_output=True)
        summary, output = run_batch(make_driver(runner), config)

        assert summary.failed == 1
        assert not (config.output_dir / 'truncated.mp4').exists()
        assert (config.log_dir / 'truncated.log').exists()
        assert "exit code: 1" in output


def test_interrupt_propagates_and_keeps_partial_output():
    """Ctrl-C is not an item failure: it stops the batch with files left in place"""

    class InterruptedRunner(FakeRunner):
        def invoke(self, args, log_path=None, timeout=None):
            result = super().invoke(args, log_path=log_path, timeout=timeout)
            if '-i' in args:
                raise KeyboardInterrupt
            return result

    with tempfile.TemporaryDirectory() as tmpdir:
        tmpdir = Path(tmpdir)
        input_dir = tmpdir / 'input'
        input_dir.mkdir()
        write_video(input_dir / 'first.mp4')
        write_video(input_dir / 'second.mp4')

        config = RunConfiguration.create(input_dir, tmpdir / 'output')
        runner = InterruptedRunner()
        driver = BatchDriver(
            encoder=VideoEncoder(runner=runner),
            post_processor=PostProcessor(runner=runner),
            total_units=2,
            show_progress=True,
        )

        interrupted = False
        with redirect_stdout(io.StringIO()):
            try:
                driver.run(config)
            except KeyboardInterrupt:
                interrupted = True

        assert interrupted
        assert len(runner.conversions) == 1
        partial = [p.name for p in config.output_dir.glob('*.mp4')]
        assert len(partial) == 1
        assert (config.log_dir / partial[0].replace('.mp4', '.log')).exists()


def test_existing_output_is_skipped():
    with tempfile.TemporaryDirectory() as tmpdir:
        tmpdir = Path(tmpdir)
        input_dir = tmpdir / 'input'
        input_dir.mkdir()
        write_video(input_dir / 'done.mov')
        write_video(input_dir / 'todo.mov')

        output_dir = tmpdir / 'output'
        output_dir.mkdir()
        (output_dir / 'done.mp4').write_bytes(b'already converted')

        config = RunConfiguration.create(input_dir, output_dir)
        runner = FakeRunner()
        summary, output = run_batch(make_driver(runner), config)

        assert summary.skipped == 1
        assert summary.succeeded == 1
        assert summary.processed == 2
        assert len(runner.conversions) == 1
        assert (output_dir / 'done.mp4').read_bytes() == b'already converted'
        assert "→ Skipping (already exists)" in output


def test_unexpected_error_is_isolated():
    """An exception inside one item is recorded as a failure, not raised"""

    class ExplodingRunner(FakeRunner):
        def invoke(self, args, log_path=None, timeout=None):
            if '-i' in args and Path(args[args.index('-i') + 1]).name == 'bad.mp4':
                raise RuntimeError("engine crashed")
            return super().invoke(args, log_path=log_path, timeout=timeout)

    with tempfile.TemporaryDirectory() as tmpdir:
        tmpdir = Path(tmpdir)
        input_dir = tmpdir / 'input'
        input_dir.mkdir()
        write_video(input_dir / 'bad.mp4')
        write_video(input_dir / 'fine.mov')

        config = RunConfiguration.create(input_dir, tmpdir / 'output')
        summary, output = run_batch(make_driver(ExplodingRunner()), config)

        assert summary.failed == 1
        assert summary.succeeded == 1
        assert "Unexpected error: engine crashed" in output


def test_metadata_warning_keeps_success():
    with tempfile.TemporaryDirectory() as tmpdir:
        tmpdir = Path(tmpdir)
        input_dir = tmpdir / 'input'
        input_dir.mkdir()
        write_video(input_dir / 'tags.mov')

        config = RunConfiguration.create(input_dir, tmpdir / 'output')
        summary, output = run_batch(make_driver(FakeRunner(exiftool_exit_code=1)), config)

        assert summary.succeeded == 1
        assert summary.failed == 0
        assert "⚠ Metadata copy failed" in output


def test_empty_input_directory():
    with tempfile.TemporaryDirectory() as tmpdir:
        tmpdir = Path(tmpdir)
        config = RunConfiguration.create(tmpdir, tmpdir / 'output')
        runner = FakeRunner()
        summary, _ = run_batch(make_driver(runner), config)

        assert summary.total == 0
        assert summary.processed == 0
        assert runner.calls == []
        assert config.log_dir.is_dir()


if __name__ == "__main__":
    test_single_video_end_to_end()
    test_failure_keeps_log_and_continues()
    test_corrupt_only_batch()
    test_exit_zero_without_output_fails()
    test_failed_conversion_removes_partial_output()
    test_interrupt_propagates_and_keeps_partial_output()
    test_existing_output_is_skipped()
    test_unexpected_error_is_isolated()
    test_metadata_warning_keeps_success()
    test_empty_input_directory()
    print("\nALL TESTS PASSED! ✓")
