"""
External process invocation for VideoBatch

Every call to ffmpeg, exiftool or SetFile goes through ProcessRunner so the
batch logic can be exercised with a fake runner instead of real tools.
"""

import logging
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)

# Seconds to wait after terminate() before falling back to kill()
TERMINATE_GRACE = 5


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of one external process invocation"""
    exit_code: Optional[int]
    output: str = ''
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.timed_out


class ProcessRunner:
    """Runs external commands with combined stdout/stderr"""

    def invoke(
        self,
        args: List[str],
        log_path: Optional[Path] = None,
        timeout: Optional[float] = None
    ) -> ProcessResult:
        """
        Run a command to completion

        Args:
            args: Command and arguments
            log_path: If given, combined output is streamed to this file
                      instead of being captured
            timeout: Seconds before the process is terminated (None = wait forever)

        Returns:
            ProcessResult; exit_code is None if the process could not start
            or was stopped after a timeout
        """
        logger.debug(f"Running: {shlex.join(args)}")

        if log_path is not None:
            with open(log_path, 'w', encoding='utf-8', errors='replace') as log_file:
                return self._run(args, log_file, timeout)
        return self._run(args, subprocess.PIPE, timeout)

    def _run(self, args: List[str], stdout, timeout: Optional[float]) -> ProcessResult:
        try:
            process = subprocess.Popen(
                args,
                stdin=subprocess.DEVNULL,
                stdout=stdout,
                stderr=subprocess.STDOUT,
                universal_newlines=True,
                errors='replace'
            )
        except OSError as e:
            logger.debug(f"Could not start {args[0]}: {e}")
            return ProcessResult(exit_code=None, output=str(e))

        try:
            output, _ = process.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            logger.warning(f"{args[0]} exceeded {timeout}s, terminating")
            self._stop(process)
            return ProcessResult(exit_code=None, output='', timed_out=True)
        except KeyboardInterrupt:
            # Stop the child, leave partial files where they are
            self._stop(process)
            raise

        return ProcessResult(exit_code=process.returncode, output=output or '')

    def _stop(self, process: subprocess.Popen):
        process.terminate()
        try:
            process.wait(timeout=TERMINATE_GRACE)
        except subprocess.TimeoutExpired:
            process.kill()  # Force kill if it doesn't respond
            process.wait()
