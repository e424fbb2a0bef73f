"""
Scripted stand-in for ProcessRunner used by the test scripts

FakeRunner never spawns anything. For ffmpeg calls it writes a dummy output
file (the last argument) and a short log, then returns the scripted exit code.
"""

from pathlib import Path
from typing import Dict, List, Optional

from process_runner import ProcessResult


class FakeRunner:
    """Records every invocation and plays back scripted results"""

    def __init__(
        self,
        exit_code: int = 0,
        write_output: bool = True,
        output_bytes: int = 400,
        failing_names: Optional[List[str]] = None,
        exiftool_exit_code: int = 0
    ):
        """
        Args:
            exit_code: Exit code for ffmpeg conversions
            write_output: Whether a conversion leaves an output file behind
            output_bytes: Size of the dummy output file
            failing_names: Source file names whose conversion fails (exit 1, no output)
            exiftool_exit_code: Exit code returned for exiftool calls
        """
        self.exit_code = exit_code
        self.write_output = write_output
        self.output_bytes = output_bytes
        self.failing_names = set(failing_names or [])
        self.exiftool_exit_code = exiftool_exit_code
        self.calls: List[List[str]] = []
        self.log_paths: Dict[str, Path] = {}

    @property
    def conversions(self) -> List[List[str]]:
        return [cmd for cmd in self.calls if cmd[0] == 'ffmpeg' and '-i' in cmd]

    @property
    def exiftool_calls(self) -> List[List[str]]:
        return [cmd for cmd in self.calls if cmd[0] == 'exiftool']

    def invoke(self, args, log_path=None, timeout=None) -> ProcessResult:
        self.calls.append(list(args))

        if args[0] == 'exiftool':
            output = '' if self.exiftool_exit_code == 0 else 'Error: File format error'
            return ProcessResult(exit_code=self.exiftool_exit_code, output=output)

        if args[0] != 'ffmpeg' or '-i' not in args:
            return ProcessResult(exit_code=0)

        source = Path(args[args.index('-i') + 1])
        output_path = Path(args[-1])
        failing = source.name in self.failing_names
        exit_code = 1 if failing else self.exit_code

        log_lines = [f"Input #0, from '{source}':"]
        if failing or exit_code != 0:
            log_lines.append(f"{source}: Invalid data found when processing input")
        else:
            log_lines.append(f"Output #0, mp4, to '{output_path}':")

        if log_path is not None:
            Path(log_path).write_text("\n".join(log_lines) + "\n")
            self.log_paths[source.name] = Path(log_path)

        if self.write_output and not failing:
            output_path.write_bytes(b'\x00' * self.output_bytes)

        return ProcessResult(exit_code=exit_code)
