"""
Subprocess execution utilities for factoring engines.

Streams combined stdout/stderr line by line and enforces an optional
wall-clock timeout by killing the process, so partial output survives a
timeout instead of being lost with an exception.
"""

import subprocess
import threading
import logging
from typing import List, Optional, Callable, Dict, Any


logger = logging.getLogger(__name__)


def execute_subprocess(
    cmd: List[str],
    input_text: Optional[str] = None,
    timeout: Optional[float] = None,
    cwd: Optional[str] = None,
    line_callback: Optional[Callable[[str, List[str]], None]] = None,
    log_prefix: str = ""
) -> Dict[str, Any]:
    """
    Run a command, streaming its combined output.

    Args:
        cmd: Command and arguments to execute
        input_text: Optional text written to stdin (stdin is closed afterwards)
        timeout: Optional wall-clock limit in seconds; the process is killed on expiry
        cwd: Optional working directory
        line_callback: Optional function called for each line: callback(line, all_lines_so_far)
        log_prefix: Prefix for log messages (e.g., "yafu")

    Returns:
        Dictionary with:
        - stdout: Complete output as string
        - output_lines: List of non-empty output lines
        - returncode: Process exit code
        - timed_out: True if the process was killed by the timeout

    Raises:
        FileNotFoundError: If the executable does not exist
    """
    output_lines: List[str] = []
    timed_out = threading.Event()

    process = subprocess.Popen(
        cmd,
        stdin=subprocess.PIPE if input_text is not None else subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        bufsize=1,  # Line buffered
        cwd=cwd
    )

    def _kill_on_timeout() -> None:
        timed_out.set()
        prefix = f"{log_prefix}: " if log_prefix else ""
        logger.warning(f"{prefix}Process exceeded {timeout}s, killing it")
        process.kill()

    timer = threading.Timer(timeout, _kill_on_timeout) if timeout else None

    try:
        if timer:
            timer.start()

        if input_text is not None and process.stdin:
            try:
                process.stdin.write(input_text)
                if not input_text.endswith('\n'):
                    process.stdin.write('\n')
                process.stdin.close()
            except BrokenPipeError:
                # Engine exited before reading its input; output tells the rest
                logger.debug(f"{log_prefix}: stdin closed early by process")

        if process.stdout:
            for line in iter(process.stdout.readline, ''):
                line = line.rstrip()
                if line:
                    output_lines.append(line)
                    if line_callback:
                        line_callback(line, output_lines)

        process.wait()
    finally:
        if timer:
            timer.cancel()
        if process.poll() is None:
            process.kill()
            process.wait()

    return {
        'stdout': '\n'.join(output_lines),
        'output_lines': output_lines,
        'returncode': process.returncode,
        'timed_out': timed_out.is_set()
    }
