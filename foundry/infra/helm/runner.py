"""Command runner for executing shell commands.

This module provides the base command execution functionality used by
the Helm command wrapper.
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path

from loguru import logger

from .types import CommandResult


def _launch_failure(error: OSError) -> CommandResult:
    """Shell-style result for a command that could not be started."""
    returncode = 127 if isinstance(error, FileNotFoundError) else 126
    return CommandResult(success=False, stderr=str(error), returncode=returncode)


class CommandRunner:
    """Low-level command executor with consistent result handling.

    A command that cannot be started is reported as a failed CommandResult
    rather than an exception: return code 127 for a missing executable, 126
    for any other launch error such as missing execute permission.
    """

    def __init__(
        self,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the command runner.

        Args:
            cwd: Working directory for commands (defaults to the process cwd)
            env: Extra environment variables added to every command
        """
        self.cwd = cwd
        self.env = dict(env or {})

    def _environment(self) -> dict[str, str] | None:
        if not self.env:
            return None
        env = os.environ.copy()
        env.update(self.env)
        return env

    def run(
        self,
        cmd: Sequence[str],
        *,
        cwd: Path | None = None,
        capture_output: bool = True,
    ) -> CommandResult:
        """Execute a shell command and return structured result.

        Args:
            cmd: Command and arguments as a sequence
            cwd: Working directory (defaults to the runner's cwd)
            capture_output: Whether to capture stdout/stderr

        Returns:
            CommandResult with success status, output, and return code
        """
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(
                list(cmd),
                cwd=cwd or self.cwd,
                capture_output=capture_output,
                text=True,
                env=self._environment(),
            )
        except OSError as e:
            return _launch_failure(e)
        return CommandResult(
            success=result.returncode == 0,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
            returncode=result.returncode,
        )

    def run_streaming(
        self,
        cmd: Sequence[str],
        *,
        cwd: Path | None = None,
        on_output: Callable[[str], None] | None = None,
    ) -> CommandResult:
        """Execute a shell command with real-time output streaming.

        Args:
            cmd: Command and arguments as a sequence
            cwd: Working directory (defaults to the runner's cwd)
            on_output: Callback function called with each non-empty line of output

        Returns:
            CommandResult with success status, collected output, and return code
        """
        logger.debug(f"Running (streaming): {' '.join(cmd)}")
        env = self._environment() or os.environ.copy()
        env["PYTHONUNBUFFERED"] = "1"

        try:
            process = subprocess.Popen(
                list(cmd),
                cwd=cwd or self.cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,  # Merge stderr into stdout
                text=True,
                bufsize=1,
                env=env,
            )
        except OSError as e:
            return _launch_failure(e)

        stdout_lines: list[str] = []
        if process.stdout:
            for line in iter(process.stdout.readline, ""):
                line = line.rstrip("\n")
                if line:
                    stdout_lines.append(line)
                    if on_output:
                        on_output(line)

        process.wait()
        output = "\n".join(stdout_lines)
        success = process.returncode == 0
        return CommandResult(
            success=success,
            stdout=output,
            # stderr is merged into stdout
            stderr="" if success else output,
            returncode=process.returncode or 0,
        )
