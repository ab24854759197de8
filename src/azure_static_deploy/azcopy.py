"""Thin wrapper around the azcopy executable.

Only the three subcommands the deployment needs are exposed. Each returns
the process exit code; nothing here raises on a failed transfer, so the
caller decides which failures end the run.
"""

import shlex
import subprocess
from typing import List, Optional, Protocol, Sequence

from . import config as cfg
from .reporter import Reporter

# Exit status a shell reports for a command that cannot be found.
COMMAND_NOT_FOUND = 127


class CopyTool(Protocol):
    def copy(self, source: str, destination: str, flags: Sequence[str] = ()) -> int: ...

    def remove(self, destination: str, flags: Sequence[str] = ()) -> int: ...

    def sync(self, source: str, destination: str, flags: Sequence[str] = ()) -> int: ...


class AzCopy:
    def __init__(self, reporter: Reporter, command: Optional[str] = None) -> None:
        self.reporter = reporter
        self.command = command or cfg.DEFAULT_AZCOPY_COMMAND

    def copy(self, source: str, destination: str, flags: Sequence[str] = ()) -> int:
        return self._run(["copy", source, destination, *flags])

    def remove(self, destination: str, flags: Sequence[str] = ()) -> int:
        return self._run(["rm", destination, *flags])

    def sync(self, source: str, destination: str, flags: Sequence[str] = ()) -> int:
        return self._run(["sync", source, destination, *flags])

    def _run(self, args: List[str]) -> int:
        argv = [self.command, *args]
        # URLs in argv carry the SAS token; the reporter masks it.
        self.reporter.info(f"[command]{shlex.join(argv)}")
        try:
            proc = subprocess.run(argv, capture_output=True, text=True)
        except FileNotFoundError:
            self.reporter.info(f"Unable to locate executable: {self.command}")
            return COMMAND_NOT_FOUND
        for stream in (proc.stdout, proc.stderr):
            for line in (stream or "").splitlines():
                self.reporter.info(line)
        return proc.returncode
