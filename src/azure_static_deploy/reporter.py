import sys
import threading
from contextlib import contextmanager
from typing import Iterable, Iterator, List, Optional, TextIO

MASK = "***"


class Reporter:
    """Writes GitHub Actions workflow output with secrets masked.

    Every line goes through ``redact()``. Secrets are passed in explicitly
    (constructor or ``add_secret``) so each caller decides what gets hidden.
    Safe to use from the upload worker threads.
    """

    def __init__(self, stream: Optional[TextIO] = None, secrets: Iterable[str] = ()) -> None:
        self.stream = stream if stream is not None else sys.stdout
        self._secrets: List[str] = []
        self._lock = threading.Lock()
        self.failed = False
        self.failure_message: Optional[str] = None
        for s in secrets:
            self.add_secret(s)

    def add_secret(self, secret: Optional[str]) -> None:
        if not secret or secret in self._secrets:
            return
        self._secrets.append(secret)
        # Longest first so a secret containing another is masked whole.
        self._secrets.sort(key=len, reverse=True)

    def redact(self, text: str) -> str:
        for s in self._secrets:
            text = text.replace(s, MASK)
        return text

    def _write(self, line: str) -> None:
        with self._lock:
            print(self.redact(line), file=self.stream, flush=True)

    def info(self, message: str = "") -> None:
        self._write(message)

    def start_group(self, name: str) -> None:
        self._write(f"::group::{name}")

    def end_group(self) -> None:
        self._write("::endgroup::")

    @contextmanager
    def group(self, name: str) -> Iterator[None]:
        self.start_group(name)
        try:
            yield
        finally:
            self.end_group()

    def set_failed(self, message: str) -> None:
        self.failed = True
        self.failure_message = self.redact(message)
        # Workflow commands end at the first newline.
        for line in message.splitlines() or [""]:
            self._write(f"::error::{line}")
