"""
Pytest configuration and fixtures for the test suite.
"""

import io
import threading

import pytest

from azure_static_deploy.deploy import DeployConfig
from azure_static_deploy.reporter import Reporter

SAS_QUERY = "sv=2020-08-04&ss=b&srt=sco&sp=rwdlac&sig=S3cr3tS1gnature%3D"
SAS_URL = f"https://acct.blob.core.windows.net/?{SAS_QUERY}"
HOST = "https://acct.blob.core.windows.net/"


class FakeAzCopy:
    """Records every invocation instead of running azcopy.

    ``fail`` maps an operation name (or ``(op, source)``) to the exit code
    it should return.
    """

    def __init__(self, fail=None):
        self.calls = []
        self.fail = fail or {}
        self._lock = threading.Lock()

    def _record(self, op, source, destination, flags):
        with self._lock:
            self.calls.append((op, source, destination, list(flags)))
        return self.fail.get((op, source), self.fail.get(op, 0))

    def copy(self, source, destination, flags=()):
        return self._record("copy", source, destination, flags)

    def remove(self, destination, flags=()):
        return self._record("rm", None, destination, flags)

    def sync(self, source, destination, flags=()):
        return self._record("sync", source, destination, flags)

    def ops(self):
        return [c[0] for c in self.calls]


@pytest.fixture
def fake_azcopy():
    return FakeAzCopy()


@pytest.fixture
def output():
    return io.StringIO()


@pytest.fixture
def reporter(output):
    return Reporter(stream=output)


@pytest.fixture
def site(tmp_path, monkeypatch):
    """A built site under ./dist with one nested directory."""
    monkeypatch.chdir(tmp_path)
    dist = tmp_path / "dist"
    (dist / "assets").mkdir(parents=True)
    (dist / "index.html").write_text('<link href="app.css"><script src="app.js"></script>')
    (dist / "app.js").write_text("console.log(1)")
    (dist / "app.js.gz").write_bytes(b"\x1f\x8b")
    (dist / "assets" / "logo.svg").write_text("<svg/>")
    (dist / "assets" / "style.css.gz").write_bytes(b"\x1f\x8b")
    return dist


@pytest.fixture
def make_config(site):
    def _make(**overrides):
        values = dict(source_path="dist", sas_url=SAS_URL, container="$web", concurrency=1)
        values.update(overrides)
        return DeployConfig(**values)

    return _make
