"""Deploy a built static website to an Azure storage container with azcopy.

The run is a fixed sequence:

1. copy files matching the immutable pattern with a long cache lifetime
2. rewrite the index document to reference the precompressed assets
3. remove everything under the destination
4. upload every file with content-type/content-encoding flags
5. fail if any upload failed
6. optionally sync with --delete-destination to drop obsolete blobs
"""

import asyncio
import csv
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Tuple

from . import config as cfg
from .azcopy import CopyTool
from .errors import (
    CleanupFailed,
    DeploymentFailed,
    ImmutableCopyFailed,
    InputError,
    InvalidPatternFormat,
    InvalidSasUrl,
    MissingIndexFile,
)
from .reporter import Reporter

GZIP_ENCODING_FLAG = "--content-encoding=gzip"


@dataclass
class DeployConfig:
    source_path: str
    sas_url: str
    container: str = cfg.DEFAULT_CONTAINER
    cleanup: bool = cfg.DEFAULT_CLEANUP
    require_index: bool = cfg.DEFAULT_REQUIRE_INDEX
    immutable: Optional[str] = None
    cleanup_immutable: bool = cfg.DEFAULT_CLEANUP_IMMUTABLE
    index_path: str = cfg.DEFAULT_INDEX_PATH
    concurrency: int = cfg.DEFAULT_CONCURRENCY
    report_path: Optional[Path] = None

    @property
    def delete_immutable(self) -> bool:
        # Only meaningful when cleanup runs and there is a pattern to exclude.
        return bool(self.cleanup_immutable and self.cleanup and self.immutable)


@dataclass
class FileDescriptor:
    path: str
    name: str
    destination: str
    content_type: str = ""
    content_encoding: str = ""

    def flag_sets(self) -> List[List[str]]:
        """One azcopy copy per entry: content-type first, then encoding if any."""
        sets = [[self.content_type] if self.content_type else []]
        if self.content_encoding:
            sets.append([self.content_encoding])
        return sets


@dataclass
class UploadResult:
    path: str
    name: str
    size_bytes: int
    exit_codes: List[int] = field(default_factory=list)
    duration_sec: float = 0.0

    @property
    def ok(self) -> bool:
        return not any(self.exit_codes)


def parse_boolean(value: Any) -> bool:
    if value is True or value == 1:
        return True
    lower = value.lower() if isinstance(value, str) else ""
    if lower == "true":
        return True
    if not value or lower == "false":
        return False
    raise InputError(f'Your whimsical input "{value}" couldn\'t be converted to a Boolean.')


def split_sas_url(sas_url: str) -> Tuple[str, str]:
    """Split a SAS URL into (host prefix ending in '/', query string)."""
    end_of_host = sas_url.find("/?")
    if end_of_host < 0:
        # The query string is the credential, so only the host part is echoed.
        raise InvalidSasUrl(
            f"The SAS URL supplied ({sas_url.split('?', 1)[0]}) doesn't look valid. "
            "It should be a full URL with a query string. Generate one in the "
            '"Shared access signature" section of the Azure Portal.'
        )
    return sas_url[: end_of_host + 1], sas_url[end_of_host + 2 :]


def derive_destination(sas_url: str, container: str) -> str:
    host, query = split_sas_url(sas_url)
    return f"{host}{container}?{query}"


def validate_immutable_pattern(pattern: Optional[str]) -> None:
    if pattern and (not pattern.startswith("*") or " " in pattern):
        raise InvalidPatternFormat(
            'The list of immutable extensions should be in this format with no spaces: "*.js;*.css"'
        )


def infer_content_flags(path: str) -> Tuple[str, str]:
    """Return (content-type flag, content-encoding flag) for a path.

    Plain substring matching on the whole path, not the extension: the
    first entry of ``CONTENT_TYPES`` found anywhere in the path wins.
    """
    content_type = ""
    content_encoding = ""
    for needle, mime in cfg.CONTENT_TYPES:
        if needle in path:
            content_type = f"--content-type={mime}"
            if needle == ".ico":
                content_encoding = GZIP_ENCODING_FLAG
            break
    if any(suffix in path for suffix in cfg.ENCODED_SUFFIXES):
        content_encoding = GZIP_ENCODING_FLAG
    return content_type, content_encoding


def rewrite_index(index_path: str) -> None:
    """Point every .css/.html/.js reference in the index at its .gz sibling.

    A global text substitution, applied in ``GZIP_REWRITE_EXTENSIONS`` order.
    """
    path = Path(index_path)
    # surrogateescape keeps undecodable bytes intact through the round trip
    text = path.read_text(encoding="utf-8", errors="surrogateescape")
    for ext in cfg.GZIP_REWRITE_EXTENSIONS:
        text = text.replace(ext, f"{ext}.gz")
    path.write_text(text, encoding="utf-8", errors="surrogateescape")


def collect_uploads(source_path: str, host: str, container: str, query: str) -> List[FileDescriptor]:
    """Files directly under source_path plus those exactly one directory down."""
    container_url = f"{host}{container}?{query}"
    files: List[FileDescriptor] = []
    for entry in sorted(os.listdir(source_path)):
        path = f"{source_path}/{entry}"
        if os.path.isdir(path) and not os.path.islink(path):
            for sub_entry in sorted(os.listdir(path)):
                sub_path = f"{path}/{sub_entry}"
                # Only one level deep.
                if os.path.isdir(sub_path):
                    continue
                name = f"{entry}/{sub_entry}"
                ctype, cenc = infer_content_flags(sub_path)
                files.append(
                    FileDescriptor(
                        path=sub_path,
                        name=name,
                        destination=f"{host}{container}/{name}?{query}",
                        content_type=ctype,
                        content_encoding=cenc,
                    )
                )
        else:
            ctype, cenc = infer_content_flags(path)
            files.append(
                FileDescriptor(
                    path=path, name=entry, destination=container_url, content_type=ctype, content_encoding=cenc
                )
            )
    return files


def upload_one(tool: CopyTool, item: FileDescriptor, reporter: Reporter) -> UploadResult:
    start = time.perf_counter()
    try:
        size = os.path.getsize(item.path)
    except OSError as e:
        reporter.info(f"Could not read size of {item.path}: {e}")
        size = 0
    codes = [tool.copy(item.path, item.destination, flags) for flags in item.flag_sets()]
    return UploadResult(
        path=item.path,
        name=item.name,
        size_bytes=size,
        exit_codes=codes,
        duration_sec=time.perf_counter() - start,
    )


def upload_files_sequential(tool: CopyTool, files: List[FileDescriptor], reporter: Reporter) -> List[UploadResult]:
    results: List[UploadResult] = []
    for item in files:
        reporter.info(item.path)
        results.append(upload_one(tool, item, reporter))
    return results


async def upload_files_async(
    tool: CopyTool,
    files: List[FileDescriptor],
    reporter: Reporter,
    concurrency: int = cfg.DEFAULT_CONCURRENCY,
) -> List[UploadResult]:
    sem = asyncio.Semaphore(max(1, int(concurrency)))

    async def do_one(item: FileDescriptor) -> UploadResult:
        async with sem:
            reporter.info(item.path)
            # azcopy calls block; run each file's calls in a worker thread
            return await asyncio.to_thread(upload_one, tool, item, reporter)

    # gather preserves input order
    return list(await asyncio.gather(*(do_one(item) for item in files)))


def summarize(results: List[UploadResult]) -> dict:
    total_bytes = sum(r.size_bytes for r in results)
    total_time = sum(r.duration_sec for r in results)
    return {
        "files": len(results),
        "failed": sum(1 for r in results if not r.ok),
        "total_bytes": total_bytes,
        "total_time_sec": total_time,
    }


def write_csv(results: List[UploadResult], csv_path: Path) -> None:
    with csv_path.open("w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["name", "path", "size_bytes", "exit_codes", "duration_sec"])
        for r in results:
            codes = ";".join(str(c) for c in r.exit_codes)
            writer.writerow([r.name, r.path, r.size_bytes, codes, f"{r.duration_sec:.6f}"])


class Deployment:
    def __init__(self, config: DeployConfig, tool: CopyTool, reporter: Reporter) -> None:
        self.config = config
        self.tool = tool
        self.reporter = reporter
        self.host = ""
        self.query = ""

    @property
    def destination(self) -> str:
        return f"{self.host}{self.config.container}?{self.query}"

    def validate(self) -> None:
        """Checks that must pass before azcopy is invoked at all."""
        c = self.config
        if c.require_index and not os.path.exists(os.path.join(c.source_path, "index.html")):
            raise MissingIndexFile(
                f'The source path "{c.source_path}" doesn\'t contain an index.html file. '
                "It should be set to the directory containing already-built static website files."
            )
        validate_immutable_pattern(c.immutable)
        self.host, self.query = split_sas_url(c.sas_url)
        self.reporter.add_secret(self.query)

    def run(self) -> List[UploadResult]:
        self.validate()
        c = self.config

        with self.reporter.group("Deploy new and updated files"):
            if c.immutable:
                code = self.tool.copy(
                    f"{c.source_path}/*",
                    self.destination,
                    [
                        "--recursive",
                        "--include-pattern",
                        c.immutable,
                        "--cache-control",
                        cfg.IMMUTABLE_CACHE_CONTROL,
                    ],
                )
                if code:
                    raise ImmutableCopyFailed(
                        "Deployment failed for immutable files. See log for more details.", exit_code=code
                    )

            rewrite_index(c.index_path)
            # Not atomic: the container stays empty until the uploads below land.
            self.tool.remove(self.destination, ["--recursive"])

            files = collect_uploads(c.source_path, self.host, c.container, self.query)
            if c.concurrency > 1:
                results = asyncio.run(upload_files_async(self.tool, files, self.reporter, c.concurrency))
            else:
                results = upload_files_sequential(self.tool, files, self.reporter)

            summary = summarize(results)
            self.reporter.info(
                "Summary: files={files} failed={failed} total_bytes={total_bytes} "
                "total_time={total_time_sec:.3f}s".format(**summary)
            )
            if c.report_path:
                write_csv(results, c.report_path)
                self.reporter.info(f"Wrote upload report to: {c.report_path}")

            failed = [r.name for r in results if not r.ok]
            if failed:
                raise DeploymentFailed("Deployment failed. See log for more details.", failed_files=failed)

        if c.cleanup:
            with self.reporter.group("Clean up obsolete files"):
                flags = ["--delete-destination=true"]
                if c.immutable and not c.delete_immutable:
                    flags += ["--exclude-pattern", c.immutable]
                code = self.tool.sync(c.source_path, self.destination, flags)
                if code:
                    raise CleanupFailed("Cleanup failed. See log for more details.", exit_code=code)

        self.reporter.info("")
        self.reporter.info("-" * 60)
        self.reporter.info("Deployment was successful.")
        self.reporter.info("-" * 60)
        return results
