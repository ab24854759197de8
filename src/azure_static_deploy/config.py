"""
Centralized defaults for the static website deployment.

Edit these constants to set project defaults. CLI flags and INPUT_*
environment variables (as set by the GitHub Actions runner) override these
values at runtime.
"""

import sys

# azcopy v10 is installed as `azcopy10` on the hosted Linux/macOS runners.
DEFAULT_AZCOPY_COMMAND: str = "azcopy" if sys.platform == "win32" else "azcopy10"

# Storage accounts with static website hosting serve from this container.
DEFAULT_CONTAINER: str = "$web"

DEFAULT_REQUIRE_INDEX: bool = True
DEFAULT_CLEANUP: bool = False
DEFAULT_CLEANUP_IMMUTABLE: bool = False

# Index document rewritten to reference the precompressed (.gz) assets.
DEFAULT_INDEX_PATH: str = "dist/index.html"

# Parallel azcopy processes for the per-file upload pass.
DEFAULT_CONCURRENCY: int = 8

IMMUTABLE_CACHE_CONTROL: str = "public, max-age=31536000, immutable"

# Order matters: each substitution runs over the output of the previous one.
GZIP_REWRITE_EXTENSIONS: tuple = (".css", ".html", ".js")

# First match wins.
CONTENT_TYPES: tuple = (
    (".html", "text/html"),
    (".css", "text/css"),
    (".js", "application/javascript"),
    (".ico", "image/vnd.microsoft.icon"),
)

# Both precompressed suffixes are served with gzip encoding.
ENCODED_SUFFIXES: tuple = (".br", ".gz")
