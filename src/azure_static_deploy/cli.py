import argparse
import os
from pathlib import Path
from typing import List, Optional

from . import config as cfg
from .azcopy import AzCopy
from .deploy import DeployConfig, Deployment, parse_boolean
from .errors import DeployError, InputError
from .reporter import Reporter


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="azure-static-deploy",
        description="Upload a built static website to an Azure storage container with azcopy. "
        "Every option can also be given as a GitHub Actions input (INPUT_<NAME> environment variable).",
    )
    p.add_argument("--source-path", default=None, help="Directory containing the built site files")
    p.add_argument("--sas-url", default=None, help="Account SAS URL including its query string")
    p.add_argument(
        "--container",
        default=None,
        help=f"Destination container (default: {cfg.DEFAULT_CONTAINER})",
    )
    p.add_argument("--cleanup", default=None, help="Delete blobs that no longer exist in the source (true/false)")
    p.add_argument("--require-index", default=None, help="Fail unless source-path contains index.html (true/false)")
    p.add_argument(
        "--immutable",
        default=None,
        help='Patterns uploaded with a one-year immutable cache lifetime, e.g. "*.js;*.css"',
    )
    p.add_argument(
        "--cleanup-immutable",
        default=None,
        help="Let cleanup delete files matching the immutable patterns too (true/false)",
    )
    p.add_argument(
        "--index-path",
        default=None,
        help=f"Index document rewritten to reference .gz assets (default: {cfg.DEFAULT_INDEX_PATH})",
    )
    p.add_argument(
        "--azcopy",
        dest="azcopy_command",
        default=None,
        help=f"azcopy executable (or env AZCOPY_COMMAND, default: {cfg.DEFAULT_AZCOPY_COMMAND})",
    )
    p.add_argument(
        "--concurrency",
        "-c",
        type=int,
        default=None,
        help=f"Parallel per-file uploads (1 = sequential, default: {cfg.DEFAULT_CONCURRENCY})",
    )
    p.add_argument("--report", type=Path, default=None, help="Optional path to write a CSV of per-file upload results")
    return p.parse_args(argv)


def get_input(name: str, flag_value: Optional[str] = None, required: bool = False) -> str:
    # Priority: CLI flag > INPUT_<NAME> env set by the Actions runner
    if flag_value is not None:
        value = flag_value.strip()
    else:
        value = os.getenv(f"INPUT_{name.replace(' ', '_').upper()}", "").strip()
    if required and not value:
        raise InputError(f"Input required and not supplied: {name}")
    return value


def get_boolean_input(name: str, flag_value: Optional[str], default: bool) -> bool:
    value = get_input(name, flag_value)
    return parse_boolean(value) if value else default


def resolve_azcopy_command(args: argparse.Namespace) -> str:
    # Priority: --azcopy > input azcopy > env AZCOPY_COMMAND > config.DEFAULT_AZCOPY_COMMAND
    return get_input("azcopy", args.azcopy_command) or os.getenv("AZCOPY_COMMAND") or cfg.DEFAULT_AZCOPY_COMMAND


def resolve_concurrency(args: argparse.Namespace) -> int:
    if args.concurrency is not None:
        return max(1, args.concurrency)
    value = get_input("concurrency")
    if not value:
        return cfg.DEFAULT_CONCURRENCY
    try:
        return max(1, int(value))
    except ValueError:
        raise InputError(f'The concurrency input "{value}" is not a whole number.')


def build_config(args: argparse.Namespace) -> DeployConfig:
    cleanup = get_boolean_input("cleanup", args.cleanup, cfg.DEFAULT_CLEANUP)
    report = args.report or (Path(get_input("report")) if get_input("report") else None)
    return DeployConfig(
        source_path=get_input("source-path", args.source_path, required=True),
        sas_url=get_input("sas-url", args.sas_url, required=True),
        container=get_input("container", args.container) or cfg.DEFAULT_CONTAINER,
        cleanup=cleanup,
        require_index=get_boolean_input("require-index", args.require_index, cfg.DEFAULT_REQUIRE_INDEX),
        immutable=get_input("immutable", args.immutable) or None,
        cleanup_immutable=get_boolean_input("cleanup-immutable", args.cleanup_immutable, cfg.DEFAULT_CLEANUP_IMMUTABLE),
        index_path=get_input("index-path", args.index_path) or cfg.DEFAULT_INDEX_PATH,
        concurrency=resolve_concurrency(args),
        report_path=report,
    )


def main(argv: Optional[List[str]] = None, reporter: Optional[Reporter] = None) -> int:
    args = parse_args(argv)
    reporter = reporter or Reporter()
    try:
        config = build_config(args)
        tool = AzCopy(reporter, command=resolve_azcopy_command(args))
        Deployment(config, tool, reporter).run()
    except DeployError as e:
        reporter.set_failed(str(e))
        return 1
    except Exception as e:
        # Anything unexpected still fails the step with its message.
        reporter.set_failed(str(e) or type(e).__name__)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
