"""
Foundry runner — build a custom binary from the command line.

    foundry -v v0.50.0 -d github.com/grafana/xk6-faker@v0.3.0 -o ./k6

The binary is written to a temporary file next to ``--output`` and moved
into place only after a successful build, so a failed build never leaves a
partial file behind.
"""
import argparse
import asyncio
import dataclasses
import logging
import os
import sys
import tempfile
from pathlib import Path
from typing import List, Optional

from foundry import __version__
from foundry.builders import new_builder
from foundry.config import FoundrySettings
from foundry.core.module import Module
from foundry.core.platform import InvalidPlatformError, Platform
from foundry.errors import FoundryError, InvalidModuleError
from foundry.io.receipt import BuildReceipt
from foundry.io.writer import write_receipt
from foundry.policy.options import NativeBuilderOpts

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT = "k6"


async def run_build(
    output: Path,
    base_version: str = "",
    dependencies: Optional[List[Module]] = None,
    platform: Optional[Platform] = None,
    build_flags: Optional[List[str]] = None,
    opts: Optional[NativeBuilderOpts] = None,
) -> BuildReceipt:
    """
    Build a binary into ``output``.

    Parameters
    ----------
    output : Path
        Destination file.  Replaced atomically on success, untouched on
        failure.
    base_version : str
        Version of the base program ("" for latest).
    dependencies : list of Module
        Extensions, in order.
    platform : Platform, optional
        Target.  Defaults to the host platform.
    build_flags : list of str
        Extra ``go build`` flags.
    opts : NativeBuilderOpts, optional
        Builder options.  Defaults to ``NativeBuilderOpts.from_settings()``.
    """
    if opts is None:
        opts = NativeBuilderOpts.from_settings()
    if platform is None:
        platform = Platform.runtime()

    builder = new_builder(opts=opts)

    output = output.resolve()
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{output.name}-", dir=output.parent)
    except OSError as e:
        raise FoundryError(f"creating output file: {e}", step="output") from e
    try:
        with os.fdopen(fd, "wb") as f:
            receipt = await builder.build(
                platform,
                base_version,
                dependencies or [],
                build_flags or [],
                f,
            )
        os.chmod(tmp_name, 0o755)
        os.replace(tmp_name, output)
    except BaseException:
        os.unlink(tmp_name)
        raise

    logger.info("Binary written to %s", output)
    return receipt


# ── CLI ──────────────────────────────────────────────────────────────────────

def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="foundry",
        description="foundry — build a custom k6 binary with extensions",
    )
    parser.add_argument(
        "-v", "--base-version",
        default="",
        help="Version of the base program (default: latest)",
    )
    parser.add_argument(
        "-d", "--dependency",
        action="append",
        default=[],
        metavar="PATH[@VERSION][=REPLACE[@VERSION]]",
        help="Extension to add (repeatable)",
    )
    parser.add_argument(
        "-p", "--platform",
        default=None,
        help="Target platform as os/arch (default: this host)",
    )
    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=Path(DEFAULT_OUTPUT),
        help=f"Output binary (default: ./{DEFAULT_OUTPUT})",
    )
    parser.add_argument(
        "-r", "--base-repository",
        default=None,
        help="Replace the base program with this module or local checkout",
    )
    parser.add_argument(
        "-b", "--build-flag",
        action="append",
        default=[],
        help="Extra flag passed to go build (repeatable)",
    )
    parser.add_argument(
        "--copy-env",
        action="store_true",
        help="Pass this process' environment to the go toolchain",
    )
    parser.add_argument(
        "--receipt",
        type=Path,
        default=None,
        help="Write a JSON build receipt to this path",
    )
    parser.add_argument(
        "--skip-cleanup",
        action="store_true",
        help="Keep the working directory after the build",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Show go toolchain output",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: FOUNDRY_LOG_LEVEL or INFO)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    if argv is None:
        argv = sys.argv[1:]
    return parser.parse_args(_attach_build_flags(argv))


def _attach_build_flags(argv: List[str]) -> List[str]:
    """
    Join each ``-b VALUE`` into ``--build-flag=VALUE``.

    go build flags start with a dash, which argparse would otherwise take
    for the next option.
    """
    joined = []
    args = iter(argv)
    for arg in args:
        if arg == "--":
            joined.append(arg)
            joined.extend(args)
            break
        if arg in ("-b", "--build-flag"):
            value = next(args, None)
            if value is None:
                joined.append(arg)
                break
            arg = f"--build-flag={value}"
        joined.append(arg)
    return joined


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point."""
    args = _parse_args(argv)
    settings = FoundrySettings()

    logging.basicConfig(
        level=args.log_level or settings.LOG_LEVEL.upper(),
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    )

    try:
        dependencies = [Module.parse(d) for d in args.dependency]
        platform = Platform.parse(args.platform) if args.platform else None
    except (InvalidModuleError, InvalidPlatformError) as e:
        logger.error("%s", e)
        sys.exit(2)

    overrides = {"skip_cleanup": args.skip_cleanup or settings.SKIP_CLEANUP}
    if args.base_repository:
        overrides["base_replace"] = args.base_repository
    if args.verbose:
        overrides["stdout"] = sys.stdout
        overrides["stderr"] = sys.stderr
    opts = NativeBuilderOpts.from_settings(settings, **overrides)
    if args.copy_env:
        opts = _with_copy_env(opts)

    try:
        receipt = asyncio.run(run_build(
            args.output,
            base_version=args.base_version,
            dependencies=dependencies,
            platform=platform,
            build_flags=args.build_flag,
            opts=opts,
        ))
    except FoundryError as e:
        logger.error("Build failed%s: %s", f" ({e.step})" if e.step else "", e)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.error("Build cancelled")
        sys.exit(130)

    if args.receipt:
        write_receipt(receipt, args.receipt)
        logger.info("Receipt written to %s", args.receipt)

    print(f"Binary: {args.output}")
    print(f"SHA-256: {receipt.artifact.sha256}")
    for mod in [receipt.base, *receipt.extensions]:
        print(f"  {mod.import_path} {receipt.resolved_version(mod.import_path) or mod.version}")


def _with_copy_env(opts: NativeBuilderOpts) -> NativeBuilderOpts:
    return dataclasses.replace(opts, go=dataclasses.replace(opts.go, copy_env=True))


if __name__ == "__main__":
    main()
