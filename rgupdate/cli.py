"""
Command-line interface.

Usage:
    rgupdate get <product> [version]        # Install (default: latest)
    rgupdate use <product> [version]        # Install if needed, activate, validate
    rgupdate list <product> [--all]         # Remote and installed versions
    rgupdate remove <product> --version V   # Remove one version (or --all)
    rgupdate purge <product> [--keep N]     # Keep only the newest N versions
    rgupdate validate <product> [version]   # Run installed executables
    rgupdate info                           # Install location overview
    rgupdate config show|set-location PATH  # Inspect or change the install root
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from typing import Callable

from . import __version__
from .config import (
    INSTALL_LOCATION_ENV,
    Config,
    InstallLocation,
    load_config,
    resolve_install_location,
    save_install_location,
)
from .environment import Environment, detect_environment
from .errors import PreconditionError, RgUpdateError, VersionNotFoundError
from .info import gather_info
from .installer import install_product
from .lifecycle import activate_version, purge_versions, remove_versions, select_installed
from .local_state import list_installed
from .logging_config import setup_logging
from .products import get_product, product_names
from .reconcile import list_versions
from .render import (
    OUTPUT_FORMATS,
    print_outcome,
    render_info,
    render_json,
    render_listing,
    render_validation,
    render_yaml,
)
from .validation import validate_product, validate_version
from .versioning import max_version

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Context:
    """Resolved settings shared by every command."""
    config: Config
    env: Environment
    location: InstallLocation
    verbose: bool = False

    @property
    def root(self) -> str:
        return self.location.path


def cmd_get(args: argparse.Namespace, ctx: Context) -> int:
    product = get_product(args.product)
    prefs = ctx.config.preferences
    result = install_product(
        product,
        ctx.root,
        version_spec=args.version or "latest",
        platform=ctx.env.platform,
        http_timeout=prefs.http_timeout_seconds,
        download_timeout_minutes=prefs.download_timeout_minutes,
        progress_interval=prefs.progress_interval_seconds,
    )
    print(result.message)
    return 0


def _version_for_use(args: argparse.Namespace, ctx: Context) -> str | None:
    """Pick the version to activate, installing it first when missing."""
    product = get_product(args.product)
    prefs = ctx.config.preferences
    spec = (args.version or "").strip()
    installed = list_installed(product, ctx.root)

    if not spec and installed:
        return None  # highest installed
    if spec and spec.lower() != "latest" and installed:
        try:
            return max_version(select_installed(spec, installed))
        except VersionNotFoundError:
            logger.info(f"{product.name} {spec} is not installed yet")

    result = install_product(
        product,
        ctx.root,
        version_spec=spec or "latest",
        platform=ctx.env.platform,
        http_timeout=prefs.http_timeout_seconds,
        download_timeout_minutes=prefs.download_timeout_minutes,
        progress_interval=prefs.progress_interval_seconds,
    )
    print(result.message)
    return result.version


def cmd_use(args: argparse.Namespace, ctx: Context) -> int:
    if args.local_copy and args.local_only:
        raise PreconditionError("--local-copy and --local-only cannot be used together")

    product = get_product(args.product)
    version = _version_for_use(args, ctx)
    outcome = activate_version(
        product,
        ctx.root,
        version=version,
        env=ctx.env,
        local_copy=args.local_copy,
        local_only=args.local_only,
        probe_timeout=ctx.config.preferences.probe_timeout_seconds,
        verbose=ctx.verbose,
    )
    print_outcome(outcome)
    if not outcome.success:
        return 1

    result = validate_version(
        product,
        outcome.succeeded[0],
        ctx.root,
        ctx.env.platform,
        timeout=ctx.config.preferences.probe_timeout_seconds,
    )
    print(render_validation([result]))
    return 0 if result.passed else 1


def cmd_list(args: argparse.Namespace, ctx: Context) -> int:
    product = get_product(args.product)
    prefs = ctx.config.preferences
    if args.all:
        limit = None
    elif args.limit is not None:
        if args.limit < 1:
            raise PreconditionError(f"--limit must be at least 1 (got {args.limit})")
        limit = args.limit
    else:
        limit = prefs.display_limit
    listing = list_versions(
        product,
        ctx.root,
        ctx.env.platform,
        limit=limit,
        http_timeout=prefs.http_timeout_seconds,
        probe_timeout=prefs.probe_timeout_seconds,
    )
    print(render_listing(listing, args.output))
    return 0


def cmd_remove(args: argparse.Namespace, ctx: Context) -> int:
    product = get_product(args.product)
    outcome = remove_versions(
        product,
        ctx.root,
        version=args.version,
        remove_all=args.all,
        force=args.force,
        platform=ctx.env.platform,
        probe_timeout=ctx.config.preferences.probe_timeout_seconds,
        verbose=ctx.verbose,
    )
    print_outcome(outcome)
    return 0 if outcome.success else 1


def cmd_purge(args: argparse.Namespace, ctx: Context) -> int:
    product = get_product(args.product)
    keep = args.keep if args.keep is not None else ctx.config.preferences.default_keep
    outcome = purge_versions(
        product,
        ctx.root,
        keep=keep,
        force=args.force,
        platform=ctx.env.platform,
        probe_timeout=ctx.config.preferences.probe_timeout_seconds,
        verbose=ctx.verbose,
    )
    print_outcome(outcome)
    return 0 if outcome.success else 1


def cmd_validate(args: argparse.Namespace, ctx: Context) -> int:
    product = get_product(args.product)
    results = validate_product(
        product,
        ctx.root,
        ctx.env.platform,
        version=args.version,
        timeout=ctx.config.preferences.probe_timeout_seconds,
    )
    print(render_validation(results))
    return 0 if all(r.passed for r in results) else 1


def cmd_info(args: argparse.Namespace, ctx: Context) -> int:
    info = gather_info(
        ctx.location,
        ctx.env.platform,
        timeout=ctx.config.preferences.probe_timeout_seconds,
    )
    if args.output == "json":
        print(render_json(info))
    elif args.output == "yaml":
        print(render_yaml(info))
    else:
        print(render_info(info))
    return 0


def cmd_config(args: argparse.Namespace, ctx: Context) -> int:
    if args.config_command == "set-location":
        saved = save_install_location(
            args.path,
            current=ctx.location,
            config_path=args.config_file,
            force=args.force,
            verbose=ctx.verbose,
        )
        print(f"Install location set to {saved}")
        if ctx.location.source == "environment":
            logger.warning(
                f"{INSTALL_LOCATION_ENV} is set and takes precedence over the saved location"
            )
        return 0

    print(f"Install location: {ctx.location}")
    print(f"Platform:         {ctx.env}")
    print(f"Config file:      {ctx.config.source or '(none)'}")
    print(render_yaml(ctx.config))
    return 0


COMMANDS: dict[str, Callable[[argparse.Namespace, Context], int]] = {
    "get": cmd_get,
    "install": cmd_get,
    "use": cmd_use,
    "list": cmd_list,
    "remove": cmd_remove,
    "purge": cmd_purge,
    "validate": cmd_validate,
    "info": cmd_info,
    "config": cmd_config,
}


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="rgupdate",
        description="Install, activate and manage versions of Redgate command-line tools.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only show warnings and errors")
    parser.add_argument("--log-file", help="Also write a debug log to this file")
    parser.add_argument("--config", help="Configuration file to load first")
    parser.add_argument(
        "--platform",
        choices=("auto", "windows", "linux"),
        default="auto",
        help="Artifact platform (default: detect)",
    )

    sub = parser.add_subparsers(dest="command", metavar="COMMAND")
    sub.required = True
    products_help = f"product ({', '.join(product_names())})"

    p = sub.add_parser("get", aliases=["install"], help="Install a version")
    p.add_argument("product", help=products_help)
    p.add_argument("version", nargs="?", help="'latest', exact version, or prefix such as 10.2")

    p = sub.add_parser("use", help="Install if needed and activate a version")
    p.add_argument("product", help=products_help)
    p.add_argument("version", nargs="?", help="Version or prefix (default: highest installed)")
    p.add_argument("--local-copy", action="store_true", help="Also copy the files into the current directory")
    p.add_argument("--local-only", action="store_true", help="Only copy the files into the current directory")

    p = sub.add_parser("list", help="List available and installed versions")
    p.add_argument("product", help=products_help)
    p.add_argument("--all", action="store_true", help="Show every version")
    p.add_argument("--limit", type=int, help="Number of newest versions to show")
    p.add_argument("-o", "--output", choices=OUTPUT_FORMATS, default="table")

    p = sub.add_parser("remove", help="Remove installed versions")
    p.add_argument("product", help=products_help)
    p.add_argument("--version", dest="version", help="Version or prefix to remove")
    p.add_argument("--all", action="store_true", help="Remove every installed version")
    p.add_argument("--force", action="store_true", help="Allow removing the active version")

    p = sub.add_parser("purge", help="Keep only the newest installed versions")
    p.add_argument("product", help=products_help)
    p.add_argument("--keep", type=int, help="Versions to keep (default: 3)")
    p.add_argument("--force", action="store_true", help="Proceed when the active version is affected")

    p = sub.add_parser("validate", help="Run installed executables to check they work")
    p.add_argument("product", help=products_help)
    p.add_argument("version", nargs="?", help="Installed version (default: all)")

    p = sub.add_parser("info", help="Show install location and product status")
    p.add_argument("-o", "--output", choices=OUTPUT_FORMATS, default="table")

    p = sub.add_parser("config", help="Show or change configuration")
    config_sub = p.add_subparsers(dest="config_command", metavar="ACTION")
    config_sub.add_parser("show", help="Show effective configuration")
    loc = config_sub.add_parser("set-location", help="Set the install location")
    loc.add_argument("path", help="New install root")
    loc.add_argument("--force", action="store_true", help="Switch even if the current location has data")
    loc.add_argument("--config-file", help="Config file to write (default: user config)")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point. Returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose, quiet=args.quiet, log_file=args.log_file)

    try:
        config = load_config(args.config, verbose=args.verbose)
        env = detect_environment(args.platform, verbose=args.verbose)
    except ValueError as e:
        logger.error(str(e))
        return 2

    ctx = Context(
        config=config,
        env=env,
        location=resolve_install_location(config),
        verbose=args.verbose,
    )
    logger.debug(f"Install root: {ctx.location}, platform: {ctx.env}")

    handler = COMMANDS[args.command]
    try:
        return handler(args, ctx)
    except RgUpdateError as e:
        logger.error(e.message)
        if e.remediation:
            print(f"Hint: {e.remediation}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
