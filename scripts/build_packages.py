"""Build platform-specific npm packages from upstream Crush releases."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path


def ensure_project_root_on_sys_path() -> Path:
    """Ensure the project root is importable when the script runs standalone."""

    project_root = Path(__file__).resolve().parent.parent
    project_root_str = str(project_root)
    if project_root_str not in sys.path:
        sys.path.insert(0, project_root_str)
    return project_root


ensure_project_root_on_sys_path()

from app.config import get_app_config
from app.version import get_tool_version
from services.packaging import BuildSummary, PackageBuilder, PackagingError, UsageError
from shared.logging_config import LogVerbosity, ensure_app_logging, set_file_log_verbosity

_LOGGER = logging.getLogger(__name__)

USAGE = "Usage: crush-npm-build <version>\nExample: crush-npm-build 0.43.0"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    config = get_app_config()
    parser = argparse.ArgumentParser(prog="crush-npm-build", description=__doc__)
    parser.add_argument(
        "version",
        nargs="?",
        help="Upstream release version to package (e.g. '0.43.0').",
    )
    parser.add_argument(
        "--dist-dir",
        type=Path,
        default=config.build.dist_dir,
        help="Output directory; destroyed and recreated for every run.",
    )
    parser.add_argument(
        "--root-manifest",
        type=Path,
        default=config.build.root_manifest,
        help="Path to the main package.json whose versions are rewritten.",
    )
    parser.add_argument(
        "--disguise",
        action="store_true",
        default=config.build.disguise_binaries,
        help="Store binaries as '<name>.bin' so executable filters let them through.",
    )
    parser.add_argument(
        "--jobs",
        type=int,
        default=config.build.jobs,
        help="Number of platforms to build in parallel.",
    )
    parser.add_argument(
        "--keep-dist",
        action="store_true",
        help="Reuse previously downloaded archives instead of wiping the dist directory.",
    )
    parser.add_argument("--verbose", action="store_true", help="Log extraction details.")
    parser.add_argument("-V", "--tool-version", action="version", version=f"%(prog)s {get_tool_version()}")
    return parser.parse_args(argv)


def format_summary(summary: BuildSummary) -> str:
    """Return the human-readable report printed after a build."""

    built = " ".join(summary.built_platforms)
    lines = [
        "",
        "==========================================",
        "Build complete!",
        "==========================================",
        "",
        f"Platforms built: {built}" if built else "Platforms built: (none)",
    ]
    if summary.skipped_platforms:
        lines.append(f"Platforms skipped: {' '.join(summary.skipped_platforms)}")
    lines.extend(["", f"Platform packages: {summary.packages_dir}/"])
    if summary.packages_dir.is_dir():
        for entry in sorted(summary.packages_dir.iterdir()):
            lines.append(f"  {entry.name}")
    root_dir = summary.root_manifest.parent if summary.root_manifest else Path(".")
    lines.extend(
        [
            "",
            "Next steps:",
            f"  1. cd {summary.packages_dir}/<platform>",
            "  2. npm publish --access public",
            f"  3. cd {root_dir}",
            "  4. npm publish --access public",
        ]
    )
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    if not args.version or not args.version.strip():
        print(USAGE, file=sys.stderr)
        return 1

    ensure_app_logging()
    if args.verbose:
        set_file_log_verbosity(LogVerbosity.VERBOSE)

    builder = PackageBuilder(
        dist_dir=args.dist_dir,
        root_manifest=args.root_manifest,
        disguise_binaries=bool(args.disguise),
        jobs=args.jobs,
        keep_dist=bool(args.keep_dist),
    )
    try:
        summary = builder.build_all(args.version)
    except UsageError as exc:
        print(f"{exc}\n{USAGE}", file=sys.stderr)
        return 1
    except PackagingError as exc:
        _LOGGER.error("Build failed: %s", exc)
        return 1

    print(format_summary(summary))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
