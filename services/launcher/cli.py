"""Console entry point that runs the packaged platform binary."""

from __future__ import annotations

import sys

from services.launcher.process import run


def main(argv: list[str] | None = None) -> int:
    """Execute the platform binary passing through any CLI arguments."""

    args = argv if argv is not None else sys.argv[1:]
    return run(args)


if __name__ == "__main__":  # pragma: no cover - CLI passthrough only
    sys.exit(main())
