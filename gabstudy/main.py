from __future__ import annotations

"""Console entry point for gabstudy."""

from .app.cli import main


def cli() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    cli()
