"""Entry point for `python -m dmdb_cli` and the `dmdb-exporter` console script."""

from __future__ import annotations

from dmdb_cli.app import app


def main() -> None:
    app()


if __name__ == "__main__":
    main()
