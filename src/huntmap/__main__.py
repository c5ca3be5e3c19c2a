"""Module entrypoint for `python -m huntmap`."""

from __future__ import annotations

from huntmap.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
