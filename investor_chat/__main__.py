"""Module entrypoint for ``python -m investor_chat``."""

from .cli import main


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
