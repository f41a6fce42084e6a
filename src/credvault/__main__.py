"""Entry point for ``python -m credvault``."""

from .cli import main

raise SystemExit(main())
