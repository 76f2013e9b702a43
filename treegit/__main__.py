"""Entry point for ``python -m treegit``."""

from .cli import _main

_main()
