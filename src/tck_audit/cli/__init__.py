"""Command-line interface for tck-audit.

Example:
    $ tck-audit report --references target/references.json
"""

from __future__ import annotations

from tck_audit.cli.main import cli, main

__all__: list[str] = ["cli", "main"]
