"""Convenience shim to run one organization inspector query from the repo root."""

from __future__ import annotations

import sys

from src.inspect_orgs.runner import main as inspect_main


if __name__ == "__main__":
    inspect_main(sys.argv[1:])
