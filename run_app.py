"""Local runner for the vitaltriage service with src/ layout.

Usage: uv run python run_app.py
"""

from __future__ import annotations

import sys
from pathlib import Path


def main() -> None:
    # Ensure src/ is on sys.path so `import vitaltriage` resolves
    root = Path(__file__).resolve().parent
    src = root / "src"
    if src.exists():
        sys.path.insert(0, str(src))
    from vitaltriage.service import main as service_main  # type: ignore

    service_main()


if __name__ == "__main__":
    main()
