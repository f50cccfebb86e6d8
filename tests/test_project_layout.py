from __future__ import annotations

from pathlib import Path


def test_required_package_paths_exist() -> None:
    root = Path(__file__).resolve().parents[1]
    required = [
        "src/tplbundle/config.py",
        "src/tplbundle/plugin.py",
        "src/tplbundle/cli.py",
        "src/tplbundle/bundler/__init__.py",
        "src/tplbundle/compiler/__init__.py",
        "src/tplbundle/index/__init__.py",
        "src/tplbundle/logging/__init__.py",
    ]
    for rel in required:
        assert (root / rel).exists(), rel
