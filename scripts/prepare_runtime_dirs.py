#!/usr/bin/env python3
"""Создаёт рабочие каталоги сервиса каталога до первого запуска."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Iterable

RUNTIME_DIRS = (
    Path("public"),
    Path("scratch"),
    Path("state"),
    Path("logs"),
)


def ensure_directories(base_path: Path, dirs: Iterable[Path]) -> list[Path]:
    """Возвращает только те каталоги, которых раньше не было."""
    created: list[Path] = []
    for relative in dirs:
        target = (base_path / relative).resolve()
        if target.exists():
            continue
        target.mkdir(parents=True, exist_ok=True)
        created.append(target)
    return created


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="создаёт public/scratch/state/logs и печатает их абсолютные пути"
    )
    parser.add_argument(
        "--base",
        type=Path,
        default=Path(__file__).resolve().parents[1],
        help="корень развёртывания (по умолчанию каталог проекта)",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    base_path: Path = args.base.resolve()
    created = ensure_directories(base_path, RUNTIME_DIRS)
    for directory in RUNTIME_DIRS:
        path = (base_path / directory).resolve()
        print(f"[{'created' if path in created else 'exists'}] {path}")


if __name__ == "__main__":
    main()
