"""Shared fixtures for distbuild tests."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pytest


def control_text(
    source: str,
    build_depends: Sequence[str] = (),
    binaries: Optional[Dict[str, Optional[str]]] = None,
) -> str:
    """Render a minimal debian/control file."""
    lines = [f"Source: {source}", "Maintainer: Test <test@example.com>"]
    if build_depends:
        lines.append("Build-Depends: " + ",\n ".join(build_depends))
    text = "\n".join(lines) + "\n"

    if binaries is None:
        binaries = {source: None}
    for name, provides in binaries.items():
        text += f"\nPackage: {name}\nArchitecture: any\n"
        if provides:
            text += f"Provides: {provides}\n"
    return text


@pytest.fixture
def src_dir(tmp_path: Path) -> Path:
    path = tmp_path / "src"
    path.mkdir()
    return path


@pytest.fixture
def make_unit(src_dir: Path):
    """Create a unit directory with an optional debian/control file."""

    def _make(
        name: str,
        build_depends: Sequence[str] = (),
        binaries: Optional[Dict[str, Optional[str]]] = None,
        raw: Optional[str] = None,
        control: bool = True,
    ) -> Path:
        unit_dir = src_dir / name
        unit_dir.mkdir()
        if control:
            (unit_dir / "debian").mkdir()
            text = raw if raw is not None else control_text(name, build_depends, binaries)
            (unit_dir / "debian" / "control").write_text(text)
        return unit_dir

    return _make


def assert_dependencies_first(order: List[str], edges) -> None:
    position = {unit: index for index, unit in enumerate(order)}
    for unit, dep in edges:
        assert position[dep] < position[unit], f"{dep} must come before {unit}"
