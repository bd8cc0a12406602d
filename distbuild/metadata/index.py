"""
Metadata Index

Scans a directory of checked-out units (one sub-directory per repository)
and records, for every unit with a debian/control file:
- the parsed control file, or the unit's name in `unparseable` when the
  file exists but cannot be parsed
- which unit produces each binary package name, including names the
  binaries declare in their Provides field

Units without a debian/control file are not build candidates and are
left out entirely.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

from distbuild.errors import ControlParseError, DuplicatePackageError
from distbuild.metadata.control import ControlFile, parse_provides, read_control

logger = logging.getLogger(__name__)

CONTROL_PATH = Path("debian") / "control"


@dataclass
class RepoMetadata:
    """Everything the dependency graph needs to know about a source tree."""
    control_files: Dict[str, ControlFile] = field(default_factory=dict)
    package_owners: Dict[str, str] = field(default_factory=dict)
    unparseable: List[str] = field(default_factory=list)

    def owner_of(self, package: str):
        return self.package_owners.get(package.strip())

    def claim(self, package: str, unit: str) -> None:
        """Record that `unit` produces `package`."""
        package = package.strip()
        if not package:
            return
        owner = self.package_owners.get(package)
        if owner is not None and owner != unit:
            raise DuplicatePackageError(package, [owner, unit])
        self.package_owners[package] = unit


def index_unit(metadata: RepoMetadata, unit: str, control: ControlFile) -> None:
    """Add one parsed unit and the packages it produces to the index."""
    metadata.control_files[unit] = control
    for binary in control.binaries:
        metadata.claim(binary.name, unit)
        if not binary.provides:
            continue
        try:
            provided = parse_provides(binary.provides, unit)
        except ControlParseError as e:
            logger.debug(f"Ignoring Provides of {binary.name}: {e}")
            continue
        for name in provided:
            metadata.claim(name, unit)


def enumerate_buildable_units(root: Path) -> RepoMetadata:
    """
    Build the metadata index for every unit below `root`.

    Raises:
        FileNotFoundError: if `root` does not exist
        DuplicatePackageError: if two units produce the same package name
    """
    root = Path(root)
    if not root.is_dir():
        raise FileNotFoundError(f"Source directory not found: {root}")

    metadata = RepoMetadata()

    for unit_dir in sorted(root.iterdir(), key=lambda p: p.name):
        if not unit_dir.is_dir():
            continue

        control_path = unit_dir / CONTROL_PATH
        if not control_path.is_file():
            logger.debug(f"{unit_dir.name} does not contain a debian package")
            continue

        try:
            control = read_control(control_path)
        except OSError as e:
            logger.warning(f"Cannot read control file of {unit_dir.name}, skipping: {e}")
            continue
        except ControlParseError as e:
            # Still built, after everything that could be ordered
            logger.warning(f"Unparseable control file for {unit_dir.name}: {e.cause}")
            metadata.unparseable.append(unit_dir.name)
            continue

        index_unit(metadata, unit_dir.name, control)

    logger.info(
        f"Indexed {len(metadata.control_files)} units "
        f"({len(metadata.package_owners)} packages, "
        f"{len(metadata.unparseable)} unparseable)"
    )
    return metadata
