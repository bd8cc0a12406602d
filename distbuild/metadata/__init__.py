"""
Packaging metadata

Reads debian/control files of checked-out units and indexes which unit
produces which package.
"""

from distbuild.metadata.control import (
    BinaryPackage,
    ControlFile,
    parse_control,
    parse_provides,
    read_control,
)
from distbuild.metadata.index import (
    RepoMetadata,
    enumerate_buildable_units,
    index_unit,
)

__all__ = [
    "BinaryPackage",
    "ControlFile",
    "parse_control",
    "parse_provides",
    "read_control",
    "RepoMetadata",
    "enumerate_buildable_units",
    "index_unit",
]
