"""
Debian source control file parsing.

Wraps python-debian's deb822 reader into the structure the metadata index
consumes: the build-time relations of the source package and the binary
packages it declares, each with its optional Provides field.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from debian.deb822 import Deb822, PkgRelation

from distbuild.errors import ControlParseError

BUILD_DEPENDS_FIELDS = ("Build-Depends", "Build-Depends-Indep", "Build-Depends-Arch")

_PACKAGE_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9.+\-]*$")

# A relation is a list of alternatives ("a | b | c")
Relation = List[str]


@dataclass
class BinaryPackage:
    """A binary package declared by a source control file."""
    name: str
    provides: Optional[str] = None


@dataclass
class ControlFile:
    """Parsed debian/control."""
    source: str
    build_depends: List[Relation] = field(default_factory=list)
    binaries: List[BinaryPackage] = field(default_factory=list)


def parse_relations(raw: str, origin: str) -> List[Relation]:
    """
    Parse a comma/pipe separated relation field into lists of names.

    Raises ControlParseError if any alternative is not a package relation.
    Empty entries (trailing commas) are allowed.
    """
    entries = [entry.strip() for entry in raw.split(",")]
    cleaned = ", ".join(entry for entry in entries if entry)
    if not cleaned:
        return []

    relations = []
    for alternatives in PkgRelation.parse_relations(cleaned):
        names = []
        for alternative in alternatives:
            name = (alternative.get("name") or "").strip()
            if not _PACKAGE_NAME_RE.match(name):
                raise ControlParseError(origin, f"invalid relation {name!r}")
            names.append(name)
        relations.append(names)
    return relations


def parse_provides(value: str, origin: str = "Provides") -> List[str]:
    """Return every name a Provides field declares."""
    if "${" in value:
        raise ControlParseError(origin, f"unexpanded substitution variable in {value!r}")
    return [name for relation in parse_relations(value, origin) for name in relation]


def parse_control(text: Union[str, bytes], path: Union[str, Path]) -> ControlFile:
    """
    Parse the contents of a debian/control file.

    Raises:
        ControlParseError: if the file cannot be understood
    """
    origin = str(path)
    if isinstance(text, bytes):
        try:
            text = text.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ControlParseError(origin, e) from e

    paragraphs = [
        paragraph
        for paragraph in Deb822.iter_paragraphs(text.splitlines(keepends=True), use_apt_pkg=False)
        if paragraph
    ]
    if not paragraphs:
        raise ControlParseError(origin, "no paragraphs")

    source_paragraph = paragraphs[0]
    source = (source_paragraph.get("Source") or "").strip()
    if not source:
        raise ControlParseError(origin, "first paragraph has no Source field")

    build_depends: List[Relation] = []
    for field_name in BUILD_DEPENDS_FIELDS:
        raw = source_paragraph.get(field_name)
        if raw:
            build_depends.extend(parse_relations(raw, origin))

    binaries = []
    for paragraph in paragraphs[1:]:
        name = (paragraph.get("Package") or "").strip()
        if not name:
            raise ControlParseError(origin, "binary paragraph has no Package field")
        binaries.append(BinaryPackage(name=name, provides=paragraph.get("Provides")))

    return ControlFile(source=source, build_depends=build_depends, binaries=binaries)


def read_control(path: Path) -> ControlFile:
    """Read and parse a control file from disk."""
    return parse_control(Path(path).read_bytes(), path)
