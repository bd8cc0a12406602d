"""
Error taxonomy for distbuild.

Every failure that names a unit carries a kind, the unit name and the
underlying cause, so aggregated failure lists stay machine-inspectable:

    try:
        executor.run(order)
    except AggregateBuildError as e:
        for err in e.errors:
            print(err.kind.value, err.unit, err.cause)
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, List, Optional, Sequence


class ErrorKind(Enum):
    """
    Kind of a unit-level failure.

    UNRESOLVED has no exception class: a build dependency nothing in the
    corpus produces is dropped from the graph, never raised.
    """
    PARSE = "parse"
    UNRESOLVED = "unresolved"
    CYCLE = "cycle"
    BUILD = "build"
    CLONE = "clone"
    CONFIG = "config"


class DistbuildError(Exception):
    """Base class for all distbuild errors."""


class UnitError(DistbuildError):
    """A failure attributed to one unit."""

    kind: ErrorKind = ErrorKind.CONFIG

    def __init__(self, unit: str, cause: object = None):
        self.unit = unit
        self.cause = cause
        super().__init__(self._format())

    def _format(self) -> str:
        return f"{self.kind.value} error for {self.unit}: {self.cause}"


class ControlParseError(UnitError):
    """A packaging metadata file exists but cannot be parsed."""

    kind = ErrorKind.PARSE

    def _format(self) -> str:
        return f"cannot parse {self.unit}: {self.cause}"


class BuildError(UnitError):
    """The build operation for a unit failed."""

    kind = ErrorKind.BUILD

    def _format(self) -> str:
        return f"build for {self.unit} failed: {self.cause}"


class CloneError(UnitError):
    """Cloning or checking out a unit's repository failed."""

    kind = ErrorKind.CLONE

    def _format(self) -> str:
        return f"clone for {self.unit} failed: {self.cause}"


class DuplicatePackageError(UnitError):
    """Two units claim to produce the same package name."""

    kind = ErrorKind.CONFIG

    def __init__(self, package: str, owners: Sequence[str]):
        self.package = package
        self.owners = list(owners)
        super().__init__(self.owners[-1], f"package {package} is also produced by {self.owners[0]}")

    def _format(self) -> str:
        return (
            f"package {self.package} is produced by more than one unit: "
            f"{', '.join(self.owners)}"
        )


class CycleError(DistbuildError):
    """The dependency graph has no topological order."""

    kind = ErrorKind.CYCLE

    def __init__(self, units: Iterable[str]):
        self.units: List[str] = sorted(units)
        super().__init__(
            f"circular build dependency between: {', '.join(self.units)}"
        )


class AggregateError(DistbuildError):
    """Several unit failures collected over one run."""

    def __init__(self, errors: Iterable[Exception], summary: Optional[str] = None):
        self.errors: List[Exception] = list(errors)
        self.summary = summary
        super().__init__(self.__str__())

    def __str__(self) -> str:
        lines = [self.summary] if self.summary else []
        lines.extend(str(err) for err in self.errors)
        return "\n".join(lines)

    @property
    def units(self) -> List[str]:
        return [getattr(err, "unit", "") for err in self.errors]


class AggregateBuildError(AggregateError):
    """One or more unit builds failed."""


class AggregateCloneError(AggregateError):
    """One or more repositories could not be cloned."""
