"""
modlock.errors — Error taxonomy.

Every error raised by modlock derives from ModlockError so callers can
catch the whole family. Missing-dependency errors are kept apart from
configuration errors because they have a different fix (run install,
not edit a file).

    ModlockError
    ├── ConfigError                 user config
    ├── LockFileError               unreadable / malformed lock
    ├── ModDefinitionError          no mod definition in folder
    ├── ConfigurationError          parser diagnostics
    ├── DependencyNotInstalledError run install
    ├── ConstraintViolationError    locked version fails constraint
    ├── DependencyLoadError         child failure + dependency chain
    ├── CombinedError               several independent failures
    └── LoadCancelledError          cancelled / deadline exceeded
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

SEVERITY_ERROR = "error"
SEVERITY_WARNING = "warning"


class ModlockError(Exception):
    """Base class for all modlock errors."""
    pass


class ConfigError(ModlockError):
    """User configuration error."""
    pass


class LockFileError(ModlockError):
    """Lock file could not be read or parsed."""
    pass


class ModDefinitionError(ModlockError):
    """Mod folder does not contain a mod definition."""
    pass


@dataclass(frozen=True)
class Diagnostic:
    """A single parser diagnostic."""
    severity: str
    summary: str
    detail: str = ""
    file: str | None = None
    line: int | None = None

    @property
    def is_error(self) -> bool:
        return self.severity == SEVERITY_ERROR

    def __str__(self) -> str:
        location = ""
        if self.file:
            location = self.file
            if self.line is not None:
                location += f":{self.line}"
            location += ": "
        text = f"{location}{self.summary}"
        if self.detail:
            text += f" ({self.detail})"
        return text


class ConfigurationError(ModlockError):
    """Malformed mod or resource definition.

    Carries the error diagnostics so file/line context survives.
    """

    def __init__(self, summary: str, diagnostics: Iterable[Diagnostic] = ()):
        self.summary = summary
        self.diagnostics = list(diagnostics)
        self.mod = None
        self.warnings: list[str] = []
        lines = [summary]
        lines.extend(f"  {d}" for d in self.diagnostics)
        super().__init__("\n".join(lines))


class DependencyNotInstalledError(ModlockError):
    """Required dependency is not installed."""
    pass


class ConstraintViolationError(ModlockError):
    """Locked version does not satisfy the required constraint."""

    def __init__(
        self,
        parent: str,
        dependency_path: str,
        constraint: str,
        app_name: str = "modlock",
    ):
        self.parent = parent
        self.dependency_path = dependency_path
        self.constraint = constraint
        super().__init__(
            f"failed to resolve dependencies for {parent} - locked version "
            f"{dependency_path} does not meet the constraint {constraint} "
            f"- run '{app_name} mod install' to reinstall"
        )


class DependencyLoadError(ModlockError):
    """A dependency failed to load.

    `chain` is the dependency path from the root mod to the failing mod.
    """

    def __init__(self, chain: list[str], cause: BaseException):
        self.chain = list(chain)
        self.cause = cause
        super().__init__(
            f"failed to load dependency {' -> '.join(self.chain)}: {cause}"
        )


class CombinedError(ModlockError):
    """Several independent errors reported together."""

    def __init__(self, errors: list[BaseException]):
        self.errors = list(errors)
        lines = [f"{len(self.errors)} errors occurred:"]
        lines.extend(f"  - {e}" for e in self.errors)
        super().__init__("\n".join(lines))


class LoadCancelledError(ModlockError):
    """Load was cancelled or its deadline passed."""
    pass


def combine_errors(errors: Iterable[BaseException | None]) -> BaseException | None:
    """Combine errors into one.

    Returns None for no errors, the error itself for a single one,
    otherwise a CombinedError (nested combined errors are flattened).
    """
    flat: list[BaseException] = []
    for err in errors:
        if err is None:
            continue
        if isinstance(err, CombinedError):
            flat.extend(err.errors)
        else:
            flat.append(err)

    if not flat:
        return None
    if len(flat) == 1:
        return flat[0]
    return CombinedError(flat)


def root_causes(err: BaseException) -> list[BaseException]:
    """Leaf errors of a (possibly combined / wrapped) error."""
    if isinstance(err, CombinedError):
        return [leaf for e in err.errors for leaf in root_causes(e)]
    if isinstance(err, DependencyLoadError):
        return root_causes(err.cause)
    return [err]


def diagnostics_to_error(
    summary: str, diagnostics: Iterable[Diagnostic],
) -> ConfigurationError | None:
    """Build a ConfigurationError from the error diagnostics, if any."""
    errors = [d for d in diagnostics if d.is_error]
    if not errors:
        return None
    return ConfigurationError(summary, errors)


def diagnostics_to_warnings(diagnostics: Iterable[Diagnostic]) -> list[str]:
    """Render warning diagnostics as strings."""
    return [str(d) for d in diagnostics if not d.is_error]
