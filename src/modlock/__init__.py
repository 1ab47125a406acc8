"""
modlock — Mod dependency locking and recursive mod loading.

A workspace mod declares versioned dependencies on other mods; an
installer places them under <workspace>/.modlock/mods and records the
exact versions in a lock file. modlock reads that lock, reconciles it
with the install folder and loads the mod tree.
"""

from modlock.config import ModlockConfig, WorkspacePaths, load_config
from modlock.errors import (
    ModlockError,
    ConfigurationError,
    DependencyNotInstalledError,
    ConstraintViolationError,
    DependencyLoadError,
    CombinedError,
    LoadCancelledError,
)
from modlock.versionmap import (
    DependencyVersion,
    SemverVersion,
    BranchVersion,
    LocalPathVersion,
    ModVersionConstraint,
    ResolvedVersionConstraint,
    InstalledDependencyVersionsMap,
)
from modlock.mod import Mod, Resource, ParseContext, YamlModParser
from modlock.workspace import WorkspaceLock
from modlock.loader import load_mod, load_workspace_mod, LoadResult

__version__ = "0.1.0"
