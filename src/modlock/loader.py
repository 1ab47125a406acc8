"""
modlock.loader — Recursive mod loader.

load_mod(path, ctx):

  1. parse the mod definition (or use the default mod)
  2. resolve each `require` entry against the workspace lock
  3. load every dependency concurrently, one task per entry
  4. join; any failed dependency fails the whole load
  5. register the loaded dependencies in name order
  6. parse the mod's own resource files and merge in dependency resources

The workspace lock is only read during a load.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from modlock.config import ModlockConfig, WorkspacePaths
from modlock.errors import (
    CombinedError, ConfigurationError, DependencyLoadError,
    DependencyNotInstalledError, LoadCancelledError, ModDefinitionError,
    combine_errors, diagnostics_to_error, diagnostics_to_warnings,
)
from modlock.mod.context import ModParser, ParseContext
from modlock.mod.files import list_files
from modlock.mod.model import Mod, ResourceCollection
from modlock.mod.parser import YamlModParser, find_mod_file
from modlock.versionmap.constraint import ModVersionConstraint
from modlock.workspace.lock import WorkspaceLock

logger = logging.getLogger(__name__)


@dataclass
class LoadResult:
    """A fully loaded mod and the warnings collected on the way."""
    mod: Mod
    warnings: list[str] = field(default_factory=list)


@dataclass
class _DependencyResult:
    name: str
    mod: Mod
    warnings: list[str]


def load_mod(mod_path: str | Path, ctx: ParseContext) -> LoadResult:
    """Load the mod in `mod_path` and, recursively, all its dependencies.

    Raises:
        ModDefinitionError: no mod definition and no default allowed
        ConfigurationError: malformed definition or resources
        DependencyNotInstalledError: no lock, or a dependency missing
        DependencyLoadError / CombinedError: dependency failures
        LoadCancelledError: cancelled or deadline passed
    """
    ctx.check_cancelled()
    mod_path = Path(mod_path)
    warnings: list[str] = []

    mod = _load_definition(mod_path, ctx, warnings)
    if ctx.dependency is not None:
        mod.set_dependency_properties(ctx.dependency)
    ctx.current_mod = mod
    logger.debug("loading mod %s from %s", mod, mod_path)

    if mod.require:
        ctx.ensure_workspace_lock(mod)
        for dep in _load_dependencies(mod, ctx):
            ctx.loaded_dependency_mods[dep.name] = dep.mod
            warnings.extend(dep.warnings)

    own, diags = _parse_resources(mod, ctx)
    warnings.extend(diagnostics_to_warnings(diags))

    resources = ResourceCollection()
    resources.merge(own)
    for name in sorted(ctx.loaded_dependency_mods):
        resources.merge(ctx.loaded_dependency_mods[name].resources)
    mod.resources = resources

    err = diagnostics_to_error(f"failed to load resources of mod '{mod}'", diags)
    if err is not None:
        # partial mod, for callers that want to show what did load
        err.mod = mod
        err.warnings = warnings
        raise err

    logger.debug("loaded mod %s: %d resources", mod, len(mod.resources))
    return LoadResult(mod=mod, warnings=warnings)


def _load_definition(mod_path: Path, ctx: ParseContext, warnings: list[str]) -> Mod:
    mod_file = find_mod_file(mod_path, ctx.config.mod_file_names)
    if mod_file is None:
        if ctx.allow_default_mod:
            logger.debug("no mod definition in %s, using default mod", mod_path)
            return Mod.default(mod_path)
        raise ModDefinitionError(
            f"no mod definition file found in {mod_path} "
            f"(expected one of: {', '.join(ctx.config.mod_file_names)})"
        )

    mod, diags = ctx.parser.parse_mod_definition(mod_file, ctx)
    warnings.extend(diagnostics_to_warnings(diags))
    err = diagnostics_to_error(f"failed to parse mod definition {mod_file}", diags)
    if err is not None:
        raise err
    if mod is None:
        raise ConfigurationError(f"failed to parse mod definition {mod_file}")
    return mod


def _load_dependencies(mod: Mod, ctx: ParseContext) -> list[_DependencyResult]:
    """Load all direct dependencies of `mod`, one thread each.

    Every task runs to completion; failures are combined.
    """
    requires = list(mod.require)
    results: list[_DependencyResult] = []
    errors: list[BaseException] = []

    with ThreadPoolExecutor(max_workers=len(requires),
                            thread_name_prefix=f"modlock-{mod.short_name}") as pool:
        futures = []
        for req in requires:
            if ctx.cancelled():
                break
            futures.append(pool.submit(_load_dependency, req, mod, ctx))

        for future in futures:
            try:
                results.append(future.result())
            except Exception as e:
                errors.append(e)

    if ctx.cancelled():
        raise LoadCancelledError(
            f"load of {' -> '.join(ctx.chain())} was cancelled"
        )

    err = combine_errors(errors)
    if err is not None:
        raise err

    return sorted(results, key=lambda r: r.name)


def _load_dependency(req: ModVersionConstraint, parent: Mod, ctx: ParseContext) -> _DependencyResult:
    ctx.check_cancelled()
    lock = ctx.workspace_lock

    try:
        locked = lock.ensure_locked_mod_version(req, parent)
        if locked is None:
            raise DependencyNotInstalledError(
                f"dependency mod '{req.name}' required by '{parent}' is not installed "
                f"- run '{ctx.config.install_command}'"
            )
        dep_path = lock.find_installed_dependency(locked)
    except Exception as e:
        raise DependencyLoadError(ctx.chain() + [req.name], e) from e

    child = ctx.child(locked, req.args)
    try:
        result = load_mod(dep_path, child)
    except (DependencyLoadError, CombinedError, LoadCancelledError):
        raise
    except Exception as e:
        raise DependencyLoadError(child.chain(), e) from e

    return _DependencyResult(name=locked.name, mod=result.mod, warnings=result.warnings)


def _parse_resources(mod: Mod, ctx: ParseContext):
    files = list_files(
        mod.mod_path,
        include=ctx.config.resource_include,
        exclude=ctx.resource_exclude(),
    )
    logger.debug("mod %s: %d resource files", mod, len(files))
    return ctx.parser.parse_mod_resources(mod, files, ctx)


def load_workspace_mod(
    workspace_path: str | Path,
    config: ModlockConfig | None = None,
    parser: ModParser | None = None,
    allow_default_mod: bool = False,
    cancel_event: threading.Event | None = None,
    timeout: float | None = None,
) -> LoadResult:
    """Load the root mod of a workspace with its installed dependencies.

    Args:
        workspace_path: Workspace folder (holds the root mod)
        config: Config (default: ModlockConfig())
        parser: Mod parser (default: YamlModParser)
        allow_default_mod: Use a default mod if there is no mod definition
        cancel_event: Set to cancel the load
        timeout: Seconds until the load is cancelled

    Raises:
        LockFileError: unreadable lock
        ModlockError: see load_mod
    """
    paths = WorkspacePaths.for_workspace(workspace_path, config)
    lock = WorkspaceLock.load(paths)
    if lock.incomplete:
        logger.debug("workspace lock has %d missing installs", len(lock.missing_versions))

    ctx = ParseContext(
        paths=paths,
        parser=parser or YamlModParser(),
        workspace_lock=lock,
        allow_default_mod=allow_default_mod,
        cancel_event=cancel_event or threading.Event(),
        deadline=time.monotonic() + timeout if timeout is not None else None,
    )
    return load_mod(paths.workspace_path, ctx)
