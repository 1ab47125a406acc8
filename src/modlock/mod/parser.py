"""
modlock.mod.parser — YAML mod parser.

mod.yaml:

    apiVersion: modlock.io/v1
    kind: Mod
    metadata:
      name: app
      title: My App
    require:
      - name: github.com/acme/lib-a
        version: "^1.0.0"
      - name: github.com/acme/lib-b
        branch: main
      - name: lib-c
        path: ../lib-c

Resource files (any *.yaml in the mod folder):

    resources:
      - type: query
        name: users
        sql: select * from users

Parsing never raises for content problems; it returns diagnostics with
file/line context and leaves the fatal/non-fatal decision to the loader.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from modlock.errors import Diagnostic, SEVERITY_ERROR, SEVERITY_WARNING
from modlock.mod.context import ParseContext
from modlock.mod.model import Mod, Resource, ResourceCollection
from modlock.versionmap.constraint import ModVersionConstraint

API_VERSION = "modlock.io/v1"
MOD_KIND = "Mod"

_RESOURCE_FILE_KEYS = {"apiVersion", "kind", "resources"}


def find_mod_file(mod_path: str | Path, mod_file_names: list[str]) -> Path | None:
    """First existing mod definition file in the folder."""
    base = Path(mod_path)
    for name in mod_file_names:
        candidate = base / name
        if candidate.is_file():
            return candidate
    return None


class YamlModParser:
    """Default ModParser: mod definitions and resources in YAML."""

    def parse_mod_definition(
        self, mod_file: Path, ctx: ParseContext,
    ) -> tuple[Mod | None, list[Diagnostic]]:
        diags: list[Diagnostic] = []
        file = str(mod_file)
        data, node = _load_yaml(mod_file, diags)
        if node is None:
            if not diags:
                diags.append(Diagnostic(SEVERITY_ERROR, "Mod definition is empty", file=file))
            return None, diags

        def error(summary: str, at: yaml.Node | None = None) -> None:
            diags.append(Diagnostic(SEVERITY_ERROR, summary, file=file, line=_line(at or node)))

        if not isinstance(data, dict):
            error(f"Mod definition must be a YAML mapping, got {type(data).__name__}")
            return None, diags

        api_version = data.get("apiVersion", "")
        if api_version and api_version != API_VERSION:
            error(f"Unsupported apiVersion: '{api_version}'. Expected '{API_VERSION}'",
                  _child(node, "apiVersion"))
        kind = data.get("kind", "")
        if kind and kind != MOD_KIND:
            error(f"Unsupported kind: '{kind}'. Expected '{MOD_KIND}'", _child(node, "kind"))

        metadata = data.get("metadata", {})
        if not isinstance(metadata, dict):
            error("metadata must be a mapping", _child(node, "metadata"))
            return None, diags
        name = metadata.get("name")
        if not name or not isinstance(name, str):
            error("metadata.name is required", _child(node, "metadata"))
            return None, diags

        require = self._parse_require(data, node, mod_file, diags)

        if any(d.severity == SEVERITY_ERROR for d in diags):
            return None, diags

        mod = Mod(
            name=name,
            short_name=name,
            mod_path=mod_file.parent,
            title=metadata.get("title"),
            require=require,
            definition_file=file,
        )
        return mod, diags

    def _parse_require(
        self, data: dict[str, Any], node: yaml.Node, mod_file: Path,
        diags: list[Diagnostic],
    ) -> list[ModVersionConstraint]:
        file = str(mod_file)
        raw = data.get("require")
        if raw is None:
            return []

        require_node = _child(node, "require")
        # legacy form: require: {mods: [...]}
        if isinstance(raw, dict) and "mods" in raw:
            diags.append(Diagnostic(
                SEVERITY_WARNING,
                "'require.mods' is deprecated - list dependencies directly under 'require'",
                file=file, line=_line(require_node),
            ))
            raw = raw["mods"]
            require_node = _child(require_node, "mods")

        if not isinstance(raw, list):
            diags.append(Diagnostic(SEVERITY_ERROR, "require must be a list",
                                    file=file, line=_line(require_node)))
            return []

        item_nodes = require_node.value if isinstance(require_node, yaml.SequenceNode) else []
        result: list[ModVersionConstraint] = []
        seen: set[str] = set()
        for i, entry in enumerate(raw):
            at = item_nodes[i] if i < len(item_nodes) else require_node
            if not isinstance(entry, dict):
                diags.append(Diagnostic(SEVERITY_ERROR, f"require[{i}] must be a mapping",
                                        file=file, line=_line(at)))
                continue
            try:
                constraint = ModVersionConstraint.from_dict(entry)
            except ValueError as e:
                diags.append(Diagnostic(SEVERITY_ERROR, f"require[{i}]: {e}",
                                        file=file, line=_line(at)))
                continue
            if constraint.name in seen:
                diags.append(Diagnostic(SEVERITY_ERROR,
                                        f"Duplicate dependency: '{constraint.name}'",
                                        file=file, line=_line(at)))
                continue
            seen.add(constraint.name)
            if constraint.file_path:
                constraint.file_path = str((mod_file.parent / constraint.file_path).resolve())
            result.append(constraint)
        return result

    def parse_mod_resources(
        self, mod: Mod, files: list[Path], ctx: ParseContext,
    ) -> tuple[ResourceCollection, list[Diagnostic]]:
        diags: list[Diagnostic] = []
        resources = ResourceCollection()
        for path in files:
            self._parse_resource_file(mod, path, resources, diags)
        return resources, diags

    def _parse_resource_file(
        self, mod: Mod, path: Path, resources: ResourceCollection,
        diags: list[Diagnostic],
    ) -> None:
        file = str(path)
        data, node = _load_yaml(path, diags)
        if node is None:
            if not any(d.file == file for d in diags):
                diags.append(Diagnostic(SEVERITY_WARNING, "File contains no resources", file=file))
            return

        if not isinstance(data, dict):
            diags.append(Diagnostic(SEVERITY_ERROR, "Resource file must be a YAML mapping",
                                    file=file, line=_line(node)))
            return

        for key in data:
            if key not in _RESOURCE_FILE_KEYS:
                diags.append(Diagnostic(SEVERITY_WARNING, f"Unknown key '{key}' ignored",
                                        file=file, line=_line(_child(node, key))))

        raw = data.get("resources")
        list_node = _child(node, "resources")
        if raw is None:
            diags.append(Diagnostic(SEVERITY_WARNING, "File contains no resources", file=file))
            return
        if not isinstance(raw, list):
            diags.append(Diagnostic(SEVERITY_ERROR, "resources must be a list",
                                    file=file, line=_line(list_node)))
            return

        item_nodes = list_node.value if isinstance(list_node, yaml.SequenceNode) else []
        for i, item in enumerate(raw):
            at = item_nodes[i] if i < len(item_nodes) else list_node
            line = _line(at)
            if not isinstance(item, dict):
                diags.append(Diagnostic(SEVERITY_ERROR, f"resources[{i}] must be a mapping",
                                        file=file, line=line))
                continue
            rtype, rname = item.get("type"), item.get("name")
            if not rtype or not isinstance(rtype, str):
                diags.append(Diagnostic(SEVERITY_ERROR, f"resources[{i}].type is required",
                                        file=file, line=line))
                continue
            if not rname or not isinstance(rname, str):
                diags.append(Diagnostic(SEVERITY_ERROR, f"resources[{i}].name is required",
                                        file=file, line=line))
                continue

            resource = Resource(
                mod_name=mod.short_name,
                type=rtype,
                name=rname,
                body={k: v for k, v in item.items() if k not in ("type", "name")},
                file=file,
                line=line,
                dependency_path=mod.dependency_path,
                dependency_name=mod.name if mod.is_dependency else None,
                dependency_version=mod.version,
            )
            existing = resources.get(resource.qualified_name)
            if existing is not None:
                diags.append(Diagnostic(
                    SEVERITY_ERROR,
                    f"Duplicate resource name '{resource.qualified_name}'",
                    detail=f"first defined at {existing.file}:{existing.line}",
                    file=file, line=line,
                ))
                continue
            resources.add(resource)


def _load_yaml(path: Path, diags: list[Diagnostic]) -> tuple[Any, yaml.Node | None]:
    """Read a YAML file, returning (data, root node).

    YAML errors become an error diagnostic and (None, None).
    """
    try:
        text = path.read_text()
        node = yaml.compose(text, Loader=yaml.SafeLoader)
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        diags.append(Diagnostic(
            SEVERITY_ERROR,
            "Invalid YAML",
            detail=str(getattr(e, "problem", None) or e),
            file=str(path),
            line=mark.line + 1 if mark is not None else None,
        ))
        return None, None
    except OSError as e:
        diags.append(Diagnostic(SEVERITY_ERROR, f"Failed to read file: {e}", file=str(path)))
        return None, None
    return data, node


def _child(node: yaml.Node | None, key: str) -> yaml.Node | None:
    if isinstance(node, yaml.MappingNode):
        for k, v in node.value:
            if isinstance(k, yaml.ScalarNode) and k.value == key:
                return v
    return None


def _line(node: yaml.Node | None) -> int | None:
    if node is None:
        return None
    return node.start_mark.line + 1
