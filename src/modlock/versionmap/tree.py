"""
modlock.versionmap.tree — Printable dependency trees.

    app
    ├── github.com/acme/lib-a@v1.0.3
    │   └── github.com/acme/lib-c@v2.1.0
    └── github.com/acme/lib-b#main
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class DependencyTree:
    """A tree node."""
    name: str
    children: list[DependencyTree] = field(default_factory=list)

    def add_branch(self, name: str) -> DependencyTree:
        child = DependencyTree(name)
        self.children.append(child)
        return child

    def find(self, name: str) -> DependencyTree | None:
        for child in self.children:
            if child.name == name:
                return child
        return None

    def names(self) -> list[str]:
        """All node names, depth-first."""
        result = [self.name]
        for child in self.children:
            result.extend(child.names())
        return result

    def render(self) -> str:
        lines = [self.name]
        self._render_children(lines, "")
        return "\n".join(lines)

    def _render_children(self, lines: list[str], prefix: str) -> None:
        for i, child in enumerate(self.children):
            last = i == len(self.children) - 1
            lines.append(f"{prefix}{'└── ' if last else '├── '}{child.name}")
            child._render_children(lines, prefix + ("    " if last else "│   "))

    def __str__(self) -> str:
        return self.render()


def tree_from_paths(paths: list[list[str]]) -> list[DependencyTree]:
    """Build trees from full dependency paths, sharing common prefixes.

    Paths with different first segments produce separate roots.
    """
    roots: list[DependencyTree] = []
    for path in paths:
        if not path:
            continue
        node = next((r for r in roots if r.name == path[0]), None)
        if node is None:
            node = DependencyTree(path[0])
            roots.append(node)
        for segment in path[1:]:
            child = node.find(segment)
            if child is None:
                child = node.add_branch(segment)
            node = child
    return roots
