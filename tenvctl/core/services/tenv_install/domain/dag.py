"""
L1 Domain — DAG utilities (pure).

Dependency validation and ordering for convergence tasks. Works on
any object exposing ``id`` and ``depends_on``.
No I/O, no subprocess.
"""

from __future__ import annotations

from typing import Protocol, Sequence, TypeVar


class _Node(Protocol):
    id: str
    depends_on: list[str]


N = TypeVar("N", bound=_Node)


def validate_dag(nodes: Sequence[_Node]) -> list[str]:
    """Validate the task dependency DAG.

    Checks for:
    - Duplicate task IDs
    - References to non-existent task IDs
    - Cycles (Kahn's algorithm)

    Returns:
        List of error strings (empty = valid).
    """
    errors: list[str] = []
    ids = {n.id for n in nodes}

    seen: set[str] = set()
    for n in nodes:
        if n.id in seen:
            errors.append(f"Duplicate task ID: {n.id}")
        seen.add(n.id)

    for n in nodes:
        for dep in n.depends_on:
            if dep not in ids:
                errors.append(f"Task '{n.id}' depends on unknown task '{dep}'")

    if errors:
        return errors

    if len(topological_order(nodes)) < len(nodes):
        errors.append("Dependency cycle detected in task graph")

    return errors


def topological_order(nodes: Sequence[N]) -> list[N]:
    """Order nodes so every dependency precedes its dependents.

    Ties keep insertion order, so identical inputs always produce the
    same sequence. Nodes caught in a cycle are left out.
    """
    in_degree: dict[str, int] = {n.id: len(n.depends_on) for n in nodes}
    adj: dict[str, list[str]] = {n.id: [] for n in nodes}
    for n in nodes:
        for dep in n.depends_on:
            adj[dep].append(n.id)

    by_id = {n.id: n for n in nodes}
    position = {n.id: i for i, n in enumerate(nodes)}
    queue = [n.id for n in nodes if in_degree[n.id] == 0]
    ordered: list[N] = []

    while queue:
        queue.sort(key=position.__getitem__)
        node = queue.pop(0)
        ordered.append(by_id[node])
        for successor in adj[node]:
            in_degree[successor] -= 1
            if in_degree[successor] == 0:
                queue.append(successor)

    return ordered

