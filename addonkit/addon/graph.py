"""
Dependency Graph Algorithms.

Pure functions over a mapping of addon id -> declared dependency ids.
"""

from collections.abc import Iterable, Mapping


def find_cycle(
    graph: Mapping[str, Iterable[str]],
    start: str,
    visiting: set[str] | None = None,
) -> list[str] | None:
    """
    Depth-first search for a dependency cycle reachable from `start`.

    Dependency ids missing from `graph` are leaves.

    Args:
        graph: Addon id -> ids it depends on
        start: Addon to start from
        visiting: Ids already on the current path (callers normally omit it)

    Returns:
        The cycle as a path whose first and last ids are equal, or None
    """
    path: list[str] = list(visiting or ())
    on_path = set(path)
    done: set[str] = set()

    def visit(node: str) -> list[str] | None:
        if node in on_path:
            return path[path.index(node):] + [node]
        if node in done or node not in graph:
            return None

        path.append(node)
        on_path.add(node)
        for dep in graph[node]:
            cycle = visit(dep)
            if cycle is not None:
                return cycle
        path.pop()
        on_path.discard(node)
        done.add(node)
        return None

    return visit(start)


def dependents_of(graph: Mapping[str, Iterable[str]], addon_id: str) -> list[str]:
    """Ids that declare a direct dependency on `addon_id`, in graph order."""
    return [node for node, deps in graph.items() if addon_id in deps]


def topological_order(graph: Mapping[str, Iterable[str]], nodes: Iterable[str]) -> list[str]:
    """
    Order `nodes` so that every addon comes after its dependencies.

    Only edges between members of `nodes` are considered. Ties are broken
    by id for a deterministic order.

    Raises:
        ValueError: If the nodes contain a cycle
    """
    members = list(dict.fromkeys(nodes))
    member_set = set(members)

    in_degree = {node: 0 for node in members}
    dependents: dict[str, list[str]] = {node: [] for node in members}
    for node in members:
        for dep in dict.fromkeys(graph.get(node, ())):
            if dep in member_set and dep != node:
                in_degree[node] += 1
                dependents[dep].append(node)
            elif dep == node:
                raise ValueError(f"Addon {node} depends on itself")

    # Kahn's algorithm
    queue = sorted(node for node in members if in_degree[node] == 0)
    result = []
    while queue:
        node = queue.pop(0)
        result.append(node)
        for dependent in dependents[node]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                queue.append(dependent)
        queue.sort()

    if len(result) != len(members):
        raise ValueError("Circular dependency detected")
    return result
