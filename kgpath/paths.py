"""Path analysis between a result's subject and object.

The rows of one result subject are read as a directed multigraph over node
names. All simple paths of at most `max_path_hops` edges from subject to
object are enumerated and each node's participation across those paths is
measured. Nodes present in more than `bottleneck_threshold` of the paths are
reported as bottlenecks.

Parallel edges are kept, so path counts grow combinatorially with graph
density; the search stops once `max_paths` paths have been found.
"""
from collections import defaultdict, deque, namedtuple
import logging
from typing import Iterable, Optional, Union

from .config import settings
from .models import (
    FlattenedRow,
    NodeParticipation,
    PathAnalysis,
    PathStep,
    PathSummary,
)
from .rows import as_rows, rows_for_subject
from .utils import deduplicate

LOGGER = logging.getLogger(__name__)

START = "start"
END = "end"
INTERMEDIATE = "intermediate"

AdjacentEdge = namedtuple(
    "AdjacentEdge", ["to", "predicate", "source", "publications", "clinical_trials"]
)


def build_adjacency(rows: Iterable[FlattenedRow]) -> dict[str, list[AdjacentEdge]]:
    """Outgoing edges keyed by edge subject name."""
    graph = defaultdict(list)
    for row in rows:
        graph[row.edge_subjectNode_name].append(
            AdjacentEdge(
                row.edge_objectNode_name,
                row.predicate,
                row.primary_source,
                row.publications,
                row.clinical_trials,
            )
        )
    return dict(graph)


def _step(from_node: str, edge: AdjacentEdge) -> PathStep:
    return PathStep(
        from_node=from_node,
        to_node=edge.to,
        predicate=edge.predicate,
        source=edge.source,
        publications=edge.publications,
        clinical_trials=edge.clinical_trials,
    )


def find_paths(
    graph: dict[str, list[AdjacentEdge]],
    start: str,
    end: str,
    max_hops: int = settings.max_path_hops,
    max_paths: int = settings.max_paths,
) -> tuple[list[list[PathStep]], bool]:
    """Find all paths of 1 to max_hops edges from start to end.

    Direct edges come first, followed by longer paths in breadth-first
    order. Returns the paths and whether the search was cut short by
    max_paths.
    """
    paths = []

    for edge in graph.get(start, []):
        if edge.to == end:
            if len(paths) >= max_paths:
                return paths, True
            paths.append([_step(start, edge)])

    # (current node, steps so far, nodes on this path)
    queue = deque([(start, (), frozenset([start]))])
    while queue:
        node, path, visited = queue.popleft()

        if node == end and path:
            # single steps to the end are the direct edges found above
            if len(path) > 1:
                if len(paths) >= max_paths:
                    return paths, True
                paths.append([_step(from_node, edge) for from_node, edge in path])
            continue

        if len(path) >= max_hops:
            continue

        for edge in graph.get(node, []):
            if edge.to in visited:
                continue
            queue.append((edge.to, path + ((node, edge),), visited | {edge.to}))

    return paths, False


def path_nodes(path: list[PathStep]) -> list[str]:
    """Unique node names on a path, in order."""
    return deduplicate(
        name for step in path for name in (step.from_node, step.to_node)
    )


def node_role(path: list[PathStep], name: str) -> str:
    if path[0].from_node == name:
        return START
    if path[-1].to_node == name:
        return END
    return INTERMEDIATE


def analyze_participation(
    paths: list[list[PathStep]],
    threshold: float = settings.bottleneck_threshold,
) -> dict[str, NodeParticipation]:
    """Count the paths each node appears in, most frequent first."""
    participation: dict[str, NodeParticipation] = {}
    for index, path in enumerate(paths):
        if not path:
            continue
        for name in path_nodes(path):
            entry = participation.setdefault(name, NodeParticipation())
            entry.count += 1
            entry.path_indices.append(index)
            role = node_role(path, name)
            if role not in entry.roles:
                entry.roles.append(role)

    total = len(paths)
    for entry in participation.values():
        entry.ratio = entry.count / total
        entry.is_bottleneck = entry.ratio > threshold

    return dict(
        sorted(participation.items(), key=lambda item: item[1].count, reverse=True)
    )


def summarize_paths(paths: list[list[PathStep]]) -> PathSummary:
    return PathSummary(
        total_edges=sum(len(path) for path in paths),
        unique_nodes=len({name for path in paths for name in path_nodes(path)}),
        path_lengths=[len(path) for path in paths],
    )


def analyze_paths(
    rows: Iterable[Union[FlattenedRow, dict]],
    subject_name: str,
    object_name: str,
    max_paths: Optional[int] = None,
    logger: Optional[logging.Logger] = None,
) -> PathAnalysis:
    """Find paths from subject to object and flag bottleneck nodes."""
    if logger is None:
        logger = LOGGER
    if max_paths is None:
        max_paths = settings.max_paths

    graph = build_adjacency(as_rows(rows))
    logger.debug(
        f"Built graph with {len(graph)} source nodes and "
        f"{sum(len(edges) for edges in graph.values())} edges"
    )

    paths, truncated = find_paths(
        graph,
        subject_name,
        object_name,
        max_hops=settings.max_path_hops,
        max_paths=max_paths,
    )
    if truncated:
        logger.warning(
            f"Stopped path search between {subject_name} and {object_name} "
            f"after {max_paths} paths"
        )
    logger.info(
        f"Found {len(paths)} distinct paths between {subject_name} and {object_name}"
    )

    participation = analyze_participation(paths, settings.bottleneck_threshold)
    return PathAnalysis(
        subject=subject_name,
        object=object_name,
        paths=paths,
        participation=participation,
        bottlenecks=[
            name for name, entry in participation.items() if entry.is_bottleneck
        ],
        summary=summarize_paths(paths),
        truncated=truncated,
    )


def analyze_subject(
    rows: Iterable[Union[FlattenedRow, dict]],
    subject_name: str,
    max_paths: Optional[int] = None,
    logger: Optional[logging.Logger] = None,
) -> PathAnalysis:
    """Analyze paths for one result subject, towards its result object."""
    subject_rows = rows_for_subject(rows, subject_name)
    if not subject_rows:
        return PathAnalysis(subject=subject_name, object="N/A")
    object_name = subject_rows[0].result_objectNode_name
    return analyze_paths(subject_rows, subject_name, object_name, max_paths, logger)
