"""Test path analysis."""
from kgpath.logger import QueryLogger
from kgpath.models import FlattenedRow
from kgpath.paths import (
    analyze_participation,
    analyze_paths,
    analyze_subject,
    build_adjacency,
    find_paths,
)


def row(subject, object, predicate="biolink:related_to", result_subject="A", result_object="C", **kwargs):
    return FlattenedRow(
        edge_id=f"{subject}-{predicate}-{object}",
        edge_subjectNode_name=subject,
        edge_objectNode_name=object,
        predicate=predicate,
        result_subjectNode_name=result_subject,
        result_objectNode_name=result_object,
        **kwargs,
    )


def hops(path):
    return [(step.from_node, step.to_node) for step in path]


def test_direct_and_two_hop():
    """A->C and A->B->C give two paths, direct first."""
    rows = [
        row("A", "B", "biolink:affects"),
        row("B", "C", "biolink:causes"),
        row("A", "C", "biolink:treats", primary_source="infores:ctd", publications="PMID:1"),
    ]
    analysis = analyze_paths(rows, "A", "C")
    assert [hops(path) for path in analysis.paths] == [
        [("A", "C")],
        [("A", "B"), ("B", "C")],
    ]
    direct = analysis.paths[0][0]
    assert direct.predicate == "biolink:treats"
    assert direct.source == "infores:ctd"
    assert direct.publications == "PMID:1"

    participation = analysis.participation
    assert participation["B"].count == 1
    assert participation["B"].ratio == 0.5
    assert not participation["B"].is_bottleneck
    assert participation["B"].roles == ["intermediate"]
    assert participation["B"].path_indices == [1]
    for name in ["A", "C"]:
        assert participation[name].count == 2
        assert participation[name].ratio == 1.0
        assert participation[name].is_bottleneck
    assert participation["A"].roles == ["start"]
    assert participation["C"].roles == ["end"]
    assert set(analysis.bottlenecks) == {"A", "C"}
    # most frequent first
    assert list(participation)[-1] == "B"

    assert analysis.summary.total_edges == 3
    assert analysis.summary.unique_nodes == 3
    assert analysis.summary.path_lengths == [1, 2]
    assert not analysis.truncated


def test_direct_path_not_repeated():
    """A direct edge is reported once."""
    paths, _ = find_paths(build_adjacency([row("A", "C")]), "A", "C")
    assert len(paths) == 1


def test_four_hop_path():
    """Paths of exactly four edges are found, five are not."""
    rows = [row(a, b) for a, b in ["AB", "BD", "DE", "EC"]]
    paths, _ = find_paths(build_adjacency(rows), "A", "C")
    assert [hops(path) for path in paths] == [
        [("A", "B"), ("B", "D"), ("D", "E"), ("E", "C")]
    ]

    rows = [row(a, b) for a, b in ["AB", "BD", "DE", "EF", "FC"]]
    paths, _ = find_paths(build_adjacency(rows), "A", "C")
    assert paths == []


def test_hop_bound():
    """No path is longer than max_hops."""
    rows = [row(a, b) for a, b in ["AB", "BC", "AD", "DE", "EC", "BD", "DC"]]
    for max_hops in range(1, 5):
        paths, _ = find_paths(build_adjacency(rows), "A", "C", max_hops=max_hops)
        assert all(1 <= len(path) <= max_hops for path in paths)
    paths, _ = find_paths(build_adjacency(rows), "A", "C", max_hops=1)
    assert paths == []


def test_paths_are_simple():
    """Cycles are not followed."""
    rows = [row(a, b) for a, b in ["AB", "BA", "BC", "CB"]]
    paths, _ = find_paths(build_adjacency(rows), "A", "C")
    assert [hops(path) for path in paths] == [[("A", "B"), ("B", "C")]]


def test_multi_edges_kept():
    """Parallel edges give distinct paths."""
    rows = [
        row("A", "B", "biolink:affects"),
        row("A", "B", "biolink:interacts_with"),
        row("B", "C"),
    ]
    paths, _ = find_paths(build_adjacency(rows), "A", "C")
    assert [path[0].predicate for path in paths] == [
        "biolink:affects",
        "biolink:interacts_with",
    ]


def test_path_cap():
    """The search stops at max_paths and says so."""
    rows = [row("A", "C", f"biolink:p{index}") for index in range(5)]
    query_logger = QueryLogger("kgpath.test_path_cap", "WARNING")
    analysis = analyze_paths(rows, "A", "C", max_paths=3, logger=query_logger.logger)
    query_logger.close()
    assert len(analysis.paths) == 3
    assert analysis.truncated
    assert len(query_logger.contents()) == 1


def test_no_paths():
    """Unconnected subject and object give an empty analysis."""
    analysis = analyze_paths([row("A", "B")], "A", "C")
    assert analysis.paths == []
    assert analysis.participation == {}
    assert analysis.bottlenecks == []


def test_roles_across_paths():
    """A node keeps every role it plays."""
    paths, _ = find_paths(
        build_adjacency([row(a, b) for a, b in ["AB", "BC", "AC"]]), "A", "C"
    )
    # B starts the extra path
    participation = analyze_participation(paths + [paths[1][1:]])
    assert participation["B"].roles == ["intermediate", "start"]


def test_analyze_subject():
    """Subjects are analyzed towards their result object."""
    rows = [
        row("A", "C"),
        row("X", "Y", result_subject="X", result_object="Y"),
    ]
    analysis = analyze_subject(rows, "A")
    assert analysis.object == "C"
    assert len(analysis.paths) == 1

    missing = analyze_subject(rows, "nobody")
    assert missing.object == "N/A"
    assert missing.paths == []


def test_rows_as_dicts():
    """Rows read back from JSON work too."""
    rows = [row("A", "C").model_dump()]
    assert len(analyze_paths(rows, "A", "C").paths) == 1


def test_path_step_aliases():
    """Steps serialize with from/to keys."""
    analysis = analyze_paths([row("A", "C")], "A", "C")
    step = analysis.model_dump(by_alias=True)["paths"][0][0]
    assert step["from"] == "A"
    assert step["to"] == "C"
