"""Selections and aggregations over flattened rows."""
from typing import Iterable, Optional, Union

from pydantic import BaseModel

from .models import NOT_AVAILABLE, Abstract, FlattenedRow


def as_rows(rows: Iterable[Union[FlattenedRow, dict]]) -> list[FlattenedRow]:
    """Accept rows as models or plain dicts (e.g. read back from JSON)."""
    return [
        row if isinstance(row, FlattenedRow) else FlattenedRow.model_validate(row)
        for row in rows
    ]


def rows_for_subject(
    rows: Iterable[Union[FlattenedRow, dict]], subject: str
) -> list[FlattenedRow]:
    return [row for row in as_rows(rows) if row.result_subjectNode_name == subject]


def unique_subjects(rows: Iterable[Union[FlattenedRow, dict]]) -> list[str]:
    """Distinct result subject names, sorted."""
    return sorted(
        {
            row.result_subjectNode_name
            for row in as_rows(rows)
            if row.result_subjectNode_name != NOT_AVAILABLE
        }
    )


def subject_stats(rows: Iterable[Union[FlattenedRow, dict]], subject: str) -> dict:
    """Number of rows and of rows with publications for one subject."""
    subject_rows = rows_for_subject(rows, subject)
    return {
        "phrase_count": len(subject_rows),
        "publication_count": sum(
            1 for row in subject_rows if row.publications != NOT_AVAILABLE
        ),
    }


class PhraseGroup(BaseModel):
    """Rows sharing one phrase."""

    phrase: str
    count: int = 0
    edge_id: str
    predicate: Optional[str] = None
    publications: list[str] = []
    sources: list[str] = []
    abstracts: list[Abstract] = []


def group_phrases(rows: Iterable[Union[FlattenedRow, dict]]) -> list[PhraseGroup]:
    """Group rows by phrase, in first-seen order."""
    groups: dict[str, PhraseGroup] = {}
    for row in as_rows(rows):
        group = groups.get(row.phrase)
        if group is None:
            group = groups[row.phrase] = PhraseGroup(
                phrase=row.phrase,
                edge_id=row.edge_id,
                predicate=row.predicate,
            )
        group.count += 1
        if row.publications != NOT_AVAILABLE and row.publications not in group.publications:
            group.publications.append(row.publications)
        if row.primary_source != NOT_AVAILABLE and row.primary_source not in group.sources:
            group.sources.append(row.primary_source)
        group.abstracts.extend(row.abstracts or [])
    return list(groups.values())


def unique_nodes(rows: Iterable[Union[FlattenedRow, dict]]) -> dict[str, dict]:
    """Every node named by the rows, keyed by id."""
    nodes = {}
    for row in as_rows(rows):
        candidates = [
            (row.result_subjectNode_id, row.result_subjectNode_name, "result subject"),
            (row.result_objectNode_id, row.result_objectNode_name, "result object"),
            (row.edge_subject, row.edge_subjectNode_name, "edge node"),
            (row.edge_object, row.edge_objectNode_name, "edge node"),
        ]
        for node_id, name, role in candidates:
            if node_id and node_id != NOT_AVAILABLE and node_id not in nodes:
                nodes[node_id] = {"id": node_id, "name": name, "role": role}
    return nodes
