"""Typed access to edge attributes."""
from collections import defaultdict
from typing import Callable, Iterable, Optional

from .models import Attribute
from .utils import deduplicate, ensure_list

PUBLICATIONS = "biolink:publications"
SUPPORT_GRAPHS = "biolink:support_graphs"
SUPPORTING_STUDY_RESULT = "biolink:has_supporting_study_result"
SUPPORTING_STUDIES = "biolink:has_supporting_studies"


def _publications(attributes: list[Attribute]) -> list[str]:
    # a later publications attribute replaces an earlier one
    return [str(pub) for pub in ensure_list(attributes[-1].value) if pub]


def _support_graphs(attributes: list[Attribute]) -> list[str]:
    return deduplicate(
        str(graph_id)
        for attribute in attributes
        for graph_id in ensure_list(attribute.value)
        if graph_id
    )


def _clinical_trials(attributes: list[Attribute]) -> list[dict]:
    trials = []
    for attribute in attributes:
        for value in ensure_list(attribute.value):
            if isinstance(value, dict):
                trial = dict(value)
                trial.setdefault("description", trial.get("id", ""))
            else:
                trial = {
                    "id": str(value),
                    "description": attribute.description or str(value),
                }
            trials.append(trial)
    return trials


ACCESSORS: dict[str, Callable[[list[Attribute]], list]] = {
    PUBLICATIONS: _publications,
    SUPPORT_GRAPHS: _support_graphs,
    SUPPORTING_STUDY_RESULT: _clinical_trials,
    SUPPORTING_STUDIES: _clinical_trials,
}


class AttributeIndex:
    """Attributes grouped by known type, everything else passed through."""

    def __init__(self, attributes: Optional[Iterable[Attribute]]):
        self.known: dict[str, list[Attribute]] = defaultdict(list)
        self.unknown: list[Attribute] = []
        for attribute in attributes or []:
            if attribute.attribute_type_id in ACCESSORS:
                self.known[attribute.attribute_type_id].append(attribute)
            else:
                self.unknown.append(attribute)

    def value(self, type_id: str) -> list:
        """Typed value of a known attribute type, empty if absent."""
        attributes = self.known.get(type_id)
        if not attributes:
            return []
        return ACCESSORS[type_id](attributes)

    @property
    def publications(self) -> list[str]:
        return self.value(PUBLICATIONS)

    @property
    def support_graphs(self) -> list[str]:
        return self.value(SUPPORT_GRAPHS)

    @property
    def clinical_trials(self) -> list[dict]:
        return self.value(SUPPORTING_STUDY_RESULT) + self.value(SUPPORTING_STUDIES)
