"""Knowledge graph and output models."""
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


NOT_AVAILABLE = "N/A"
UNKNOWN = "Unknown"


class Source(BaseModel):
    """Edge provenance."""

    resource_id: Optional[str] = None
    resource_role: Optional[str] = Field(
        None, validation_alias=AliasChoices("resource_role", "role")
    )


class Attribute(BaseModel):
    """Edge or node attribute."""

    attribute_type_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("attribute_type_id", "type_id")
    )
    value: Any = None
    description: Optional[str] = None
    attribute_source: Optional[str] = None
    attributes: Optional[list["Attribute"]] = None


class Node(BaseModel):
    """Knowledge graph node."""

    name: Optional[str] = None
    categories: Optional[list[str]] = None
    attributes: Optional[list[Attribute]] = None


class Edge(BaseModel):
    """Knowledge graph edge."""

    subject: Optional[str] = None
    object: Optional[str] = None
    predicate: Optional[str] = None
    sources: Optional[list[Source]] = None
    attributes: Optional[list[Attribute]] = None


class AuxiliaryGraph(BaseModel):
    """Named bundle of supporting edges."""

    edges: Optional[list[str]] = None
    attributes: Optional[list[Attribute]] = None


class PublicationSummary(BaseModel):
    """Publication metadata used for ordering."""

    id: str
    title: str = "Unknown Title"
    journal: str = "Unknown Journal"
    publication_date: Optional[str] = None


class Abstract(BaseModel):
    """Publication metadata with abstract text."""

    id: str
    title: str = "Unknown Title"
    journal: str = "Unknown Journal"
    publication_date: Optional[str] = None
    abstract: str = "No abstract available"


class FlattenedRow(BaseModel):
    """One (result, edge) pair."""

    pk: Optional[str] = None
    environment: Optional[str] = None
    result_counter: int = 0
    result_subjectNode_name: str = NOT_AVAILABLE
    result_subjectNode_id: str = NOT_AVAILABLE
    result_objectNode_name: str = NOT_AVAILABLE
    result_objectNode_id: str = NOT_AVAILABLE
    edge_id: str
    edge_subject: Optional[str] = None
    edge_object: Optional[str] = None
    edge_subjectNode_name: str = UNKNOWN
    edge_objectNode_name: str = UNKNOWN
    predicate: Optional[str] = None
    phrase: str = NOT_AVAILABLE
    primary_source: str = NOT_AVAILABLE
    publications: str = NOT_AVAILABLE
    publications_count: int = 0
    clinical_trials: list[dict] = []
    clinical_trials_count: int = 0
    edge_type: str = "primary"
    support_graph_id: Optional[str] = None
    abstracts: Optional[list[Abstract]] = None
    abstract_count: Optional[int] = None


class UnresolvedReference(BaseModel):
    """A referenced edge or auxiliary graph that is missing or malformed."""

    kind: str
    reference_id: str
    referenced_by: str


class FlattenMetadata(BaseModel):
    pk: Optional[str] = None
    environment: Optional[str] = None
    timestamp: str
    results_count: int = 0
    nodes_count: int = 0
    edges_count: int = 0
    support_graphs_count: int = 0
    primary_rows: int = 0
    support_rows: int = 0
    total_rows: int = 0
    partial_bindings: int = 0
    unresolved_references: list[UnresolvedReference] = []


class FlattenResult(BaseModel):
    rows: list[FlattenedRow]
    metadata: FlattenMetadata


class PathStep(BaseModel):
    """One hop of a path."""

    model_config = ConfigDict(populate_by_name=True)

    from_node: str = Field(alias="from")
    predicate: Optional[str] = None
    to_node: str = Field(alias="to")
    source: Optional[str] = None
    publications: Optional[str] = None
    clinical_trials: list[dict] = []


class NodeParticipation(BaseModel):
    """How often a node appears across discovered paths."""

    count: int = 0
    path_indices: list[int] = []
    roles: list[str] = []
    ratio: float = 0.0
    is_bottleneck: bool = False


class PathSummary(BaseModel):
    total_edges: int = 0
    unique_nodes: int = 0
    path_lengths: list[int] = []


class PathAnalysis(BaseModel):
    subject: str
    object: str
    paths: list[list[PathStep]] = []
    participation: dict[str, NodeParticipation] = {}
    bottlenecks: list[str] = []
    summary: PathSummary = PathSummary()
    truncated: bool = False
