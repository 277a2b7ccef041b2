"""Knowledge graph flattening.

Turns a (possibly wrapped) TRAPI message into one row per (result, edge)
pair. Edges bound by an analysis produce "primary" rows; edges listed in the
auxiliary graphs referenced by a primary edge's support_graphs attribute
produce "support" rows.
"""
import datetime
import json
import logging
from typing import Any, Optional

from pydantic import ValidationError

from .attributes import AttributeIndex
from .bindings import OBJECT, SUBJECT, bound_ids, resolve_roles
from .models import (
    NOT_AVAILABLE,
    UNKNOWN,
    AuxiliaryGraph,
    Edge,
    FlattenedRow,
    FlattenMetadata,
    FlattenResult,
    Node,
    UnresolvedReference,
)
from .predicates import clean_predicate

LOGGER = logging.getLogger(__name__)

PRIMARY = "primary"
SUPPORT = "support"
PRIMARY_KNOWLEDGE_SOURCE = "primary_knowledge_source"
SENTINELS = {"", NOT_AVAILABLE, UNKNOWN}

# unresolved reference kinds
EDGE = "edge"
AUXILIARY_GRAPH = "auxiliary_graph"
MALFORMED_EDGE = "malformed_edge"
MALFORMED_AUXILIARY_GRAPH = "malformed_auxiliary_graph"


class MalformedResponse(Exception):
    """No message payload could be located in a response."""


def _decode_message(message: Any, logger: logging.Logger) -> dict:
    """Decode a message given as an object, a JSON string or a list of messages."""
    if isinstance(message, str):
        try:
            message = json.loads(message)
        except json.JSONDecodeError as err:
            raise MalformedResponse(f"Message string is not valid JSON: {err}") from err
        logger.debug("Parsed message from string")

    if isinstance(message, list):
        if not message:
            raise MalformedResponse("Message list is empty")
        logger.debug(f"Message is a list with {len(message)} items")
        for candidate in message:
            if isinstance(candidate, dict) and candidate.get("results"):
                message = candidate
                break
        else:
            logger.info("No message with results found, using first message")
            message = message[0]

    if not isinstance(message, dict):
        raise MalformedResponse(
            f"Message must be an object, got {type(message).__name__}"
        )
    return message


def unwrap_message(response: Any, logger: logging.Logger = LOGGER) -> dict:
    """Locate the message payload in an API response."""
    if not isinstance(response, dict):
        raise MalformedResponse("Invalid API response structure - not an object")

    if response.get("message") is not None:
        return _decode_message(response["message"], logger)

    # ARS envelope
    fields = response.get("fields")
    if isinstance(fields, dict):
        data = fields.get("data")
        if isinstance(data, dict) and data.get("message") is not None:
            return _decode_message(data["message"], logger)

    logger.error(
        {
            "message": "Invalid API response structure - missing message data",
            "keys": list(response.keys()),
        }
    )
    raise MalformedResponse("Invalid API response structure - missing message data")


def _as_table(elements: Any) -> dict:
    """Knowledge graph elements keyed by id, accepting the older list form."""
    if isinstance(elements, dict):
        return elements
    if isinstance(elements, list):
        return {
            element["id"]: element
            for element in elements
            if isinstance(element, dict) and "id" in element
        }
    return {}


def generate_phrase(subject_name: str, predicate: Optional[str], object_name: str) -> str:
    """Readable triple, or N/A if any part is missing."""
    if any(
        value is None or value in SENTINELS
        for value in (subject_name, predicate, object_name)
    ):
        return NOT_AVAILABLE
    cleaned = clean_predicate(predicate)
    if not cleaned:
        return NOT_AVAILABLE
    return f"{subject_name} {cleaned} {object_name}"


class KnowledgeGraph:
    """Read-only lookups over one message's node, edge and auxiliary graph tables."""

    def __init__(self, message: dict, logger: logging.Logger = LOGGER):
        kgraph = message.get("knowledge_graph") or {}
        self.logger = logger
        self.nodes = _as_table(kgraph.get("nodes"))
        self.edges = _as_table(kgraph.get("edges"))
        self.auxiliary_graphs = _as_table(
            message.get("auxiliary_graphs") or kgraph.get("auxiliary_graphs")
        )
        self._node_models = {}
        self._edge_models = {}

    def node(self, node_id: Optional[str]) -> Optional[Node]:
        if node_id is None or node_id not in self.nodes:
            return None
        if node_id not in self._node_models:
            try:
                self._node_models[node_id] = Node.model_validate(self.nodes[node_id])
            except ValidationError as err:
                self.logger.warning(f"Node {node_id} is malformed: {err}")
                self._node_models[node_id] = None
        return self._node_models[node_id]

    def node_name(self, node_id: Optional[str], default: str) -> str:
        node = self.node(node_id)
        if node is None or not node.name:
            return default
        return node.name

    def edge(self, edge_id: str) -> Optional[Edge]:
        """Get an edge, or None if it is missing or malformed."""
        if edge_id not in self.edges:
            return None
        if edge_id not in self._edge_models:
            try:
                self._edge_models[edge_id] = Edge.model_validate(self.edges[edge_id])
            except ValidationError as err:
                self.logger.warning(f"Edge {edge_id} is malformed: {err}")
                self._edge_models[edge_id] = None
        return self._edge_models[edge_id]

    def auxiliary_graph(self, graph_id: str) -> Optional[AuxiliaryGraph]:
        if graph_id not in self.auxiliary_graphs:
            return None
        try:
            return AuxiliaryGraph.model_validate(self.auxiliary_graphs[graph_id])
        except ValidationError as err:
            self.logger.warning(f"Auxiliary graph {graph_id} is malformed: {err}")
            return None


class Flattener:
    """Flatten one message.

    Unresolved references and partial bindings are accumulated on the
    instance; use a new Flattener per message.
    """

    def __init__(
        self,
        message: dict,
        pk: Optional[str] = None,
        environment: Optional[str] = None,
        logger: logging.Logger = LOGGER,
    ):
        self.pk = pk
        self.environment = environment
        self.logger = logger
        self.kgraph = KnowledgeGraph(message, logger)
        self.results = message.get("results") or []
        self.unresolved: list[UnresolvedReference] = []
        self.partial_bindings = 0

    def _unresolved(self, kind: str, reference_id: str, referenced_by: str):
        if kind in (EDGE, AUXILIARY_GRAPH):
            self.logger.warning(
                f"{kind.capitalize().replace('_', ' ')} {reference_id} referenced by "
                f"{referenced_by} not found in knowledge graph"
            )
        self.unresolved.append(
            UnresolvedReference(
                kind=kind, reference_id=reference_id, referenced_by=referenced_by
            )
        )

    def _edge(self, edge_id: str, referenced_by: str) -> Optional[Edge]:
        edge = self.kgraph.edge(edge_id)
        if edge is None:
            kind = MALFORMED_EDGE if edge_id in self.kgraph.edges else EDGE
            self._unresolved(kind, edge_id, referenced_by)
        return edge

    def _auxiliary_graph(self, graph_id: str, referenced_by: str) -> Optional[AuxiliaryGraph]:
        aux_graph = self.kgraph.auxiliary_graph(graph_id)
        if aux_graph is None:
            if graph_id in self.kgraph.auxiliary_graphs:
                kind = MALFORMED_AUXILIARY_GRAPH
            else:
                kind = AUXILIARY_GRAPH
            self._unresolved(kind, graph_id, referenced_by)
        return aux_graph

    def result_data(self, result: dict, result_counter: int) -> dict:
        """Resolve the result subject and object."""
        roles = resolve_roles(result.get("node_bindings") or {})
        if SUBJECT not in roles or OBJECT not in roles:
            self.partial_bindings += 1
            self.logger.debug(
                f"Result {result_counter} has incomplete node bindings: "
                f"{list((result.get('node_bindings') or {}).keys())}"
            )

        subject_id = roles.get(SUBJECT)
        object_id = roles.get(OBJECT)
        return {
            "pk": self.pk,
            "environment": self.environment,
            "result_counter": result_counter,
            "result_subjectNode_name": self.kgraph.node_name(subject_id, NOT_AVAILABLE),
            "result_subjectNode_id": subject_id or NOT_AVAILABLE,
            "result_objectNode_name": self.kgraph.node_name(object_id, NOT_AVAILABLE),
            "result_objectNode_id": object_id or NOT_AVAILABLE,
        }

    def edge_row(
        self,
        result_data: dict,
        edge_id: str,
        edge: Edge,
        edge_type: str = PRIMARY,
        support_graph_id: Optional[str] = None,
    ) -> FlattenedRow:
        """Combine result data with one edge."""
        subject_name = self.kgraph.node_name(edge.subject, UNKNOWN)
        object_name = self.kgraph.node_name(edge.object, UNKNOWN)

        primary_source = next(
            (
                source.resource_id
                for source in edge.sources or []
                if source.resource_role == PRIMARY_KNOWLEDGE_SOURCE
                and source.resource_id
            ),
            NOT_AVAILABLE,
        )

        attributes = AttributeIndex(edge.attributes)
        publications = attributes.publications
        clinical_trials = attributes.clinical_trials

        return FlattenedRow(
            **result_data,
            edge_id=edge_id,
            edge_subject=edge.subject,
            edge_object=edge.object,
            edge_subjectNode_name=subject_name,
            edge_objectNode_name=object_name,
            predicate=edge.predicate,
            phrase=generate_phrase(subject_name, edge.predicate, object_name),
            primary_source=primary_source,
            publications=";".join(publications) if publications else NOT_AVAILABLE,
            publications_count=len(publications),
            clinical_trials=clinical_trials,
            clinical_trials_count=len(clinical_trials),
            edge_type=edge_type,
            support_graph_id=support_graph_id,
        )

    def support_rows(self, result_data: dict, edge_id: str, edge: Edge) -> list[FlattenedRow]:
        """Rows for the edges of every auxiliary graph supporting an edge."""
        rows = []
        for graph_id in AttributeIndex(edge.attributes).support_graphs:
            aux_graph = self._auxiliary_graph(graph_id, edge_id)
            if aux_graph is None:
                continue
            for support_edge_id in aux_graph.edges or []:
                support_edge = self._edge(support_edge_id, graph_id)
                if support_edge is None:
                    continue
                rows.append(
                    self.edge_row(
                        result_data,
                        support_edge_id,
                        support_edge,
                        edge_type=SUPPORT,
                        support_graph_id=graph_id,
                    )
                )
        return rows

    def result_rows(self, result: dict, result_counter: int) -> list[FlattenedRow]:
        """All rows for one result."""
        result_data = self.result_data(result, result_counter)
        rows = []
        for analysis in result.get("analyses") or []:
            if not isinstance(analysis, dict):
                continue
            for edge_bindings in (analysis.get("edge_bindings") or {}).values():
                for edge_id in bound_ids(edge_bindings):
                    edge = self._edge(edge_id, f"result {result_counter}")
                    if edge is None:
                        continue
                    rows.append(self.edge_row(result_data, edge_id, edge))
                    rows.extend(self.support_rows(result_data, edge_id, edge))
        return rows

    def run(self) -> FlattenResult:
        self.logger.info(
            f"Processing {len(self.results)} results, "
            f"{len(self.kgraph.nodes)} nodes, {len(self.kgraph.edges)} edges"
        )
        rows = []
        for result_counter, result in enumerate(self.results, start=1):
            if not isinstance(result, dict):
                self.logger.warning(f"Skipping result {result_counter}: not an object")
                continue
            rows.extend(self.result_rows(result, result_counter))

        support_rows = sum(1 for row in rows if row.edge_type == SUPPORT)
        metadata = FlattenMetadata(
            pk=self.pk,
            environment=self.environment,
            timestamp=datetime.datetime.now(datetime.timezone.utc).isoformat(),
            results_count=len(self.results),
            nodes_count=len(self.kgraph.nodes),
            edges_count=len(self.kgraph.edges),
            support_graphs_count=len(self.kgraph.auxiliary_graphs),
            primary_rows=len(rows) - support_rows,
            support_rows=support_rows,
            total_rows=len(rows),
            partial_bindings=self.partial_bindings,
            unresolved_references=self.unresolved,
        )
        self.logger.info(
            f"Processing complete. Generated {len(rows)} flattened rows "
            f"({support_rows} from support graphs, "
            f"{len(self.unresolved)} unresolved references skipped)"
        )
        return FlattenResult(rows=rows, metadata=metadata)


def flatten(
    response: Any,
    pk: Optional[str] = None,
    environment: Optional[str] = None,
    logger: Optional[logging.Logger] = None,
) -> FlattenResult:
    """Flatten an API response into rows.

    Raises MalformedResponse if no message payload can be found.
    """
    if logger is None:
        logger = LOGGER
    message = unwrap_message(response, logger)
    return Flattener(message, pk, environment, logger).run()
