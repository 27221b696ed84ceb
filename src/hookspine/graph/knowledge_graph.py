"""
Knowledge graph facade over an rdflib triple store.

The knowledge graph holds repository facts and hook definitions loaded from
Turtle files. Predicates and ``sparql`` steps query it; the workflow parser
walks it to build Hooks, Pipelines and Steps.

Manifesto:
    The triple store and SPARQL engine are consumed, not reimplemented.
    This module only adds what the engine needs on top of rdflib:

    - **Deterministic loading:** files are parsed in sorted order
    - **Normalised results:** ASK/SELECT/CONSTRUCT become one QueryResult shape
    - **Typed failures:** load and query errors become GraphLoadError/QueryError
    - **Read-sharing:** queries are serialised behind a per-graph lock so that
      concurrent evaluation passes can share one instance

Architecture:
    ::

        *.ttl files ──► KnowledgeGraph.from_directory()
                              │
                              ├──► query(text, bindings) ──► QueryResult
                              │
                              └──► hooks() / value() / ordered_objects()
                                         (used by WorkflowParser)

Examples:
    >>> kg = KnowledgeGraph()
    >>> kg.load_turtle('@prefix ex: <http://example.org/> . ex:a a ex:TestData .')
    >>> kg.query("ASK WHERE { ?x a <http://example.org/TestData> }").boolean
    True

Tags:
    rdf, sparql, knowledge-graph, rdflib, hookspine
"""

from __future__ import annotations

import datetime
import threading
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, Mapping

from rdflib import BNode, Graph, Literal, URIRef, Variable
from rdflib.collection import Collection
from rdflib.namespace import RDF
from rdflib.term import Identifier, Node

from hookspine.core.errors import GraphLoadError, QueryError
from hookspine.core.logging import get_logger
from hookspine.graph import vocabulary as V

logger = get_logger(__name__)

_IRI_SCHEMES = ("http://", "https://", "urn:", "file://")


def to_python(term: Node | None) -> Any:
    """Convert an rdflib term to a JSON-friendly Python value."""
    if term is None:
        return None
    if isinstance(term, Literal):
        value = term.toPython()
        if isinstance(value, Literal):
            return str(value)
        if isinstance(value, Decimal):
            return float(value)
        if isinstance(value, (datetime.date, datetime.datetime, datetime.time)):
            return value.isoformat()
        return value
    return str(term)


def to_term(value: Any) -> Identifier:
    """Convert a context value to an rdflib term for query bindings.

    Strings that look like IRIs become ``URIRef``; everything else is a
    typed ``Literal``.
    """
    if isinstance(value, Identifier):
        return value
    if isinstance(value, str) and value.startswith(_IRI_SCHEMES):
        return URIRef(value)
    return Literal(value)


@dataclass
class QueryResult:
    """Normalised outcome of a SPARQL query."""

    kind: str  # "ask" | "select" | "construct"
    boolean: bool | None = None
    variables: list[str] = field(default_factory=list)
    rows: list[dict[str, Any]] = field(default_factory=list)
    triple_count: int = 0

    @property
    def count(self) -> int:
        return self.triple_count if self.kind == "construct" else len(self.rows)

    def first_value(self) -> Any:
        """First bound value of the first row (SELECT only)."""
        if not self.rows:
            return None
        row = self.rows[0]
        for var in self.variables:
            if row.get(var) is not None:
                return row[var]
        return None

    def to_dict(self) -> dict[str, Any]:
        if self.kind == "ask":
            return {"type": "ask", "boolean": self.boolean}
        if self.kind == "construct":
            return {"type": "construct", "count": self.triple_count}
        return {
            "type": "select",
            "variables": list(self.variables),
            "results": [dict(row) for row in self.rows],
            "count": len(self.rows),
        }


class KnowledgeGraph:
    """Thread-safe (for reads) wrapper around an ``rdflib.Graph``.

    Mutating methods (``load_*``) must only be called outside an evaluation
    pass. ``query`` and the traversal helpers never mutate the graph.
    """

    def __init__(self, graph: Graph | None = None):
        self._graph = graph if graph is not None else Graph()
        self._lock = threading.RLock()
        self.sources: list[str] = []

    # =========================================================================
    # Loading
    # =========================================================================

    @classmethod
    def from_directory(cls, *directories: Path | str) -> KnowledgeGraph:
        """Load every ``*.ttl`` file of the given directories (sorted by name).

        Missing directories are skipped; an unparsable file raises
        GraphLoadError.
        """
        kg = cls()
        for directory in directories:
            kg.load_directory(directory)
        return kg

    def load_directory(self, directory: Path | str) -> int:
        path = Path(directory)
        if not path.is_dir():
            logger.debug("graph.directory_missing", path=str(path))
            return 0
        files = sorted(path.glob("*.ttl"))
        for file in files:
            self.load_file(file)
        logger.debug("graph.directory_loaded", path=str(path), files=len(files))
        return len(files)

    def load_file(self, path: Path | str) -> None:
        path = Path(path)
        with self._lock:
            try:
                self._graph.parse(str(path), format="turtle")
            except Exception as e:
                raise GraphLoadError(str(path), cause=e) from e
            self.sources.append(str(path))

    def load_turtle(self, text: str, source: str = "<string>") -> None:
        with self._lock:
            try:
                self._graph.parse(data=text, format="turtle")
            except Exception as e:
                raise GraphLoadError(source, cause=e) from e
            self.sources.append(source)

    # =========================================================================
    # Query
    # =========================================================================

    def query(self, text: str, bindings: Mapping[str, Any] | None = None) -> QueryResult:
        """Run a SPARQL ASK/SELECT/CONSTRUCT query.

        Args:
            text: Query text; ``gh:``/``gv:``/``op:``/``dct:`` prefixes are
                predeclared.
            bindings: Variable name -> value, bound via ``initBindings``.

        Raises:
            QueryError: The query is malformed or cannot be evaluated.
        """
        init_bindings = {Variable(name): to_term(value) for name, value in (bindings or {}).items()}
        with self._lock:
            try:
                result = self._graph.query(
                    text, initNs=V.DEFAULT_PREFIXES, initBindings=init_bindings
                )
                return self._normalise(result)
            except Exception as e:
                raise QueryError(f"SPARQL query failed: {e}", cause=e) from e

    @staticmethod
    def _normalise(result: Any) -> QueryResult:
        if result.type == "ASK":
            return QueryResult(kind="ask", boolean=bool(result.askAnswer))
        if result.type == "SELECT":
            variables = [str(v) for v in result.vars]
            rows = []
            for row in result:
                rows.append({var: to_python(row[var]) for var in variables})
            return QueryResult(kind="select", variables=variables, rows=rows)
        return QueryResult(kind="construct", triple_count=len(result.graph))

    # =========================================================================
    # Traversal helpers
    # =========================================================================

    def is_a(self, node: Node, type_: Node) -> bool:
        return (node, RDF.type, type_) in self._graph

    def types(self, node: Node) -> list[Node]:
        return sorted(self._graph.objects(node, RDF.type), key=str)

    def value(self, node: Node, prop: Node) -> Node | None:
        """Single object of ``node prop ?o`` (lowest lexical value if several)."""
        objects = sorted(self._graph.objects(node, prop), key=str)
        return objects[0] if objects else None

    def values(self, node: Node, prop: Node) -> list[Node]:
        return sorted(self._graph.objects(node, prop), key=str)

    def literal(self, node: Node, *props: Node) -> Any:
        """Python value of the first property present on ``node``."""
        for prop in props:
            term = self.value(node, prop)
            if term is not None:
                return to_python(term)
        return None

    def ordered_objects(self, node: Node, prop: Node) -> list[Node]:
        """Objects of ``node prop``, expanding RDF collections in order.

        Plain repeated objects carry no order in RDF, so they are sorted
        lexically to keep traversal deterministic.
        """
        items: list[Node] = []
        for obj in sorted(self._graph.objects(node, prop), key=str):
            if self.is_list(obj):
                items.extend(self.read_list(obj))
            else:
                items.append(obj)
        return items

    def is_list(self, node: Node) -> bool:
        return node == RDF.nil or (node, RDF.first, None) in self._graph

    def read_list(self, head: Node) -> list[Node]:
        if head == RDF.nil:
            return []
        return list(Collection(self._graph, head))

    def subjects_of_type(self, type_: Node) -> list[Node]:
        return sorted(set(self._graph.subjects(RDF.type, type_)), key=str)

    def hooks(self) -> list[Node]:
        """All ``gh:Hook`` subjects, sorted for deterministic discovery."""
        return self.subjects_of_type(V.HOOK)

    def pipelines(self) -> list[Node]:
        found = set(self._graph.subjects(RDF.type, V.PIPELINE))
        found.update(self._graph.subjects(V.STEPS, None))
        return sorted(found, key=str)

    def has_subject(self, node: Node) -> bool:
        return (node, None, None) in self._graph

    def node(self, identifier: str) -> Node:
        """Resolve an identifier to a graph node (``_:`` prefix for blank nodes)."""
        if identifier.startswith("_:"):
            return BNode(identifier[2:])
        return URIRef(identifier)

    # =========================================================================
    # Introspection
    # =========================================================================

    @property
    def triple_count(self) -> int:
        return len(self._graph)

    def __len__(self) -> int:
        return len(self._graph)

    def __repr__(self) -> str:
        return f"KnowledgeGraph(triples={len(self)}, sources={len(self.sources)})"

