"""Knowledge graph access: rdflib-backed store, query results and vocabulary."""

from hookspine.graph.knowledge_graph import KnowledgeGraph, QueryResult, to_python, to_term

__all__ = [
    "KnowledgeGraph",
    "QueryResult",
    "to_python",
    "to_term",
]
