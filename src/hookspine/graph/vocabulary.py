"""RDF vocabulary for hook, pipeline and step definitions."""

from __future__ import annotations

from rdflib import Namespace
from rdflib.namespace import DCTERMS, RDF

GH = Namespace("https://gitvan.dev/graph-hook#")
GV = Namespace("https://gitvan.dev/ontology#")
OP = Namespace("https://gitvan.dev/op#")
DCT = DCTERMS

# Prefixes usable in every predicate and step query without a PREFIX declaration.
DEFAULT_PREFIXES = {
    "gh": GH,
    "gv": GV,
    "op": OP,
    "dct": DCT,
    "rdf": RDF,
}

# ── Hooks ────────────────────────────────────────────────────
HOOK = GH.Hook
HAS_PREDICATE = GH.hasPredicate
ORDERED_PIPELINES = GH.orderedPipelines
ON_EVENT = GH.onEvent

# ── Predicates ───────────────────────────────────────────────
ASK_PREDICATE = GH.ASKPredicate
SELECT_THRESHOLD = GH.SELECTThreshold
RESULT_DELTA = GH.ResultDelta
QUERY_TEXT = GH.queryText
THRESHOLD = GH.threshold
OPERATOR = GH.operator

# ── Pipelines ────────────────────────────────────────────────
PIPELINE = OP.Pipeline
STEPS = OP.steps

# ── Steps ────────────────────────────────────────────────────
STEP_CLASS_SUFFIX = "Step"
DEPENDS_ON = GV.dependsOn
OUTPUT_MAPPING = GV.outputMapping
INPUT_MAPPING = GV.inputMapping
TITLE_PROPERTIES = (DCT.title, GV.title)

# Literal step properties and the config key each one populates. Aliases
# map onto the same key; the first one present wins.
STEP_PROPERTIES = (
    (GV.text, "text"),
    (GV.path, "path"),
    (GV.query, "query"),
    (GV.bindings, "bindings"),
    (GV.template, "template"),
    (GV.filePath, "filePath"),
    (GV.sourcePath, "sourcePath"),
    (GV.operation, "operation"),
    (GV.content, "content"),
    (GV.url, "url"),
    (GV.httpUrl, "url"),
    (GV.method, "method"),
    (GV.httpMethod, "method"),
    (GV.headers, "headers"),
    (GV.body, "body"),
    (GV.tolerateStatus, "tolerateStatus"),
    (GV.command, "command"),
    (GV.workingDir, "workingDir"),
    (GV.timeout, "timeout"),
)


def step_kind(type_iri) -> str | None:
    """Map a step class such as ``gv:SparqlStep`` to its kind name (``sparql``)."""
    iri = str(type_iri)
    if not iri.startswith(str(GV)) or not iri.endswith(STEP_CLASS_SUFFIX):
        return None
    local = iri[len(str(GV)):-len(STEP_CLASS_SUFFIX)]
    return local.lower() or None


def local_name(iri) -> str:
    """Last path or fragment segment of an IRI (``http://x/steps/render`` -> ``render``)."""
    text = str(iri).rstrip("/")
    for sep in ("#", "/", ":"):
        if sep in text:
            text = text.rsplit(sep, 1)[1]
    return text
