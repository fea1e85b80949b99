import os
import sys

import pytest

CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.dirname(CURRENT_DIR)
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from idl.kinds import Kind, Modifier, Special
from idl.model import Model
from idl.pipeline import run_pipeline
from registry import build_library


DOM_DOC = {
    "name": "DOM",
    "urls": ["https://dom.spec.whatwg.org/"],
    "tutorials": [{"title": "Introduction to the DOM", "url": "https://developer.mozilla.org/"}],
    "types": [
        {
            "name": "Node",
            "kind": "interface",
            "supertype": "EventTarget",
            "properties": [
                {"name": "ELEMENT_NODE", "type": "unsigned short", "const": True, "value": 1},
                {"name": "parentNode", "type": "Node?", "readonly": True},
            ],
            "operations": [
                {
                    "name": "append",
                    "type": "void",
                    "parameters": [{"name": "nodes", "type": "(Node or DOMString)", "variadic": True}],
                },
                {"name": "getRootNode", "type": "Node"},
            ],
        },
        {"name": "EventTarget", "kind": "interface"},
        {
            "name": "NodeList",
            "kind": "interface",
            "operations": [
                {
                    "name": "item",
                    "type": "Node?",
                    "special": "getter",
                    "parameters": [{"name": "index", "type": "unsigned long"}],
                },
            ],
        },
        {"name": "ShadowRootMode", "kind": "enum", "literals": ["open", "closed", "open"]},
        {"name": "DOMTimeStamp", "kind": "typedef", "supertype": "unsigned long long"},
        {
            "name": "Document",
            "kind": "interface",
            "supertype": "Node",
            "implements": ["ParentNode"],
            "constructors": [{"parameters": []}],
            "operations": [
                {"name": "getElementsByTagName", "type": "sequence<Element>",
                 "parameters": [{"name": "qualifiedName", "type": "DOMString"}]},
                {"name": "exitFullscreen", "type": "Promise<void>"},
            ],
        },
        {"name": "ParentNode", "kind": "interface"},
    ],
}


def build_dom():
    model = Model()
    library = build_library(model, DOM_DOC)
    by_name = {t.name: t for t in library.types}
    return model, library, by_name


def test_library_metadata():
    _, library, _ = build_dom()
    assert library.name == "DOM"
    assert library.urls == ["https://dom.spec.whatwg.org/"]
    assert library.tutorials == [("Introduction to the DOM", "https://developer.mozilla.org/")]


def test_forward_references_resolve_to_the_declaration():
    model, _, by_name = build_dom()
    node = by_name["Node"]
    assert model.graph.supertype(node) is by_name["EventTarget"]
    assert not by_name["EventTarget"].implicit
    assert model.graph.supertype(by_name["Document"]) is node


def test_union_parameter_expression():
    model, _, by_name = build_dom()
    append = by_name["Node"].operations["append"]
    param = append.parameters[0]
    assert param.type.kind == Kind.UNION
    assert [m.name for m in model.graph.types(param.type)] == ["Node", "DOMString"]
    assert param.variadic
    assert append.signature() == "append((Node or DOMString))"


def test_nullable_sequence_and_promise_expressions():
    model, _, by_name = build_dom()
    g = model.graph

    item = by_name["NodeList"].operations["item"]
    assert item.special == Special.GETTER
    assert item.type.name == "Node?"
    assert g.supertype(item.type) is by_name["Node"]

    doc = by_name["Document"]
    seq = doc.operations["getElementsByTagName"].type
    assert seq.kind == Kind.SEQUENCE
    element = g.types(seq)[0]
    assert element.name == "Element"
    assert element.implicit

    promise = doc.operations["exitFullscreen"].type
    assert promise.kind == Kind.PROMISE
    assert g.supertype(promise).name == "void"


def test_array_expression():
    model = Model()
    library = build_library(model, {
        "name": "Canvas",
        "types": [{
            "name": "CanvasRenderingContext2D",
            "operations": [{"name": "setLineDash", "parameters": [{"name": "segments", "type": "double[]"}]}],
        }],
    })
    op = library.types[0].operations["setLineDash"]
    arr = op.parameters[0].type
    assert arr.kind == Kind.ARRAY
    assert model.graph.supertype(arr).name == "double"
    assert op.type is None
    assert op.signature() == "setLineDash(double[])"


def test_properties_literals_and_constructors():
    model, _, by_name = build_dom()
    props = by_name["Node"].properties
    assert props[0].has_modifier(Modifier.CONSTANT)
    assert props[0].initial_value == "1"
    assert props[1].has_modifier(Modifier.READ_ONLY)

    assert by_name["ShadowRootMode"].kind == Kind.ENUM
    assert by_name["ShadowRootMode"].enum_literals == ["open", "closed"]

    ctor = by_name["Document"].constructors[0]
    assert ctor.name == "Document"
    assert ctor.signature() == "Document()"


def test_alias_and_implements():
    model, _, by_name = build_dom()
    g = model.graph
    alias = by_name["DOMTimeStamp"]
    assert alias.kind == Kind.ALIAS
    assert g.supertype(alias).name == "unsigned long long"

    doc = by_name["Document"]
    assert g.types(doc) == [by_name["ParentNode"]]
    assert g.implemented_by(by_name["ParentNode"]) == [doc]


def test_reference_into_earlier_library_reuses_its_declaration():
    model, _, by_name = build_dom()
    html = build_library(model, {
        "name": "HTML",
        "types": [{"name": "HTMLElement", "supertype": "Node"}],
    })
    assert model.graph.supertype(html.types[0]) is by_name["Node"]


def test_unknown_kind_is_rejected():
    with pytest.raises(ValueError):
        build_library(Model(), {"name": "X", "types": [{"name": "T", "kind": "struct"}]})


def test_library_without_name_is_rejected():
    with pytest.raises(ValueError):
        build_library(Model(), {"types": []})


def test_unknown_source_format_is_rejected():
    with pytest.raises(ValueError):
        build_library(Model(), DOM_DOC, source_format="webidl")


def test_nullable_union_declared_later_in_document():
    model = Model()
    build_library(model, {
        "name": "DOM",
        "types": [
            {"name": "Node", "operations": [{
                "name": "append",
                "parameters": [{"name": "node", "type": "NodeOrString?"}],
            }]},
            {"name": "Element"},
            {"name": "NodeOrString", "kind": "union", "members": ["Element", "DOMString"]},
        ],
    })

    report = run_pipeline(model)

    node = model.canonical("Node")
    assert [v.signature() for v in node.operations["append"].variants()] == [
        "append(Element)",
        "append(DOMString)",
    ]
    assert report.warnings == []


@pytest.mark.parametrize("type_doc", [
    {"name": "Node", "operations": ["append"]},
    {"name": "Node", "operations": [{"name": "append", "parameters": ["node"]}]},
    {"name": "Node", "properties": [42]},
    {"name": "Node", "constructors": [None]},
    {"name": "Node", "operations": {"name": "append"}},
    {"name": "Node", "implements": "ParentNode"},
    {"name": "Node", "properties": [{"name": "id", "modifiers": "readonly"}]},
])
def test_malformed_entries_are_rejected(type_doc):
    with pytest.raises(ValueError):
        build_library(Model(), {"name": "DOM", "types": [type_doc]})


def test_malformed_tutorial_is_rejected():
    with pytest.raises(ValueError):
        build_library(Model(), {"name": "DOM", "tutorials": ["https://developer.mozilla.org/"]})
