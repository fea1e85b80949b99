import os
import sys

from fastapi.testclient import TestClient  # type: ignore

CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.dirname(CURRENT_DIR)
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from main import app

client = TestClient(app)


def window_doc(library, *operations):
    return {
        "name": library,
        "types": [
            {"name": "Element", "kind": "interface"},
            {"name": "Window", "kind": "interface", "operations": list(operations)},
        ],
    }


def find_node(model, name):
    for node in model["nodes"]:
        if node["attrs"]["name"] == name:
            return node
    return None


def test_merge_endpoint_returns_union_free_model():
    body = {
        "libraries": [
            window_doc("HTML", {
                "name": "open",
                "parameters": [{"name": "url", "type": "DOMString"}],
            }),
            window_doc("CSSOM", {
                "name": "open",
                "parameters": [
                    {"name": "url", "type": "DOMString"},
                    {"name": "target", "type": "DOMString"},
                ],
            }, {
                "name": "focus",
                "parameters": [{"name": "el", "type": "(Element or DOMString)"}],
            }),
        ]
    }

    res = client.post("/merge", json=body)
    assert res.status_code == 200
    data = res.json()

    assert data["folded_declarations"] == 2
    assert data["split_variants"] == 1

    window = find_node(data["model"], "Window")
    assert window is not None
    sigs = [op["signature"] for op in window["attrs"]["operations"]]
    assert sigs == [
        "open(DOMString)",
        "open(DOMString,DOMString)",
        "focus(Element)",
        "focus(DOMString)",
    ]
    assert [lib["name"] for lib in data["model"]["libraries"]] == ["HTML", "CSSOM"]


def test_malformed_library_is_bad_request():
    res = client.post("/merge", json={"libraries": [{"types": []}]})
    assert res.status_code == 400


def test_unknown_source_format_is_bad_request():
    res = client.post("/merge", json={"libraries": [window_doc("HTML")], "source_format": "webidl"})
    assert res.status_code == 400


def test_alias_cycle_is_unprocessable():
    body = {
        "libraries": [{
            "name": "Broken",
            "types": [
                {"name": "A", "kind": "typedef", "supertype": "B"},
                {"name": "B", "kind": "typedef", "supertype": "A"},
            ],
        }]
    }
    res = client.post("/merge", json=body)
    assert res.status_code == 422


def test_strict_unions_flag_is_honoured():
    body = {
        "strict_unions": True,
        "libraries": [{
            "name": "Strict",
            "types": [
                {"name": "A"},
                {"name": "B"},
                {"name": "T", "operations": [{
                    "name": "f",
                    "parameters": [
                        {"name": "x", "type": "(A or B)"},
                        {"name": "y", "type": "(A or B)"},
                    ],
                }]},
            ],
        }],
    }
    res = client.post("/merge", json=body)
    assert res.status_code == 422

    body["strict_unions"] = False
    res = client.post("/merge", json=body)
    assert res.status_code == 200
    assert [w["kind"] for w in res.json()["warnings"]] == ["ambiguous_union"]


def test_non_object_operation_entry_is_bad_request():
    body = {"libraries": [{"name": "DOM", "types": [{"name": "Node", "operations": ["append"]}]}]}
    res = client.post("/merge", json=body)
    assert res.status_code == 400
    assert "operations" in res.json()["detail"]


def test_nullable_named_union_is_decomposed_over_http():
    body = {
        "libraries": [{
            "name": "DOM",
            "types": [
                {"name": "Node", "operations": [{
                    "name": "append",
                    "parameters": [{"name": "node", "type": "NodeOrString?"}],
                }]},
                {"name": "Element"},
                {"name": "NodeOrString", "kind": "union", "members": ["Element", "DOMString"]},
            ],
        }]
    }
    res = client.post("/merge", json=body)
    assert res.status_code == 200
    node = find_node(res.json()["model"], "Node")
    assert sorted(op["signature"] for op in node["attrs"]["operations"]) == [
        "append(DOMString)",
        "append(Element)",
    ]
