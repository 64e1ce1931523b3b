from __future__ import annotations

import os
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest

# Settings are read once at import time; keep test runs hermetic.
os.environ["LOG_IO"] = "false"
os.environ["REPLICATE_API_TOKEN"] = "test-token"
os.environ.pop("MAX_CONCURRENT_GENERATIONS", None)

from fastapi.testclient import TestClient  # noqa: E402

from app import rasterize  # noqa: E402
from app.document_store import InMemoryDocumentStore, get_document_store  # noqa: E402
from app.main import app, get_image_generator  # noqa: E402
from editor_shell.models import Bounds  # noqa: E402

FAKE_PNG = b"\x89PNG\r\n\x1a\nfake-png-bytes"


def make_snapshot(shape_count: int = 1, schema_version: Any = 2) -> Dict[str, Any]:
    store: Dict[str, Any] = {
        "document:document": {"gridSize": 10, "name": "", "meta": {}, "id": "document:document", "typeName": "document"},
        "page:page": {"meta": {}, "id": "page:page", "name": "Page 1", "index": "a1", "typeName": "page"},
    }
    for i in range(shape_count):
        sid = f"shape:s{i}"
        store[sid] = {
            "x": 10.0 * i, "y": 20.0, "rotation": 0, "isLocked": False, "opacity": 1,
            "meta": {}, "id": sid, "type": "draw", "parentId": "page:page", "index": f"a{i + 1}",
            "props": {"segments": [{"type": "free", "points": [{"x": 0, "y": 0, "z": 0.5}]}], "color": "black"},
            "typeName": "shape",
        }
    return {
        "store": store,
        "schema": {"schemaVersion": schema_version, "sequences": {"com.tldraw.store": 4, "com.tldraw.shape.draw": 2}},
    }


class FakeGenerator:
    """Stands in for the prediction client at the RPC boundary."""

    def __init__(self, url: str = "https://replicate.delivery/out-1.png", error: Optional[Exception] = None) -> None:
        self.url = url
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def submit(self, image: str, prompt: str, scale: float = 9, num_samples: str = "1") -> str:
        self.calls.append({"image": image, "prompt": prompt, "scale": scale, "num_samples": num_samples})
        if self.error is not None:
            raise self.error
        return self.url


class FakeCanvas:
    """In-memory stand-in for the drawing library."""

    def __init__(self, shapes: Optional[List[Dict[str, Any]]] = None, *, svg: Optional[str] = "<svg width='10' height='10'/>") -> None:
        self.shapes: Dict[str, Dict[str, Any]] = {s["id"]: s for s in (shapes or [])}
        self.selected: List[str] = []
        self.svg = svg
        self.loaded: List[Dict[str, Any]] = []
        self.exported: List[List[str]] = []
        self.center: Tuple[float, float] = (500.0, 400.0)
        self.bounds_available = True

    def get_snapshot(self) -> Dict[str, Any]:
        return {"store": dict(self.shapes), "schema": {"schemaVersion": 2}}

    def load_snapshot(self, snapshot: Dict[str, Any]) -> None:
        self.loaded.append(snapshot)
        self.shapes = {k: v for k, v in snapshot["store"].items() if k.startswith("shape:")}

    def get_selected_shapes(self) -> List[Dict[str, Any]]:
        return [self.shapes[i] for i in self.selected if i in self.shapes]

    def get_page_shapes(self) -> List[Dict[str, Any]]:
        return list(self.shapes.values())

    def export_svg(self, shape_ids: Sequence[str]) -> Optional[str]:
        self.exported.append(list(shape_ids))
        return self.svg

    def delete_shapes(self, shape_ids: Sequence[str]) -> None:
        for sid in shape_ids:
            self.shapes.pop(sid, None)

    def create_shapes(self, shapes: Sequence[Dict[str, Any]]) -> None:
        for n, shape in enumerate(shapes):
            sid = shape.get("id") or f"shape:new{len(self.shapes)}_{n}"
            self.shapes[sid] = dict(shape, id=sid)

    def get_bounds(self, shape_ids: Sequence[str]) -> Optional[Bounds]:
        if not self.bounds_available:
            return None
        boxes = [Bounds(s["x"], s["y"], s.get("w", 50.0), s.get("h", 50.0)) for i, s in self.shapes.items() if i in shape_ids]
        return Bounds.union(boxes)

    def viewport_center(self) -> Tuple[float, float]:
        return self.center

    def clear(self) -> None:
        self.shapes = {}
        self.selected = []


@pytest.fixture
def fake_png(monkeypatch: pytest.MonkeyPatch) -> List[Tuple[str, int, int]]:
    calls: List[Tuple[str, int, int]] = []

    def _render(svg_string: str, width: int, height: int) -> bytes:
        calls.append((svg_string, width, height))
        return FAKE_PNG

    monkeypatch.setattr(rasterize, "_render_png", _render)
    return calls


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def client(store: InMemoryDocumentStore, generator: FakeGenerator):
    app.dependency_overrides[get_document_store] = lambda: store
    app.dependency_overrides[get_image_generator] = lambda: generator
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
