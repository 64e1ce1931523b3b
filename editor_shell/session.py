from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from .changes import has_persistent_change
from .debounce import Debouncer
from .models import Bounds, Notice, Record, StoreChange
from .placement import image_shape_for
from .rpc_client import RpcClientError

log = logging.getLogger(__name__)

SAVE_QUIET_PERIOD = 1.0
_LOG_LEVELS = {"info": logging.INFO, "warning": logging.WARNING, "error": logging.ERROR}


@runtime_checkable
class CanvasBackend(Protocol):
    """The slice of the drawing library the shell drives."""

    def get_snapshot(self) -> Dict[str, Any]:
        ...

    def load_snapshot(self, snapshot: Dict[str, Any]) -> None:
        ...

    def get_selected_shapes(self) -> List[Record]:
        ...

    def get_page_shapes(self) -> List[Record]:
        ...

    def export_svg(self, shape_ids: Sequence[str]) -> Optional[str]:
        ...

    def delete_shapes(self, shape_ids: Sequence[str]) -> None:
        ...

    def create_shapes(self, shapes: Sequence[Record]) -> None:
        ...

    def get_bounds(self, shape_ids: Sequence[str]) -> Optional[Bounds]:
        ...

    def viewport_center(self) -> Tuple[float, float]:
        ...

    def clear(self) -> None:
        ...


@runtime_checkable
class DocumentRpc(Protocol):
    def get_document(self) -> Optional[Dict[str, Any]]:
        ...

    def save_document(self, snapshot: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def generate_image_from_scribble(self, svg_string: str, prompt: str, scale: Optional[float] = None) -> str:
        ...


class EditorSession:
    """
    Glue between the canvas and the gateway:
      - mount(): hydrate once from document.getDocument (failures -> empty canvas + warning)
      - on_store_change()/flush(): debounced saves of user-made document changes
      - generate(): scribble -> image, replacing the shapes it was made from
    """

    def __init__(
        self,
        canvas: CanvasBackend,
        rpc: DocumentRpc,
        *,
        debouncer: Optional[Debouncer] = None,
        notify: Optional[Callable[[Notice], None]] = None,
    ) -> None:
        self.canvas = canvas
        self.rpc = rpc
        self.debouncer = debouncer or Debouncer(SAVE_QUIET_PERIOD)
        self._notify = notify
        self.generating = False

    def notify(self, level: str, message: str) -> None:
        log.log(_LOG_LEVELS.get(level, logging.INFO), message)
        if self._notify is not None:
            self._notify(Notice(level, message))  # type: ignore[arg-type]

    # ---- persistence ----
    def mount(self) -> bool:
        """Load the stored document into the canvas. Returns True when something was loaded."""
        try:
            doc = self.rpc.get_document()
            if not doc:
                return False
            self.canvas.load_snapshot(doc)
            return True
        except Exception as exc:
            # The editor stays usable with an empty canvas; drop anything half-loaded.
            self.canvas.clear()
            self.notify("warning", f"Could not load the saved document, starting empty: {exc}")
            return False

    def on_store_change(self, change: StoreChange, now: Optional[float] = None) -> bool:
        if not has_persistent_change(change):
            return False
        self.debouncer.touch(now)
        return True

    def flush(self, now: Optional[float] = None) -> bool:
        """Save when the quiet period has elapsed. Returns True on a successful save."""
        if not self.debouncer.due(now):
            return False
        self.debouncer.reset()
        snapshot = self.canvas.get_snapshot()
        try:
            result = self.rpc.save_document(snapshot)
        except RpcClientError as exc:
            self.notify("error", f"Save failed: {exc.message}")
            return False
        if not result.get("success"):
            self.notify("error", f"Save failed: {result.get('error') or 'unknown error'}")
            return False
        log.info("Document saved (%d records)", len(snapshot.get("store") or {}))
        return True

    # ---- generation ----
    def _source_shapes(self) -> List[Record]:
        return self.canvas.get_selected_shapes() or self.canvas.get_page_shapes()

    def generate(self, prompt: str, scale: Optional[float] = None) -> Optional[str]:
        """Returns the image URL, or None when nothing was generated (a notice says why)."""
        if not prompt or not prompt.strip():
            self.notify("warning", "Enter a prompt first.")
            return None
        shapes = self._source_shapes()
        if not shapes:
            self.notify("warning", "Canvas is empty. Please draw something first.")
            return None
        shape_ids = [str(s["id"]) for s in shapes]

        self.generating = True
        try:
            try:
                svg = self.canvas.export_svg(shape_ids)
            except Exception as exc:
                log.exception("SVG export failed")
                self.notify("error", f"Error: {exc}")
                return None
            if not svg:
                self.notify("error", "Failed to generate SVG string from canvas content.")
                return None
            log.info("Generating from %d shapes (svg length=%d)", len(shape_ids), len(svg))
            try:
                url = self.rpc.generate_image_from_scribble(svg, prompt, scale)
            except RpcClientError as exc:
                self.notify("error", f"Image generation failed: {exc.message}")
                return None

            bounds = self.canvas.get_bounds(shape_ids)
            if bounds is None:
                log.warning("No bounds for the source shapes, placing the image at viewport center")
            self.canvas.delete_shapes(shape_ids)
            self.canvas.create_shapes([image_shape_for(url, bounds, self.canvas.viewport_center())])
            self.notify("info", f"Image generated: {url}")
            return url
        finally:
            self.generating = False
