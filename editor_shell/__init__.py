"""
Editor-side glue for the scribble board: change filtering, debounced saving and generate-and-replace.
"""

from .changes import EPHEMERAL_TYPES, classify_record, has_persistent_change, record_type
from .debounce import Debouncer
from .models import Bounds, Notice, RecordScope, StoreChange
from .placement import FALLBACK_IMAGE_SIZE, image_shape_for
from .rpc_client import RpcClient, RpcClientError
from .session import CanvasBackend, DocumentRpc, EditorSession

__all__ = [
    "Bounds",
    "CanvasBackend",
    "Debouncer",
    "DocumentRpc",
    "EPHEMERAL_TYPES",
    "EditorSession",
    "FALLBACK_IMAGE_SIZE",
    "Notice",
    "RecordScope",
    "RpcClient",
    "RpcClientError",
    "StoreChange",
    "classify_record",
    "has_persistent_change",
    "image_shape_for",
    "record_type",
]
