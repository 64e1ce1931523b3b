# -*- coding: utf-8 -*-
from __future__ import annotations
from typing import Any, Dict, Generic, Literal, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt

T = TypeVar("T")


# ===== Document snapshot =====
# The canvas library owns the record shapes; only the envelope is checked here.

class SnapshotSchema(BaseModel):
    model_config = ConfigDict(extra="allow", allow_inf_nan=False)

    schemaVersion: Union[StrictInt, StrictFloat]
    storeVersion: Optional[Union[StrictInt, StrictFloat]] = None


class DocumentSnapshot(BaseModel):
    """
    Strict minimal shape of a saved canvas:
      { "store": { recordId: record, ... },
        "schema": { "schemaVersion": number, "storeVersion"?: number, ... },
        ...anything else is kept verbatim }
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    store: Dict[str, Any]
    schema_: SnapshotSchema = Field(alias="schema")


class SaveDocumentResponse(BaseModel):
    success: bool
    error: Optional[str] = None


# ===== Scribble generation =====

class GenerateImageRequest(BaseModel):
    svgString: str = Field(min_length=1, description="SVG source of the scribble")
    prompt: str = Field(min_length=1)
    scale: Optional[float] = Field(default=None, ge=0.1, le=30)


class GenerateImageResponse(BaseModel):
    success: Literal[True] = True
    imageUrl: str


# ===== RPC envelopes =====

class RPCResult(BaseModel, Generic[T]):
    data: T


class RPCResponse(BaseModel, Generic[T]):
    result: RPCResult[T]


class RPCErrorData(BaseModel):
    code: str
    httpStatus: int
    path: Optional[str] = None


class RPCErrorShape(BaseModel):
    message: str
    code: str
    data: RPCErrorData


class RPCErrorResponse(BaseModel):
    error: RPCErrorShape


class Health(BaseModel):
    status: Literal["ok"] = "ok"
    model: Optional[str] = None
    base_url: Optional[str] = None
