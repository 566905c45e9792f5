"""Decoding of ``/api/ds/query`` responses.

The gateway answers in one of two shapes and does not say which one it used:

* ``frames[0].data`` is a JSON string: base64 around a zstd-compressed Arrow
  IPC file (Grafana's binary data frame encoding).
* ``frames[0].data`` is a JSON object ``{"values": [[...], ...]}``: a
  column-major matrix whose column names live in ``frames[0].schema``.

``probe_payload`` tells them apart by trying the string reading first and the
object reading second.
"""
from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import httpx
import pyarrow as pa
import pyarrow.ipc
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from dsquery.common.errors import FrameDecodeError, GatewayStatusError, UnknownFrameFormatError
from dsquery.common.logger import get_logger

from .envelope import REF_ID
from .frames import ColumnData, RowRecord, arrow_table_to_columns, materialize_rows, matrix_to_columns

logger = get_logger(__name__)

COMPRESSION_CODEC = "zstd"


class GatewayFrame(BaseModel):
    schema_: Any = Field(default=None, alias="schema")
    data: Any = None

    model_config = ConfigDict(extra="ignore")


class GatewayResult(BaseModel):
    frames: List[GatewayFrame] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    @field_validator("frames", mode="before")
    @classmethod
    def _null_frames(cls, value: Any) -> Any:
        return [] if value is None else value


class GatewayResponse(BaseModel):
    results: Dict[str, GatewayResult] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")

    @field_validator("results", mode="before")
    @classmethod
    def _null_results(cls, value: Any) -> Any:
        return {} if value is None else value

    def frames_for(self, ref_id: str = REF_ID) -> List[GatewayFrame]:
        result = self.results.get(ref_id)
        return result.frames if result else []


@dataclass(frozen=True)
class ArrowPayload:
    encoded: str


class MatrixPayload(BaseModel):
    values: List[List[Any]] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    @field_validator("values", mode="before")
    @classmethod
    def _null_values(cls, value: Any) -> Any:
        return [] if value is None else value


FramePayload = Union[ArrowPayload, MatrixPayload]


def probe_payload(data: Any) -> FramePayload:
    """Classifies a frame's ``data`` value.

    Raises:
        UnknownFrameFormatError: ``data`` is neither a string nor a values object.
    """
    if isinstance(data, str):
        return ArrowPayload(encoded=data)
    try:
        return MatrixPayload.model_validate(data)
    except ValidationError as exc:
        raise UnknownFrameFormatError(
            f"unknown data format: expected base64 string or values object, got {type(data).__name__}"
        ) from exc


def decompress_frame(compressed: bytes) -> bytes:
    stream = pa.CompressedInputStream(pa.BufferReader(compressed), COMPRESSION_CODEC)
    return stream.read()


def decode_arrow_payload(payload: ArrowPayload) -> ColumnData:
    """base64 -> zstd -> Arrow IPC file -> first frame's columns."""
    try:
        compressed = base64.b64decode(payload.encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise FrameDecodeError(f"base64 decode frame: {exc}") from exc

    try:
        raw = decompress_frame(compressed)
    except (pa.ArrowException, OSError, ValueError) as exc:
        raise FrameDecodeError(f"zstd decompress: {exc}") from exc

    if not raw:
        return ColumnData()

    try:
        table = pa.ipc.open_file(pa.py_buffer(raw)).read_all()
    except (pa.ArrowException, OSError, ValueError) as exc:
        raise FrameDecodeError(f"unmarshal arrow frame: {exc}") from exc

    logger.debug(f"Decoded arrow frame: {table.num_columns} fields, {table.num_rows} rows")
    return arrow_table_to_columns(table)


def parse_gateway_response(response: httpx.Response) -> GatewayResponse:
    """Checks the status and parses the outer JSON envelope.

    Raises:
        GatewayStatusError: The gateway answered with anything but 200.
        FrameDecodeError: The body is not a valid response envelope.
    """
    if response.status_code != httpx.codes.OK:
        raise GatewayStatusError(response.status_code, response.text)

    try:
        body = response.json()
    except ValueError as exc:
        raise FrameDecodeError(f"decode response JSON: {exc}") from exc

    try:
        return GatewayResponse.model_validate(body)
    except ValidationError as exc:
        raise FrameDecodeError(f"decode response JSON: {exc}") from exc


def decode_columns(response: httpx.Response, ref_id: str = REF_ID) -> ColumnData:
    """Decodes the first frame of ``ref_id`` into column data."""
    frames = parse_gateway_response(response).frames_for(ref_id)
    if not frames:
        logger.debug(f"No frames returned for refId {ref_id}")
        return ColumnData()

    frame = frames[0]
    payload = probe_payload(frame.data)
    if isinstance(payload, ArrowPayload):
        return decode_arrow_payload(payload)
    return matrix_to_columns(payload.values, frame.schema_)


def decode_rows(response: httpx.Response, ref_id: Optional[str] = None) -> List[RowRecord]:
    return materialize_rows(decode_columns(response, ref_id or REF_ID))
