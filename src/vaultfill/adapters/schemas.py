"""
Kubernetes resource schemas used to validate resolved documents.

Only the fields vaultfill cares about are modelled. Secret and ConfigMap
reject unknown top-level fields; everything else keeps unknown fields.
"""

from __future__ import annotations

import base64
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictBytes, StrictStr, field_serializer, model_validator


def _encode_bytes_map(values: dict[str, bytes] | None) -> dict[str, str] | None:
    if values is None:
        return None
    return {key: base64.b64encode(raw).decode("ascii") for key, raw in values.items()}


class ObjectMeta(BaseModel):
    """Standard object metadata."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: StrictStr | None = None
    generate_name: StrictStr | None = Field(default=None, alias="generateName")
    namespace: StrictStr | None = None
    labels: dict[str, StrictStr] | None = None
    annotations: dict[str, StrictStr] | None = None

    @model_validator(mode="after")
    def _require_name(self) -> ObjectMeta:
        if not self.name and not self.generate_name:
            raise ValueError("metadata.name or metadata.generateName is required")
        return self


class SecretManifest(BaseModel):
    """core/v1 Secret."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    api_version: Literal["v1"] = Field(alias="apiVersion")
    kind: Literal["Secret"]
    metadata: ObjectMeta
    immutable: StrictBool | None = None
    data: dict[str, StrictBytes] | None = None
    string_data: dict[str, StrictStr] | None = Field(default=None, alias="stringData")
    type: StrictStr | None = None

    @field_serializer("data")
    def _serialize_data(self, data: dict[str, bytes] | None) -> dict[str, str] | None:
        return _encode_bytes_map(data)


class ConfigMapManifest(BaseModel):
    """core/v1 ConfigMap."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    api_version: Literal["v1"] = Field(alias="apiVersion")
    kind: Literal["ConfigMap"]
    metadata: ObjectMeta
    immutable: StrictBool | None = None
    data: dict[str, StrictStr] | None = None
    binary_data: dict[str, StrictBytes] | None = Field(default=None, alias="binaryData")

    @field_serializer("binary_data")
    def _serialize_binary_data(self, data: dict[str, bytes] | None) -> dict[str, str] | None:
        return _encode_bytes_map(data)


class GenericManifest(BaseModel):
    """Any other kind: only the resource envelope is checked."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    api_version: StrictStr = Field(alias="apiVersion", min_length=1)
    kind: StrictStr = Field(min_length=1)
    metadata: ObjectMeta
