"""Pydantic response models for the REST API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from cluster_reflector.models.cluster import Snapshot


class NodeSchema(BaseModel):
    name: str
    ip: str
    role: str
    version: str


class AppSchema(BaseModel):
    name: str
    version: str
    variants: list[str]


class ClusterInfoResponse(BaseModel):
    """Body of ``GET /cluster-info``."""

    model_config = ConfigDict(populate_by_name=True)

    api_version: str = Field(alias="apiVersion")
    timestamp: str
    nodes: list[NodeSchema]
    apps: list[AppSchema]

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> ClusterInfoResponse:
        return cls.model_validate(snapshot.to_dict())


class HealthResponse(BaseModel):
    """Body of ``GET /healthz``; ``reason`` and ``error`` only when unhealthy."""

    status: str
    reason: str | None = None
    error: str | None = None


class ErrorResponse(BaseModel):
    error: str
    detail: str
