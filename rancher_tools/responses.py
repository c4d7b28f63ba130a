"""JSON text returned to the client by the tools."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Iterable, Mapping, Optional


class Operation(str, Enum):
    """The kind of change a plan describes."""

    UPDATE = "update"


@dataclass(frozen=True)
class ResourceRef:
    """Identifies the resource a planned change applies to."""

    name: str
    kind: str
    cluster: str
    namespace: str = ""


@dataclass(frozen=True)
class PlanResource:
    """A change that would be made, shown for human validation."""

    type: Operation
    payload: Any
    resource: ResourceRef

    def to_dict(self) -> dict:
        """The plan entry as JSON-ready data."""
        return {
            "type": Operation(self.type).value,
            "payload": self.payload,
            "resource": asdict(self.resource),
        }


def create_plan_response(resources: Iterable[PlanResource]) -> str:
    """Serialise planned changes as a JSON array."""
    return json.dumps([resource.to_dict() for resource in resources])


def create_mcp_response(
    resources: Iterable[Optional[Mapping[str, Any]]], cluster: str, *args: str
) -> str:
    """Serialise resources of a cluster, with optional notes for the reader."""
    body: dict = {
        "cluster": cluster,
        "resources": [dict(resource) for resource in resources if resource is not None],
    }
    if args:
        body["notes"] = list(args)
    return json.dumps(body)


def create_mcp_response_any(data: Any) -> str:
    """Serialise arbitrary JSON-ready data."""
    return json.dumps(data)