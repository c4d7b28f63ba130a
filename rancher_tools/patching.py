"""Tools that patch Kubernetes resources with JSON Patch documents."""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Sequence

from .base import ToolRequest, ToolResult, ToolsBase
from .responses import (
    Operation,
    PlanResource,
    ResourceRef,
    create_mcp_response,
    create_plan_response,
)

JSON_PATCH_TYPE = "application/json-patch+json"
"""Content type used when sending a patch."""

_log = logging.getLogger(__name__)


def _describe(text: str) -> Dict[str, str]:
    return {"description": text}


@dataclass(frozen=True)
class JsonPatch:
    """One JSON Patch operation: add, remove, replace and so on."""

    op: str
    path: str
    value: Any = None


def _to_patch(entry: Any) -> JsonPatch:
    if isinstance(entry, JsonPatch):
        return entry
    if not isinstance(entry, Mapping):
        raise ValueError(f"patch operation must be an object, got {entry!r}")
    op, path = entry.get("op"), entry.get("path")
    if not isinstance(op, str) or not isinstance(path, str):
        raise ValueError(f"patch operation needs string 'op' and 'path': {dict(entry)!r}")
    return JsonPatch(op=op, path=path, value=entry.get("value"))


def _patch_document(patches: Sequence[JsonPatch]) -> List[Dict[str, Any]]:
    document = []
    for patch in patches:
        entry: Dict[str, Any] = {"op": patch.op, "path": patch.path}
        if patch.value is not None:
            entry["value"] = patch.value
        document.append(entry)
    return document


def _marshal(patches: Sequence[JsonPatch]) -> str:
    try:
        return json.dumps(_patch_document(patches))
    except (TypeError, ValueError) as err:
        raise ValueError(f"failed to marshal patch: {err}") from err


@dataclass(frozen=True)
class UpdateResourceParams:
    """A resource within a cluster and the patch to apply to it."""

    name: str = field(metadata=_describe("the name of the specific resource to patch"))
    kind: str = field(
        metadata=_describe(
            "the type of Kubernetes resource to patch (e.g., Pod, Deployment, Service)"
        )
    )
    cluster: str = field(metadata=_describe("the name of the Kubernetes cluster"))
    patch: List[JsonPatch] = field(
        metadata=_describe(
            "the patch to apply. The content type used is application/json-patch+json"
        )
    )
    namespace: str = field(
        default="",
        metadata=_describe(
            "the namespace where the resource is located. It must be empty for "
            "cluster-wide resources"
        ),
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "patch", [_to_patch(entry) for entry in self.patch or []])


@contextmanager
def _logged(tool: str, message: str) -> Iterator[None]:
    try:
        yield
    except Exception as err:
        _log.error("%s (tool=%s): %s", message, tool, err)
        raise


class PatchTools(ToolsBase):
    """Tools that change resources, or show the change they would make."""

    def update_kubernetes_resource(
        self, request: ToolRequest, params: UpdateResourceParams
    ) -> ToolResult:
        """Apply a JSON patch to a resource and return the modified resource.

        The client receives the lower-cased kind and resolves it to its resource type.
        """
        _log.debug("updateKubernetesResource called")
        resource_interface = self.client.get_resource_interface(
            request.token,
            self.rancher_url_for(request),
            params.namespace,
            params.cluster,
            params.kind.lower(),
        )

        with _logged("updateKubernetesResource", "failed to create patch"):
            data = _marshal(params.patch)

        with _logged("updateKubernetesResource", "failed to apply patch"):
            try:
                patched = resource_interface.patch(
                    params.name, JSON_PATCH_TYPE, data.encode("utf-8")
                )
            except Exception as err:
                raise RuntimeError(f"failed to patch resource {params.name}: {err}") from err

        return ToolResult(create_mcp_response([patched], params.cluster))

    def update_kubernetes_resource_plan(
        self, request: ToolRequest, params: UpdateResourceParams
    ) -> ToolResult:
        """Describe a patch without applying it."""
        _log.debug("updateKubernetesResource_plan called")
        with _logged("updateKubernetesResource_plan", "failed to marshal patch"):
            payload = json.loads(_marshal(params.patch))

        plan = PlanResource(
            type=Operation.UPDATE,
            payload=payload,
            resource=ResourceRef(
                name=params.name,
                kind=params.kind,
                cluster=params.cluster,
                namespace=params.namespace,
            ),
        )
        return ToolResult(create_plan_response([plan]))