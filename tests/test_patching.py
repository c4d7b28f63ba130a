import json

import pytest

from rancher_tools.base import ToolRequest
from rancher_tools.patching import JsonPatch, PatchTools, UpdateResourceParams

PLAN_CASES = {
    "update configmap plan - add new key": (
        UpdateResourceParams(
            name="test-config",
            namespace="default",
            kind="ConfigMap",
            cluster="local",
            patch=[JsonPatch(op="add", path="/data/key3", value="value3")],
        ),
        [
            {
                "type": "update",
                "payload": [{"op": "add", "path": "/data/key3", "value": "value3"}],
                "resource": {
                    "name": "test-config",
                    "kind": "ConfigMap",
                    "cluster": "local",
                    "namespace": "default",
                },
            }
        ],
    ),
    "update configmap plan - replace existing key": (
        UpdateResourceParams(
            name="test-config",
            namespace="default",
            kind="ConfigMap",
            cluster="local",
            patch=[JsonPatch(op="replace", path="/data/key1", value="updated-value")],
        ),
        [
            {
                "type": "update",
                "payload": [{"op": "replace", "path": "/data/key1", "value": "updated-value"}],
                "resource": {
                    "name": "test-config",
                    "kind": "ConfigMap",
                    "cluster": "local",
                    "namespace": "default",
                },
            }
        ],
    ),
    "update configmap plan - remove key": (
        UpdateResourceParams(
            name="test-config",
            namespace="default",
            kind="ConfigMap",
            cluster="local",
            patch=[JsonPatch(op="remove", path="/data/key2")],
        ),
        [
            {
                "type": "update",
                "payload": [{"op": "remove", "path": "/data/key2"}],
                "resource": {
                    "name": "test-config",
                    "kind": "ConfigMap",
                    "cluster": "local",
                    "namespace": "default",
                },
            }
        ],
    ),
    "update plan - multiple patches": (
        UpdateResourceParams(
            name="my-deploy",
            namespace="staging",
            kind="Deployment",
            cluster="downstream",
            patch=[
                JsonPatch(op="replace", path="/spec/replicas", value=3),
                JsonPatch(op="add", path="/metadata/labels/env", value="staging"),
            ],
        ),
        [
            {
                "type": "update",
                "payload": [
                    {"op": "replace", "path": "/spec/replicas", "value": 3},
                    {"op": "add", "path": "/metadata/labels/env", "value": "staging"},
                ],
                "resource": {
                    "name": "my-deploy",
                    "kind": "Deployment",
                    "cluster": "downstream",
                    "namespace": "staging",
                },
            }
        ],
    ),
    "update plan - cluster-scoped resource": (
        UpdateResourceParams(
            name="my-ns",
            namespace="",
            kind="Namespace",
            cluster="local",
            patch=[JsonPatch(op="add", path="/metadata/labels/team", value="platform")],
        ),
        [
            {
                "type": "update",
                "payload": [{"op": "add", "path": "/metadata/labels/team", "value": "platform"}],
                "resource": {
                    "name": "my-ns",
                    "kind": "Namespace",
                    "cluster": "local",
                    "namespace": "",
                },
            }
        ],
    ),
}


@pytest.mark.parametrize("params,expected", list(PLAN_CASES.values()), ids=list(PLAN_CASES))
def test_update_kubernetes_resource_plan(params, expected):
    tools = PatchTools(None)
    result = tools.update_kubernetes_resource_plan(ToolRequest(), params)
    assert json.loads(result.text) == expected


def test_plan_rejects_unserialisable_value():
    tools = PatchTools(None)
    params = UpdateResourceParams(
        name="x", kind="ConfigMap", cluster="local",
        patch=[JsonPatch(op="add", path="/a", value=object())],
    )
    with pytest.raises(ValueError, match="failed to marshal patch"):
        tools.update_kubernetes_resource_plan(ToolRequest(), params)


def test_params_accept_mappings_as_patches():
    params = UpdateResourceParams(
        name="x", kind="Pod", cluster="local",
        patch=[{"op": "add", "path": "/a", "value": 1}],
    )
    assert params.patch == [JsonPatch(op="add", path="/a", value=1)]
    assert params.namespace == ""


def test_params_reject_patch_without_op():
    with pytest.raises(ValueError, match="'op' and 'path'"):
        UpdateResourceParams(name="x", kind="Pod", cluster="local", patch=[{"path": "/a"}])


class FakeInterface:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def patch(self, name, patch_type, data):
        self.calls.append((name, patch_type, data))
        if self.error:
            raise self.error
        return self.result


class FakeClient:
    def __init__(self, interface=None, error=None):
        self.interface = interface
        self.error = error
        self.calls = []

    def get_resource_interface(self, token, url, namespace, cluster, gvr):
        self.calls.append((token, url, namespace, cluster, gvr))
        if self.error:
            raise self.error
        return self.interface


def _params():
    return UpdateResourceParams(
        name="test-config",
        namespace="default",
        kind="ConfigMap",
        cluster="local",
        patch=[JsonPatch(op="replace", path="/data/key1", value="v")],
    )


def test_update_kubernetes_resource_applies_patch():
    patched = {"kind": "ConfigMap", "metadata": {"name": "test-config"}, "data": {"key1": "v"}}
    interface = FakeInterface(result=patched)
    client = FakeClient(interface)
    tools = PatchTools(client, "https://rancher.example.com")

    result = tools.update_kubernetes_resource(ToolRequest(token="token"), _params())

    body = json.loads(result.text)
    assert body["cluster"] == "local"
    assert body["resources"] == [patched]
    assert client.calls == [
        ("token", "https://rancher.example.com", "default", "local", "configmap")
    ]
    name, patch_type, data = interface.calls[0]
    assert name == "test-config"
    assert patch_type == "application/json-patch+json"
    assert json.loads(data) == [{"op": "replace", "path": "/data/key1", "value": "v"}]


def test_update_kubernetes_resource_wraps_patch_error():
    client = FakeClient(FakeInterface(error=RuntimeError("conflict")))
    tools = PatchTools(client, "https://rancher.example.com")
    with pytest.raises(RuntimeError, match="failed to patch resource test-config: conflict"):
        tools.update_kubernetes_resource(ToolRequest(token="token"), _params())


def test_update_kubernetes_resource_propagates_interface_error():
    client = FakeClient(error=LookupError("no such kind"))
    tools = PatchTools(client, "https://rancher.example.com")
    with pytest.raises(LookupError, match="no such kind"):
        tools.update_kubernetes_resource(ToolRequest(token="token"), _params())