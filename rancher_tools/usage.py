"""Aggregation of pod resource requests, limits and measured usage."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .quantity import Quantity, QuantityFormat, quantity_max

_RUNNING = "Running"


def _cpu_zero() -> Quantity:
    return Quantity.zero(QuantityFormat.DECIMAL_SI)


def _memory_zero() -> Quantity:
    return Quantity.zero(QuantityFormat.BINARY_SI)


@dataclass(frozen=True)
class Sample:
    """Resource totals for a set of running pods."""

    cpu_requests: Quantity = field(default_factory=_cpu_zero)
    cpu_limits: Quantity = field(default_factory=_cpu_zero)
    memory_requests: Quantity = field(default_factory=_memory_zero)
    memory_limits: Quantity = field(default_factory=_memory_zero)
    cpu_usage: Quantity = field(default_factory=_cpu_zero)
    memory_usage: Quantity = field(default_factory=_memory_zero)
    pod_count: int = 0

    def merge(self, other: "Sample") -> "Sample":
        """A sample holding the sums of this one and ``other``."""
        return Sample(
            cpu_requests=self.cpu_requests + other.cpu_requests,
            cpu_limits=self.cpu_limits + other.cpu_limits,
            memory_requests=self.memory_requests + other.memory_requests,
            memory_limits=self.memory_limits + other.memory_limits,
            cpu_usage=self.cpu_usage + other.cpu_usage,
            memory_usage=self.memory_usage + other.memory_usage,
            pod_count=self.pod_count + other.pod_count,
        )

    def totals(self) -> Dict[str, Any]:
        """The sample as JSON-ready data."""
        return {
            "podCount": self.pod_count,
            "cpu": {
                "requests": str(self.cpu_requests),
                "limits": str(self.cpu_limits),
                "usage": str(self.cpu_usage),
            },
            "memory": {
                "requests": str(self.memory_requests),
                "limits": str(self.memory_limits),
                "usage": str(self.memory_usage),
            },
        }


def _section(obj: Mapping[str, Any], key: str, kind: str) -> Mapping[str, Any]:
    value = obj.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"failed to convert unstructured object to {kind}: {key} is not an object")
    return value


def _items(obj: Mapping[str, Any], key: str, kind: str) -> List[Mapping[str, Any]]:
    value = obj.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, Mapping) for item in value):
        raise ValueError(f"failed to convert unstructured object to {kind}: {key} is not a list")
    return value


def _quantity(values: Mapping[str, Any], resource: str, kind: str) -> Optional[Quantity]:
    if resource not in values:
        return None
    try:
        return Quantity.parse(values[resource])
    except ValueError as err:
        raise ValueError(f"failed to convert unstructured object to {kind}: {err}") from err


def _name(obj: Mapping[str, Any], kind: str) -> str:
    return _section(obj, "metadata", kind).get("name", "")


def _container_limits(container: Mapping[str, Any]) -> Dict[str, Optional[Quantity]]:
    resources = _section(container, "resources", "Pod")
    requests = _section(resources, "requests", "Pod")
    limits = _section(resources, "limits", "Pod")
    return {
        "cpu_requests": _quantity(requests, "cpu", "Pod"),
        "cpu_limits": _quantity(limits, "cpu", "Pod"),
        "memory_requests": _quantity(requests, "memory", "Pod"),
        "memory_limits": _quantity(limits, "memory", "Pod"),
    }


def _effective_pod_sample(pod: Mapping[str, Any]) -> Sample:
    """Effective request/limit = max(sum(app containers), max(init containers))."""
    spec = _section(pod, "spec", "Pod")
    zeros = {
        "cpu_requests": _cpu_zero,
        "cpu_limits": _cpu_zero,
        "memory_requests": _memory_zero,
        "memory_limits": _memory_zero,
    }
    app = {name: make() for name, make in zeros.items()}
    init = {name: make() for name, make in zeros.items()}

    for container in _items(spec, "containers", "Pod"):
        for name, value in _container_limits(container).items():
            if value is not None:
                app[name] = app[name] + value

    for container in _items(spec, "initContainers", "Pod"):
        for name, value in _container_limits(container).items():
            if value is not None:
                init[name] = quantity_max(init[name], value)

    effective = {name: quantity_max(app[name], init[name]) for name in zeros}
    return Sample(pod_count=1, **effective)


def _usage_sample(pod_metrics: Mapping[str, Any]) -> Sample:
    cpu, memory = _cpu_zero(), _memory_zero()
    for container in _items(pod_metrics, "containers", "PodMetrics"):
        usage = _section(container, "usage", "PodMetrics")
        cpu_value = _quantity(usage, "cpu", "PodMetrics")
        if cpu_value is not None:
            cpu = cpu + cpu_value
        memory_value = _quantity(usage, "memory", "PodMetrics")
        if memory_value is not None:
            memory = memory + memory_value
    return Sample(cpu_usage=cpu, memory_usage=memory)


def namespace_usage(
    pods: Iterable[Mapping[str, Any]], metrics: Iterable[Mapping[str, Any]] = ()
) -> Sample:
    """Total requests, limits and usage of the running pods given.

    ``metrics`` are pod metrics objects, matched to pods by name.
    """
    metrics_by_pod = {_name(entry, "PodMetrics"): entry for entry in metrics}
    totals = Sample()
    for pod in pods:
        phase = _section(pod, "status", "Pod").get("phase")
        if phase != _RUNNING:
            continue
        totals = totals.merge(_effective_pod_sample(pod))
        pod_metrics = metrics_by_pod.get(_name(pod, "Pod"))
        if pod_metrics is not None:
            totals = totals.merge(_usage_sample(pod_metrics))
    return totals


def to_namespace_summary(name: str, sample: Sample) -> Dict[str, Any]:
    """The usage of one namespace as JSON-ready data."""
    return {"namespace": name, "totals": sample.totals()}