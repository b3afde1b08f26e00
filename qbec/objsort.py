"""Sorting of Kubernetes objects into the order in which they should be applied."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, TypeVar

from qbec.k8s import GroupVersionKind

GENERIC_CLUSTER_OBJECT_ORDER = 30
"""Any cluster-level object that does not have an assigned order."""
GENERIC_NAMESPACED_ORDER = 80
"""Any namespaced object that does not have an assigned order."""
GENERIC_POD_ORDER = 100
"""Any object that results in pod creation."""
GENERIC_LAST = 120
"""Any object for which server metadata was not found."""

SPECIFIED_ORDERING: dict[tuple[str, str], int] = {
    ("extensions", "PodSecurityPolicy"): 10,
    ("extensions", "ThirdPartyResource"): 20,
    ("apiextensions.k8s.io", "CustomResourceDefinition"): 20,
    ("", "Namespace"): GENERIC_NAMESPACED_ORDER - 30,
    ("", "LimitRange"): GENERIC_NAMESPACED_ORDER - 20,
    ("", "ServiceAccount"): GENERIC_NAMESPACED_ORDER - 20,
    ("", "ConfigMap"): GENERIC_NAMESPACED_ORDER - 10,
    ("", "Secret"): GENERIC_NAMESPACED_ORDER - 10,
    ("extensions", "DaemonSet"): GENERIC_POD_ORDER,
    ("extensions", "Deployment"): GENERIC_POD_ORDER,
    ("extensions", "ReplicaSet"): GENERIC_POD_ORDER,
    ("extensions", "StatefulSet"): GENERIC_POD_ORDER,
    ("apps", "DaemonSet"): GENERIC_POD_ORDER,
    ("apps", "Deployment"): GENERIC_POD_ORDER,
    ("apps", "ReplicaSet"): GENERIC_POD_ORDER,
    ("apps", "StatefulSet"): GENERIC_POD_ORDER,
    ("batch", "Job"): GENERIC_POD_ORDER,
    ("batch", "CronJob"): GENERIC_POD_ORDER,
    ("", "Service"): GENERIC_POD_ORDER + 10,
    ("admissionregistration.k8s.io", "ValidatingWebhookConfiguration"): GENERIC_POD_ORDER + 20,
    ("admissionregistration.k8s.io", "MutatingWebhookConfiguration"): GENERIC_POD_ORDER + 20,
}
"""Apply order for a set of well-known object types, keyed by (group, kind)."""

OrderingProvider = Callable[[Any], int]
NamespacedIndicator = Callable[[GroupVersionKind], bool]

T = TypeVar("T")


def _no_ordering(_: Any) -> int:
    return 0


@dataclass
class SortConfig:
    """Sort configuration.

    The ordering provider returns a positive order for objects whose apply order
    it wants to set, or 0 otherwise; it may be None. The namespaced indicator
    tells whether a type is namespaced and raises if it does not know.
    """

    namespaced_indicator: NamespacedIndicator
    ordering_provider: OrderingProvider | None = None


def get_order(obj: Any, config: SortConfig) -> int:
    """Return the apply order for the supplied object."""
    provider = config.ordering_provider or _no_ordering
    order = provider(obj)
    if order > 0:
        return order
    gvk = obj.group_version_kind()
    specified = SPECIFIED_ORDERING.get(gvk.group_kind())
    if specified is not None:
        return specified
    try:
        namespaced = config.namespaced_indicator(gvk)
    except Exception:
        return GENERIC_LAST
    return GENERIC_NAMESPACED_ORDER if namespaced else GENERIC_CLUSTER_OBJECT_ORDER


def _sorted(inputs: Iterable[T], config: SortConfig) -> list[T]:
    keyed = [
        ((get_order(obj, config), obj.kind, obj.component, obj.namespace, obj.name), obj)  # type: ignore[attr-defined]
        for obj in inputs
    ]
    keyed.sort(key=lambda pair: pair[0])
    return [obj for _, obj in keyed]


def sort_meta(inputs: Iterable[T], config: SortConfig) -> list[T]:
    """Sort objects carrying Kubernetes and qbec metadata into apply order."""
    return _sorted(inputs, config)


def sort_objects(inputs: Iterable[T], config: SortConfig) -> list[T]:
    """Sort local objects into apply order."""
    return _sorted(inputs, config)