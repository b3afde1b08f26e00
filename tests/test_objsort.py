import pytest

from qbec.k8s import GroupVersionKind, LocalAttrs, new_k8s_local_object
from qbec.objsort import (
    GENERIC_CLUSTER_OBJECT_ORDER,
    GENERIC_LAST,
    GENERIC_NAMESPACED_ORDER,
    GENERIC_POD_ORDER,
    SortConfig,
    get_order,
    sort_meta,
    sort_objects,
)


def make(component, api_version, kind, name, namespace):
    return new_k8s_local_object(
        {
            "apiVersion": api_version,
            "kind": kind,
            "metadata": {"namespace": namespace, "name": name},
        },
        LocalAttrs(app="app1", tag="", component=component, env="dev"),
    )


def inputs():
    return [
        make("c0", "v1", "BarBaz", "c1-secret", ""),
        make("c1", "v1", "Secret", "c1-secret", ""),
        make("c1", "v1", "Namespace", "c1-ns", ""),
        make("c1", "v1", "ServiceAccount", "c1-sa", "c1-ns"),
        make("cluster", "v1", "PodSecurityPolicy", "cluster-psp", ""),
        make("c2", "extensions/v1beta1", "Deployment", "deploy1", "c1-ns"),
        make("c2", "extensions/v1beta1", "FooBar", "fb1", "c1-ns"),
        make("c3", "rbac.authorization.k8s.io/v1beta1", "RoleBinding", "rb1", "c1-ns"),
        make("c3", "rbac.authorization.k8s.io/v1beta1", "ClusterRole", "cr", ""),
    ]


def namespaced(gvk: GroupVersionKind) -> bool:
    if gvk.kind in ("PodSecurityPolicy", "FooBar", "ClusterRoleBinding"):
        return False
    if gvk.kind == "BarBaz":
        raise LookupError("no indicator for BarBaz")
    return True


def config():
    return SortConfig(
        namespaced_indicator=namespaced,
        ordering_provider=lambda item: 1 if item.name == "c1-ns" else 0,
    )


EXPECTED = [
    "Namespace:c1-ns:",
    "FooBar:fb1:c1-ns",
    "PodSecurityPolicy:cluster-psp:",
    "ServiceAccount:c1-sa:c1-ns",
    "Secret:c1-secret:",
    "ClusterRole:cr:",
    "RoleBinding:rb1:c1-ns",
    "Deployment:deploy1:c1-ns",
    "BarBaz:c1-secret:",
]


def describe(objs):
    return [f"{o.kind}:{o.name}:{o.namespace}" for o in objs]


def test_basic_sort():
    assert describe(sort_objects(inputs(), config())) == EXPECTED


def test_basic_sort_meta():
    assert describe(sort_meta(inputs(), config())) == EXPECTED


def test_sort_keeps_all_items():
    items = inputs()
    result = sort_objects(items, config())
    assert len(result) == len(items)
    assert {id(o) for o in result} == {id(o) for o in items}


@pytest.mark.parametrize(
    "api_version,kind,expected",
    [
        ("v1", "Namespace", 50),
        ("v1", "ConfigMap", 70),
        ("apps/v1", "Deployment", GENERIC_POD_ORDER),
        ("v1", "Service", GENERIC_POD_ORDER + 10),
        ("apiextensions.k8s.io/v1", "CustomResourceDefinition", 20),
        ("extensions/v1beta1", "PodSecurityPolicy", 10),
        ("v1", "Pod", GENERIC_NAMESPACED_ORDER),
        ("v1", "FooBar", GENERIC_CLUSTER_OBJECT_ORDER),
        ("v1", "BarBaz", GENERIC_LAST),
    ],
)
def test_get_order(api_version, kind, expected):
    obj = make("c", api_version, kind, "n", "ns")
    assert get_order(obj, SortConfig(namespaced_indicator=namespaced)) == expected


def test_provider_non_positive_order_is_ignored():
    obj = make("c", "v1", "ConfigMap", "n", "ns")
    cfg = SortConfig(namespaced_indicator=namespaced, ordering_provider=lambda _: -5)
    assert get_order(obj, cfg) == 70


def test_provider_positive_order_wins():
    obj = make("c", "v1", "ConfigMap", "n", "ns")
    cfg = SortConfig(namespaced_indicator=namespaced, ordering_provider=lambda _: 500)
    assert get_order(obj, cfg) == 500


def test_ties_broken_by_component_namespace_name():
    items = [
        make("b", "v1", "ConfigMap", "a", "x"),
        make("a", "v1", "ConfigMap", "z", "y"),
        make("a", "v1", "ConfigMap", "b", "x"),
        make("a", "v1", "ConfigMap", "a", "x"),
    ]
    result = sort_objects(items, SortConfig(namespaced_indicator=namespaced))
    assert [(o.component, o.namespace, o.name) for o in result] == [
        ("a", "x", "a"),
        ("a", "x", "b"),
        ("a", "y", "z"),
        ("b", "x", "a"),
    ]


def test_empty_input():
    assert sort_objects([], SortConfig(namespaced_indicator=namespaced)) == []