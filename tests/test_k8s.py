import re

import pytest
import yaml

from qbec.k8s import (
    GroupVersionKind,
    K8sLocalObject,
    LocalAttrs,
    MetadataError,
    assert_metadata_valid,
    name_for_display,
    new_k8s_local_object,
    new_k8s_object,
)
from qbec.names import QBEC_NAMES

CM = """
---
apiVersion:  v1
kind: ConfigMap
metadata:
  namespace: ns1
  name: cm
data:
  foo: bar
"""


def to_data(s):
    return yaml.safe_load(s)


def test_k8s_object():
    obj = new_k8s_object(to_data(CM))
    assert obj.name == "cm"
    assert obj.namespace == "ns1"
    assert obj.kind == "ConfigMap"
    gvk = obj.group_version_kind()
    assert gvk.group == ""
    assert gvk.version == "v1"
    assert gvk.kind == "ConfigMap"
    assert obj.to_dict()["data"] == {"foo": "bar"}
    assert str(obj) == "/v1, Kind=ConfigMap:ns1:cm"
    assert '"foo":"bar"' in obj.to_json()


def test_k8s_local_object():
    obj = new_k8s_local_object(to_data(CM), LocalAttrs(app="app1", tag="", component="c1", env="e1"))
    assert obj.application == "app1"
    assert obj.component == "c1"
    assert obj.environment == "e1"
    assert obj.tag == ""
    labels = obj.labels
    assert labels[QBEC_NAMES.application_label] == "app1"
    assert labels[QBEC_NAMES.environment_label] == "e1"
    assert QBEC_NAMES.tag_label not in labels
    assert QBEC_NAMES.component_label not in labels
    assert obj.annotations[QBEC_NAMES.component_annotation] == "c1"


def test_k8s_local_object_with_tag():
    obj = new_k8s_local_object(to_data(CM), LocalAttrs(app="app1", tag="t1", component="c1", env="e1"))
    assert obj.application == "app1"
    assert obj.component == "c1"
    assert obj.environment == "e1"
    assert obj.tag == "t1"
    labels = obj.labels
    assert labels[QBEC_NAMES.application_label] == "app1"
    assert labels[QBEC_NAMES.environment_label] == "e1"
    assert labels[QBEC_NAMES.tag_label] == "t1"
    assert QBEC_NAMES.component_label not in labels


def test_k8s_local_object_with_component_label():
    obj = new_k8s_local_object(
        to_data(CM),
        LocalAttrs(app="app1", tag="t1", component="c1", env="e1", set_component_label=True),
    )
    assert isinstance(obj, K8sLocalObject)
    assert obj.tag == "t1"
    labels = obj.labels
    assert labels[QBEC_NAMES.application_label] == "app1"
    assert labels[QBEC_NAMES.environment_label] == "e1"
    assert labels[QBEC_NAMES.tag_label] == "t1"
    assert labels[QBEC_NAMES.component_label] == "c1"


GOOD = """
apiVersion: v1
kind: ConfigMap
metadata:
  name: foo
  labels:
    foo: bar
data:
  foo: bar
"""

NIL_ANNOTATIONS = """
apiVersion: v1
kind: ConfigMap
metadata:
  name: foo
  annotations:
data:
  foo: bar
"""

BAD_LABELS = """
apiVersion: v1
kind: ConfigMap
metadata:
  name: foo
  labels:
    foo: 10
  annotations:
    x: "foo"
data:
  foo: bar
"""

BAD_ANNOTATIONS = """
apiVersion: v1
kind: ConfigMap
metadata:
  name: foo
  labels:
    x: "foo"
  annotations:
    foo: true
data:
  foo: bar
"""


@pytest.mark.parametrize("doc", [GOOD, NIL_ANNOTATIONS])
def test_assert_metadata_good(doc):
    data = to_data(doc)
    assert assert_metadata_valid(data) is None
    assert data == to_data(doc)


@pytest.mark.parametrize(
    "doc, message",
    [
        (BAD_LABELS, "/v1, Kind=ConfigMap, Name=foo: .metadata.labels accessor error"),
        (BAD_ANNOTATIONS, "/v1, Kind=ConfigMap, Name=foo: .metadata.annotations accessor error"),
    ],
)
def test_assert_metadata_bad(doc, message):
    with pytest.raises(MetadataError, match=re.escape(message)):
        assert_metadata_valid(to_data(doc))


def test_generate_name_removed_when_name_present():
    data = {"apiVersion": "v1", "kind": "Pod", "metadata": {"name": "p", "generateName": "p-"}}
    obj = new_k8s_object(data)
    assert obj.generate_name == ""
    assert "generateName" not in obj.to_dict()["metadata"]


def test_name_for_display():
    named = new_k8s_object(to_data(CM))
    assert name_for_display(named) == "cm"
    generated = new_k8s_object({"apiVersion": "v1", "kind": "Pod", "metadata": {"generateName": "pod-"}})
    assert name_for_display(generated) == "pod-<xxxxx>"


@pytest.mark.parametrize(
    "api_version, expected",
    [
        ("v1", GroupVersionKind("", "v1", "K")),
        ("apps/v1", GroupVersionKind("apps", "v1", "K")),
        ("", GroupVersionKind("", "", "K")),
    ],
)
def test_gvk_from_api_version(api_version, expected):
    assert GroupVersionKind.from_api_version(api_version, "K") == expected


def test_gvk_bad_api_version():
    with pytest.raises(ValueError):
        GroupVersionKind.from_api_version("a/b/c", "K")
    obj = new_k8s_object({"apiVersion": "a/b/c", "kind": "K", "metadata": {"name": "x"}})
    assert obj.group_version_kind() == GroupVersionKind()


def test_group_kind():
    gvk = GroupVersionKind.from_api_version("apps/v1", "Deployment")
    assert gvk.group_kind() == ("apps", "Deployment")


def test_local_object_keeps_existing_labels():
    data = to_data(CM)
    data["metadata"]["labels"] = {"keep": "me"}
    obj = new_k8s_local_object(data, LocalAttrs(app="app1", component="c1", env="e1"))
    assert obj.labels["keep"] == "me"
    assert obj.labels[QBEC_NAMES.application_label] == "app1"