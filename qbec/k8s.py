"""Kubernetes object wrappers carrying qbec metadata."""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass
from typing import Any

from qbec.names import QBEC_NAMES


class MetadataError(ValueError):
    """Raised when an object's metadata is malformed."""


@dataclass(frozen=True)
class GroupVersionKind:
    """API group, version and kind of an object."""

    group: str = ""
    version: str = ""
    kind: str = ""

    def group_kind(self) -> tuple[str, str]:
        """Return the (group, kind) pair."""
        return (self.group, self.kind)

    @classmethod
    def from_api_version(cls, api_version: str, kind: str) -> GroupVersionKind:
        """Build a GVK from an apiVersion string such as ``apps/v1``."""
        if api_version in ("", "/"):
            return cls("", "", kind)
        parts = api_version.split("/")
        if len(parts) == 1:
            return cls("", parts[0], kind)
        if len(parts) == 2:
            return cls(parts[0], parts[1], kind)
        raise ValueError(f"unexpected GroupVersion string: {api_version}")

    def __str__(self) -> str:
        return f"{self.group}/{self.version}, Kind={self.kind}"


class K8sObject:
    """A Kubernetes object backed by its data dictionary."""

    def __init__(self, data: dict[str, Any]) -> None:
        self._data = data
        if self.name and self.generate_name:
            # a named object never uses its generated name
            self._data["metadata"].pop("generateName", None)

    def _meta_str(self, key: str) -> str:
        meta = self._data.get("metadata")
        if not isinstance(meta, dict):
            return ""
        value = meta.get(key)
        return value if isinstance(value, str) else ""

    def _string_map(self, key: str) -> dict[str, str] | None:
        meta = self._data.get("metadata")
        if not isinstance(meta, dict):
            return None
        value = meta.get(key)
        if not isinstance(value, dict) or not all(isinstance(v, str) for v in value.values()):
            return None
        return dict(value)

    def _set_string_map(self, key: str, value: dict[str, str] | None) -> None:
        if value is None:
            meta = self._data.get("metadata")
            if isinstance(meta, dict):
                meta.pop(key, None)
            return
        meta = self._data.get("metadata")
        if not isinstance(meta, dict):
            meta = {}
            self._data["metadata"] = meta
        meta[key] = dict(value)

    @property
    def api_version(self) -> str:
        value = self._data.get("apiVersion")
        return value if isinstance(value, str) else ""

    @property
    def kind(self) -> str:
        value = self._data.get("kind")
        return value if isinstance(value, str) else ""

    @property
    def name(self) -> str:
        return self._meta_str("name")

    @property
    def namespace(self) -> str:
        return self._meta_str("namespace")

    @property
    def generate_name(self) -> str:
        return self._meta_str("generateName")

    @property
    def labels(self) -> dict[str, str] | None:
        return self._string_map("labels")

    @labels.setter
    def labels(self, value: dict[str, str] | None) -> None:
        self._set_string_map("labels", value)

    @property
    def annotations(self) -> dict[str, str] | None:
        return self._string_map("annotations")

    @annotations.setter
    def annotations(self, value: dict[str, str] | None) -> None:
        self._set_string_map("annotations", value)

    def group_version_kind(self) -> GroupVersionKind:
        """Return the object's GVK, empty if the apiVersion is malformed."""
        try:
            return GroupVersionKind.from_api_version(self.api_version, self.kind)
        except ValueError:
            return GroupVersionKind()

    def to_dict(self) -> dict[str, Any]:
        """Return the underlying object data."""
        return self._data

    def to_json(self) -> str:
        """Serialize the object to compact JSON."""
        return json.dumps(self._data, sort_keys=True, separators=(",", ":"))

    def __str__(self) -> str:
        return f"{self.group_version_kind()}:{self.namespace}:{self.name}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self})"


@dataclass
class LocalAttrs:
    """Attributes used to create local objects."""

    app: str = ""
    tag: str = ""
    component: str = ""
    env: str = ""
    set_component_label: bool = False


class K8sLocalObject(K8sObject):
    """An object with qbec application, component, environment and tag."""

    def __init__(self, data: dict[str, Any], attrs: LocalAttrs) -> None:
        super().__init__(data)
        self._attrs = attrs
        labels = self.labels or {}
        labels[QBEC_NAMES.application_label] = attrs.app
        if attrs.tag:
            labels[QBEC_NAMES.tag_label] = attrs.tag
        labels[QBEC_NAMES.environment_label] = attrs.env
        if attrs.set_component_label:
            labels[QBEC_NAMES.component_label] = attrs.component
        self.labels = labels

        annotations = self.annotations or {}
        annotations[QBEC_NAMES.component_annotation] = attrs.component
        self.annotations = annotations

    @property
    def application(self) -> str:
        return self._attrs.app

    @property
    def component(self) -> str:
        return self._attrs.component

    @property
    def environment(self) -> str:
        return self._attrs.env

    @property
    def tag(self) -> str:
        return self._attrs.tag


def name_for_display(obj: Any) -> str:
    """Return the object's name, or its generated-name prefix with a placeholder."""
    if obj.name:
        return obj.name
    return obj.generate_name + "<xxxxx>"


def _check_string_map(data: dict[str, Any], *fields: str) -> str | None:
    value: Any = data
    for i, f in enumerate(fields):
        if value is None:
            return None
        if not isinstance(value, dict):
            path = "." + ".".join(fields[: i + 1])
            return (
                f"{path} accessor error: {value!r} is of the type "
                f"{type(value).__name__}, expected map"
            )
        if f not in value:
            return None
        value = value[f]
    path = "." + ".".join(fields)
    if value is None:
        return None
    if not isinstance(value, dict):
        return f"{path} accessor error: {value!r} is of the type {type(value).__name__}, expected map"
    for k, v in value.items():
        if not isinstance(v, str):
            return (
                f'{path} accessor error: contains non-string value in the map under key "{k}": '
                f"{v!r} is of the type {type(v).__name__}, expected string"
            )
    return None


def assert_metadata_valid(data: dict[str, Any]) -> None:
    """Raise MetadataError if labels or annotations are not string maps."""
    for fields in (("metadata", "labels"), ("metadata", "annotations")):
        problem = _check_string_map(data, *fields)
        if problem is not None:
            obj = K8sObject(copy.deepcopy(data))
            raise MetadataError(f"{obj.group_version_kind()}, Name={name_for_display(obj)}: {problem}")


def new_k8s_object(data: dict[str, Any]) -> K8sObject:
    """Wrap object data as a K8sObject."""
    return K8sObject(data)


def new_k8s_local_object(data: dict[str, Any], attrs: LocalAttrs) -> K8sLocalObject:
    """Wrap object data as a local object, adding qbec labels and annotations."""
    return K8sLocalObject(data, attrs)