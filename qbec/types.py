"""Data types for the qbec application and environment-map documents."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


def _mapping(value: Any, what: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"{what}: expected an object, got {type(value).__name__}")
    return value


def _object(value: Any, what: str) -> dict[str, Any] | None:
    if value is None:
        return None
    return dict(_mapping(value, what))


def _string(value: Any, what: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{what}: expected a string, got {type(value).__name__}")
    return value


def _bool(value: Any, what: str) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"{what}: expected a boolean, got {type(value).__name__}")
    return value


def _strings(value: Any, what: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{what}: expected an array, got {type(value).__name__}")
    return [_string(item, what) for item in value]


def _items(value: Any, what: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{what}: expected an array, got {type(value).__name__}")
    return value


def _environments(value: Any) -> dict[str, Environment]:
    envs = _mapping(value, "environments")
    return {name: Environment.from_dict(env) for name, env in envs.items()}


@dataclass
class Environment:
    """A deployment destination with its own runtime parameters."""

    default_namespace: str = ""
    server: str = ""
    context: str = ""
    includes: list[str] = field(default_factory=list)
    excludes: list[str] = field(default_factory=list)
    properties: dict[str, Any] | None = None

    def assert_valid(self) -> None:
        """Raise ValueError if the server/context settings are inconsistent."""
        if not self.server and not self.context:
            raise ValueError("neither server nor context was set")
        if self.server and self.context:
            raise ValueError("only one of server or context may be set")
        if self.context.startswith("__"):
            raise ValueError(f"context for environment ('{self.context}') may not start with __")

    @classmethod
    def from_dict(cls, data: Any) -> Environment:
        d = _mapping(data, "environment")
        return cls(
            default_namespace=_string(d.get("defaultNamespace"), "defaultNamespace"),
            server=_string(d.get("server"), "server"),
            context=_string(d.get("context"), "context"),
            includes=_strings(d.get("includes"), "includes"),
            excludes=_strings(d.get("excludes"), "excludes"),
            properties=_object(d.get("properties"), "properties"),
        )


@dataclass
class TopLevelVar:
    """A variable passed as a top-level argument to selected components."""

    name: str = ""
    secret: bool = False
    components: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> TopLevelVar:
        d = _mapping(data, "topLevel variable")
        return cls(
            name=_string(d.get("name"), "name"),
            secret=_bool(d.get("secret"), "secret"),
            components=_strings(d.get("components"), "components"),
        )


@dataclass
class ExternalVar:
    """A variable set as an external variable, with an optional default."""

    name: str = ""
    secret: bool = False
    default: Any = None

    @classmethod
    def from_dict(cls, data: Any) -> ExternalVar:
        d = _mapping(data, "external variable")
        return cls(
            name=_string(d.get("name"), "name"),
            secret=_bool(d.get("secret"), "secret"),
            default=d.get("default"),
        )


@dataclass
class ComputedVar:
    """A variable computed by evaluating inline code."""

    name: str = ""
    secret: bool = False
    code: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> ComputedVar:
        d = _mapping(data, "computed variable")
        return cls(
            name=_string(d.get("name"), "name"),
            secret=_bool(d.get("secret"), "secret"),
            code=_string(d.get("code"), "code"),
        )


@dataclass
class Variables:
    """External, top-level and computed variables declared by an app."""

    external: list[ExternalVar] = field(default_factory=list)
    top_level: list[TopLevelVar] = field(default_factory=list)
    computed: list[ComputedVar] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> Variables:
        d = _mapping(data, "vars")
        return cls(
            external=[ExternalVar.from_dict(v) for v in _items(d.get("external"), "external")],
            top_level=[TopLevelVar.from_dict(v) for v in _items(d.get("topLevel"), "topLevel")],
            computed=[ComputedVar.from_dict(v) for v in _items(d.get("computed"), "computed")],
        )


@dataclass
class AppMeta:
    """Metadata of a qbec app."""

    name: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> AppMeta:
        d = _mapping(data, "metadata")
        return cls(name=_string(d.get("name"), "name"))


@dataclass
class AppSpec:
    """User-supplied configuration of a qbec app."""

    components_dir: str = ""
    params_file: str = ""
    post_processor: str = ""
    vars: Variables = field(default_factory=Variables)
    data_sources: list[str] = field(default_factory=list)
    data_source_examples: dict[str, Any] | None = None
    environments: dict[str, Environment] = field(default_factory=dict)
    env_files: list[str] = field(default_factory=list)
    excludes: list[str] = field(default_factory=list)
    lib_paths: list[str] = field(default_factory=list)
    namespace_tag_suffix: bool = False
    base_properties: dict[str, Any] | None = None
    cluster_scoped_lists: bool = False
    add_component_label: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> AppSpec:
        d = _mapping(data, "spec")
        return cls(
            components_dir=_string(d.get("componentsDir"), "componentsDir"),
            params_file=_string(d.get("paramsFile"), "paramsFile"),
            post_processor=_string(d.get("postProcessor"), "postProcessor"),
            vars=Variables.from_dict(d.get("vars")),
            data_sources=_strings(d.get("dataSources"), "dataSources"),
            data_source_examples=_object(d.get("dsExamples"), "dsExamples"),
            environments=_environments(d.get("environments")),
            env_files=_strings(d.get("envFiles"), "envFiles"),
            excludes=_strings(d.get("excludes"), "excludes"),
            lib_paths=_strings(d.get("libPaths"), "libPaths"),
            namespace_tag_suffix=_bool(d.get("namespaceTagSuffix"), "namespaceTagSuffix"),
            base_properties=_object(d.get("baseProperties"), "baseProperties"),
            cluster_scoped_lists=_bool(d.get("clusterScopedLists"), "clusterScopedLists"),
            add_component_label=_bool(d.get("addComponentLabel"), "addComponentLabel"),
        )


@dataclass
class EnvironmentMapSpec:
    """Spec of a standalone environment map."""

    environments: dict[str, Environment] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> EnvironmentMapSpec:
        d = _mapping(data, "spec")
        return cls(environments=_environments(d.get("environments")))


@dataclass
class EnvironmentMap:
    """A standalone document holding environments keyed by name."""

    kind: str = ""
    api_version: str = ""
    spec: EnvironmentMapSpec = field(default_factory=EnvironmentMapSpec)

    @classmethod
    def from_dict(cls, data: Any) -> EnvironmentMap:
        d = _mapping(data, "environment map")
        return cls(
            kind=_string(d.get("kind"), "kind"),
            api_version=_string(d.get("apiVersion"), "apiVersion"),
            spec=EnvironmentMapSpec.from_dict(d.get("spec")),
        )


@dataclass
class QbecApp:
    """A set of components applied to multiple environments."""

    kind: str = ""
    api_version: str = ""
    metadata: AppMeta = field(default_factory=AppMeta)
    spec: AppSpec = field(default_factory=AppSpec)

    @classmethod
    def from_dict(cls, data: Any) -> QbecApp:
        d = _mapping(data, "app")
        return cls(
            kind=_string(d.get("kind"), "kind"),
            api_version=_string(d.get("apiVersion"), "apiVersion"),
            metadata=AppMeta.from_dict(d.get("metadata")),
            spec=AppSpec.from_dict(d.get("spec")),
        )