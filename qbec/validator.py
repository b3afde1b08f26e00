"""Schema validation of qbec app and environment-map documents."""

from __future__ import annotations

import datetime
import re
from collections.abc import Mapping
from typing import Any

import yaml

LATEST_API_VERSION = "qbec.io/v1alpha1"
"""The latest API version supported."""

_REF_PREFIX = "#/definitions/"
_LABEL_VALUE_PATTERN = "^(([A-Za-z0-9][-A-Za-z0-9_.]*)?[A-Za-z0-9])$"


def _ref(name: str) -> dict[str, Any]:
    return {"$ref": _REF_PREFIX + "qbec.io.v1alpha1." + name}


_STRING: dict[str, Any] = {"type": "string"}
_BOOLEAN: dict[str, Any] = {"type": "boolean"}
_STRING_ARRAY: dict[str, Any] = {"type": "array", "items": {"type": "string"}}

SCHEMA: dict[str, Any] = {
    "swagger": "2.0",
    "info": {"title": "Metadata definition for qbec.yaml", "version": "v1alpha1"},
    "paths": {},
    "definitions": {
        "qbec.io.v1alpha1.App": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "apiVersion": {"type": "string"},
                "kind": {"type": "string", "pattern": "^App$"},
                "metadata": _ref("AppMeta"),
                "spec": _ref("AppSpec"),
            },
            "required": ["kind", "apiVersion", "metadata", "spec"],
        },
        "qbec.io.v1alpha1.AppMeta": {
            "type": "object",
            "additionalProperties": False,
            "properties": {"name": {"type": "string", "pattern": _LABEL_VALUE_PATTERN}},
            "required": ["name"],
        },
        "qbec.io.v1alpha1.AppSpec": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "addComponentLabel": _BOOLEAN,
                "baseProperties": {"type": "object"},
                "clusterScopedLists": _BOOLEAN,
                "componentsDir": {"type": "string"},
                "dataSources": _STRING_ARRAY,
                "dsExamples": {"type": "object"},
                "envFiles": _STRING_ARRAY,
                "environments": {
                    "type": "object",
                    "additionalProperties": _ref("Environment"),
                    "minProperties": 1,
                },
                "excludes": _STRING_ARRAY,
                "libPaths": _STRING_ARRAY,
                "namespaceTagSuffix": _BOOLEAN,
                "paramsFile": {"type": "string"},
                "postProcessor": {"type": "string"},
                "vars": _ref("Variables"),
            },
        },
        "qbec.io.v1alpha1.ComputedVar": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "code": _STRING,
                "name": _STRING,
                "secret": _BOOLEAN,
            },
            "required": ["name", "code"],
        },
        "qbec.io.v1alpha1.Environment": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "context": {"type": "string"},
                "defaultNamespace": {"type": "string"},
                "excludes": _STRING_ARRAY,
                "includes": _STRING_ARRAY,
                "properties": {"type": "object"},
                "server": {"type": "string"},
            },
        },
        "qbec.io.v1alpha1.EnvironmentMap": {
            "additionalProperties": False,
            "properties": {
                "apiVersion": {"type": "string"},
                "kind": {"type": "string", "pattern": "^EnvironmentMap$"},
                "spec": _ref("EnvironmentsSpec"),
            },
            "required": ["kind", "apiVersion", "spec"],
        },
        "qbec.io.v1alpha1.EnvironmentsSpec": {
            "additionalProperties": False,
            "properties": {
                "environments": {
                    "type": "object",
                    "additionalProperties": _ref("Environment"),
                    "minProperties": 1,
                },
            },
            "required": ["environments"],
        },
        "qbec.io.v1alpha1.ExternalVar": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "default": {"nullable": True},
                "name": _STRING,
                "secret": _BOOLEAN,
            },
            "required": ["name"],
        },
        "qbec.io.v1alpha1.TopLevelVar": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "components": {"type": "array", "items": {"type": "string"}, "minItems": 1},
                "name": _STRING,
                "secret": _BOOLEAN,
            },
            "required": ["name", "components"],
        },
        "qbec.io.v1alpha1.Variables": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "computed": {"type": "array", "items": _ref("ComputedVar")},
                "external": {"type": "array", "items": _ref("ExternalVar")},
                "topLevel": {"type": "array", "items": _ref("TopLevelVar")},
            },
        },
    },
}


class ValidationError(ValueError):
    """A single problem found while validating a document."""


def _normalize(value: Any) -> Any:
    """Turn parsed YAML into JSON-compatible data."""
    if isinstance(value, Mapping):
        return {str(k): _normalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    return value


def load_yaml(content: bytes | str) -> Any:
    """Parse the first YAML document in content into JSON-compatible data.

    Raises yaml.YAMLError if the document cannot be parsed.
    """
    if isinstance(content, bytes):
        content = content.decode("utf-8")
    loader = yaml.SafeLoader(content)
    try:
        if not loader.check_node():
            return None
        node = loader.get_node()
        return _normalize(loader.construct_document(node))
    finally:
        loader.dispose()


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _matches_type(expected: str, value: Any) -> bool:
    actual = _type_name(value)
    if expected == "number":
        return actual in ("integer", "number")
    return actual == expected


class Validator:
    """Validates qbec documents against the built-in schema."""

    def __init__(self, swagger: Mapping[str, Any] | None = None) -> None:
        doc = SCHEMA if swagger is None else swagger
        definitions = doc.get("definitions")
        if not definitions:
            raise ValueError("unable to find definitions in swagger doc")
        self._definitions: Mapping[str, Any] = definitions

    def validate_yaml(self, content: bytes | str) -> list[ValidationError]:
        """Validate an App document, returning the problems found."""
        return self._validate(content, "App")

    def validate_env_yaml(self, content: bytes | str) -> list[ValidationError]:
        """Validate an EnvironmentMap document, returning the problems found."""
        return self._validate(content, "EnvironmentMap")

    def _validate(self, content: bytes | str, expected_kind: str) -> list[ValidationError]:
        try:
            data = load_yaml(content)
        except yaml.YAMLError as err:
            return [ValidationError(f"YAML unmarshal: {err}")]
        if data is None:
            data = {}
        if not isinstance(data, dict):
            return [ValidationError(f"YAML unmarshal: expected an object, got {_type_name(data)}")]
        api_version = data.get("apiVersion")
        if not isinstance(api_version, str):
            return [ValidationError("missing or invalid apiVersion property")]
        kind = data.get("kind")
        if not isinstance(kind, str):
            return [ValidationError("missing or invalid kind property")]
        if kind != expected_kind:
            return [ValidationError(f"bad kind property, expected {expected_kind}")]
        data_type = api_version.replace("/", ".") + "." + kind
        schema = self._definitions.get(data_type)
        if schema is None:
            return [
                ValidationError(
                    f"no schema found for {data_type} (check for valid apiVersion and kind properties)"
                )
            ]
        errors: list[ValidationError] = []
        self._walk(schema, data, "", errors)
        return errors

    def _resolve(self, schema: Mapping[str, Any]) -> Mapping[str, Any]:
        while "$ref" in schema:
            ref = schema["$ref"]
            if not ref.startswith(_REF_PREFIX) or ref[len(_REF_PREFIX):] not in self._definitions:
                raise ValueError(f"unresolvable reference {ref}")
            schema = self._definitions[ref[len(_REF_PREFIX):]]
        return schema

    def _walk(self, schema: Mapping[str, Any], value: Any, path: str, errors: list[ValidationError]) -> None:
        schema = self._resolve(schema)
        expected = schema.get("type")
        if value is None:
            if expected and not schema.get("nullable"):
                errors.append(ValidationError(f'{path} in body must be of type {expected}: "null"'))
            return
        if expected and not _matches_type(expected, value):
            errors.append(
                ValidationError(f'{path} in body must be of type {expected}: "{_type_name(value)}"')
            )
            return
        if isinstance(value, dict):
            self._walk_object(schema, value, path, errors)
        elif isinstance(value, list):
            self._walk_array(schema, value, path, errors)
        elif isinstance(value, str):
            pattern = schema.get("pattern")
            if pattern is not None and not re.search(pattern, value):
                errors.append(ValidationError(f"{path} in body should match '{pattern}'"))

    def _walk_object(
        self, schema: Mapping[str, Any], value: dict[str, Any], path: str, errors: list[ValidationError]
    ) -> None:
        min_props = schema.get("minProperties")
        if min_props is not None and len(value) < min_props:
            errors.append(ValidationError(f"{path} in body should have at least {min_props} properties"))
        props: Mapping[str, Any] = schema.get("properties", {})
        additional = schema.get("additionalProperties", True)
        if additional is False:
            for key in value:
                if key not in props:
                    errors.append(ValidationError(f"{path}.{key} in body is a forbidden property"))
        for name in schema.get("required", ()):
            if name not in value:
                errors.append(ValidationError(f"{path}.{name} in body is required"))
        for key, item in value.items():
            child = f"{path}.{key}" if path else key
            if key in props:
                self._walk(props[key], item, child, errors)
            elif isinstance(additional, Mapping):
                self._walk(additional, item, child, errors)

    def _walk_array(
        self, schema: Mapping[str, Any], value: list[Any], path: str, errors: list[ValidationError]
    ) -> None:
        min_items = schema.get("minItems")
        if min_items is not None and len(value) < min_items:
            errors.append(ValidationError(f"{path} in body should have at least {min_items} items"))
        items = schema.get("items")
        if isinstance(items, Mapping):
            for item in value:
                self._walk(items, item, path, errors)