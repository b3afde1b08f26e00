"""The qbec application: configuration, environments and components."""

from __future__ import annotations

import glob
import http.client
import json
import logging
import os
import re
import urllib.error
import urllib.request
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from typing import Any

import yaml

from qbec.filter import new_component_filter
from qbec.types import ComputedVar, Environment, EnvironmentMap, QbecApp
from qbec.validator import ValidationError, Validator, load_yaml

logger = logging.getLogger(__name__)

BASELINE = "_"
"""Special environment name for the baseline environment with no customizations."""

DEFAULT_COMPONENTS_DIR = "components"
DEFAULT_PARAMS_FILE = "params.libsonnet"

SUPPORTED_EXTENSIONS = frozenset({".jsonnet", ".yaml", ".json"})

_HTTP_TIMEOUT = 10.0
_LABEL_VALUE = re.compile(r"^(([A-Za-z0-9][-A-Za-z0-9_.]*)?[A-Za-z0-9])$")
_GLOB_CHARS = "*?["


class AppError(ValueError):
    """Raised when an app definition cannot be loaded or is used incorrectly."""


@dataclass(frozen=True)
class Component:
    """One or more related files holding objects to apply to a cluster."""

    name: str
    files: tuple[str, ...] = ()
    top_level_vars: tuple[str, ...] = ()


def deep_merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    """Return base merged with overrides, recursing into nested objects."""
    ret = dict(base)
    for key, value in overrides.items():
        old = base.get(key)
        if key in base and isinstance(old, Mapping) and isinstance(value, Mapping):
            ret[key] = deep_merge(old, value)
        else:
            ret[key] = value
    return ret


def _is_remote(file: str) -> bool:
    return file.startswith(("http://", "https://"))


def _download(url: str) -> bytes:
    try:
        with urllib.request.urlopen(url, timeout=_HTTP_TIMEOUT) as res:
            if res.status != 200:
                raise AppError(f"status : {res.status} {res.reason}")
            return res.read()
    except urllib.error.HTTPError as err:
        raise AppError(f"status : {err.code} {err.reason}") from err


def read_env_file(file: str) -> bytes:
    """Return the contents of a local or remote environment file."""
    if _is_remote(file):
        try:
            return _download(file)
        except (OSError, AppError, http.client.HTTPException, ValueError) as err:
            raise AppError(f"download environments from {file}: {err}") from err
    with open(file, "rb") as f:
        return f.read()


def _match_files(pattern: str) -> list[str]:
    if _is_remote(pattern):
        return [pattern]
    path = os.path.abspath(pattern)
    if not any(c in pattern for c in _GLOB_CHARS):
        return [path]
    matches = sorted(glob.glob(path, recursive=True))
    if not matches:
        raise AppError(f"{pattern}: no files matched")
    return matches


def _validation_message(file: str, errors: list[ValidationError]) -> str:
    joined = "\n".join(str(e) for e in errors)
    return f"file: {file}, {len(errors)} schema validation error(s): {joined}"


def _load_env_files(app: QbecApp, additional: Iterable[str], validator: Validator) -> None:
    envs = app.spec.environments
    sources = {name: "inline" for name in envs}
    patterns = [*app.spec.env_files, *additional]
    files = [f for pattern in patterns for f in _match_files(pattern)]
    for file in files:
        content = read_env_file(file)
        try:
            env_map = EnvironmentMap.from_dict(load_yaml(content))
        except (yaml.YAMLError, ValueError) as err:
            raise AppError(f"{file}: unmarshal YAML: {err}") from err
        errors = validator.validate_env_yaml(content)
        if errors:
            raise AppError(_validation_message(file, errors))
        for name, env in env_map.spec.environments.items():
            if name in sources:
                logger.warning("override env definition '%s' from file %s (previous: %s)", name, file, sources[name])
            sources[name] = file
            envs[name] = env


def _extension(name: str) -> str:
    pos = name.rfind(".")
    return name[pos:] if pos >= 0 else ""


def _subdir_component(path: str) -> Component | None:
    files = sorted(os.path.join(path, n) for n in os.listdir(path))
    has_index_jsonnet = has_index_yaml = False
    static_files = []
    for f in files:
        if os.path.isdir(f):
            continue
        base = os.path.basename(f)
        if base == "index.jsonnet":
            has_index_jsonnet = True
        elif base == "index.yaml":
            has_index_yaml = True
        if f.endswith((".json", ".yaml")):
            static_files.append(f)
    name = os.path.basename(path)
    if has_index_jsonnet:
        return Component(name, (os.path.join(path, "index.jsonnet"),))
    if has_index_yaml:
        return Component(name, tuple(static_files))
    return None


def _dir_components(directory: str) -> list[Component]:
    with os.scandir(directory) as it:
        entries = sorted(it, key=lambda e: e.name)
    found = []
    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            comp = _subdir_component(entry.path)
            if comp is not None:
                found.append(comp)
            continue
        ext = _extension(entry.name)
        if ext in SUPPORTED_EXTENSIONS:
            found.append(Component(entry.name[: -len(ext)], (entry.path,)))
    return found


def _load_components(components_dir: str) -> dict[str, Component]:
    """Load components from every directory matching the pattern, without recursing."""
    dirs = [os.path.normpath(d) for d in sorted(glob.glob(components_dir)) if os.path.isdir(d)]
    if not dirs:
        raise AppError(f"no component directories found after expanding {components_dir}")
    by_name: dict[str, Component] = {}
    for comp in (c for d in dirs for c in _dir_components(d)):
        old = by_name.get(comp.name)
        if old is not None:
            raise AppError(f"duplicate component {comp.name}, found {old.files[0]} and {comp.files[0]}")
        by_name[comp.name] = comp
    return by_name


def _base_name(file: str) -> str:
    base = os.path.basename(file)
    pos = base.rfind(".")
    return base[:pos] if pos > 0 else base


def _check_processors(kind: str, files: Iterable[str]) -> None:
    seen: dict[str, str] = {}
    for file in files:
        base = _base_name(file)
        if base in seen:
            raise AppError(f"invalid {kind}-processor '{file}', has the same base name as '{seen[base]}'")
        seen[base] = file


class App:
    """A qbec application with its runtime attributes."""

    def __init__(self, inner: QbecApp, root: str, tag: str = "") -> None:
        self._inner = inner
        self._root = root
        self._override_ns = ""
        spec = inner.spec
        if not spec.components_dir:
            spec.components_dir = DEFAULT_COMPONENTS_DIR
        if not spec.params_file:
            spec.params_file = DEFAULT_PARAMS_FILE
        try:
            self._all_components = _load_components(spec.components_dir)
        except (AppError, OSError) as err:
            raise AppError(f"load components: {err}") from err
        self._verify_references()
        self._verify_variables()
        _check_processors("post", self.post_processors())
        self._update_top_level_vars()
        excluded = set(spec.excludes)
        self._default_components = {k: v for k, v in self._all_components.items() if k not in excluded}
        if tag and not _LABEL_VALUE.fullmatch(tag):
            raise AppError(f"invalid tag name '{tag}', must match {_LABEL_VALUE.pattern}")
        self._tag = tag

    @classmethod
    def load(cls, file: str, env_files: Iterable[str] | None = None, tag: str = "") -> App:
        """Load an app from its definition file and any additional environment files."""
        with open(file, "rb") as f:
            content = f.read()
        try:
            inner = QbecApp.from_dict(load_yaml(content))
        except (yaml.YAMLError, ValueError) as err:
            raise AppError(f"unmarshal YAML: {err}") from err
        validator = Validator()
        errors = validator.validate_yaml(content)
        if errors:
            raise AppError(_validation_message(file, errors))
        _load_env_files(inner, env_files or (), validator)
        if not inner.spec.environments:
            raise AppError(f"{file}: no environments defined for app")
        for name, env in inner.spec.environments.items():
            try:
                env.assert_valid()
            except ValueError as err:
                raise AppError(f"verify environment {name}: {err}") from err
        root = os.path.abspath(os.path.dirname(file))
        return cls(inner, root, tag)

    def _component_list_error(self, src: str, comps: Iterable[str]) -> str | None:
        bad = [c for c in comps if c not in self._all_components]
        if bad:
            return f"{src}: bad component reference(s): {','.join(bad)}"
        return None

    def _verify_references(self) -> None:
        spec = self._inner.spec
        errors: list[str] = []

        def check(src: str, comps: Iterable[str]) -> None:
            problem = self._component_list_error(src, comps)
            if problem:
                errors.append(problem)

        check("default exclusions", spec.excludes)
        for name, env in spec.environments.items():
            if name == BASELINE:
                raise AppError("cannot use _ as an environment name since it has a special meaning")
            if not _LABEL_VALUE.fullmatch(name):
                raise AppError(f"invalid environment {name}, must match {_LABEL_VALUE.pattern}")
            check(f"{name} inclusions", env.includes)
            check(f"{name} exclusions", env.excludes)
            included = set(env.includes)
            errors.extend(
                f"env {name}: component {exc} present in both include and exclude sections"
                for exc in env.excludes
                if exc in included
            )
        for tla in spec.vars.top_level:
            check(f"components for TLA {tla.name}", tla.components)
        if errors:
            joined = "\n\t".join(errors)
            raise AppError(f"invalid component references\n:\t{joined}")

    def _verify_variables(self) -> None:
        variables = self._inner.spec.vars
        seen_tla: set[str] = set()
        for v in variables.top_level:
            if v.name in seen_tla:
                raise AppError(f"duplicate top-level variable {v.name}")
            seen_tla.add(v.name)
        seen: set[str] = set()
        for v in [*variables.external, *variables.computed]:
            if v.name in seen:
                raise AppError(f"duplicate external variable {v.name}")
            seen.add(v.name)

    def _update_top_level_vars(self) -> None:
        by_component: dict[str, list[str]] = {}
        for tla in self._inner.spec.vars.top_level:
            for comp in tla.components:
                by_component.setdefault(comp, []).append(tla.name)
        for name, tlas in by_component.items():
            self._all_components[name] = replace(self._all_components[name], top_level_vars=tuple(tlas))

    def _env(self, env: str) -> Environment:
        try:
            return self._inner.spec.environments[env]
        except KeyError:
            raise AppError(f"invalid environment {json.dumps(env)}") from None

    @property
    def name(self) -> str:
        return self._inner.metadata.name

    @property
    def root(self) -> str:
        """Absolute directory holding the app definition."""
        return self._root

    @property
    def tag(self) -> str:
        return self._tag

    @property
    def params_file(self) -> str:
        return self._inner.spec.params_file

    @property
    def lib_paths(self) -> list[str]:
        return self._inner.spec.lib_paths

    @property
    def add_component_label(self) -> bool:
        """True if the component name is added as an object label."""
        return self._inner.spec.add_component_label

    @property
    def cluster_scoped_lists(self) -> bool:
        return self._inner.spec.cluster_scoped_lists

    @property
    def environments(self) -> dict[str, Environment]:
        return self._inner.spec.environments

    @property
    def data_sources(self) -> list[str]:
        return self._inner.spec.data_sources

    @property
    def all_components(self) -> dict[str, Component]:
        return dict(self._all_components)

    @property
    def default_components(self) -> dict[str, Component]:
        return dict(self._default_components)

    def set_override_namespace(self, ns: str) -> None:
        """Force the default namespace for every environment."""
        if ns:
            logger.warning("force default namespace to %s", ns)
        self._override_ns = ns

    def post_processors(self) -> list[str]:
        """Return the post-processor files."""
        pp = self._inner.spec.post_processor
        return pp.split(":") if pp else []

    def server_url(self, env: str) -> str:
        return self._env(env).server

    def context(self, env: str) -> str:
        return self._env(env).context

    def base_properties(self) -> dict[str, Any]:
        props = self._inner.spec.base_properties
        return props if props is not None else {}

    def properties(self, env: str) -> dict[str, Any]:
        """Return the environment's properties merged into the base properties."""
        if env == BASELINE:
            return self.base_properties()
        return deep_merge(self.base_properties(), self._env(env).properties or {})

    def default_namespace(self, env: str) -> str:
        """Return the default namespace, suffixed with the tag when so configured."""
        if self._override_ns:
            ns = self._override_ns
        else:
            env_obj = self._inner.spec.environments.get(env)
            ns = (env_obj.default_namespace if env_obj else "") or "default"
        if self._tag and self._inner.spec.namespace_tag_suffix:
            ns += "-" + self._tag
        return ns

    def components_for_environment(
        self,
        env: str,
        includes: Iterable[str] | None = None,
        excludes: Iterable[str] | None = None,
    ) -> list[Component]:
        """Return the components for an environment, sorted by name, after filters."""
        includes = list(includes or ())
        excludes = list(excludes or ())
        comp_filter = new_component_filter(includes, excludes)
        for comps in (includes, excludes):
            problem = self._component_list_error("specified components", comps)
            if problem:
                raise AppError(problem)
        ret = dict(self._default_components)
        if env != BASELINE:
            env_obj = self._env(env)
            for k in env_obj.excludes:
                if k not in ret:
                    logger.warning("component %s excluded from %s is already excluded by default", k, env)
                ret.pop(k, None)
            for k in env_obj.includes:
                if k in ret:
                    logger.warning("component %s included from %s is already included by default", k, env)
                ret[k] = self._all_components[k]
        if comp_filter.has_filters():
            for k in includes:
                if k not in ret:
                    logger.info(
                        "not including component %s since it is not part of the component list for %s", k, env
                    )
            ret = {k: v for k, v in ret.items() if comp_filter.should_include(v.name)}
        return sorted(ret.values(), key=lambda c: c.name)

    def declared_vars(self) -> dict[str, Any]:
        """Return default values of declared external variables."""
        return {v.name: v.default for v in self._inner.spec.vars.external}

    def declared_top_level_vars(self) -> dict[str, bool]:
        """Return the declared top-level variables, each mapped to True."""
        return {v.name: True for v in self._inner.spec.vars.top_level}

    def declared_computed_vars(self) -> list[ComputedVar]:
        return self._inner.spec.vars.computed

    def data_source_examples(self) -> dict[str, Any]:
        examples = self._inner.spec.data_source_examples
        return examples if examples is not None else {}