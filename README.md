# qbec

A library for working with qbec application definitions: loading and
validating `qbec.yaml` files, resolving the components and properties of each
environment, filtering Kubernetes objects, and ordering them for apply.

## Installation

```
pip install .
```

## Loading an application

```python
from qbec.app import App

app = App.load("qbec.yaml", ["envs/extra.yaml"], "")
for comp in app.components_for_environment("dev", None, None):
    print(comp.name, comp.files)

print(app.server_url("dev"))
print(app.default_namespace("dev"))
print(app.properties("dev"))
```

`App.load` reads the definition file, validates it against the built-in
schema, merges environment definitions from the app's `envFiles` and from the
extra files passed in (local paths, glob patterns or `http://`/`https://`
URLs, each of which must be an `EnvironmentMap` document), checks every
environment and component reference, and loads components from the
components directory (default `components`, glob patterns allowed). Problems
are raised as `qbec.app.AppError`. The environment name `_` stands for the
baseline environment.

A component is a `.jsonnet`, `.yaml` or `.json` file directly in a
components directory, or a subdirectory holding `index.jsonnet` (that file
alone) or `index.yaml` (all `.json` and `.yaml` files in it).

Other members of `App`: the properties `name`, `root`, `tag`, `params_file`,
`lib_paths`, `add_component_label`, `cluster_scoped_lists`, `environments`,
`data_sources`, `all_components` and `default_components`, and the methods
`post_processors()`, `context(env)`, `base_properties()`,
`declared_vars()`, `declared_top_level_vars()`, `declared_computed_vars()`,
`data_source_examples()` and `set_override_namespace(ns)`.
`qbec.app.deep_merge(base, overrides)` is the recursive merge used for
environment properties, and `qbec.app.read_env_file(file)` returns the bytes
of a local or remote environment file.

Warnings (such as an environment overridden by a later file) are sent to the
`qbec.app` logger.

## Document types and validation

`qbec.types` holds dataclasses for the documents (`QbecApp`, `AppSpec`,
`Environment`, `Variables`, `EnvironmentMap` and others), each with a
`from_dict` constructor. `qbec.validator.Validator` checks App and
EnvironmentMap documents:

```python
from qbec.validator import Validator

errors = Validator().validate_yaml(open("qbec.yaml", "rb").read())
for err in errors:
    print(err)
```

## Filtering

```python
from qbec.filter import new_component_filter, new_kind_filter

kinds = new_kind_filter(["deployments"], [])
kinds.should_include("Deployment")   # True: case and plurals are ignored

comps = new_component_filter(["service1"], [])
comps.should_include("service2")     # False
```

A filter takes either includes or excludes, not both; passing both raises
`ValueError`. `qbec.filters.Filters` combines component, kind and namespace
filters and matches them against objects with `match(obj, client,
default_ns)`; when namespace filters are in effect it needs a client with an
`is_namespaced(gvk)` method (the `Namespaced` protocol).

## Objects and ordering

```python
from qbec.k8s import LocalAttrs, new_k8s_local_object
from qbec.objsort import SortConfig, sort_objects

data = {
    "apiVersion": "v1",
    "kind": "ConfigMap",
    "metadata": {"namespace": "ns1", "name": "cm"},
    "data": {"foo": "bar"},
}
obj = new_k8s_local_object(data, LocalAttrs(app="app1", tag="", component="c1", env="dev"))
ordered = sort_objects([obj], SortConfig(namespaced_indicator=lambda gvk: True))
```

Local objects get the qbec application, environment and (when set) tag and
component labels, and the component annotation; the names are in
`qbec.names.QBEC_NAMES`. `qbec.k8s.assert_metadata_valid(data)` raises
`MetadataError` when labels or annotations are not string maps.

Objects are ordered so that namespaces, service accounts, config maps and
secrets come before the workloads that use them, with services and webhook
configurations after; ties are broken by kind, component, namespace and name.

## What this package does not do

It has no command-line tool. It does not evaluate jsonnet components, and it
does not connect to a cluster: applying, diffing or deleting objects is left
to the caller, who supplies namespace information through callables or
clients of their own.

## Running the tests

```
pip install .[test]
pytest
```