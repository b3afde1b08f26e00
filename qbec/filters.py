"""Combined component, kind and namespace filters for objects."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Protocol

from qbec.filter import new_component_filter, new_kind_filter, new_string_filter
from qbec.k8s import GroupVersionKind


class Namespaced(Protocol):
    """Knows whether a Kubernetes type is namespaced or cluster scoped."""

    def is_namespaced(self, gvk: GroupVersionKind) -> bool:
        """Return True if objects of the supplied type are namespaced."""


class Filters:
    """A collection of filters applied to objects."""

    def __init__(
        self,
        component_includes: Iterable[str] | None = None,
        component_excludes: Iterable[str] | None = None,
        kind_includes: Iterable[str] | None = None,
        kind_excludes: Iterable[str] | None = None,
        namespace_includes: Iterable[str] | None = None,
        namespace_excludes: Iterable[str] | None = None,
        include_cluster_objects: bool | None = None,
    ) -> None:
        """Build the filters.

        When include_cluster_objects is None, cluster scoped objects are
        included unless namespace filters are present.
        """
        self._component_includes = list(component_includes or ())
        self._component_excludes = list(component_excludes or ())
        self._kind_filter = new_kind_filter(kind_includes, kind_excludes)
        self._component_filter = new_component_filter(self._component_includes, self._component_excludes)
        self._namespace_filter = new_string_filter("namespaces", namespace_includes, namespace_excludes)
        if include_cluster_objects is None:
            include_cluster_objects = not self._namespace_filter.has_filters()
        self._exclude_cluster_objects = not include_cluster_objects

    @property
    def component_includes(self) -> list[str]:
        """Components requested to be included."""
        return list(self._component_includes)

    @property
    def component_excludes(self) -> list[str]:
        """Components requested to be excluded."""
        return list(self._component_excludes)

    @property
    def exclude_cluster_objects(self) -> bool:
        """True if cluster scoped objects are filtered out."""
        return self._exclude_cluster_objects

    def gvk_filter(self, gvk: GroupVersionKind) -> bool:
        """Return True if objects of the supplied type should be included."""
        return self._kind_filter.should_include(gvk.kind)

    def has_namespace_filters(self) -> bool:
        """Return True if filters based on namespace scope are in effect."""
        return self._namespace_filter.has_filters() or self._exclude_cluster_objects

    def match(self, obj: Any, client: Namespaced | None, default_ns: str) -> bool:
        """Return True if the object passes all filters.

        The client may be None when no namespace filters are in effect.
        """
        if self.has_namespace_filters() and client is None:
            raise ValueError("no namespace metadata when namespace filters present")
        if not self._kind_filter.should_include(obj.kind):
            return False
        if not self._component_filter.should_include(obj.component):
            return False
        if not self.has_namespace_filters():
            return True
        assert client is not None
        try:
            namespaced = client.is_namespaced(obj.group_version_kind())
        except Exception as err:
            raise ValueError(f"namespace filter: {err}") from err
        if not namespaced:
            return not self._exclude_cluster_objects
        return self._namespace_filter.should_include(obj.namespace or default_ns)