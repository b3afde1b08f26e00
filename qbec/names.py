"""Label, annotation and variable names used by qbec."""

from __future__ import annotations

from dataclasses import dataclass, field

QBEC_METADATA_PREFIX = "qbec.io/"
"""Leading path for all metadata set by qbec."""

QBEC_DIRECTIVES_NAMESPACE = "directives.qbec.io/"
"""Leading path for all directives set by the user for qbec use."""


@dataclass(frozen=True)
class Directives:
    """Names of the directives that qbec understands."""

    apply_order: str = QBEC_DIRECTIVES_NAMESPACE + "apply-order"
    delete_policy: str = QBEC_DIRECTIVES_NAMESPACE + "delete-policy"
    update_policy: str = QBEC_DIRECTIVES_NAMESPACE + "update-policy"
    wait_policy: str = QBEC_DIRECTIVES_NAMESPACE + "wait-policy"


@dataclass(frozen=True)
class Names:
    """The set of label, annotation and variable names used by qbec."""

    application_label: str = QBEC_METADATA_PREFIX + "application"
    tag_label: str = QBEC_METADATA_PREFIX + "tag"
    component_annotation: str = QBEC_METADATA_PREFIX + "component"
    component_label: str = QBEC_METADATA_PREFIX + "component"
    environment_label: str = QBEC_METADATA_PREFIX + "environment"
    pristine_annotation: str = QBEC_METADATA_PREFIX + "last-applied"
    env_var_name: str = QBEC_METADATA_PREFIX + "env"
    env_props_var_name: str = QBEC_METADATA_PREFIX + "envProperties"
    tag_var_name: str = QBEC_METADATA_PREFIX + "tag"
    default_ns_var_name: str = QBEC_METADATA_PREFIX + "defaultNs"
    clean_mode_var_name: str = QBEC_METADATA_PREFIX + "cleanMode"
    directives: Directives = field(default_factory=Directives)


QBEC_NAMES = Names()