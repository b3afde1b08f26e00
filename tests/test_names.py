import dataclasses

import pytest

from qbec.names import (
    QBEC_DIRECTIVES_NAMESPACE,
    QBEC_METADATA_PREFIX,
    QBEC_NAMES,
    Directives,
    Names,
)


def test_metadata_names_share_prefix():
    names = Names()
    for f in dataclasses.fields(names):
        if f.name == "directives":
            continue
        assert getattr(names, f.name).startswith(QBEC_METADATA_PREFIX)


def test_directives_share_namespace():
    directives = Directives()
    for f in dataclasses.fields(directives):
        assert getattr(directives, f.name).startswith(QBEC_DIRECTIVES_NAMESPACE)


def test_pinned_values():
    names = Names()
    assert names.application_label == "qbec.io/application"
    assert names.directives.apply_order == "directives.qbec.io/apply-order"


def test_component_label_and_annotation_agree():
    names = Names()
    assert names.component_label == names.component_annotation
    assert names.tag_label == names.tag_var_name


def test_names_are_frozen():
    names = Names()
    with pytest.raises(dataclasses.FrozenInstanceError):
        names.application_label = "x"  # type: ignore[misc]
    assert names.application_label == "qbec.io/application"


def test_default_instance_equals_new_instance():
    assert Names() == QBEC_NAMES
    assert Names().directives == Directives()