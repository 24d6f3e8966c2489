import dataclasses

import pytest

from payloadproc.kubemeta import GKNN


def test_str_with_group():
    ref = GKNN(namespace="default", name="pool", group="inference.networking.k8s.io", kind="InferencePool")
    assert str(ref) == "InferencePool.inference.networking.k8s.io default/pool"


def test_str_core_group():
    ref = GKNN(namespace="ns", name="p", group="", kind="Pod")
    assert str(ref) == "Pod ns/p"


def test_namespaced_name_part():
    ref = GKNN(namespace="team-a", name="model-x", group="g", kind="K")
    assert str(ref).rsplit(" ", 1)[1].split("/") == ["team-a", "model-x"]


def test_equal_refs_collapse_in_set():
    first = GKNN("ns", "a", "g", "K")
    same = GKNN("ns", "a", "g", "K")
    other = GKNN("ns2", "a", "g", "K")
    assert len({first, same, other}) == 2


def test_is_immutable():
    ref = GKNN("ns", "a", "g", "K")
    with pytest.raises(dataclasses.FrozenInstanceError):
        ref.name = "b"
    assert ref.name == "a"
    assert str(ref) == "K.g ns/a"