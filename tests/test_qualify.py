import pytest

from container_trust_plugin.errors import AmbiguousQualificationError, QualificationError
from container_trust_plugin.qualify import (
    AMBIGUOUS_MESSAGE,
    is_fully_qualified,
    is_valid_hostname,
    qualify,
    qualify_for_registries,
    split_host,
)
from container_trust_plugin.reference import parse

from tests.helpers import DIGEST_A


@pytest.mark.parametrize(
    "hostname, valid",
    [
        ("registry.example.com", True),
        ("myregistry:5000", True),
        ("localhost", True),
        ("library", False),
        ("", False),
        ("a/b.com", False),
    ],
)
def test_is_valid_hostname(hostname, valid):
    assert is_valid_hostname(hostname) is valid


def test_split_host():
    assert split_host(parse("registry.example.com/foo/bar:v1")) == ("registry.example.com", "foo/bar")
    assert split_host(parse("localhost/foo")) == ("localhost", "foo")
    assert split_host(parse("library/foo")) == ("", "library/foo")
    assert split_host(parse("localhost")) == ("", "localhost")


def test_is_fully_qualified():
    assert is_fully_qualified(parse("quay.io/team/app"))
    assert not is_fully_qualified(parse("team/app"))
    assert not is_fully_qualified(parse("busybox"))


def test_qualify_prepends_host_and_keeps_digest():
    ref = qualify(parse(f"team/app@{DIGEST_A}"), "registry.example.com")
    assert str(ref) == f"registry.example.com/team/app@{DIGEST_A}"


def test_qualify_is_idempotent_for_qualified_references():
    ref = parse("quay.io/team/app:v1")
    assert qualify(ref, "registry.example.com") is ref
    assert qualify_for_registries(ref, ["r1.example.com", "r2.example.com"]) is ref


def test_qualify_rejects_invalid_host():
    with pytest.raises(QualificationError, match='Invalid hostname "registry"'):
        qualify(parse("busybox"), "registry")


def test_multiple_registries_are_ambiguous():
    with pytest.raises(AmbiguousQualificationError) as exc:
        qualify_for_registries(parse("library/foo:latest"), ["r1.example.com", "r2.example.com"])
    assert str(exc.value) == AMBIGUOUS_MESSAGE


def test_single_non_default_registry_rewrites_then_defaults_tag():
    ref = qualify_for_registries(parse("rhel/rhel7"), ["redhat.io"])
    assert str(ref) == "redhat.io/rhel/rhel7"
    assert str(ref.with_default_tag()) == "redhat.io/rhel/rhel7:latest"


@pytest.mark.parametrize("registries", [[], ["docker.io"], [""]])
def test_default_public_registry_leaves_reference_alone(registries):
    ref = parse("library/foo:latest")
    assert qualify_for_registries(ref, registries) is ref
