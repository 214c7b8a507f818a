import pytest

from hkxconv.container import (
    SIMPLE_KINDS,
    FileKind,
    classify,
    extension_to_kind,
    guess_extension,
    kind_to_extension,
    kind_to_offset,
)
from hkxconv.errors import E_UNKNOWN_EXTENSION, UnknownExtensionError
from sample_objects import (
    build_roots,
    compound_descriptor,
    root_container,
    rigid_body,
    wrap,
)


@pytest.mark.parametrize("kind", SIMPLE_KINDS)
def test_classify_simple_kinds(kind):
    assert classify(build_roots(kind)) is kind
    assert guess_extension(build_roots(kind)) == kind.extension


def test_classify_two_roots_is_compound():
    assert classify(build_roots(FileKind.COMPOUND)) is FileKind.COMPOUND
    # Any pair counts, whatever the variants.
    pair = [wrap("hkpRigidBody", rigid_body())] * 2
    assert classify(pair) is FileKind.COMPOUND


def test_classify_undecidable_inputs_return_none():
    assert classify([]) is None
    assert classify(build_roots(FileKind.NAV_MESH) * 3) is None
    assert classify([compound_descriptor()]) is None
    assert classify([root_container()]) is None
    assert classify([wrap("hkaSkeleton", rigid_body())]) is None
    assert guess_extension([root_container()]) is None


def test_classify_variant_without_class_name():
    from sample_objects import named_variant

    assert classify([root_container(named_variant("x", None, None))]) is None


@pytest.mark.parametrize("kind", list(FileKind))
def test_extension_bijection(kind):
    assert extension_to_kind(kind_to_extension(kind)) is kind


def test_extension_lookup_normalizes():
    assert extension_to_kind(".HKRB") is FileKind.PHYSICS_RIGID_BODY
    assert extension_to_kind("Hksc") is FileKind.COMPOUND


def test_unknown_extension():
    with pytest.raises(UnknownExtensionError) as e:
        extension_to_kind("hkx")
    assert e.value.code == E_UNKNOWN_EXTENSION
    assert e.value.context == {"extension": "hkx"}


def test_section_offsets():
    offsets = {k.extension: kind_to_offset(k) for k in SIMPLE_KINDS}
    assert offsets == {
        "hkcl": 0,
        "hkrg": 0,
        "hkrb": 0,
        "hktmrb": 16,
        "hknm2": 16,
    }
    with pytest.raises(UnknownExtensionError):
        kind_to_offset(FileKind.COMPOUND)


def test_root_counts():
    assert FileKind.COMPOUND.root_count == 2
    assert all(k.root_count == 1 for k in SIMPLE_KINDS)
