import pytest

from hkxconv.container import (
    CONTAINER_SECTION_OFFSET,
    DESCRIPTOR_SECTION_OFFSET,
    SIMPLE_KINDS,
    FileKind,
    decode_container,
    encode_container,
    stream_offsets,
)
from hkxconv.errors import (
    E_CARDINALITY,
    E_MALFORMED,
    E_TYPE_MISMATCH,
    CardinalityMismatchError,
    MalformedContainerError,
    OffsetConvergenceError,
    TypeMismatchError,
    UnknownExtensionError,
)
from hkxconv.packfile import (
    HeaderConfig,
    PackfileCodec,
    StaticCompoundInfo,
    parse_header,
)
from sample_objects import build_roots, compound_descriptor

PLATFORMS = [HeaderConfig.wiiu, HeaderConfig.nx]


@pytest.mark.parametrize("preset", PLATFORMS, ids=["wiiu", "nx"])
@pytest.mark.parametrize("kind", SIMPLE_KINDS, ids=lambda k: k.extension)
def test_simple_kind_roundtrip(kind, preset):
    roots = build_roots(kind)
    header = preset()
    data = encode_container(roots, kind.extension, header)
    assert header.section_offset == kind.section_offset
    assert parse_header(data).config.section_offset == kind.section_offset

    decoded = decode_container(data, kind.extension)
    assert decoded == roots
    assert encode_container(decoded, kind.extension, preset()) == data


@pytest.mark.parametrize("preset", PLATFORMS, ids=["wiiu", "nx"])
def test_compound_offset_fix_point(preset):
    roots = build_roots(FileKind.COMPOUND)
    assert roots[0].offset == 0
    data = encode_container(roots, "hksc", preset())

    offset = roots[0].offset
    assert 0 < offset < len(data)
    # The patched descriptor re-encodes to exactly the length it records.
    header = preset()
    header.section_offset = DESCRIPTOR_SECTION_OFFSET
    first = PackfileCodec().encode(roots[0], header)
    assert len(first) == offset
    assert data[:offset] == first

    assert parse_header(data).config.section_offset == 0
    second = parse_header(data[offset:])
    assert second.config.section_offset == CONTAINER_SECTION_OFFSET

    decoded = decode_container(data, "hksc")
    assert isinstance(decoded[0], StaticCompoundInfo)
    assert decoded[0].offset == offset
    assert len(decoded[0]["m_ActorInfo"]) == 2
    assert len(decoded[0]["m_ShapeInfo"]) == 2
    assert decoded[1] == roots[1]
    assert stream_offsets(decoded) == [0, offset]

    again = encode_container(decoded, "hksc", preset())
    assert len(again) == len(data)
    assert again == data


def test_compound_offset_ignores_stale_value():
    roots = build_roots(FileKind.COMPOUND)
    roots[0].offset = 123456
    data = encode_container(roots, "hksc", HeaderConfig.wiiu())
    assert roots[0].offset != 123456
    assert decode_container(data, "hksc")[0].offset == roots[0].offset


def test_cardinality_mismatch():
    simple = build_roots(FileKind.PHYSICS_RIGID_BODY)
    with pytest.raises(CardinalityMismatchError) as e:
        encode_container(simple, "hksc", HeaderConfig.wiiu())
    assert e.value.code == E_CARDINALITY
    with pytest.raises(CardinalityMismatchError):
        encode_container(
            build_roots(FileKind.COMPOUND), "hkrb", HeaderConfig.wiiu()
        )


def test_variant_position_mismatch():
    container = build_roots(FileKind.PHYSICS_RIGID_BODY)[0]
    with pytest.raises(TypeMismatchError) as e:
        encode_container([container, container], "hksc", HeaderConfig.wiiu())
    assert e.value.code == E_TYPE_MISMATCH
    with pytest.raises(TypeMismatchError):
        encode_container([compound_descriptor()], "hkrb", HeaderConfig.wiiu())


def test_decode_wrong_variant():
    data = encode_container(
        build_roots(FileKind.PHYSICS_RIGID_BODY), "hkrb", HeaderConfig.wiiu()
    )
    with pytest.raises(TypeMismatchError):
        decode_container(data, "hksc")


def test_decode_malformed():
    with pytest.raises(MalformedContainerError) as e:
        decode_container(b"\x00" * 32, "hkrb")
    assert e.value.code == E_MALFORMED
    assert e.value.context["cause"] == "E_PACKFILE"


def test_encode_rejected_value_is_malformed():
    roots = build_roots(FileKind.TRANSFORMED_RIGID_BODY)
    roots[0].named_variants[0]["m_variant"]["m_mass"] = "heavy"
    with pytest.raises(MalformedContainerError):
        encode_container(roots, "hktmrb", HeaderConfig.wiiu())


def test_unknown_extension_both_ways():
    with pytest.raises(UnknownExtensionError):
        decode_container(b"", "hkx")
    with pytest.raises(UnknownExtensionError):
        encode_container(
            build_roots(FileKind.NAV_MESH), "bin", HeaderConfig.wiiu()
        )


class _GrowingCodec:
    """Codec whose output grows on every call."""

    def __init__(self):
        self.calls = 0

    def decode(self, data):  # pragma: no cover - unused
        raise AssertionError

    def encode(self, root, header):
        self.calls += 1
        return b"\x00" * (16 * self.calls)


def test_offset_convergence_failure():
    codec = _GrowingCodec()
    with pytest.raises(OffsetConvergenceError):
        encode_container(
            build_roots(FileKind.COMPOUND), "hksc", HeaderConfig.wiiu(), codec
        )
    assert codec.calls == 2


class _RecordingCodec:
    def __init__(self):
        self.offsets = []

    def decode(self, data):  # pragma: no cover - unused
        raise AssertionError

    def encode(self, root, header):
        self.offsets.append(header.section_offset)
        return b"\xaa" * 32


def test_compound_write_protocol_with_custom_codec():
    codec = _RecordingCodec()
    roots = build_roots(FileKind.COMPOUND)
    data = encode_container(roots, "hksc", HeaderConfig.nx(), codec)
    assert codec.offsets == [0, 0, 16]
    assert roots[0].offset == 32
    assert len(data) == 64


@pytest.mark.parametrize("offset", [0, 4096], ids=["zero", "past-end"])
def test_compound_offset_out_of_range(offset):
    descriptor = compound_descriptor()
    descriptor.offset = offset
    header = HeaderConfig.wiiu()
    header.section_offset = DESCRIPTOR_SECTION_OFFSET
    data = PackfileCodec().encode(descriptor, header)
    assert len(data) < 4096
    with pytest.raises(MalformedContainerError) as e:
        decode_container(data, "hksc")
    assert e.value.context["offset"] == offset
    assert e.value.context["size"] == len(data)


def test_compound_container_truncated():
    data = encode_container(
        build_roots(FileKind.COMPOUND), "hksc", HeaderConfig.nx()
    )
    offset = decode_container(data, "hksc")[0].offset
    with pytest.raises(MalformedContainerError) as e:
        decode_container(data[: offset + 40], "hksc")
    assert e.value.context["position"] == "compound container"


@pytest.mark.parametrize("extension", ["hkrb", "hkrg", "hknm2"])
def test_simple_extension_holding_descriptor(extension):
    data = PackfileCodec().encode(compound_descriptor(), HeaderConfig.wiiu())
    with pytest.raises(TypeMismatchError) as e:
        decode_container(data, extension)
    assert e.value.context == {
        "position": "root container",
        "class": "StaticCompoundInfo",
    }


def test_encode_nul_string_is_malformed():
    roots = build_roots(FileKind.NAV_MESH)
    roots[0].named_variants[0]["m_name"] = "nav\x00mesh"
    with pytest.raises(MalformedContainerError) as e:
        encode_container(roots, "hknm2", HeaderConfig.nx())
    assert e.value.context["cause"] == "E_PACKFILE"
