import json

import pytest

from hkxconv.container import FileKind
from hkxconv.errors import E_TREE_FORMAT, TreeFormatError
from hkxconv.packfile import HeaderConfig, PackfileCodec
from hkxconv.tree import TreeCodec, TreeConventions, text_format_for
from sample_objects import build_roots, physics_data, rigid_body, wrap


def _first_variant(tree):
    return tree[0]["namedVariants"][0]


def test_tree_shape_follows_conventions():
    tree = TreeCodec().to_tree(build_roots(FileKind.TRANSFORMED_RIGID_BODY))
    assert tree[0]["$type"] == "hkRootLevelContainer"
    variant = _first_variant(tree)
    # embedded structs carry no type tag
    assert "$type" not in variant
    assert variant["className"] == "hkpRigidBody"
    body = variant["variant"]
    assert body["$type"] == "hkpRigidBody"
    assert body["motionType"] == "MOTION_FIXED"
    assert body["position"] == {"x": 1.0, "y": -2.5, "z": 3.75, "w": 0.0}
    text = json.dumps(tree)
    assert "Signature" not in text
    assert '"m_' not in text


def test_compact_and_pretty_text():
    roots = build_roots(FileKind.PHYSICS_RIGID_BODY)
    codec = TreeCodec()
    compact = codec.dumps(roots)
    pretty = codec.dumps(roots, pretty=True)
    assert "\n" not in compact
    assert '":' in compact and '": ' not in compact
    assert "\n  " in pretty
    assert json.loads(compact) == json.loads(pretty)
    assert codec.loads(compact) == roots
    assert codec.loads(pretty) == roots


@pytest.mark.parametrize("kind", list(FileKind), ids=lambda k: k.extension)
def test_text_roundtrip_every_kind(kind):
    roots = build_roots(kind)
    codec = TreeCodec()
    assert codec.loads(codec.dumps(roots, pretty=True)) == roots


def test_yaml_roundtrip():
    roots = build_roots(FileKind.RIGID_BODY_ANIMATION)
    codec = TreeCodec()
    text = codec.dumps(roots, pretty=True, fmt="yaml")
    assert "$type: hkaAnimationContainer" in text
    assert codec.loads(text, fmt="yaml") == roots
    flow = codec.dumps(roots, fmt="yaml")
    assert codec.loads(flow, fmt="yaml") == roots


def test_signature_in_input_is_ignored():
    roots = build_roots(FileKind.TRANSFORMED_RIGID_BODY)
    codec = TreeCodec()
    tree = codec.to_tree(roots)
    tree[0]["Signature"] = 12345
    _first_variant(tree)["variant"]["Signature"] = 1
    assert codec.from_tree(tree) == roots


def test_pointer_type_defaults_to_declared_target():
    roots = build_roots(FileKind.PHYSICS_RIGID_BODY)
    codec = TreeCodec()
    tree = codec.to_tree(roots)
    system = _first_variant(tree)["variant"]["systems"][0]
    del system["$type"]
    for body in system["rigidBodies"]:
        del body["$type"]
    assert codec.from_tree(tree) == roots


def test_untyped_pointer_needs_type():
    tree = TreeCodec().to_tree(build_roots(FileKind.NAV_MESH))
    del _first_variant(tree)["variant"]["$type"]
    with pytest.raises(TreeFormatError) as e:
        TreeCodec().from_tree(tree)
    assert "$type" in e.value.message


def test_enum_accepts_numbers():
    tree = TreeCodec().to_tree(build_roots(FileKind.TRANSFORMED_RIGID_BODY))
    _first_variant(tree)["variant"]["motionType"] = 4
    roots = TreeCodec().from_tree(tree)
    assert roots[0].named_variants[0]["m_variant"]["m_motionType"] == 4


def test_unknown_enum_value_written_as_number():
    body = rigid_body()
    body["m_motionType"] = 200
    tree = TreeCodec().to_tree([wrap("hkpRigidBody", body)])
    assert _first_variant(tree)["variant"]["motionType"] == 200


@pytest.mark.parametrize(
    "field, value, fragment",
    [
        ("motionType", "MOTION_WARP", "is not a"),
        ("collisionFilterInfo", -1, "outside"),
        ("collisionFilterInfo", True, "expected integer"),
        ("mass", "heavy", "expected number"),
        ("name", 5, "expected string"),
        ("position", [1, 2], "expected object"),
        ("bogus", 1, "has no field"),
    ],
)
def test_invalid_fields(field, value, fragment):
    tree = TreeCodec().to_tree(build_roots(FileKind.TRANSFORMED_RIGID_BODY))
    _first_variant(tree)["variant"][field] = value
    with pytest.raises(TreeFormatError) as e:
        TreeCodec().from_tree(tree)
    assert e.value.code == E_TREE_FORMAT
    assert fragment in e.value.message
    assert e.value.context["path"].startswith("[0].namedVariants[0].variant")


def test_unknown_class_rejected():
    tree = TreeCodec().to_tree(build_roots(FileKind.TRANSFORMED_RIGID_BODY))
    _first_variant(tree)["variant"]["$type"] = "hkpNotAClass"
    with pytest.raises(TreeFormatError):
        TreeCodec().from_tree(tree)


def test_embedded_struct_type_must_match():
    tree = TreeCodec().to_tree(build_roots(FileKind.TRANSFORMED_RIGID_BODY))
    _first_variant(tree)["variant"]["position"]["$type"] = "hkAabb"
    with pytest.raises(TreeFormatError):
        TreeCodec().from_tree(tree)


@pytest.mark.parametrize("text", ["{", "{}", "[1]", "[[]]"])
def test_malformed_documents(text):
    with pytest.raises(TreeFormatError):
        TreeCodec().loads(text)


def test_reference_cycle_survives_text():
    data = physics_data()
    data["m_worldCinfo"] = data
    root = wrap("hkpPhysicsData", data)
    codec = TreeCodec()
    tree = codec.to_tree([root])
    variant = _first_variant(tree)["variant"]
    assert variant["$id"] == 1
    assert variant["worldCinfo"] == {"$ref": 1}

    (back,) = codec.from_tree(tree)
    rebuilt = back.named_variants[0]["m_variant"]
    assert rebuilt["m_worldCinfo"] is rebuilt
    config = HeaderConfig.wiiu()
    packfile = PackfileCodec()
    assert packfile.encode(back, config) == packfile.encode(root, config)


def test_shared_object_written_once():
    body = rigid_body()
    system = physics_data()["m_systems"][0]
    system["m_rigidBodies"] = [body, body]
    codec = TreeCodec()
    tree = codec.to_tree([wrap("hkpPhysicsSystem", system)])
    bodies = _first_variant(tree)["variant"]["rigidBodies"]
    assert bodies[0]["$type"] == "hkpRigidBody"
    assert bodies[0]["$id"] == 1
    assert bodies[1] == {"$ref": 1}

    (root,) = codec.from_tree(tree)
    rebuilt = root.named_variants[0]["m_variant"]["m_rigidBodies"]
    assert rebuilt[0] is rebuilt[1]


def test_shared_animation_binding():
    roots = build_roots(FileKind.RIGID_BODY_ANIMATION)
    codec = TreeCodec()
    text = codec.dumps(roots)
    assert text.count('"$ref":') == 1
    container = codec.loads(text)[0].named_variants[0]["m_variant"]
    binding = container["m_bindings"][0]
    assert binding["m_animation"] is container["m_animations"][0]


@pytest.mark.parametrize(
    "mutate, fragment",
    [
        (lambda bodies: bodies.reverse(), "unknown $ref"),
        (lambda bodies: bodies[1].update({"$type": "hkpRigidBody"}), "other"),
        (lambda bodies: bodies[1].update({"$ref": 7}), "unknown $ref"),
        (lambda bodies: bodies[1].update({"$ref": [1]}), "unknown $ref"),
        (lambda bodies: bodies[0].update({"$id": 1.5}), "$id must be"),
    ],
    ids=["forward", "extra-fields", "dangling", "unhashable", "bad-id"],
)
def test_invalid_references(mutate, fragment):
    body = rigid_body()
    system = physics_data()["m_systems"][0]
    system["m_rigidBodies"] = [body, body]
    tree = TreeCodec().to_tree([wrap("hkpPhysicsSystem", system)])
    mutate(_first_variant(tree)["variant"]["rigidBodies"])
    with pytest.raises(TreeFormatError) as e:
        TreeCodec().from_tree(tree)
    assert fragment in e.value.message


def test_duplicate_id_rejected():
    tree = TreeCodec().to_tree(build_roots(FileKind.PHYSICS_RIGID_BODY))
    system = _first_variant(tree)["variant"]["systems"][0]
    for body in system["rigidBodies"]:
        body["$id"] = "body"
    with pytest.raises(TreeFormatError) as e:
        TreeCodec().from_tree(tree)
    assert "duplicate $id" in e.value.message


def test_ids_do_not_apply_to_embedded_structs():
    tree = TreeCodec().to_tree(build_roots(FileKind.TRANSFORMED_RIGID_BODY))
    _first_variant(tree)["variant"]["position"]["$id"] = 1
    with pytest.raises(TreeFormatError) as e:
        TreeCodec().from_tree(tree)
    assert "has no field '$id'" in e.value.message


def test_nul_in_string_rejected():
    tree = TreeCodec().to_tree(build_roots(FileKind.TRANSFORMED_RIGID_BODY))
    _first_variant(tree)["variant"]["name"] = "a\x00b"
    with pytest.raises(TreeFormatError) as e:
        TreeCodec().from_tree(tree)
    assert "NUL" in e.value.message
    assert e.value.context["path"] == "[0].namedVariants[0].variant.name"


def test_custom_conventions():
    conv = TreeConventions(prefix="", suppressed=frozenset(), type_key="@class")
    codec = TreeCodec(conv)
    tree = codec.to_tree(build_roots(FileKind.TRANSFORMED_RIGID_BODY))
    assert tree[0]["@class"] == "hkRootLevelContainer"
    assert "m_namedVariants" in tree[0]
    assert "Signature" in tree[0]


def test_text_format_for():
    assert text_format_for("a.json") == "json"
    assert text_format_for("a.YAML") == "yaml"
    assert text_format_for("a.yml") == "yaml"
    assert text_format_for("a.hkrb") == "json"
