"""Closed registry of the Havok classes this codec can read and write.

Only classes declared here can appear in a packfile or in a JSON tree; an
unknown class name is an error at both boundaries.
"""

from __future__ import annotations

from typing import Dict, Iterable

from ..errors import packfile_error
from .schema import HkClass, HkEnum, Member, MemberKind as K

__all__ = [
    "CLASSES",
    "ENUMS",
    "get_class",
    "get_enum",
    "is_registered",
]


def _m(name: str, kind: K) -> Member:
    return Member(name, kind)


def _ptr(name: str, target: str | None = None) -> Member:
    return Member(name, K.POINTER, target=target)


def _struct(name: str, target: str) -> Member:
    return Member(name, K.STRUCT, target=target)


def _enum(name: str, enum: str, storage: K = K.U8) -> Member:
    return Member(name, K.ENUM, target=enum, storage=storage)


def _array(name: str, element: Member) -> Member:
    return Member(name, K.ARRAY, element=element)


def _of(kind: K, target: str | None = None) -> Member:
    return Member("", kind, target=target)


_ENUM_DECLS = [
    HkEnum(
        "hkpMotion::MotionType",
        (
            ("MOTION_INVALID", 0),
            ("MOTION_DYNAMIC", 1),
            ("MOTION_SPHERE_INERTIA", 2),
            ("MOTION_BOX_INERTIA", 3),
            ("MOTION_KEYFRAMED", 4),
            ("MOTION_FIXED", 5),
            ("MOTION_THIN_BOX_INERTIA", 6),
            ("MOTION_CHARACTER", 7),
        ),
    ),
    HkEnum(
        "hkaAnimation::AnimationType",
        (
            ("HK_UNKNOWN_ANIMATION", 0),
            ("HK_INTERLEAVED_ANIMATION", 1),
            ("HK_MIRRORED_ANIMATION", 2),
            ("HK_SPLINE_COMPRESSED_ANIMATION", 3),
            ("HK_QUANTIZED_COMPRESSED_ANIMATION", 4),
            ("HK_PREDICTIVE_COMPRESSED_ANIMATION", 5),
            ("HK_REFERENCE_POSE_ANIMATION", 6),
        ),
    ),
    HkEnum(
        "hkaAnimationBinding::BlendHint",
        (("NORMAL", 0), ("ADDITIVE_DEPRECATED", 1), ("ADDITIVE", 2)),
    ),
]

_CLASS_DECLS = [
    # -- math -----------------------------------------------------------------
    HkClass(
        "hkVector4",
        0x00000001,
        tuple(_m(f"m_{axis}", K.REAL) for axis in "xyzw"),
        is_struct=True,
        alignment=16,
    ),
    HkClass(
        "hkQsTransform",
        0x00000002,
        (
            _struct("m_translation", "hkVector4"),
            _struct("m_rotation", "hkVector4"),
            _struct("m_scale", "hkVector4"),
        ),
        is_struct=True,
    ),
    HkClass(
        "hkAabb",
        0x4A948B16,
        (_struct("m_min", "hkVector4"), _struct("m_max", "hkVector4")),
        is_struct=True,
    ),
    # -- containers -----------------------------------------------------------
    HkClass(
        "hkRootLevelContainerNamedVariant",
        0xB103A2CD,
        (
            _m("m_name", K.STRING),
            _m("m_className", K.STRING),
            _ptr("m_variant"),
        ),
        is_struct=True,
    ),
    HkClass(
        "hkRootLevelContainer",
        0x2772C11E,
        (
            _array(
                "m_namedVariants",
                _of(K.STRUCT, "hkRootLevelContainerNamedVariant"),
            ),
        ),
    ),
    # -- static compound (hksc) -----------------------------------------------
    HkClass(
        "ActorInfo",
        0xF8C9E5A3,
        (
            _m("m_HashId", K.U32),
            _m("m_SRTHash", K.S32),
            _m("m_ShapeInfoStart", K.S32),
            _m("m_ShapeInfoEnd", K.S32),
        ),
        is_struct=True,
    ),
    HkClass(
        "ShapeInfo",
        0x2F0D8E21,
        (
            _m("m_ActorInfoIndex", K.S32),
            _m("m_InstanceId", K.S32),
            _m("m_BodyGroup", K.S8),
            _m("m_BodyLayerType", K.U8),
        ),
        is_struct=True,
    ),
    HkClass(
        "StaticCompoundInfo",
        0x5115A202,
        (
            _m("m_Offset", K.U32),
            _array("m_ActorInfo", _of(K.STRUCT, "ActorInfo")),
            _array("m_ShapeInfo", _of(K.STRUCT, "ShapeInfo")),
        ),
    ),
    # -- physics (hkrb / hktmrb) ----------------------------------------------
    HkClass(
        "hkpRigidBody",
        0x75F8D805,
        (
            _m("m_name", K.STRING),
            _m("m_userData", K.U64),
            _m("m_collisionFilterInfo", K.U32),
            _enum("m_motionType", "hkpMotion::MotionType"),
            _m("m_mass", K.REAL),
            _m("m_friction", K.REAL),
            _m("m_restitution", K.REAL),
            _struct("m_position", "hkVector4"),
            _struct("m_rotation", "hkVector4"),
        ),
    ),
    HkClass(
        "hkpPhysicsSystem",
        0xFF724C17,
        (
            _array("m_rigidBodies", _of(K.POINTER, "hkpRigidBody")),
            _m("m_name", K.STRING),
            _m("m_userData", K.U64),
            _m("m_active", K.BOOL),
        ),
    ),
    HkClass(
        "hkpPhysicsData",
        0xC2A461E4,
        (
            _ptr("m_worldCinfo"),
            _array("m_systems", _of(K.POINTER, "hkpPhysicsSystem")),
        ),
    ),
    # -- cloth (hkcl) ---------------------------------------------------------
    HkClass(
        "hclCollidable",
        0x1B5A1E7D,
        (
            _m("m_name", K.STRING),
            _m("m_pinchDetectionEnabled", K.BOOL),
            _m("m_pinchDetectionPriority", K.S8),
            _m("m_pinchDetectionRadius", K.REAL),
        ),
    ),
    HkClass(
        "hclClothData",
        0x4C0E1D9B,
        (
            _m("m_name", K.STRING),
            _array("m_particleMasses", _of(K.REAL)),
            _array("m_fixedParticles", _of(K.U16)),
            _m("m_transferMotion", K.BOOL),
        ),
    ),
    HkClass(
        "hclClothContainer",
        0xE2B81D2D,
        (
            _array("m_collidables", _of(K.POINTER, "hclCollidable")),
            _array("m_clothDatas", _of(K.POINTER, "hclClothData")),
        ),
    ),
    # -- animation (hkrg) -----------------------------------------------------
    HkClass(
        "hkaBone",
        0x35912F8A,
        (_m("m_name", K.STRING), _m("m_lockTranslation", K.BOOL)),
        is_struct=True,
    ),
    HkClass(
        "hkaSkeleton",
        0xFEC1CEDB,
        (
            _m("m_name", K.STRING),
            _array("m_parentIndices", _of(K.S16)),
            _array("m_bones", _of(K.STRUCT, "hkaBone")),
            _array("m_referencePose", _of(K.STRUCT, "hkQsTransform")),
            _array("m_referenceFloats", _of(K.REAL)),
            _array("m_floatSlots", _of(K.STRING)),
        ),
    ),
    HkClass(
        "hkaAnimation",
        0xA6FA7E88,
        (
            _enum("m_type", "hkaAnimation::AnimationType", K.S32),
            _m("m_duration", K.REAL),
            _m("m_numberOfTransformTracks", K.S32),
            _m("m_numberOfFloatTracks", K.S32),
            _array("m_data", _of(K.U8)),
        ),
    ),
    HkClass(
        "hkaAnimationBinding",
        0x66EAC971,
        (
            _m("m_originalSkeletonName", K.STRING),
            _ptr("m_animation", "hkaAnimation"),
            _array("m_transformTrackToBoneIndices", _of(K.S16)),
            _enum("m_blendHint", "hkaAnimationBinding::BlendHint", K.S8),
        ),
    ),
    HkClass(
        "hkaAnimationContainer",
        0x26859F4C,
        (
            _array("m_skeletons", _of(K.POINTER, "hkaSkeleton")),
            _array("m_animations", _of(K.POINTER, "hkaAnimation")),
            _array("m_bindings", _of(K.POINTER, "hkaAnimationBinding")),
        ),
    ),
    # -- navigation (hknm2) ---------------------------------------------------
    HkClass(
        "hkaiNavMeshFace",
        0x35BF4A5F,
        (
            _m("m_startEdgeIndex", K.S32),
            _m("m_startUserEdgeIndex", K.S32),
            _m("m_numEdges", K.S16),
            _m("m_numUserEdges", K.S16),
            _m("m_clusterIndex", K.S16),
            _m("m_padding", K.U16),
        ),
        is_struct=True,
    ),
    HkClass(
        "hkaiNavMeshEdge",
        0x0B7F4FC2,
        (
            _m("m_a", K.S32),
            _m("m_b", K.S32),
            _m("m_oppositeEdge", K.U32),
            _m("m_oppositeFace", K.U32),
            _m("m_flags", K.U8),
            _m("m_paddingByte", K.U8),
            _m("m_userEdgeCost", K.U16),
        ),
        is_struct=True,
    ),
    HkClass(
        "hkaiNavMesh",
        0x2B7F3CE5,
        (
            _array("m_faces", _of(K.STRUCT, "hkaiNavMeshFace")),
            _array("m_edges", _of(K.STRUCT, "hkaiNavMeshEdge")),
            _array("m_vertices", _of(K.STRUCT, "hkVector4")),
            _m("m_faceDataStriding", K.S32),
            _m("m_edgeDataStriding", K.S32),
            _m("m_flags", K.U8),
            _struct("m_aabb", "hkAabb"),
            _m("m_erosionRadius", K.REAL),
            _m("m_userData", K.U64),
        ),
    ),
]


def _index(decls: Iterable) -> Dict[str, object]:
    out: Dict[str, object] = {}
    for decl in decls:
        if decl.name in out:  # pragma: no cover - registry is static
            raise RuntimeError(f"Duplicate registry entry {decl.name}")
        out[decl.name] = decl
    return out


CLASSES: Dict[str, HkClass] = _index(_CLASS_DECLS)  # type: ignore[assignment]
ENUMS: Dict[str, HkEnum] = _index(_ENUM_DECLS)  # type: ignore[assignment]


def is_registered(class_name: str) -> bool:
    return class_name in CLASSES


def get_class(class_name: str) -> HkClass:
    try:
        return CLASSES[class_name]
    except KeyError:
        raise packfile_error(
            f"Unknown class {class_name!r}", {"class": class_name}
        ) from None


def get_enum(enum_name: str) -> HkEnum:
    try:
        return ENUMS[enum_name]
    except KeyError:
        raise packfile_error(
            f"Unknown enum {enum_name!r}", {"enum": enum_name}
        ) from None
