import pytest

import natives_gen as gen


@pytest.mark.parametrize(
    ("declared", "key", "expected"),
    [
        ("GET_ENTITY_COORDS", "0x3FEF770D40960D5A", "GetEntityCoords"),
        ("SET_PED_INTO_VEHICLE", None, "SetPedIntoVehicle"),
        (None, "0x4B1E4F2A", "N_0x4b1e4f2a"),
        ("", "0x4B1E4F2A", "N_0x4b1e4f2a"),
        ("_0x1A2B3C4D", None, "N_0x1a2b3c4d"),
        ("_GET_ENTITY_POSITION", None, "GetEntityPosition"),
        ("GET_PED_BONE_COORDS_2", None, "GetPedBoneCoords_2"),
        ("wait", None, "Wait"),
    ],
)
def test_normalize_name_camel_cases_and_prefixes_hex(
    declared: str | None, key: str | None, expected: str
) -> None:
    assert gen.normalize_name(declared, key) == expected


def test_normalize_name_prefers_declared_name_over_key() -> None:
    assert gen.normalize_name("DELETE_ENTITY", "0xAE3CBE5BF394C9C9") == "DeleteEntity"


@pytest.mark.parametrize(("declared", "key"), [(None, None), ("", ""), (None, "")])
def test_normalize_name_returns_none_without_any_name(
    declared: str | None, key: str | None
) -> None:
    assert gen.normalize_name(declared, key) is None


def test_normalize_name_only_rewrites_leading_hex_marker() -> None:
    assert gen.normalize_name("SET_0X_MODE", None) == "Set_0xMode"


def test_require_identifier_raises_native_data_error_for_missing_name() -> None:
    with pytest.raises(gen.NativeDataError) as exc_info:
        gen.require_identifier("ENTITY", None, None)

    assert exc_info.value.namespace == "ENTITY"
    assert exc_info.value.native_key is None
    assert "no name" in exc_info.value.reason


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("end", "_end"),
        ("repeat", "_repeat"),
        ("local", "_local"),
        ("function", "_function"),
        ("entity", "entity"),
        ("End", "End"),
        ("ending", "ending"),
    ],
)
def test_sanitize_param_name_prefixes_lua_keywords_only(
    name: str, expected: str
) -> None:
    assert gen.sanitize_param_name(name) == expected
