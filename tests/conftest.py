import argparse
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

GENERATOR_DIR = Path(__file__).resolve().parent.parent
if str(GENERATOR_DIR) not in sys.path:
    sys.path.insert(0, str(GENERATOR_DIR))

import natives_gen as gen  # noqa: E402

FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture
def fixture_catalog_path() -> Path:
    return FIXTURES_DIR / "natives_minimal.json"


@pytest.fixture
def catalog_file(tmp_path: Path) -> Path:
    path = tmp_path / "natives.json"
    path.write_text('{"CFX": {}}\n', encoding="utf-8")
    return path


@pytest.fixture
def make_args(catalog_file: Path, tmp_path: Path) -> Callable[..., argparse.Namespace]:
    def _make_args(**overrides: object) -> argparse.Namespace:
        base_args: dict[str, object] = {
            "source": [str(catalog_file)],
            "output_dir": tmp_path / "out",
            "doc_url": None,
            "keep_pointer": None,
            "timeout": gen.DEFAULT_TIMEOUT,
            "list_namespaces": False,
        }
        base_args.update(overrides)
        return argparse.Namespace(**base_args)

    return _make_args


@pytest.fixture
def make_native() -> Callable[..., gen.NativeDefinition]:
    def _make_native(
        name: str | None = "GET_ENTITY_COORDS",
        params: list[tuple[str, str]] | None = None,
        *,
        results: str = "void",
        description: str = "",
        hash: str = "0x3FEF770D40960D5A",
        namespace: str = "ENTITY",
        apiset: str | None = None,
        aliases: tuple[str, ...] = (),
    ) -> gen.NativeDefinition:
        return gen.NativeDefinition(
            name=name,
            params=tuple(gen.NativeParam(n, t) for n, t in (params or [])),
            results=results,
            description=description,
            hash=hash,
            namespace=namespace,
            apiset=apiset,
            aliases=aliases,
        )

    return _make_native


@pytest.fixture
def make_raw() -> Callable[..., dict[str, object]]:
    def _make_raw(
        name: str | None,
        params: list[tuple[str, str]] | None = None,
        **fields: object,
    ) -> dict[str, object]:
        raw: dict[str, object] = {
            "params": [{"name": n, "type": t} for n, t in (params or [])],
            "results": "void",
        }
        if name is not None:
            raw["name"] = name
        raw.update(fields)
        return raw

    return _make_raw
