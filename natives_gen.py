"""Lua declaration generator for Cfx.re natives.

Generates LuaLS-annotated declaration files from the natives.json catalogs
published by the Cfx.re platform. Produces one `<namespace>.lua` file per
native namespace under the output directory.

Usage:
    python natives_gen.py --output-dir natives
    python natives_gen.py --source natives.json --source natives_cfx.json
    python natives_gen.py --list-namespaces
"""

import argparse
import json
import re
import sys
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import requests

DEFAULT_SOURCES: tuple[str, ...] = (
    "https://runtime.fivem.net/doc/natives.json",
    "https://runtime.fivem.net/doc/natives_cfx.json",
)
DEFAULT_OUTPUT_DIR = Path("natives")
DEFAULT_DOC_URL = "https://docs.fivem.net/natives/?_"
DEFAULT_APISET = "client"
DEFAULT_TIMEOUT = 30.0


# ===--- CLI config contracts ---=== #


@dataclass(frozen=True)
class GenerateConfig:
    sources: tuple[str, ...]
    output_dir: Path
    doc_url: str
    keep_pointer: frozenset[str]
    timeout: float


@dataclass(frozen=True)
class DiscoveryConfig:
    sources: tuple[str, ...]
    timeout: float


VALID_ERROR_CODES = {
    "PATH_NOT_FOUND",
    "INVALID_SOURCE",
    "INVALID_DOC_URL",
    "INVALID_NATIVE_NAME",
    "INVALID_TIMEOUT",
    "CONFLICT_GENERATE_DISCOVERY",
}
_NATIVE_NAME_RE = re.compile(r"^[A-Za-z0-9_]+$")


class ConfigError(Exception):
    def __init__(self, code: str, message: str, suggestion: str | None = None):
        if code not in VALID_ERROR_CODES:
            raise ValueError(f"Unknown config error code: {code}")
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion


def is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def validate_path_exists(path: Path, flag: str, suggestion: str | None = None) -> Path:
    if path.exists():
        return path
    raise ConfigError(
        "PATH_NOT_FOUND",
        f"Path for {flag} does not exist: {path}",
        suggestion or "Provide an existing path for this flag.",
    )


def validate_source(source: str) -> str:
    if not source:
        raise ConfigError(
            "INVALID_SOURCE",
            "Empty --source value.",
            "Pass a natives.json path or an http(s) URL.",
        )
    if is_url(source):
        return source
    if "://" in source:
        raise ConfigError(
            "INVALID_SOURCE",
            f"Unsupported source scheme: {source}",
            "Only local paths and http(s) URLs are supported.",
        )
    validate_path_exists(
        Path(source),
        "--source",
        "Download the catalog first:\n"
        f"  curl -o natives.json {DEFAULT_SOURCES[0]}\n"
        "Or pass the URL directly: --source https://...",
    )
    return source


def validate_doc_url(doc_url: str) -> str:
    if is_url(doc_url):
        return doc_url
    raise ConfigError(
        "INVALID_DOC_URL",
        f"Invalid --doc-url: {doc_url!r}",
        f"Use an http(s) prefix the native hash is appended to, e.g. {DEFAULT_DOC_URL}",
    )


def canonical_native_name(name: str) -> str:
    """Return the Lua identifier for a native given by raw or Lua name.

    `DELETE_ENTITY`, `DeleteEntity` and `deleteEntity` all resolve to
    `DeleteEntity`.
    """
    if not _NATIVE_NAME_RE.match(name):
        raise ConfigError(
            "INVALID_NATIVE_NAME",
            f"Invalid native name: {name!r}",
            "Use the catalog name (DELETE_ENTITY) or the Lua name (DeleteEntity).",
        )
    if "_" in name or name.isupper():
        identifier = normalize_name(name, None)
        assert identifier is not None
        return identifier
    return name[0].upper() + name[1:]


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate Lua declarations for Cfx.re natives"
    )

    parser.add_argument("--source", action="append", default=None)
    parser.add_argument("--output-dir", type=Path, default=DEFAULT_OUTPUT_DIR)
    parser.add_argument("--doc-url", type=str, default=None)
    parser.add_argument("--keep-pointer", action="append", default=None)
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT)
    parser.add_argument("--list-namespaces", action="store_true", default=False)

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = build_argument_parser()
    return parser.parse_args(argv)


def validate_config(args: argparse.Namespace) -> GenerateConfig | DiscoveryConfig:
    raw_sources = tuple(args.source) if args.source else DEFAULT_SOURCES
    sources = tuple(validate_source(source) for source in raw_sources)

    if args.timeout <= 0:
        raise ConfigError(
            "INVALID_TIMEOUT",
            f"--timeout must be positive, got {args.timeout}",
            "Pass the fetch timeout in seconds, e.g. --timeout 30.",
        )

    if args.list_namespaces:
        if args.doc_url is not None or args.keep_pointer:
            raise ConfigError(
                "CONFLICT_GENERATE_DISCOVERY",
                "Generate flags cannot be combined with --list-namespaces.",
                "Drop --doc-url and --keep-pointer, or drop --list-namespaces.",
            )
        return DiscoveryConfig(
            sources=sources,
            timeout=args.timeout,
        )

    doc_url = DEFAULT_DOC_URL
    if args.doc_url is not None:
        doc_url = validate_doc_url(args.doc_url)
    keep_pointer = frozenset(
        canonical_native_name(name) for name in (args.keep_pointer or ())
    )
    return GenerateConfig(
        sources=sources,
        output_dir=args.output_dir,
        doc_url=doc_url,
        keep_pointer=keep_pointer,
        timeout=args.timeout,
    )


def build_config(argv: list[str] | None = None) -> GenerateConfig | DiscoveryConfig:
    return validate_config(parse_args(argv))


# ===--- Constants ---=== #

NATIVE_NUMBER_TYPES = frozenset(
    {
        "animscene",
        "blip",
        "cam",
        "camera",
        "cargenerator",
        "coverpoint",
        "decisionmaker",
        "entity",
        "fireid",
        "float",
        "group",
        "hash",
        "int",
        "interior",
        "itemset",
        "long",
        "object_1",
        "ped",
        "perschar",
        "pickup",
        "player",
        "popzone",
        "prompt",
        "propset",
        "scrhandle",
        "sphere",
        "tasksequence",
        "texture",
        "texturedict",
        "train",
        "uint",
        "vehicle",
        "volume",
        "weapon",
    }
)

NATIVE_TO_LUA: dict[str, str] = {
    "vector3": "vector3",
    "string": "string",
    "void": "void",
    "char": "string",
    "bool": "boolean",
    "object": "table",
    "func": "function",
    **{name: "number" for name in NATIVE_NUMBER_TYPES},
}

LUA_ANY = "any"
LUA_VOID = "void"

LUA_RESERVED = frozenset(
    {
        "and",
        "break",
        "do",
        "else",
        "elseif",
        "end",
        "false",
        "for",
        "function",
        "goto",
        "if",
        "in",
        "local",
        "nil",
        "not",
        "or",
        "repeat",
        "return",
        "then",
        "true",
        "until",
        "while",
    }
)

# Natives that release or mutate a handle through its pointer. Their pointer
# params stay call-site arguments.
NON_RETURN_POINTER_NATIVES = frozenset(
    {
        "ClearSequenceTask",
        "DeleteEntity",
        "DeleteMissionTrain",
        "DeleteObject",
        "DeletePed",
        "DeleteRope",
        "DeleteVehicle",
        "RemoveBlip",
        "RemovePedElegantly",
        "SetEntityAsNoLongerNeeded",
        "SetMissionTrainAsNoLongerNeeded",
        "SetObjectAsNoLongerNeeded",
        "SetPedAsNoLongerNeeded",
        "SetVehicleAsNoLongerNeeded",
    }
)

AMBIGUOUS_OBJECT_TYPE = "Object"
DISAMBIGUATED_OBJECT_TYPE = "object_1"
CHAR_TYPES = frozenset({"char"})

PLACEHOLDER_DESCRIPTION = "This native does not have an official description."
LUA_META_PREAMBLE = "---@meta\n\n"


# ===--- Data classes ---=== #


@dataclass(frozen=True)
class NativeParam:
    name: str
    type: str


@dataclass(frozen=True)
class NativeDefinition:
    name: str | None
    params: tuple[NativeParam, ...]
    results: str = LUA_VOID
    description: str = ""
    hash: str = ""
    namespace: str = ""
    apiset: str | None = None
    aliases: tuple[str, ...] = ()


@dataclass(frozen=True)
class ScalarType:
    name: str


@dataclass(frozen=True)
class TypeSequence:
    names: tuple[str, ...]


@dataclass(frozen=True)
class PromotedSignature:
    return_types: tuple[str, ...]
    params: tuple[NativeParam, ...]


@dataclass(frozen=True)
class CanonicalParam:
    name: str
    canonical_type: str


@dataclass(frozen=True)
class CanonicalSignature:
    identifier: str
    return_types: ScalarType | TypeSequence
    parameters: tuple[CanonicalParam, ...]


# ===--- Type mapping ---=== #


def convert_native_type(raw: str) -> str:
    return NATIVE_TO_LUA.get(raw.lower(), LUA_ANY)


def map_native_type(value: ScalarType | TypeSequence) -> ScalarType | TypeSequence:
    """Map raw native type tokens to Lua types, keeping the variant.

    Sequences keep their order and length; `void` entries survive here and
    are only dropped when the return annotation is rendered.
    """
    if isinstance(value, ScalarType):
        return ScalarType(convert_native_type(value.name))
    return TypeSequence(tuple(convert_native_type(name) for name in value.names))


# ===--- Identifiers ---=== #

_HEX_PREFIX_RE = re.compile(r"^(_?)0x")
_UNDERSCORE_LETTER_RE = re.compile(r"_([a-z])")
_FIRST_LETTER_RE = re.compile(r"^([a-z])")


def normalize_name(declared_name: str | None, fallback_key: str | None) -> str | None:
    raw = declared_name or fallback_key
    if not raw:
        return None
    name = _HEX_PREFIX_RE.sub(r"\1n_0x", raw.lower(), count=1)
    name = _UNDERSCORE_LETTER_RE.sub(lambda m: m.group(1).upper(), name)
    return _FIRST_LETTER_RE.sub(lambda m: m.group(1).upper(), name)


def sanitize_param_name(name: str) -> str:
    if name in LUA_RESERVED:
        return "_" + name
    return name


# ===--- Out-parameter promotion ---=== #

_CONST_PREFIX_RE = re.compile(r"^const\s+")


def disambiguate_type(raw: str) -> str:
    return raw.replace(AMBIGUOUS_OBJECT_TYPE, DISAMBIGUATED_OBJECT_TYPE)


def strip_pointer(raw: str) -> str | None:
    """Return `raw` without one trailing `*` and a leading `const`.

    Returns None when `raw` is not pointer-qualified.
    """
    if not raw.endswith("*"):
        return None
    return _CONST_PREFIX_RE.sub("", raw[:-1].strip(), count=1)


class OutParamPromoter:
    """Turns pointer out-params of a native into extra return values.

    Natives listed in `non_return_pointer_natives` (by Lua identifier) and
    `char*` params keep their pointer params as call-site arguments with the
    pointer stripped.
    """

    def __init__(
        self, non_return_pointer_natives: Iterable[str] = NON_RETURN_POINTER_NATIVES
    ):
        self.non_return_pointer_natives = frozenset(non_return_pointer_natives)

    def promote(self, native: NativeDefinition, identifier: str) -> PromotedSignature:
        declared = disambiguate_type(native.results or LUA_VOID)
        # Pointer results are returned by value.
        declared = strip_pointer(declared) or declared
        return_types = [declared]
        params: list[NativeParam] = []
        keep_pointers = identifier in self.non_return_pointer_natives
        promoted = False

        for param in native.params:
            param_type = disambiguate_type(param.type)
            stripped = strip_pointer(param_type)
            if stripped is None:
                params.append(NativeParam(param.name, param_type))
                continue
            if keep_pointers or stripped.lower() in CHAR_TYPES:
                params.append(NativeParam(param.name, stripped))
                continue
            if not promoted and declared == LUA_VOID:
                return_types.clear()
            return_types.append(stripped)
            promoted = True

        return PromotedSignature(tuple(return_types), tuple(params))


# ===--- Aliases ---=== #


def resolve_aliases(
    canonical_name: str, raw_aliases: Sequence[str] | None = None
) -> str | None:
    if not raw_aliases:
        return None
    bindings: list[str] = []
    for alias in raw_aliases:
        # Bare hash aliases are already reachable through the N_0x name.
        if alias.startswith("0"):
            continue
        alias_name = normalize_name(alias, None)
        if alias_name is None or alias_name == canonical_name:
            continue
        bindings.append(f"---@deprecated\n{alias_name} = {canonical_name}\n\n")
    return "".join(bindings) or None


# ===--- Declaration assembly ---=== #


def format_description(native: NativeDefinition, doc_url: str = DEFAULT_DOC_URL) -> str:
    """Return the documentation header and description lines of a declaration.

    Output format:
        ---**`<namespace>` `<apiset>`**
        ---[Native Documentation](<doc_url><hash>)
        ---<description line 1>
        ---<description line 2>

    The two header lines end with two spaces (markdown hard break). A native
    without a description gets PLACEHOLDER_DESCRIPTION instead.

    Args:
        native: Normalized native definition.
        doc_url: Documentation URL prefix the native hash is appended to.

    Returns:
        Description block without a trailing newline.
    """
    apiset = native.apiset or DEFAULT_APISET
    lines = [
        f"---**`{native.namespace}` `{apiset}`**  ",
        f"---[Native Documentation]({doc_url}{native.hash})  ",
    ]
    description = native.description.strip()
    if description:
        lines.extend(f"---{line}" for line in description.splitlines())
    else:
        lines.append(f"---{PLACEHOLDER_DESCRIPTION}")
    return "\n".join(lines)


def format_param_docs(params: Sequence[CanonicalParam]) -> str:
    return "\n".join(f"---@param {p.name} {p.canonical_type}" for p in params)


def format_function_signature(identifier: str, params: Sequence[CanonicalParam]) -> str:
    return f"function {identifier}({', '.join(p.name for p in params)}) end"


def format_return_annotation(return_types: ScalarType | TypeSequence) -> str | None:
    """Return the `---@return` line, or None for natives returning nothing.

    Residual `void` entries are dropped before joining, so a promoted
    `[void, number]` still renders as a single `---@return number`.
    """
    if isinstance(return_types, ScalarType):
        names: tuple[str, ...] = (return_types.name,)
    else:
        names = return_types.names
    values = [name for name in names if name != LUA_VOID]
    if not values:
        return None
    return f"---@return {', '.join(values)}"


def assemble(
    description: str,
    param_docs: str,
    return_types: ScalarType | TypeSequence,
    function_signature: str,
    alias_block: str | None = None,
) -> str:
    """Assemble one complete declaration block.

    Output order: description block, param docs, return annotation, function
    line, blank separator, optional alias block. Empty param docs and void
    returns contribute no lines.

    Args:
        description: Block from format_description.
        param_docs: Block from format_param_docs (may be empty).
        return_types: Lua return types of the native.
        function_signature: Line from format_function_signature.
        alias_block: Block from resolve_aliases, or None.

    Returns:
        Declaration text ending with a blank line.
    """
    lines = [description]
    if param_docs:
        lines.append(param_docs)
    return_line = format_return_annotation(return_types)
    if return_line is not None:
        lines.append(return_line)
    lines.append(function_signature)
    text = "\n".join(lines) + "\n\n"
    if alias_block:
        text += alias_block
    return text


# ===--- Catalog driver ---=== #


class NativeDataError(Exception):
    """A catalog record that cannot be turned into a declaration."""

    def __init__(self, namespace: str, native_key: str | None, reason: str):
        location = f"{namespace}/{native_key}" if native_key is not None else namespace
        super().__init__(f"{location}: {reason}")
        self.namespace = namespace
        self.native_key = native_key
        self.reason = reason


@dataclass(frozen=True)
class NativeFailure:
    namespace: str
    native_key: str | None
    reason: str


@dataclass(frozen=True)
class NamespaceWriteFailure:
    namespace: str
    cause: str


@dataclass(frozen=True)
class FileWriteResult:
    """Result of appending one namespace blob to its file.

    Attributes:
        filename: Filename written, e.g. "CFX.lua".
        path: Absolute path of the written file.
        line_count: Newline characters in the file after the append.
        byte_count: File size in bytes after the append.
    """

    filename: str
    path: Path
    line_count: int
    byte_count: int


@dataclass
class NamespaceOutput:
    namespace: str
    declarations: dict[str, str] = field(default_factory=dict)
    failures: list[NativeFailure] = field(default_factory=list)

    def render(self) -> str:
        # Ordinal order keeps output stable regardless of catalog order.
        return "".join(self.declarations[key] for key in sorted(self.declarations))


@dataclass(frozen=True)
class NamespaceReport:
    namespace: str
    native_count: int
    file: FileWriteResult | None


@dataclass(frozen=True)
class CatalogRunResult:
    """Outcome of one full catalog run.

    Attributes:
        namespaces: One report per namespace that produced output, in
            catalog order.
        native_failures: Natives (or whole namespaces) skipped as malformed.
        write_failures: Namespaces whose output could not be written.
    """

    namespaces: tuple[NamespaceReport, ...]
    native_failures: tuple[NativeFailure, ...]
    write_failures: tuple[NamespaceWriteFailure, ...]

    @property
    def total_natives(self) -> int:
        return sum(report.native_count for report in self.namespaces)


NamespaceWriter = Callable[[str, str], FileWriteResult]


def require_identifier(
    namespace: str, native_key: str | None, declared_name: str | None
) -> str:
    identifier = normalize_name(declared_name, native_key)
    if identifier is None:
        raise NativeDataError(namespace, native_key, "native has no name or key")
    return identifier


def normalize_native(namespace: str, native_key: str, raw: object) -> NativeDefinition:
    """Build a NativeDefinition from one raw catalog record.

    Legacy field names are folded into the current ones first:
    `comment` -> `description`, `return_type` -> `results`,
    `old_names` -> `aliases`. Parameters without a name get the upstream
    positional name `p<index>`.

    Raises:
        NativeDataError: The record is not an object, has no `params` list,
            a parameter carries no type, the name is not a string, or the
            aliases are not a list of names.
    """
    if not isinstance(raw, Mapping):
        raise NativeDataError(namespace, native_key, "native record is not an object")
    raw_params = raw.get("params")
    if not isinstance(raw_params, list):
        raise NativeDataError(namespace, native_key, "native has no params list")

    params: list[NativeParam] = []
    for index, raw_param in enumerate(raw_params):
        if not isinstance(raw_param, Mapping) or not isinstance(
            raw_param.get("type"), str
        ):
            raise NativeDataError(
                namespace, native_key, f"parameter {index} has no type"
            )
        param_name = str(raw_param.get("name") or f"p{index}")
        params.append(NativeParam(param_name, raw_param["type"]))

    name = raw.get("name")
    if name is not None and not isinstance(name, str):
        raise NativeDataError(namespace, native_key, "native name is not a string")

    aliases = raw.get("aliases") or raw.get("old_names") or []
    if not isinstance(aliases, list) or not all(
        isinstance(alias, str) for alias in aliases
    ):
        raise NativeDataError(namespace, native_key, "aliases is not a list of names")

    results = raw.get("results", raw.get("return_type")) or LUA_VOID
    description = raw.get("description", raw.get("comment")) or ""

    return NativeDefinition(
        name=name or None,
        params=tuple(params),
        results=str(results),
        description=str(description),
        hash=str(raw.get("hash") or native_key),
        namespace=namespace,
        apiset=raw.get("apiset") or None,
        aliases=tuple(aliases),
    )


class CatalogDriver:
    """Runs the catalog through promotion, mapping and assembly per namespace."""

    def __init__(
        self,
        promoter: OutParamPromoter | None = None,
        doc_url: str = DEFAULT_DOC_URL,
    ):
        self.promoter = promoter or OutParamPromoter()
        self.doc_url = doc_url

    def build_signature(
        self, native: NativeDefinition, native_key: str | None
    ) -> CanonicalSignature:
        identifier = require_identifier(native.namespace, native_key, native.name)
        promoted = self.promoter.promote(native, identifier)
        if len(promoted.return_types) == 1:
            raw_returns: ScalarType | TypeSequence = ScalarType(
                promoted.return_types[0]
            )
        else:
            raw_returns = TypeSequence(promoted.return_types)
        parameters = tuple(
            CanonicalParam(sanitize_param_name(p.name), convert_native_type(p.type))
            for p in promoted.params
        )
        return CanonicalSignature(identifier, map_native_type(raw_returns), parameters)

    def build_declaration(
        self, native: NativeDefinition, native_key: str | None
    ) -> tuple[str, str]:
        signature = self.build_signature(native, native_key)
        text = assemble(
            format_description(native, self.doc_url),
            format_param_docs(signature.parameters),
            signature.return_types,
            format_function_signature(signature.identifier, signature.parameters),
            resolve_aliases(signature.identifier, native.aliases),
        )
        return signature.identifier, text

    def build_namespace(self, namespace: str, entries: object) -> NamespaceOutput:
        if not isinstance(entries, Mapping):
            raise NativeDataError(namespace, None, "namespace is not an object")

        output = NamespaceOutput(namespace)
        declared_by: dict[str, str] = {}
        for native_key, raw in entries.items():
            try:
                native = normalize_native(namespace, native_key, raw)
                identifier, text = self.build_declaration(native, native_key)
            except NativeDataError as err:
                output.failures.append(
                    NativeFailure(err.namespace, err.native_key, err.reason)
                )
                continue
            if identifier in declared_by:
                first_key = declared_by[identifier]
                reason = f"identifier {identifier} already declared by {first_key}"
                output.failures.append(NativeFailure(namespace, native_key, reason))
                continue
            declared_by[identifier] = native_key
            output.declarations[identifier] = text
        return output

    def run(
        self, catalog: Mapping[str, object], write: NamespaceWriter
    ) -> CatalogRunResult:
        """Generate and hand off every namespace of `catalog` in catalog order.

        Args:
            catalog: Namespace name -> native key -> raw native record.
            write: Collaborator appending a rendered namespace blob to storage.

        Returns:
            CatalogRunResult with per-namespace reports and every skipped
            native or failed write. A failed write never stops later
            namespaces.
        """
        reports: list[NamespaceReport] = []
        native_failures: list[NativeFailure] = []
        write_failures: list[NamespaceWriteFailure] = []

        for namespace, entries in catalog.items():
            try:
                output = self.build_namespace(namespace, entries)
            except NativeDataError as err:
                print(f"  Skipped namespace {namespace}: {err.reason}")
                native_failures.append(NativeFailure(namespace, None, err.reason))
                continue

            for failure in output.failures:
                print(
                    f"  Skipped {failure.namespace}/{failure.native_key}: "
                    f"{failure.reason}"
                )
            native_failures.extend(output.failures)

            try:
                file_result = write(namespace, output.render())
            except (OSError, ValueError) as err:
                print(f"  Failed to write {namespace}: {err}")
                write_failures.append(NamespaceWriteFailure(namespace, str(err)))
                continue

            count = len(output.declarations)
            print(f"  {namespace}: {count} natives")
            reports.append(NamespaceReport(namespace, count, file_result))

        return CatalogRunResult(
            namespaces=tuple(reports),
            native_failures=tuple(native_failures),
            write_failures=tuple(write_failures),
        )


# ===--- Namespace file writer ---=== #

_NAMESPACE_FILE_RE = re.compile(r"^[A-Za-z0-9_\-]+$")


class NamespaceFileWriter:
    """Writes one `<namespace>.lua` file per namespace under `output_dir`."""

    def __init__(self, output_dir: Path):
        self.output_dir = Path(output_dir)

    def prepare(self) -> None:
        """Create the output directory and drop `.lua` files of a previous run."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        for stale in self.output_dir.glob("*.lua"):
            stale.unlink()

    def namespace_path(self, namespace: str) -> Path:
        if not _NAMESPACE_FILE_RE.match(namespace):
            raise ValueError(f"namespace {namespace!r} is not a valid file name")
        return self.output_dir / f"{namespace}.lua"

    def ensure_namespace_file(self, namespace: str) -> Path:
        path = self.namespace_path(namespace)
        if not path.exists():
            self.output_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(LUA_META_PREAMBLE, encoding="utf-8")
        return path

    def write_namespace(self, namespace: str, blob: str) -> FileWriteResult:
        """Append a rendered namespace blob to its file.

        Raises:
            ValueError: The namespace cannot be used as a file name.
            OSError: Propagated directly if the filesystem write fails.
        """
        path = self.ensure_namespace_file(namespace)
        with path.open("a", encoding="utf-8", newline="\n") as handle:
            handle.write(blob)
        resolved = path.resolve()
        file_bytes = resolved.read_bytes()
        return FileWriteResult(
            filename=path.name,
            path=resolved,
            line_count=file_bytes.count(b"\n"),
            byte_count=len(file_bytes),
        )


# ===--- Catalog sources ---=== #


class CatalogError(Exception):
    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source
        self.message = message


def parse_catalog(text: str, source: str) -> dict[str, object]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as err:
        raise CatalogError(source, f"invalid JSON: {err}") from err
    if not isinstance(data, dict):
        raise CatalogError(source, "catalog top level must be an object of namespaces")
    return data


def load_catalog_file(path: Path) -> dict[str, object]:
    try:
        text = Path(path).read_text(encoding="utf-8-sig")
    except OSError as err:
        raise CatalogError(str(path), f"cannot read catalog: {err}") from err
    return parse_catalog(text, str(path))


def fetch_catalog(
    url: str, timeout: float = DEFAULT_TIMEOUT, session: requests.Session | None = None
) -> dict[str, object]:
    http = session or requests
    try:
        response = http.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as err:
        raise CatalogError(url, f"download failed: {err}") from err
    return parse_catalog(response.text, url)


def load_catalog(
    source: str,
    timeout: float = DEFAULT_TIMEOUT,
    session: requests.Session | None = None,
) -> dict[str, object]:
    if is_url(source):
        return fetch_catalog(source, timeout, session)
    return load_catalog_file(Path(source))


def merge_catalogs(catalogs: Iterable[Mapping[str, object]]) -> dict[str, object]:
    """Merge catalogs namespace by namespace.

    Namespaces keep first-seen order. A native key present in several
    catalogs takes the record of the last one.
    """
    merged: dict[str, object] = {}
    for catalog in catalogs:
        for namespace, entries in catalog.items():
            existing = merged.get(namespace)
            if isinstance(existing, dict) and isinstance(entries, Mapping):
                existing.update(entries)
            elif isinstance(entries, Mapping):
                merged[namespace] = dict(entries)
            else:
                merged[namespace] = entries
    return merged


def load_sources(
    sources: Sequence[str],
    timeout: float = DEFAULT_TIMEOUT,
    session: requests.Session | None = None,
) -> dict[str, object]:
    catalogs = []
    for source in sources:
        print(f"Loading: {source}")
        catalogs.append(load_catalog(source, timeout, session))
    return merge_catalogs(catalogs)


# ===--- Discovery ---=== #


def format_namespaces_table(catalog: Mapping[str, object]) -> str:
    """Return the --list-namespaces output as a string.

    Output format:

        3 namespaces in catalog:

          CFX        412 natives
          ENTITY     301 natives
          PLAYER     249 natives

    Namespaces appear in catalog order. Non-object namespaces count as 0.
    """
    lines = [f"{len(catalog)} namespaces in catalog:", ""]
    name_width = max((len(name) for name in catalog), default=0)
    for namespace, entries in catalog.items():
        count = len(entries) if isinstance(entries, Mapping) else 0
        lines.append(f"  {namespace.ljust(name_width)}  {count:>6} natives")
    lines.append("")
    return "\n".join(lines)


def run_discovery(config: DiscoveryConfig) -> None:
    catalog = load_sources(config.sources, config.timeout)
    print(format_namespaces_table(catalog), end="")


# ===--- Generation ---=== #


def run_generate(
    config: GenerateConfig, session: requests.Session | None = None
) -> CatalogRunResult:
    """Execute the complete generation pipeline for a GenerateConfig.

    Stages: load and merge sources -> prepare output dir -> build and write
    every namespace -> print summary.

    Raises:
        CatalogError: A source could not be read, fetched or parsed.
        OSError: The output directory could not be prepared.
    """
    catalog = load_sources(config.sources, config.timeout, session)
    print(f"  Catalog: {len(catalog)} namespaces")

    promoter = OutParamPromoter(NON_RETURN_POINTER_NATIVES | config.keep_pointer)
    driver = CatalogDriver(promoter, doc_url=config.doc_url)
    writer = NamespaceFileWriter(config.output_dir)
    writer.prepare()

    result = driver.run(catalog, writer.write_namespace)
    print_generation_summary(build_generation_summary(config, result))
    return result


# ===--- Summary report ---=== #


@dataclass(frozen=True)
class GenerationSummary:
    """Data for the post-generation console report.

    Attributes:
        source_label: Comma-separated sources the catalog was loaded from.
        output_dir: Output directory as string.
        namespaces: Per-namespace reports in catalog order.
        native_failures: Skipped natives.
        write_failures: Namespaces that could not be written.
    """

    source_label: str
    output_dir: str
    namespaces: tuple[NamespaceReport, ...]
    native_failures: tuple[NativeFailure, ...]
    write_failures: tuple[NamespaceWriteFailure, ...]

    @property
    def total_natives(self) -> int:
        return sum(report.native_count for report in self.namespaces)


def build_generation_summary(
    config: GenerateConfig, result: CatalogRunResult
) -> GenerationSummary:
    return GenerationSummary(
        source_label=", ".join(config.sources),
        output_dir=str(config.output_dir),
        namespaces=result.namespaces,
        native_failures=result.native_failures,
        write_failures=result.write_failures,
    )


def format_generation_summary(summary: GenerationSummary) -> str:
    """Render a GenerationSummary to the console report string.

    The skipped and failed sections appear only when non-empty. Counts use
    thousands separators. Returns a string with exactly one trailing newline.
    """
    lines: list[str] = ["Lua natives generated:", ""]
    lines.append(f"  Sources:    {summary.source_label}")
    lines.append(f"  Output:     {summary.output_dir}")
    lines.append("")
    lines.append("  Namespaces:")
    name_width = max((len(r.namespace) for r in summary.namespaces), default=0)
    for report in summary.namespaces:
        lines.append(
            f"    {report.namespace.ljust(name_width)}  "
            f"{report.native_count:>6,} natives"
        )

    if summary.native_failures:
        lines.append("")
        lines.append(f"  Skipped natives ({len(summary.native_failures)}):")
        for failure in summary.native_failures:
            location = failure.namespace
            if failure.native_key is not None:
                location += f"/{failure.native_key}"
            lines.append(f"    {location}: {failure.reason}")

    if summary.write_failures:
        lines.append("")
        lines.append(f"  Failed writes ({len(summary.write_failures)}):")
        for failure in summary.write_failures:
            lines.append(f"    {failure.namespace}: {failure.cause}")

    lines.append("")
    lines.append(
        f"  Total: {summary.total_natives:,} natives across "
        f"{len(summary.namespaces)} files"
    )
    lines.append("")
    return "\n".join(lines)


def print_generation_summary(summary: GenerationSummary) -> None:
    print(format_generation_summary(summary), end="")


# ===--- Main generation ---=== #


def main(argv: list[str] | None = None) -> None:
    try:
        config = build_config(argv)
    except ConfigError as err:
        print(f"Config error [{err.code}]: {err.message}")
        if err.suggestion:
            print(f"Hint: {err.suggestion}")
        raise SystemExit(1) from err

    try:
        if isinstance(config, DiscoveryConfig):
            run_discovery(config)
            return
        result = run_generate(config)
    except CatalogError as err:
        print(f"Error: {err}", file=sys.stderr)
        raise SystemExit(1) from err
    except OSError as err:
        print(f"Error: {err}", file=sys.stderr)
        raise SystemExit(1) from err

    if result.write_failures:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
