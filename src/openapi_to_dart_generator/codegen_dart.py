"""Render resolved entities and header classes as Dart source files.

Models and header classes use ``freezed``; enums use ``json_annotation``.
Every file is produced as text from a list of lines, so rendering is pure and
the writer decides where the files go.
"""

from __future__ import annotations

import textwrap
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Optional

from .json_types import JSONValue
from .model_types import (
    DYNAMIC_TYPE,
    Entity,
    EnumEntity,
    HeaderClassDefinition,
    ModelEntity,
    PropertyInfo,
    ResolutionResult,
)
from .naming import to_class_name, to_file_name, to_header_property_name, to_property_name
from .type_mapper import (
    TYPED_DATA_IMPORT,
    dart_imports_for_type,
    inner_type,
    is_primitive_type,
    with_nullable,
)

MODELS_DIR = "models"
HEADERS_DIR = "headers"
INDEX_FILE = "index.dart"
REPORT_FILE = "header_report.md"
FILE_SUFFIX = ".f.dart"

_GENERATED_BANNER = "// GENERATED CODE - DO NOT MODIFY BY HAND"
_IGNORE_LINE = (
    "// ignore_for_file: unused_element, unused_import, invalid_annotation_target, "
    "constant_identifier_names"
)
_FREEZED_IMPORT = "import 'package:freezed_annotation/freezed_annotation.dart';"
_JSON_ANNOTATION_IMPORT = "import 'package:json_annotation/json_annotation.dart';"
_DOC_WIDTH = 80
_INDENT = "  "


@dataclass(frozen=True)
class GeneratedFile:
    """One rendered output file, with a path relative to the output root."""

    path: str
    content: str


def entity_file_name(name: str) -> str:
    """Return ``<snake_name>.f.dart`` for a class name."""
    return f"{to_file_name(name)}{FILE_SUFFIX}"


def doc_comment(text: Optional[str], *, indent: str = "") -> list[str]:
    """Convert a description into ``///`` lines wrapped at 80 columns.

    Source line breaks are kept; blank source lines become bare ``///`` lines.
    """
    if not text or not text.strip():
        return []
    width = max(_DOC_WIDTH - len(indent) - 4, 20)
    lines: list[str] = []
    for raw_line in text.strip().splitlines():
        stripped = raw_line.rstrip()
        if not stripped:
            lines.append(f"{indent}///")
            continue
        wrapped = textwrap.wrap(stripped, width=width, break_long_words=False, break_on_hyphens=False)
        lines.extend(f"{indent}/// {segment}" for segment in wrapped or [stripped])
    return lines


def dart_string(value: str) -> str:
    """Quote ``value`` as a Dart string literal; keys containing ``$`` use raw strings."""
    if "$" in value and "'" not in value:
        return f"r'{value}'"
    escaped = value.replace("\\", "\\\\").replace("'", "\\'").replace("$", "\\$")
    return f"'{escaped}'"


def dart_literal(value: JSONValue) -> str:
    """Render an enum wire value as a Dart literal."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if value is None:
        return "null"
    return dart_string(str(value))


def _header() -> list[str]:
    return [_GENERATED_BANNER, _IGNORE_LINE, ""]


def _import_block(sdk: Iterable[str], package: Iterable[str], local: Iterable[str]) -> list[str]:
    lines: list[str] = []
    for group in (sorted(set(sdk)), sorted(set(package)), sorted(set(local))):
        if group:
            lines.extend(group)
            lines.append("")
    return lines


def _model_imports(names: Iterable[str], *, own_name: str) -> tuple[list[str], list[str]]:
    sdk: list[str] = []
    local: list[str] = []
    for name in names:
        if name == TYPED_DATA_IMPORT:
            sdk.append(f"import '{TYPED_DATA_IMPORT}';")
        elif name != own_name:
            local.append(f"import '{entity_file_name(name)}';")
    return sdk, local


def _parameter_lines(
    *,
    name: str,
    dart_type: str,
    required: bool,
    json_key: Optional[str],
    description: Optional[str],
) -> list[str]:
    indent = _INDENT * 2
    lines = doc_comment(description, indent=indent)
    parts: list[str] = []
    if json_key is not None:
        parts.append(f"@JsonKey(name: {dart_string(json_key)})")
    if required and dart_type != DYNAMIC_TYPE:
        parts.append("required")
    parts.append(f"{dart_type} {name},")
    lines.append(indent + " ".join(parts))
    return lines


def _property_lines(prop: PropertyInfo, *, skip: Optional[str] = None) -> list[str]:
    if skip is not None and (prop.original_name or prop.name) == skip:
        return []
    return _parameter_lines(
        name=prop.name,
        dart_type=prop.dart_type,
        required=prop.required,
        json_key=prop.original_name,
        description=prop.description,
    )


def render_model(entity: ModelEntity) -> str:
    """Render a freezed data class for a model entity."""
    file_name = entity_file_name(entity.name)
    stem = file_name[: -len(".dart")]
    sdk, local = _model_imports(entity.imports, own_name=entity.name)

    lines = _header()
    lines.extend(_import_block(sdk, [_FREEZED_IMPORT], local))
    lines.extend([f"part '{stem}.freezed.dart';", f"part '{stem}.g.dart';", ""])
    lines.extend(doc_comment(entity.description))
    lines.append("@freezed")
    lines.append(f"class {entity.name} with _${entity.name} {{")
    if entity.properties:
        lines.append(f"{_INDENT}const factory {entity.name}({{")
        for prop in entity.properties:
            lines.extend(_property_lines(prop))
        lines.append(f"{_INDENT}}}) = _{entity.name};")
    else:
        lines.append(f"{_INDENT}const factory {entity.name}() = _{entity.name};")
    lines.append("")
    lines.append(f"{_INDENT}factory {entity.name}.fromJson(Map<String, dynamic> json) =>")
    lines.append(f"{_INDENT * 3}_${entity.name}FromJson(json);")
    lines.append("}")
    return "\n".join(lines) + "\n"


def render_union(entity: ModelEntity, members: Mapping[str, Entity]) -> str:
    """Render a freezed sealed union keyed on the discriminator property.

    Each variant constructor carries the fields of its member model, except
    the discriminator property itself which freezed writes from the union key.
    """
    union = entity.union
    if union is None:
        return render_model(entity)

    file_name = entity_file_name(entity.name)
    stem = file_name[: -len(".dart")]

    import_names: list[str] = list(entity.imports)
    for member in union.members:
        member_entity = members.get(member.member_name)
        if isinstance(member_entity, ModelEntity):
            import_names.extend(member_entity.imports)
    sdk, local = _model_imports(dict.fromkeys(import_names), own_name=entity.name)

    lines = _header()
    lines.extend(_import_block(sdk, [_FREEZED_IMPORT], local))
    lines.extend([f"part '{stem}.freezed.dart';", f"part '{stem}.g.dart';", ""])
    lines.extend(doc_comment(entity.description))
    for error in union.errors:
        lines.append(f"// WARNING: {error}")
    lines.append(f"@Freezed(unionKey: {dart_string(union.property_name)})")
    lines.append(f"sealed class {entity.name} with _${entity.name} {{")

    used_constructors: set[str] = set()
    for member in union.members:
        constructor = _unique(to_property_name(member.tag), used_constructors)
        variant_class = f"{entity.name}{to_class_name(constructor)}"
        if variant_class == member.member_name:
            variant_class = f"{variant_class}Variant"
        member_entity = members.get(member.member_name)
        properties = member_entity.properties if isinstance(member_entity, ModelEntity) else ()
        property_lines: list[str] = []
        for prop in properties:
            property_lines.extend(_property_lines(prop, skip=union.property_name))

        lines.append(f"{_INDENT}@FreezedUnionValue({dart_string(member.tag)})")
        if property_lines:
            lines.append(f"{_INDENT}const factory {entity.name}.{constructor}({{")
            lines.extend(property_lines)
            lines.append(f"{_INDENT}}}) = {variant_class};")
        else:
            lines.append(f"{_INDENT}const factory {entity.name}.{constructor}() = {variant_class};")
        lines.append("")

    lines.append(f"{_INDENT}factory {entity.name}.fromJson(Map<String, dynamic> json) =>")
    lines.append(f"{_INDENT * 3}_${entity.name}FromJson(json);")
    lines.append("}")
    return "\n".join(lines) + "\n"


def render_enum(entity: EnumEntity) -> str:
    """Render a Dart enum with ``@JsonValue`` annotations and a value extension."""
    lines = _header()
    lines.extend([_JSON_ANNOTATION_IMPORT, ""])
    lines.extend(doc_comment(entity.description))
    lines.append(f"enum {entity.name} {{")
    for index, value in enumerate(entity.values):
        lines.append(f"{_INDENT}@JsonValue({dart_literal(value.value)})")
        lines.append(f"{_INDENT}{value.name},")
        if index < len(entity.values) - 1:
            lines.append("")
    lines.append("}")
    lines.append("")

    value_type = _enum_value_type(entity)
    lines.append(f"extension {entity.name}Extension on {entity.name} {{")
    lines.append(f"{_INDENT}{value_type} get value {{")
    lines.append(f"{_INDENT * 2}switch (this) {{")
    for value in entity.values:
        lines.append(f"{_INDENT * 3}case {entity.name}.{value.name}:")
        lines.append(f"{_INDENT * 4}return {dart_literal(value.value)};")
    lines.append(f"{_INDENT * 2}}}")
    lines.append(f"{_INDENT}}}")
    lines.append("")
    lines.append(f"{_INDENT}static {entity.name}? fromValue({value_type}? value) {{")
    lines.append(f"{_INDENT * 2}for (final item in {entity.name}.values) {{")
    lines.append(f"{_INDENT * 3}if (item.value == value) return item;")
    lines.append(f"{_INDENT * 2}}}")
    lines.append(f"{_INDENT * 2}return null;")
    lines.append(f"{_INDENT}}}")
    lines.append("}")
    return "\n".join(lines) + "\n"


def _enum_value_type(entity: EnumEntity) -> str:
    values = [value.value for value in entity.values]
    if values and all(isinstance(value, bool) for value in values):
        return "bool"
    if values and all(isinstance(value, int) and not isinstance(value, bool) for value in values):
        return "int"
    if values and all(
        isinstance(value, (int, float)) and not isinstance(value, bool) for value in values
    ):
        return "num"
    if values and all(isinstance(value, str) for value in values):
        return "String"
    return "Object"


def render_header_class(definition: HeaderClassDefinition) -> str:
    """Render a freezed header class with a ``toHeaders`` helper."""
    name = definition.name
    file_name = entity_file_name(name)
    stem = file_name[: -len(".dart")]

    local = [
        f"import '../{entity_file_name(inner_type(item.type))}';"
        for item in definition.fields
        if not is_primitive_type(item.type)
    ]
    sdk = [
        f"import '{library}';"
        for item in definition.fields
        for library in dart_imports_for_type(item.type)
    ]

    lines = _header()
    lines.extend(_import_block(sdk, [_FREEZED_IMPORT], local))
    lines.extend([f"part '{stem}.freezed.dart';", f"part '{stem}.g.dart';", ""])
    lines.extend(doc_comment(definition.description or f"Headers for {name}"))
    lines.append("@freezed")
    lines.append(f"class {name} with _${name} {{")
    lines.append(f"{_INDENT}const {name}._();")
    lines.append("")

    used: set[str] = set()
    dart_names = [_unique(to_header_property_name(item.name), used) for item in definition.fields]
    if definition.fields:
        lines.append(f"{_INDENT}const factory {name}({{")
        for item, dart_name in zip(definition.fields, dart_names):
            lines.extend(
                _parameter_lines(
                    name=dart_name,
                    dart_type=item.type if item.required else with_nullable(item.type),
                    required=item.required,
                    json_key=item.name,
                    description=item.description,
                )
            )
        lines.append(f"{_INDENT}}}) = _{name};")
    else:
        lines.append(f"{_INDENT}const factory {name}() = _{name};")
    lines.append("")

    lines.append(f"{_INDENT}factory {name}.fromJson(Map<String, dynamic> json) =>")
    lines.append(f"{_INDENT * 3}_${name}FromJson(json);")
    lines.append("")
    lines.append(f"{_INDENT}Map<String, String> toHeaders() => {{")
    for item, dart_name in zip(definition.fields, dart_names):
        key = dart_string(item.name)
        if item.required:
            lines.append(f"{_INDENT * 4}{key}: {dart_name}.toString(),")
        else:
            lines.append(f"{_INDENT * 4}if ({dart_name} != null) {key}: {dart_name}.toString(),")
    lines.append(f"{_INDENT * 3}}};")
    lines.append("}")
    return "\n".join(lines) + "\n"


def render_index(entities: Sequence[Entity], header_classes: Sequence[HeaderClassDefinition]) -> str:
    """Render ``models/index.dart`` exporting every generated file."""
    exports = sorted({entity_file_name(entity.name) for entity in entities})
    header_exports = sorted({f"{HEADERS_DIR}/{entity_file_name(item.name)}" for item in header_classes})
    lines = [_GENERATED_BANNER, ""]
    lines.extend(f"export '{path}';" for path in exports)
    if exports and header_exports:
        lines.append("")
    lines.extend(f"export '{path}';" for path in header_exports)
    return "\n".join(lines) + "\n"


def render_files(resolution: ResolutionResult, *, include_report: bool = False) -> list[GeneratedFile]:
    """Render every output file for a resolved document.

    Args:
        resolution (ResolutionResult): Resolved entities and header classes.
        include_report (bool): Whether to add the header matching report.

    Returns:
        list[GeneratedFile]: Files with paths relative to the output root.
    """
    by_name: dict[str, Entity] = {entity.name: entity for entity in resolution.entities}
    files: list[GeneratedFile] = []
    for entity in resolution.entities:
        if isinstance(entity, EnumEntity):
            content = render_enum(entity)
        elif entity.union is not None:
            content = render_union(entity, by_name)
        else:
            content = render_model(entity)
        files.append(GeneratedFile(path=f"{MODELS_DIR}/{entity_file_name(entity.name)}", content=content))

    for definition in resolution.header_classes:
        files.append(
            GeneratedFile(
                path=f"{MODELS_DIR}/{HEADERS_DIR}/{entity_file_name(definition.name)}",
                content=render_header_class(definition),
            )
        )

    files.append(
        GeneratedFile(
            path=f"{MODELS_DIR}/{INDEX_FILE}",
            content=render_index(resolution.entities, resolution.header_classes),
        )
    )
    if include_report:
        files.append(GeneratedFile(path=REPORT_FILE, content=resolution.report))
    return files


def _unique(name: str, used: set[str]) -> str:
    candidate = name
    suffix = 2
    while candidate in used:
        candidate = f"{name}{suffix}"
        suffix += 1
    used.add(candidate)
    return candidate
