"""Schema codec: describe functions to the model and validate returned arguments."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from .errors import (
    EnumViolationError,
    MissingRequiredParameterError,
    ParameterValidationError,
    TypeMismatchError,
)
from .types import CONTEXT_VARIABLES_NAME, UNION_TYPE, FunctionDescriptor, ParameterSchema

_JSON_TYPE_NAMES: dict[type, str] = {
    bool: "boolean",
    int: "integer",
    float: "number",
    str: "string",
    list: "array",
    dict: "object",
    type(None): "null",
}


def encode(descriptor: FunctionDescriptor) -> dict[str, Any]:
    """Encode a descriptor as an OpenAI-style function tool schema.

    The reserved ``context_variables`` parameter is never exposed.
    """
    properties, required = _encode_properties(descriptor.parameters)
    properties.pop(CONTEXT_VARIABLES_NAME, None)
    required = [name for name in required if name != CONTEXT_VARIABLES_NAME]
    return {
        "type": "function",
        "function": {
            "name": descriptor.name,
            "description": descriptor.description,
            "parameters": {
                "type": "object",
                "properties": properties,
                "required": required,
            },
        },
    }


def encode_parameter(schema: ParameterSchema) -> dict[str, Any]:
    if schema.type == UNION_TYPE:
        variants = [encode_parameter(variant) for variant in schema.variants or ()]
        if schema.nullable:
            variants.append({"type": "null"})
        encoded: dict[str, Any] = {"anyOf": variants}
        if schema.description:
            encoded["description"] = schema.description
        return encoded

    encoded = {"type": [schema.type, "null"] if schema.nullable else schema.type}
    if schema.description:
        encoded["description"] = schema.description
    if schema.enum is not None:
        encoded["enum"] = [*schema.enum, None] if schema.nullable else list(schema.enum)
    if schema.items is not None:
        encoded["items"] = encode_parameter(schema.items)
    if schema.properties is not None:
        properties, required = _encode_properties(schema.properties)
        encoded["properties"] = properties
        encoded["required"] = required
    return encoded


def _encode_properties(parameters: Mapping[str, ParameterSchema]) -> tuple[dict[str, Any], list[str]]:
    properties = {name: encode_parameter(schema) for name, schema in parameters.items()}
    required = [name for name, schema in parameters.items() if schema.required]
    return properties, required


def validate(args: Mapping[str, Any], descriptor: FunctionDescriptor) -> dict[str, Any]:
    """Validate ``args`` against ``descriptor`` and return the validated mapping.

    Keys the descriptor does not declare are passed through untouched.
    Failures raise a ``ParameterValidationError`` subclass attributed to the
    descriptor's function name.
    """
    try:
        validated = _validate_object(args, descriptor.parameters, prefix="")
    except ParameterValidationError as exc:
        raise exc.for_function(descriptor.name) from None
    for key, value in args.items():
        if key not in descriptor.parameters:
            validated[key] = value
    return validated


def _validate_object(
    value: Mapping[str, Any], parameters: Mapping[str, ParameterSchema], prefix: str
) -> dict[str, Any]:
    validated: dict[str, Any] = {}
    for name, schema in parameters.items():
        path = f"{prefix}.{name}" if prefix else name
        if name not in value:
            if schema.required:
                raise MissingRequiredParameterError.at(path)
            continue
        validated[name] = _validate_value(value[name], schema, path)
    return validated


def _validate_value(value: Any, schema: ParameterSchema, path: str) -> Any:
    if value is None and schema.nullable:
        return None
    if schema.type == UNION_TYPE:
        return _validate_union(value, schema, path)
    expected = schema.type.lower()
    if not _matches_type(value, expected):
        raise TypeMismatchError.at(path, expected, _json_type_name(value))
    if schema.enum is not None and value not in schema.enum:
        raise EnumViolationError.at(path, value, schema.enum)

    if expected == "array" and schema.items is not None:
        return [_validate_value(item, schema.items, f"{path}[{idx}]") for idx, item in enumerate(value)]
    if expected == "object" and schema.properties is not None:
        validated = _validate_object(value, schema.properties, prefix=path)
        for key, item in value.items():
            if key not in schema.properties:
                validated[key] = item
        return validated
    return value


def _validate_union(value: Any, schema: ParameterSchema, path: str) -> Any:
    if not schema.variants:
        return value
    for variant in schema.variants:
        try:
            return _validate_value(value, variant, path)
        except ParameterValidationError:
            continue
    expected = " | ".join(variant.type for variant in schema.variants)
    raise TypeMismatchError.at(path, expected, _json_type_name(value))


def _matches_type(value: Any, expected: str) -> bool:
    # bool is a subclass of int; JSON keeps them apart.
    if expected == "string":
        return isinstance(value, str)
    if expected == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if expected == "integer":
        if isinstance(value, bool):
            return False
        return isinstance(value, int) or (isinstance(value, float) and value.is_integer())
    if expected == "boolean":
        return isinstance(value, bool)
    if expected == "array":
        return isinstance(value, list)
    if expected == "object":
        return isinstance(value, Mapping)
    if expected == "null":
        return value is None
    return True


def _json_type_name(value: Any) -> str:
    for python_type, name in _JSON_TYPE_NAMES.items():
        if type(value) is python_type:
            return name
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__


def descriptor_from_model(name: str, model: type[BaseModel], description: str | None = None) -> FunctionDescriptor:
    """Build a descriptor from a pydantic input model.

    Nested models, ``list[...]`` fields, ``Literal``/``Enum`` values,
    optional (``X | None``) fields and unions of several types are supported.
    Optional fields accept ``None``.
    """
    json_schema = model.model_json_schema()
    definitions = json_schema.get("$defs", {})
    parameters = _parameters_from_json_schema(json_schema, definitions)
    resolved_description = description if description is not None else (model.__doc__ or "").strip()
    return FunctionDescriptor(name=name, description=resolved_description, parameters=parameters)


def _parameters_from_json_schema(node: Mapping[str, Any], definitions: Mapping[str, Any]) -> dict[str, ParameterSchema]:
    required = set(node.get("required", []))
    return {
        key: _schema_from_json(value, definitions, required=key in required)
        for key, value in node.get("properties", {}).items()
    }


def _schema_from_json(node: Mapping[str, Any], definitions: Mapping[str, Any], *, required: bool) -> ParameterSchema:
    node = _resolve(node, definitions)
    description = node.get("description", "")
    nullable = False
    variants = node.get("anyOf")
    if variants:
        concrete = [item for item in variants if item.get("type") != "null"]
        nullable = len(concrete) < len(variants)
        if len(concrete) != 1:
            return ParameterSchema(
                type=UNION_TYPE,
                description=description,
                required=required,
                nullable=nullable,
                variants=tuple(_schema_from_json(item, definitions, required=True) for item in concrete),
            )
        merged = dict(_resolve(concrete[0], definitions))
        if description:
            merged["description"] = description
        node = merged
        description = merged.get("description", "")

    enum = node.get("enum")
    if enum is None and "const" in node:
        enum = [node["const"]]
    json_type = node.get("type")
    if json_type is None:
        json_type = "object" if "properties" in node else _type_from_enum(enum)

    items = node.get("items")
    properties = node.get("properties")
    return ParameterSchema(
        type=json_type,
        description=description,
        required=required,
        items=_schema_from_json(items, definitions, required=True) if isinstance(items, Mapping) else None,
        properties=_parameters_from_json_schema(node, definitions) if json_type == "object" and properties else None,
        enum=tuple(enum) if enum is not None else None,
        nullable=nullable,
    )


def _resolve(node: Mapping[str, Any], definitions: Mapping[str, Any]) -> Mapping[str, Any]:
    ref = node.get("$ref")
    if not isinstance(ref, str):
        return node
    target = definitions.get(ref.rsplit("/", 1)[-1], {})
    merged = {**target, **{key: value for key, value in node.items() if key != "$ref"}}
    return merged


def _type_from_enum(enum: list[Any] | None) -> str:
    if enum:
        return _JSON_TYPE_NAMES.get(type(enum[0]), "string")
    return "string"
