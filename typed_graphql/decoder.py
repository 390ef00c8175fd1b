"""
Response decoding.

This module merges GraphQL response data into template instances, reading
each field from the response key its selector produces.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Type, TypeVar, Union, get_args, get_origin

from pydantic import BaseModel, TypeAdapter, ValidationError

from .exceptions import DecodeError
from .fields import field_specs, is_list, is_model, is_union, non_null_args

T = TypeVar("T", bound=BaseModel)

_adapters: Dict[Any, TypeAdapter] = {}


def decode(raw: Union[str, bytes, bytearray, Any], target: BaseModel) -> None:
    """
    Merge response data into a template instance in place.

    Args:
        raw: JSON text/bytes or an already parsed JSON value
        target: Template instance to populate

    Raises:
        DecodeError: If the payload does not fit the template's shape. The
            target may already be partially updated when this is raised.
    """
    if not isinstance(target, BaseModel):
        raise TypeError(
            f"Decode target must be a pydantic model instance, got {type(target).__name__}"
        )

    if isinstance(raw, (str, bytes, bytearray)):
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DecodeError(f"Invalid JSON payload: {e}")
    else:
        data = raw

    if data is None:
        return
    if not isinstance(data, dict):
        raise DecodeError(
            f"Expected an object for {type(target).__name__}, got {type(data).__name__}"
        )
    _merge_object(target, data, "")


def new_instance(template: Union[BaseModel, Type[T]]) -> BaseModel:
    """Allocate a fresh, unvalidated instance of a template's class."""
    model = type(template) if isinstance(template, BaseModel) else template
    return model.model_construct()


def _merge_object(instance: BaseModel, obj: Dict[str, Any], path: str) -> None:
    for spec in field_specs(type(instance)):
        if spec.inline_fragment:
            # Fragment fields live on the enclosing object itself
            value: Any = obj
            field_path = path
        else:
            if spec.response_key not in obj:
                continue
            value = obj[spec.response_key]
            field_path = f"{path}.{spec.response_key}" if path else spec.response_key
        converted = _convert(spec.annotation, value, field_path)
        try:
            setattr(instance, spec.name, converted)
        except (ValidationError, TypeError, AttributeError) as e:
            # Frozen or assignment-validated models reject the merge
            location = field_path or spec.name
            raise DecodeError(
                f"Cannot assign {type(instance).__name__}.{spec.name} at {location}: {e}",
                path=location,
            )


def _convert(annotation: Any, value: Any, path: str) -> Any:
    if annotation is Any or annotation is None:
        return value

    if is_union(annotation):
        members = non_null_args(annotation)
        if value is None:
            if len(members) != len(get_args(annotation)):
                return None
            raise DecodeError(f"Unexpected null at {path}", path=path)
        if len(members) == 1:
            return _convert(members[0], value, path)
        return _validate_scalar(annotation, value, path)

    if value is None:
        raise DecodeError(f"Unexpected null at {path}", path=path)

    if is_model(annotation):
        if not isinstance(value, dict):
            raise DecodeError(
                f"Expected an object for {annotation.__name__} at {path}, "
                f"got {type(value).__name__}",
                path=path,
            )
        instance = annotation.model_construct()
        _merge_object(instance, value, path)
        return instance

    if is_list(annotation):
        if not isinstance(value, list):
            raise DecodeError(
                f"Expected a list at {path}, got {type(value).__name__}", path=path
            )
        args = get_args(annotation)
        item_type = args[0] if args else Any
        items = [
            _convert(item_type, item, f"{path}[{index}]") for index, item in enumerate(value)
        ]
        container = get_origin(annotation)
        if container is list:
            return items
        try:
            return container(items)
        except TypeError as e:
            raise DecodeError(f"Cannot build {container.__name__} at {path}: {e}", path=path)

    return _validate_scalar(annotation, value, path)


def _validate_scalar(annotation: Any, value: Any, path: str) -> Any:
    try:
        adapter = _adapters.get(annotation)
        if adapter is None:
            adapter = TypeAdapter(annotation)
            _adapters[annotation] = adapter
    except TypeError:
        # Unhashable annotation: skip the cache
        adapter = TypeAdapter(annotation)

    try:
        return adapter.validate_python(value)
    except ValidationError as e:
        raise DecodeError(f"Invalid value at {path}: {e.errors()[0]['msg']}", path=path)
