"""
Field selectors for typed templates.

A template is a pydantic model whose fields mirror the expected result. Each
field maps to one selector in the query document and to one key in the
response. Both the renderer and the decoder read the same table built here,
so the document and the decode target always share one shape.
"""

from __future__ import annotations

import types
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, List, Optional, Tuple, Type, Union, get_args, get_origin

from pydantic import BaseModel, Field

GRAPHQL_TAG = "graphql"

_UNION_TYPES = (Union, types.UnionType)

_LIST_ORIGINS = (list, tuple, set, frozenset)


def graphql_field(selector: str, *args: Any, **kwargs: Any) -> Any:
    """
    Declare a template field with an explicit GraphQL selector.

    Examples:
        ```python
        class HumanQuery(BaseModel):
            human: Human = graphql_field('human(id: "1000")', default_factory=Human)
            hero: Optional[Hero] = graphql_field("hero(episode: $ep)", default=None)
        ```

    Args:
        selector: Selector written into the document, e.g. ``user(id: $id)``,
            ``me: viewer`` or ``... on Droid``
        *args: Forwarded to ``pydantic.Field``
        **kwargs: Forwarded to ``pydantic.Field``
    """
    extra = dict(kwargs.pop("json_schema_extra", None) or {})
    extra[GRAPHQL_TAG] = selector
    return Field(*args, json_schema_extra=extra, **kwargs)


def lower_camel(name: str) -> str:
    """Convert a Python field name to lowerCamelCase (``created_at`` -> ``createdAt``)."""
    parts = [part for part in name.split("_") if part]
    if not parts:
        return name
    head = parts[0]
    head = head[0].lower() + head[1:]
    return head + "".join(part[0].upper() + part[1:] for part in parts[1:])


@dataclass(frozen=True)
class FieldSpec:
    """How one template field appears in the document and the response."""

    name: str
    selector: str
    response_key: Optional[str]
    annotation: Any
    inline_fragment: bool = False


def response_key_for(selector: str) -> Optional[str]:
    """
    Derive the response key for a selector.

    ``user(id: $id)`` -> ``user``; ``me: viewer`` -> ``me``;
    ``name @include(if: $x)`` -> ``name``; ``... on Droid`` -> ``None``.
    """
    selector = selector.strip()
    if selector.startswith("..."):
        return None
    head = selector.split("(", 1)[0].split("@", 1)[0]
    if ":" in head:
        head = head.split(":", 1)[0]
    return head.strip()


def _selector_tag(field_info: Any) -> Optional[str]:
    extra = field_info.json_schema_extra
    if isinstance(extra, dict):
        tag = extra.get(GRAPHQL_TAG)
        if isinstance(tag, str) and tag.strip():
            return tag.strip()
    return None


@lru_cache(maxsize=None)
def field_specs(model: Type[BaseModel]) -> Tuple[FieldSpec, ...]:
    """Build the selector table for a template class."""
    specs: List[FieldSpec] = []
    for name, field_info in model.model_fields.items():
        tag = _selector_tag(field_info)
        if tag is not None:
            selector = tag
        elif field_info.alias:
            selector = field_info.alias
        else:
            selector = lower_camel(name)
        specs.append(
            FieldSpec(
                name=name,
                selector=selector,
                response_key=response_key_for(selector),
                annotation=field_info.annotation,
                inline_fragment=selector.startswith("..."),
            )
        )
    return tuple(specs)


def is_model(annotation: Any) -> bool:
    """Check whether an annotation is a pydantic model class."""
    return isinstance(annotation, type) and issubclass(annotation, BaseModel)


def is_union(annotation: Any) -> bool:
    """Check whether an annotation is a Union / Optional."""
    return get_origin(annotation) in _UNION_TYPES


def is_list(annotation: Any) -> bool:
    """Check whether an annotation is a list-like container."""
    return get_origin(annotation) in _LIST_ORIGINS


def non_null_args(annotation: Any) -> Tuple[Any, ...]:
    """Members of a Union other than ``None``."""
    return tuple(arg for arg in get_args(annotation) if arg is not type(None))


def selection_model(annotation: Any) -> Optional[Type[BaseModel]]:
    """
    Find the model whose fields form the sub-selection of an annotation.

    ``Optional[List[User]]`` -> ``User``; ``int`` -> ``None``.
    """
    while True:
        if is_model(annotation):
            return annotation
        if is_union(annotation):
            members = non_null_args(annotation)
            if len(members) != 1:
                return None
            annotation = members[0]
        elif is_list(annotation):
            args = get_args(annotation)
            if not args:
                return None
            annotation = args[0]
        else:
            return None
