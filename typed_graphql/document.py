"""
Query document rendering.

This module turns a typed template and a variable map into GraphQL document
text for queries, mutations and subscriptions.

Examples:
    ```python
    class Todo(BaseModel):
        id: str = ""
        text: str = ""
        done: bool = False

    class TodosQuery(BaseModel):
        todos: List[Todo] = []

    render(OperationType.QUERY, TodosQuery, {})
    # '{todos{id,text,done}}'

    class CreateTodo(BaseModel):
        create_todo: Todo = graphql_field("createTodo(input: $input)", default_factory=Todo)

    render(OperationType.MUTATION, CreateTodo, {"input": NewTodo(text="a", user_id="1")})
    # 'mutation($input:NewTodo!){createTodo(input: $input){id,text,done}}'
    ```
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Type, Union

from pydantic import BaseModel

from .exceptions import DocumentError
from .fields import field_specs, selection_model
from .models import ID, OperationType, Var

Template = Union[BaseModel, Type[BaseModel]]


def template_class(template: Template) -> Type[BaseModel]:
    """Return the model class of a template given as class or instance."""
    if isinstance(template, BaseModel):
        return type(template)
    if isinstance(template, type) and issubclass(template, BaseModel):
        return template
    raise DocumentError(
        f"Template must be a pydantic model class or instance, got {type(template).__name__}"
    )


def render(
    kind: OperationType,
    template: Template,
    variables: Optional[Mapping[str, Any]] = None,
) -> str:
    """
    Render the document for an operation.

    Args:
        kind: Operation type
        template: Template class or instance describing the selection
        variables: Variable values; their types produce the variable definitions

    Returns:
        GraphQL document text

    Raises:
        DocumentError: If the template or a variable cannot be rendered
    """
    kind = OperationType(kind)
    selection = render_selection(template_class(template))
    arguments = render_variable_definitions(variables or {})

    if kind == OperationType.QUERY and not arguments:
        return selection
    return f"{kind.value}{arguments}{selection}"


def render_selection(model: Type[BaseModel]) -> str:
    """Render the ``{...}`` selection set of a template class."""
    return _selection(model, ())


def _selection(model: Type[BaseModel], stack: tuple) -> str:
    if model in stack:
        cycle = " -> ".join(m.__name__ for m in stack + (model,))
        raise DocumentError(f"Recursive template cannot be rendered: {cycle}")

    specs = field_specs(model)
    if not specs:
        raise DocumentError(f"Template {model.__name__} has no fields to select")

    parts: List[str] = []
    for spec in specs:
        sub_model = selection_model(spec.annotation)
        if spec.inline_fragment and sub_model is None:
            raise DocumentError(
                f"Inline fragment field {model.__name__}.{spec.name} must be a model"
            )
        part = spec.selector
        if sub_model is not None:
            part += _selection(sub_model, stack + (model,))
        parts.append(part)
    return "{" + ",".join(parts) + "}"


def render_variable_definitions(variables: Mapping[str, Any]) -> str:
    """
    Render the variable definitions header, e.g. ``($id:ID!,$first:Int!)``.

    Definitions are sorted by variable name. Returns an empty string when
    there are no variables.
    """
    if not variables:
        return ""
    definitions = [
        f"${name}:{variable_type(value, name)}" for name, value in sorted(variables.items())
    ]
    return "(" + ",".join(definitions) + ")"


def variable_type(value: Any, name: str = "") -> str:
    """Infer the GraphQL type of a variable value."""
    if isinstance(value, Var):
        return value.type
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return "Boolean!"
    if isinstance(value, Enum):
        return f"{type(value).__name__}!"
    if isinstance(value, ID):
        return "ID!"
    if isinstance(value, int):
        return "Int!"
    if isinstance(value, float):
        return "Float!"
    if isinstance(value, str):
        return "String!"
    if isinstance(value, BaseModel):
        return f"{type(value).__name__}!"
    if isinstance(value, (list, tuple)):
        if not value:
            raise DocumentError(
                f"Cannot infer element type of empty list variable ${name}; wrap it in Var"
            )
        return f"[{variable_type(value[0], name)}]!"
    if value is None:
        raise DocumentError(f"Cannot infer type of null variable ${name}; wrap it in Var")
    raise DocumentError(
        f"Cannot infer GraphQL type of variable ${name} ({type(value).__name__}); wrap it in Var"
    )


def to_jsonable(variables: Mapping[str, Any]) -> Dict[str, Any]:
    """Convert a variable map into plain JSON values for the request envelope."""
    return {name: _jsonable(value) for name, value in variables.items()}


def _jsonable(value: Any) -> Any:
    if isinstance(value, Var):
        return _jsonable(value.value)
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    return value
