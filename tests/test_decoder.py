"""
Tests for decoding response data into templates.
"""

from typing import Any, List, Optional, Union

import pytest
from pydantic import BaseModel, ConfigDict, Field

from typed_graphql import DecodeError, decode, graphql_field, new_instance


class Todo(BaseModel):
    id: str = ""
    text: str = ""
    done: bool = False


class TodosQuery(BaseModel):
    todos: List[Todo] = []


class TodoQuery(BaseModel):
    todo: Optional[Todo] = graphql_field("todo(id: $id)", default=None)


class DroidFields(BaseModel):
    primary_function: str = ""


class Hero(BaseModel):
    name: str = ""
    droid: DroidFields = graphql_field("... on Droid", default_factory=DroidFields)


class HeroQuery(BaseModel):
    hero: Hero = graphql_field("hero(episode: $ep)", default_factory=Hero)


class Counter(BaseModel):
    count: int = 0
    score: Union[int, str] = 0
    tags: Optional[List[str]] = None


class FrozenTodo(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = ""


class FrozenHolder(BaseModel):
    todo: FrozenTodo = Field(default_factory=FrozenTodo)


class TestDecode:
    """Test merging response data into templates."""

    def test_decode_json_text(self):
        """Test decoding a JSON document into a list of models."""
        result = TodosQuery()
        decode('{"todos": [{"id": "1", "text": "a", "done": true}, {"id": "2", "text": "b"}]}', result)

        assert len(result.todos) == 2
        assert isinstance(result.todos[0], Todo)
        assert result.todos[0].done is True
        assert result.todos[1].text == "b"
        assert result.todos[1].done is False

    def test_decode_bytes(self):
        """Test decoding UTF-8 bytes."""
        result = TodosQuery()
        decode(b'{"todos": []}', result)
        assert result.todos == []

    def test_decode_parsed_value(self):
        """Test decoding an already parsed object."""
        result = TodoQuery()
        decode({"todo": {"id": "9", "text": "x", "done": False}}, result)
        assert result.todo == Todo(id="9", text="x", done=False)

    def test_camel_case_response_keys(self):
        """Test that snake_case fields read lowerCamelCase keys."""
        result = HeroQuery()
        decode({"hero": {"name": "R2-D2", "primaryFunction": "Astromech"}}, result)

        assert result.hero.name == "R2-D2"
        assert result.hero.droid.primary_function == "Astromech"

    def test_alias_selector_reads_alias_key(self):
        """Test that ``alias: field`` selectors read the alias key."""

        class Viewer(BaseModel):
            me: Todo = graphql_field("me: viewer", default_factory=Todo)

        result = Viewer()
        decode({"me": {"id": "u1"}}, result)
        assert result.me.id == "u1"

    def test_pydantic_alias_key(self):
        """Test that a pydantic alias names the response key."""

        class Viewer(BaseModel):
            login_name: str = Field(default="", alias="login")

        result = Viewer.model_construct()
        decode({"login": "octocat"}, result)
        assert result.login_name == "octocat"

    def test_missing_keys_keep_existing_values(self):
        """Test that absent keys leave fields untouched."""
        result = TodoQuery(todo=Todo(id="1", text="keep"))
        decode({}, result)
        assert result.todo.text == "keep"

    def test_null_for_optional_field(self):
        """Test that null is accepted for Optional fields."""
        result = TodoQuery(todo=Todo(id="1"))
        decode({"todo": None}, result)
        assert result.todo is None

    def test_null_for_required_field(self):
        """Test that null is rejected for non-Optional fields."""
        result = HeroQuery()
        with pytest.raises(DecodeError) as exc_info:
            decode({"hero": {"name": None}}, result)
        assert exc_info.value.path == "hero.name"

    def test_scalar_mismatch_reports_path(self):
        """Test that an invalid scalar names its location."""
        result = TodosQuery()
        with pytest.raises(DecodeError) as exc_info:
            decode({"todos": [{"id": "1"}, {"id": "2", "done": "maybe"}]}, result)
        assert exc_info.value.path == "todos[1].done"

    def test_object_expected(self):
        """Test a scalar where an object is expected."""
        with pytest.raises(DecodeError, match="Expected an object"):
            decode({"hero": "R2-D2"}, HeroQuery())

    def test_list_expected(self):
        """Test an object where a list is expected."""
        with pytest.raises(DecodeError, match="Expected a list"):
            decode({"todos": {"id": "1"}}, TodosQuery())

    def test_scalar_types(self):
        """Test scalar coercion, unions and optional lists."""
        result = Counter()
        decode({"count": 3, "score": "high", "tags": ["a", "b"]}, result)
        assert result.count == 3
        assert result.score == "high"
        assert result.tags == ["a", "b"]

    def test_any_field_passes_value_through(self):
        """Test that Any fields receive the raw JSON value."""

        class Raw(BaseModel):
            extensions: Any = None

        result = Raw()
        decode({"extensions": {"cost": 5}}, result)
        assert result.extensions == {"cost": 5}

    def test_invalid_json(self):
        """Test malformed JSON text."""
        with pytest.raises(DecodeError, match="Invalid JSON"):
            decode("{not json", TodosQuery())

    def test_top_level_must_be_object(self):
        """Test a non-object payload."""
        with pytest.raises(DecodeError):
            decode([1, 2, 3], TodosQuery())

    def test_null_payload_is_noop(self):
        """Test that a null payload leaves the target unchanged."""
        result = TodoQuery(todo=Todo(id="1"))
        decode("null", result)
        assert result.todo.id == "1"

    def test_target_must_be_model_instance(self):
        """Test that non-model targets are rejected."""
        with pytest.raises(TypeError):
            decode({"todos": []}, {})

    def test_frozen_nested_model(self):
        """Test that a model rejecting assignment raises DecodeError."""
        result = FrozenHolder()
        with pytest.raises(DecodeError) as exc_info:
            decode({"todo": {"id": "1"}}, result)

        assert exc_info.value.path == "todo.id"
        assert result.todo.id == ""


class TestNewInstance:
    """Test template allocation."""

    def test_new_instance_from_template(self):
        """Test that a fresh instance with defaults is created."""
        template = TodosQuery(todos=[Todo(id="1")])
        value = new_instance(template)

        assert isinstance(value, TodosQuery)
        assert value is not template
        assert value.todos == []

    def test_new_instance_from_class(self):
        """Test allocation from a template class."""
        value = new_instance(Hero)
        assert value.name == ""
        assert value.droid == DroidFields()
