"""Search document shapes and the projection from index hits to API results."""

from datetime import datetime
from typing import Any

from opensearchpy import Date, Document, InnerDoc, Integer, Nested, Text
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from todosearch.core.errors import PerHitSearchError
from todosearch.models import Comment


class CommentDocument(InnerDoc):
    id = Integer()
    todoId = Integer()
    content = Text()
    createdAt = Date()
    updatedAt = Date()


class TodoSearchDocument(Document):
    """One document per todo; the document id is the todo id.

    ``comments`` is a nested field so a clause against ``comments.*`` is
    matched and scored inside a single comment, never across two of them.
    """

    todo = Text()
    todoId = Integer()
    comments = Nested(CommentDocument)


def index_mapping() -> dict[str, Any]:
    """Mapping body (``{"properties": ...}``) for create / put-mapping."""
    return TodoSearchDocument._doc_type.mapping.to_dict()


def todo_document(todo_id: int, content: str) -> dict[str, Any]:
    return {"todo": content, "todoId": todo_id, "comments": []}


def comment_record(comment: Comment) -> dict[str, Any]:
    """Sub-document appended to ``comments`` when a comment is created."""
    return {
        "id": comment.id,
        "todoId": comment.todo_id,
        "content": comment.content,
        "createdAt": comment.created_at.isoformat(),
        "updatedAt": comment.updated_at.isoformat(),
    }


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SearchComment(CamelModel):
    """Comment sub-document as stored in the index.

    Only ``content`` is required; unknown keys are kept as-is.
    """

    model_config = ConfigDict(extra="allow")

    content: str
    id: int | None = None
    todo_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class SearchResult(CamelModel):
    """API-facing search result built from one index hit."""

    id: int
    todo_id: int
    content: str
    type: str | None = None
    comments: list[SearchComment] = Field(default_factory=list)


def to_search_result(hit: dict[str, Any]) -> SearchResult:
    """Build a SearchResult from a raw hit.

    Raises:
        PerHitSearchError: the hit has no ``_source`` or misses a required field.
    """
    source = hit.get("_source")
    if not isinstance(source, dict):
        raise PerHitSearchError("hit has no _source", detail=hit.get("_id"))

    try:
        return SearchResult(
            id=source["todoId"],
            todo_id=source["todoId"],
            content=source["todo"],
            type=source.get("type"),
            comments=source.get("comments") or [],
        )
    except KeyError as e:
        raise PerHitSearchError(
            f"hit {hit.get('_id')} is missing field {e}", detail=hit.get("_id")
        ) from e
    except ValidationError as e:
        raise PerHitSearchError(
            f"hit {hit.get('_id')} has an invalid shape", detail=e.errors()
        ) from e
