"""
The schema config used when a repository does not have one yet.

The schema lists, per kind of record, the fields a concept of that kind has. A field can refer to
concepts of another kind through referencesType. The service does not validate concepts against it;
it is stored for the clients.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

FieldKind = Literal["string", "text", "number", "date", "url", "boolean", "reference", "list"]


class SchemaField(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    label: str
    required: bool = False
    type: FieldKind = "string"
    references_type: str | None = Field(None, description="Kind of record a reference field points to")


def _f(id: str, label: str, type: FieldKind = "string", required: bool = False, references: str | None = None):
    return SchemaField(id=id, label=label, type=type, required=required, references_type=references)


DEFAULT_SCHEMA: dict[str, list[SchemaField]] = {
    "concept": [
        _f("key", "Identifier", required=True),
        _f("label", "Label", required=True),
        _f("definition", "Definition", "text"),
        _f("broader", "Broader concept", "reference", references="concept"),
        _f("scheme", "Concept scheme", "reference", references="scheme"),
    ],
    "term": [
        _f("key", "Identifier", required=True),
        _f("value", "Term", required=True),
        _f("language", "Language"),
        _f("concept", "Concept", "reference", required=True, references="concept"),
    ],
    "relation": [
        _f("key", "Identifier", required=True),
        _f("relation_type", "Relation type", required=True),
        _f("source", "Source concept", "reference", required=True, references="concept"),
        _f("target", "Target concept", "reference", required=True, references="concept"),
    ],
    "source": [
        _f("key", "Identifier", required=True),
        _f("title", "Title", required=True),
        _f("url", "URL", "url"),
        _f("published", "Publication date", "date"),
    ],
    "scheme": [
        _f("key", "Identifier", required=True),
        _f("title", "Title", required=True),
        _f("description", "Description", "text"),
        _f("sources", "Sources", "list", references="source"),
    ],
}


def default_schema() -> dict[str, Any]:
    """A fresh copy of the default schema config, as stored in the config file"""
    return {
        "version": "1.0",
        "types": {
            kind: [f.model_dump(by_alias=True, exclude_none=True) for f in fields]
            for kind, fields in DEFAULT_SCHEMA.items()
        },
    }
