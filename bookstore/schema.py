# schema.py
from typing import Optional

from pydantic import BaseModel, Field, field_validator

books_schema = {
    "bsonType": "object",
    "required": ["title", "author", "genre", "published_year", "price", "in_stock"],
    "properties": {
        "title": {"bsonType": "string"},
        "author": {"bsonType": "string"},
        "genre": {"bsonType": "string"},
        "published_year": {"bsonType": "int", "minimum": 1000, "maximum": 9999},
        "price": {"bsonType": "number", "minimum": 0},
        "in_stock": {"bsonType": "bool"},
        "pages": {"bsonType": ["int", "null"], "minimum": 1},
        "publisher": {"bsonType": ["string", "null"]},
    },
}


class CatalogItem(BaseModel):
    """One document of the ``books`` collection, without its ``_id``."""

    title: str = Field(min_length=1)
    author: str = Field(min_length=1)
    genre: str = Field(min_length=1)
    published_year: int = Field(ge=1000, le=9999)
    price: float = Field(ge=0)
    in_stock: bool = True
    pages: Optional[int] = Field(default=None, ge=1)
    publisher: Optional[str] = None

    @field_validator("published_year", mode="before")
    @classmethod
    def reject_non_integer_year(cls, v):
        # pydantic would coerce 1997.0 or "1997"; stored years must be real ints
        if isinstance(v, bool) or not isinstance(v, int):
            raise ValueError("published_year must be an integer")
        return v


_BSON_TO_JSON_TYPES = {
    "string": "string",
    "int": "integer",
    "long": "integer",
    "double": "number",
    "number": "number",
    "bool": "boolean",
    "null": "null",
}


def bson_to_jsonschema(bson_schema: dict) -> dict:
    """Translate a ``$jsonSchema`` validator into a plain JSON Schema.

    Lets documents be checked client-side with ``jsonschema`` before they are
    sent to MongoDB.
    """
    props = {}
    for key, prop in bson_schema.get("properties", {}).items():
        bson_type = prop.get("bsonType")
        types = bson_type if isinstance(bson_type, list) else [bson_type]
        json_types = []
        for t in types:
            json_type = _BSON_TO_JSON_TYPES.get(t, "string")
            if json_type not in json_types:
                json_types.append(json_type)
        prop_schema: dict = {"type": json_types[0] if len(json_types) == 1 else json_types}
        for bound in ("minimum", "maximum"):
            if bound in prop:
                prop_schema[bound] = prop[bound]
        props[key] = prop_schema

    json_schema = {"type": "object", "properties": props}
    if "required" in bson_schema:
        json_schema["required"] = bson_schema["required"]
    return json_schema
