"""Application-level validation of documents against the collection schemas.

The MongoDB validators in :mod:`taskdb.schema` are written in ``bsonType``
terms. They are converted to plain JSON Schema once and checked with
``jsonschema`` before a write, so a bad document is rejected with a readable
message even when the server-side validator is not installed.
"""
import jsonschema

from taskdb.schema import TASKS_COLLECTION, task_schema

_BSON_TO_JSON_TYPES = {
    "string": "string",
    "int": "integer",
    "long": "integer",
    "double": "number",
    "bool": "boolean",
    "object": "object",
    "array": "array",
    "null": "null",
}

# keywords shared by $jsonSchema and JSON Schema
_PASSTHROUGH = ("minLength", "maxLength", "minimum", "maximum", "enum")

SCHEMAS = {
    TASKS_COLLECTION: task_schema,
}

_JSON_SCHEMA_CACHE: dict = {}


class DocumentValidationError(ValueError):
    """A document does not satisfy its collection schema."""

    def __init__(self, collection: str, message: str):
        super().__init__(message)
        self.collection = collection
        self.message = message


def bson_to_jsonschema(bson_schema: dict) -> dict:
    props = {}
    for key, prop in bson_schema.get("properties", {}).items():
        bson_type = prop.get("bsonType")
        types = bson_type if isinstance(bson_type, list) else [bson_type]
        json_types = [_BSON_TO_JSON_TYPES.get(t, "string") for t in types]

        prop_schema: dict = {"type": json_types[0] if len(json_types) == 1 else json_types}
        for keyword in _PASSTHROUGH:
            if keyword in prop:
                prop_schema[keyword] = prop[keyword]
        props[key] = prop_schema

    json_schema = {"type": "object", "properties": props}
    if "required" in bson_schema:
        json_schema["required"] = list(bson_schema["required"])
    return json_schema


def validate_document(collection: str, doc: dict) -> None:
    """Raise DocumentValidationError if ``doc`` breaks the schema of ``collection``.

    Collections without a registered schema accept anything. The ``_id`` key is
    ignored.
    """
    bson_schema = SCHEMAS.get(collection)
    if bson_schema is None:
        return

    if collection not in _JSON_SCHEMA_CACHE:
        _JSON_SCHEMA_CACHE[collection] = bson_to_jsonschema(bson_schema)
    json_schema = _JSON_SCHEMA_CACHE[collection]

    instance = {k: v for k, v in doc.items() if k != "_id"}
    try:
        jsonschema.validate(instance=instance, schema=json_schema)
    except jsonschema.ValidationError as e:
        raise DocumentValidationError(collection, e.message) from e
