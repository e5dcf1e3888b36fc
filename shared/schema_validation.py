"""JSON schema helpers for the trigger payloads the ingestion Lambda accepts.
"""

from typing import Any, Dict

import jsonschema

_S3_RECORD_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["s3"],
    "properties": {
        "s3": {
            "type": "object",
            "required": ["bucket", "object"],
            "properties": {
                "bucket": {
                    "type": "object",
                    "required": ["name"],
                    "properties": {"name": {"type": "string", "minLength": 1}},
                },
                "object": {
                    "type": "object",
                    "required": ["key"],
                    "properties": {"key": {"type": "string", "minLength": 1}},
                },
            },
        }
    },
}

# S3 event notification: only the first record is used
S3_EVENT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["Records"],
    "properties": {
        "Records": {
            "type": "array",
            "minItems": 1,
            "items": _S3_RECORD_SCHEMA,
        }
    },
}

# Direct invocation (Step Functions task or console test event)
DIRECT_EVENT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["bucketName", "objectKey"],
    "properties": {
        "bucketName": {"type": "string", "minLength": 1},
        "objectKey": {"type": "string", "minLength": 1},
    },
}


def validate(instance: Dict[str, Any], schema: Dict[str, Any]) -> None:
    jsonschema.validate(instance=instance, schema=schema)


def matches(instance: Any, schema: Dict[str, Any]) -> bool:
    """Return True when instance satisfies schema, False otherwise."""
    try:
        validate(instance, schema)
    except jsonschema.ValidationError:
        return False
    return True
