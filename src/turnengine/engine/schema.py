"""Payload validation against an action's declared pydantic model."""

from typing import Any

from pydantic import BaseModel, ValidationError

from turnengine.errors import SchemaInvalid
from turnengine.models.action import ActionDefinition


def validate_payload(definition: ActionDefinition, raw: Any) -> BaseModel:
    """Return the typed payload or raise SchemaInvalid.

    Args:
        definition: The action whose ``payload_model`` applies.
        raw: A mapping, an instance of the payload model, or None for no
            arguments.

    Raises:
        SchemaInvalid: With one ``field_errors`` item per violated constraint.
    """
    model = definition.payload_model
    if isinstance(raw, model):
        # Re-validate so a caller cannot smuggle in a mutated instance
        raw = raw.model_dump(by_alias=True)
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise SchemaInvalid(
            f"payload for {definition.name!r} must be an object, got {type(raw).__name__}",
            action_name=definition.name,
            field_errors=[{"field": "$", "message": "expected an object", "type": "dict_type"}],
        )
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        raise SchemaInvalid(
            f"invalid payload for {definition.name!r}",
            action_name=definition.name,
            field_errors=[
                {
                    "field": ".".join(str(part) for part in err["loc"]) or "$",
                    "message": err["msg"],
                    "type": err["type"],
                }
                for err in exc.errors()
            ],
        ) from None


def payload_to_log(payload: BaseModel) -> dict[str, Any]:
    """JSON-safe payload stored on log entries, keyed the way clients send it."""
    return payload.model_dump(mode="json", by_alias=True)
