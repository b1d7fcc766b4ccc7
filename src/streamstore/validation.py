"""
Default event batch validation using Pydantic.

Payload schemas belong to the application; this validator only checks the
envelope every stored event needs. Pass a richer model (or any object with a
`validate(events)` method) to the factory to enforce more.
"""
from typing import Any, Dict, List, Optional, Type

import pydantic
from pydantic import BaseModel, ConfigDict, Field


class EventEnvelope(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str = Field(min_length=1)
    timestamp: int


class PydanticEventValidator:
    def __init__(self, model: Type[BaseModel] = EventEnvelope):
        self.model = model

    def validate(self, events: List[Dict[str, Any]]) -> Optional[Exception]:
        for event in events:
            if not isinstance(event, dict):
                return TypeError(f"Events must be dicts, got {type(event).__name__}")
            try:
                self.model.model_validate(event)
            except pydantic.ValidationError as e:
                return e
        return None
