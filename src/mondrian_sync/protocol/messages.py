from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from .constants import (
    E_AUDIO,
    E_GENERATE,
    E_JOIN,
    E_SYNC,
    E_SYNC_REQUEST,
    E_USERS,
    E_WELCOME,
)

# Wire format: one JSON object per websocket text frame.
# - "event" names the message
# - every other key is camelCase (snake_case attributes on the Python side)
# - timestamps are unix epoch milliseconds


class _Event(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def wire(self) -> dict:
        return self.model_dump(by_alias=True)


class Welcome(_Event):
    event: Literal[E_WELCOME] = E_WELCOME
    client_id: str
    server_time: int


class Generate(_Event):
    event: Literal[E_GENERATE] = E_GENERATE
    timestamp: int
    seed: int
    depth: Annotated[int, Field(ge=1)]
    color_chance: Annotated[float, Field(ge=0.0, le=1.0)]
    line_weight: Annotated[int, Field(ge=0)]
    duration: Annotated[int, Field(description="ms this composition stays on screen")]


class Audio(_Event):
    event: Literal[E_AUDIO] = E_AUDIO
    timestamp: int
    frequencies: list[float]
    duration: Annotated[float, Field(description="tone length in seconds")]


class Sync(_Event):
    event: Literal[E_SYNC] = E_SYNC
    server_time: int
    # echoed back exactly as the client sent it
    client_time: Union[int, float]


class Users(_Event):
    event: Literal[E_USERS] = E_USERS
    count: int


class Join(_Event):
    event: Literal[E_JOIN] = E_JOIN
    user_agent: Optional[str] = None


class SyncRequest(_Event):
    event: Literal[E_SYNC_REQUEST] = E_SYNC_REQUEST
    client_time: Union[int, float]


ClientMsg = Annotated[Union[Join, SyncRequest], Field(discriminator="event")]
ServerMsg = Annotated[
    Union[Welcome, Generate, Audio, Sync, Users],
    Field(discriminator="event"),
]

_client_adapter: TypeAdapter[ClientMsg] = TypeAdapter(ClientMsg)
_server_adapter: TypeAdapter[ServerMsg] = TypeAdapter(ServerMsg)


def parse_client_message(raw: str | bytes) -> Join | SyncRequest:
    """Parse one client frame. Raises pydantic.ValidationError on anything unexpected."""
    return _client_adapter.validate_json(raw)


def parse_server_message(raw: str | bytes) -> Welcome | Generate | Audio | Sync | Users:
    return _server_adapter.validate_json(raw)
