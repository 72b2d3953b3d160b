"""Input models for the MCP tools."""

from __future__ import annotations

from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from chatmemory.errors import InvalidRequestError

Style = Literal["brief", "detailed"]
Role = Literal["user", "assistant", "system"]

ModelT = TypeVar("ModelT", bound=BaseModel)


class SaveSessionInput(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    tags: list[str] | None = None
    meta: dict[str, Any] | None = None

    @model_validator(mode="after")
    def check_tags(self) -> SaveSessionInput:
        for tag in self.tags or []:
            if len(tag) > 50:
                raise ValueError(f"Tag longer than 50 characters: {tag[:20]}...")
        return self


class MessageInput(BaseModel):
    role: Role
    content: str = Field(min_length=1)
    created_at: int | None = Field(default=None, gt=0)


class SaveMessagesInput(BaseModel):
    session_id: str = Field(min_length=1)
    messages: list[MessageInput] = Field(min_length=1)


class ListSessionsInput(BaseModel):
    limit: int = Field(default=20, ge=1, le=100)
    offset: int = Field(default=0, ge=0)
    tags: list[str] | None = None


class GetSessionInput(BaseModel):
    session_id: str = Field(min_length=1)
    include_messages: bool = True
    message_limit: int = Field(default=100, ge=1, le=500)


class SearchInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    query: str = Field(min_length=1)
    top_k: int = Field(default=5, ge=1, le=50)
    time_range_days: int = Field(default=180, ge=1)
    tags: list[str] | None = None
    session_id: str | None = None


class SummarizeInput(BaseModel):
    session_id: str = Field(min_length=1)
    style: Style = "brief"
    force_refresh: bool = False


class InjectInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    session_id: str | None = None
    query: str | None = None
    style: Style = "brief"
    top_k: int = Field(default=5, ge=1, le=10)

    @model_validator(mode="after")
    def check_mode(self) -> InjectInput:
        if bool(self.session_id) == bool(self.query):
            raise ValueError("Exactly one of session_id or query must be provided")
        return self


def validate(model: type[ModelT], **kwargs: Any) -> ModelT:
    """Build ``model`` from kwargs, dropping unset (None) values so defaults apply."""
    data = {k: v for k, v in kwargs.items() if v is not None}
    try:
        return model.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}"
            for err in e.errors()
        )
        raise InvalidRequestError(f"Invalid arguments: {problems}") from e
