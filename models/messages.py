from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

_ROLE_ALIASES = {"assistant": "ai", "user": "human"}


class Message(BaseModel):
    """One conversational turn as delivered by the transport.

    The speaker is read from `type` or `role`; `assistant` and `user` are
    folded into `ai` and `human`. Other kinds (`remove` markers, `function`
    turns) pass through as their lowercase name. Unknown keys (branch
    metadata, tool calls, ...) are kept so a message can be handed back to
    the transport unchanged.
    """

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    type: str = Field(validation_alias=AliasChoices("type", "role"))
    content: str | list[Any] = ""
    additional_kwargs: dict[str, Any] = Field(default_factory=dict)

    @field_validator("type", mode="before")
    @classmethod
    def normalise_role(cls, v):
        if isinstance(v, str):
            return _ROLE_ALIASES.get(v.lower(), v.lower())
        return v

    @field_validator("additional_kwargs", mode="before")
    @classmethod
    def default_missing_kwargs(cls, v):
        return {} if v is None else v

    @property
    def text(self) -> str | None:
        """The content when it is a plain string, else None."""
        return self.content if isinstance(self.content, str) else None

    @property
    def do_not_render(self) -> bool:
        return bool(self.additional_kwargs.get("do_not_render"))
