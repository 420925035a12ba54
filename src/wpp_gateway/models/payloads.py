"""Send payload variants.

Each variant is validated at the request boundary and knows the single
provider endpoint it maps to and the body that endpoint expects. The
``session`` field routes the call and never reaches the provider body.
"""

from __future__ import annotations

from typing import Annotated, Any, ClassVar, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


class SendBase(BaseModel):
    """Fields shared by every send-type request."""

    model_config = ConfigDict(populate_by_name=True)

    _ROUTING_FIELDS: ClassVar[set[str]] = {"session", "kind"}

    session: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(
        ...,
        min_length=1,
        max_length=64,
        validation_alias=AliasChoices("phone", "to"),
        description="Recipient phone number or group id.",
    )
    is_group: bool = Field(False, alias="isGroup")

    @property
    def endpoint(self) -> str:
        raise NotImplementedError

    def provider_body(self) -> dict[str, Any]:
        """Body forwarded to the provider, camelCase and without routing fields."""
        return self.model_dump(
            by_alias=True, exclude=self._ROUTING_FIELDS, exclude_none=True
        )


class TextSend(SendBase):
    kind: Literal["text"] = "text"
    message: str = Field(..., min_length=1)

    @property
    def endpoint(self) -> str:
        return "send-message"


class _MediaSend(SendBase):
    """Media variants accept either inline base64 content or a provider-side path."""

    _CONTENT_FIELD: ClassVar[str] = "base64"

    path: str | None = None
    caption: str | None = None

    @model_validator(mode="after")
    def _exactly_one_source(self) -> _MediaSend:
        inline = getattr(self, self._CONTENT_FIELD, None)
        if bool(inline) == bool(self.path):
            field_name = self._CONTENT_FIELD
            raise ValueError(f"provide exactly one of '{field_name}' or 'path'")
        return self

    @property
    def is_inline(self) -> bool:
        return bool(getattr(self, self._CONTENT_FIELD, None))


class ImageSend(_MediaSend):
    kind: Literal["image"] = "image"
    base64: str | None = None
    filename: str = "image.jpg"

    @property
    def endpoint(self) -> str:
        return "send-image"


class FileSend(_MediaSend):
    kind: Literal["file"] = "file"
    base64: str | None = None
    filename: str | None = None

    @model_validator(mode="after")
    def _inline_needs_filename(self) -> FileSend:
        if self.base64 and not self.filename:
            raise ValueError("'filename' is required with 'base64'")
        return self

    @property
    def endpoint(self) -> str:
        return "send-file-base64" if self.is_inline else "send-file"


class VoiceSend(_MediaSend):
    _CONTENT_FIELD: ClassVar[str] = "base64_ptt"

    kind: Literal["voice"] = "voice"
    base64_ptt: str | None = Field(None, alias="base64Ptt")

    @property
    def endpoint(self) -> str:
        return "send-voice-base64" if self.is_inline else "send-voice"


class StickerSend(SendBase):
    kind: Literal["sticker"] = "sticker"
    path: str = Field(..., min_length=1)

    @property
    def endpoint(self) -> str:
        return "send-sticker"


class ListRow(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    row_id: str = Field(..., min_length=1, alias="rowId")
    title: str = Field(..., min_length=1)
    description: str | None = None


class ListSection(BaseModel):
    title: str = Field(..., min_length=1)
    rows: list[ListRow] = Field(..., min_length=1)


class ListSend(SendBase):
    kind: Literal["list"] = "list"
    button_text: str = Field(..., min_length=1, alias="buttonText")
    description: str = ""
    sections: list[ListSection] = Field(..., min_length=1)

    @property
    def endpoint(self) -> str:
        return "send-list-message"


class Button(BaseModel):
    """Reply/interactive button as accepted from callers."""

    id: str = Field(..., min_length=1, validation_alias=AliasChoices("id", "buttonId"))
    text: str = Field(
        ...,
        min_length=1,
        max_length=20,
        validation_alias=AliasChoices("text", "buttonText"),
    )

    def provider_shape(self) -> dict[str, str]:
        return {"buttonId": self.id, "buttonText": self.text}


class ButtonsSend(SendBase):
    kind: Literal["buttons"] = "buttons"
    message: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    buttons: list[Button] = Field(..., min_length=1, max_length=3)

    @property
    def endpoint(self) -> str:
        return "send-buttons"

    def provider_body(self) -> dict[str, Any]:
        body = super().provider_body()
        body["buttons"] = [b.provider_shape() for b in self.buttons]
        return body


class PollSend(SendBase):
    kind: Literal["poll"] = "poll"
    name: str = Field(..., min_length=1)
    choices: list[str] = Field(..., min_length=2, max_length=12)
    options: dict[str, Any] = Field(default_factory=lambda: {"selectableCount": 1})

    @property
    def endpoint(self) -> str:
        return "send-poll-message"


class ReplySend(SendBase):
    kind: Literal["reply"] = "reply"
    message: str = Field(..., min_length=1)
    buttons: list[Button] = Field(..., min_length=1, max_length=3)

    @property
    def endpoint(self) -> str:
        return "send-reply"

    def provider_body(self) -> dict[str, Any]:
        body = super().provider_body()
        del body["buttons"]
        body["options"] = {"buttons": [b.provider_shape() for b in self.buttons]}
        return body


SendPayload = Annotated[
    TextSend
    | ImageSend
    | FileSend
    | VoiceSend
    | StickerSend
    | ListSend
    | ButtonsSend
    | PollSend
    | ReplySend,
    Field(discriminator="kind"),
]
