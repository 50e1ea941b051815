from __future__ import annotations

from typing import List, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, Field


class PromptPart(BaseModel):
    """Either a text part or an inline blob (base64 `data` + `mime_type`)."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    text: Optional[str] = None
    mime_type: Optional[str] = Field(default=None, alias="mimeType")
    data: Optional[str] = None

    @property
    def is_inline_data(self) -> bool:
        return self.data is not None


class PromptTurn(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "model"] = "user"
    parts: List[PromptPart]


class CompiledPrompt(BaseModel):
    """Provider-agnostic prompt plus the model its reply must validate as."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    turns: List[PromptTurn]
    shape: Optional[Type[BaseModel]] = None

    @property
    def text(self) -> str:
        """All text parts joined, for logging and inspection."""
        return "\n".join(p.text for t in self.turns for p in t.parts if p.text)
