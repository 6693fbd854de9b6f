# core/validation.py
from __future__ import annotations

import math
from typing import Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import MarketplaceError

AI_MODELS_FOR_VALIDATION = ["ChatGPT-4", "ChatGPT-3.5", "Midjourney", "DALL·E 3", "Claude 2", "Other"]


class PromptValidationError(MarketplaceError):
    """Upload payload failed validation; field_errors maps field -> messages."""

    def __init__(self, field_errors: Dict[str, List[str]]):
        super().__init__("Invalid request data")
        self.field_errors = field_errors


class PromptUpload(BaseModel):
    title: str = Field(..., min_length=5, max_length=100)
    description: str = Field(..., min_length=20, max_length=300)
    model: str
    tags: List[str] = Field(..., min_length=1, max_length=5)
    price: Union[Literal["Free"], float] = Field(...)
    prompt_content: str = Field(..., alias="promptContent", min_length=50, max_length=5000)

    model_config = {"populate_by_name": True}

    @field_validator("model")
    @classmethod
    def _known_model(cls, v: str) -> str:
        if v not in AI_MODELS_FOR_VALIDATION:
            raise ValueError("Invalid AI model selected")
        return v

    @field_validator("tags")
    @classmethod
    def _tag_lengths(cls, v: List[str]) -> List[str]:
        for tag in v:
            if not tag:
                raise ValueError("Tag cannot be empty")
            if len(tag) > 20:
                raise ValueError("Tag can be max 20 chars")
        return v

    @field_validator("price")
    @classmethod
    def _price_range(cls, v):
        if v == "Free":
            return v
        if not math.isfinite(v):
            raise ValueError("Price must be a finite number")
        if v < 0:
            raise ValueError("Price must be $0 or a positive number. For free, type 'Free'.")
        if v > 999:
            raise ValueError("Price cannot exceed $999")
        return v

    @property
    def stored_price(self) -> float:
        return 0.0 if self.price == "Free" else float(self.price)

    def to_user_record(self, prompt_id: str, author: Optional[str] = None) -> Dict[str, Any]:
        """
        Shape accepted by core.normalizer: the prompt text lives under
        "description", matching how authored prompts are listed.
        """
        return {
            "id": prompt_id,
            "title": self.title,
            "description": self.prompt_content,
            "model": self.model,
            "author": author,
            "price": self.stored_price,
            "tags": list(self.tags),
        }


def validate_upload(payload: Mapping[str, Any]) -> PromptUpload:
    try:
        return PromptUpload.model_validate(dict(payload))
    except ValidationError as e:
        field_errors: Dict[str, List[str]] = {}
        for err in e.errors():
            loc = err.get("loc") or ("__root__",)
            name = str(loc[0])
            if name == "prompt_content":
                name = "promptContent"
            msg = err.get("msg", "")
            # pydantic prefixes messages raised from validators
            if msg.startswith("Value error, "):
                msg = msg[len("Value error, "):]
            field_errors.setdefault(name, []).append(msg)
        raise PromptValidationError(field_errors) from e
