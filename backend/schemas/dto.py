from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator
from typing import List, Optional, Union

ITEM_FIELD_MAX = 30

class Item(BaseModel):
    name: str = Field(min_length=1, max_length=ITEM_FIELD_MAX)
    description: str = Field(default="", max_length=ITEM_FIELD_MAX)

    @field_validator("name", "description", mode="before")
    @classmethod
    def trim(cls, v):
        return v.strip() if isinstance(v, str) else v

class GenerateRequest(BaseModel):
    items: List[Union[Item, str]] = Field(min_length=1)

    @field_validator("items")
    @classmethod
    def norm(cls, v):
        out = []
        for it in v:
            if isinstance(it, str):
                it = it.strip()
                if not it:
                    continue
            out.append(it)
        if not out:
            raise ValueError("Items array is required.")
        return out

class Recipe(BaseModel):
    # model output is validated as-is, no coercion
    model_config = ConfigDict(strict=True)

    title: StrictStr
    ingredients: List[StrictStr]
    instructions: StrictStr

class GenerateResponse(BaseModel):
    recipes: List[Recipe]

class IdentifiedItem(BaseModel):
    name: str = ""
    description: str = ""

    @field_validator("name", "description", mode="before")
    @classmethod
    def cap(cls, v):
        return v.strip()[:ITEM_FIELD_MAX] if isinstance(v, str) else ""

class IdentifyRequest(BaseModel):
    image_base64: str = Field(min_length=1)
    mime_type: str = "image/jpeg"

class SavedList(BaseModel):
    id: str
    name: str
    description: str = ""
    timestamp: str
    items: List[Item]

class SaveListRequest(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    items: List[Item] = Field(default_factory=list)

    @field_validator("name", "description", mode="before")
    @classmethod
    def trim(cls, v):
        return v.strip() if isinstance(v, str) else v

class ScannedItem(BaseModel):
    id: str
    uri: str
    name: str = ""
    description: str = ""

class ErrorResponse(BaseModel):
    error: str
    raw: Optional[str] = None
