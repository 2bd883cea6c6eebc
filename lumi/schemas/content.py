from pydantic import BaseModel
from typing import Optional


class ChapterResponse(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    order_index: int

    class Config:
        from_attributes = True


class GrammaticalCaseResponse(BaseModel):
    id: int
    name: str
    abbreviation: str
    color: str
    description: Optional[str] = None

    class Config:
        from_attributes = True
