from __future__ import annotations

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class Identity(BaseModel):
    """Caller identity as reported by the identity provider."""

    id: int
    name: str


class Profile(BaseModel):
    name: str


class Message(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    question: str
    answer: Optional[str] = None
    create_date: datetime = Field(alias="createDate")

    def to_document(self) -> dict:
        # id lives in the document path, not in the body
        return {"question": self.question, "answer": self.answer, "createDate": self.create_date}


class Session(BaseModel):
    token: str = Field(min_length=1)


class DeleteAck(BaseModel):
    deleted: str
