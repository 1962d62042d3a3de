"""Content indexing schemas."""

from pydantic import BaseModel


class IndexContentResponse(BaseModel):
    success: bool
    content_id: str
    chunks_indexed: int
