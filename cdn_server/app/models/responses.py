from pydantic import BaseModel


class UploadResponse(BaseModel):
    full_url: str
    filename: str
    path: str


class MessageResponse(BaseModel):
    message: str
