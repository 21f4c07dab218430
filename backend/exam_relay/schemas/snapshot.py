from pydantic import BaseModel, Field


class IngestResponse(BaseModel):
    message: str
    rows_count: int = Field(alias="rowsCount")
    data: list[dict[str, str]]

    model_config = {"populate_by_name": True}


class ErrorResponse(BaseModel):
    error: str


class RoomStats(BaseModel):
    room: str
    subscribers: int


class RoomListResponse(BaseModel):
    rooms: list[RoomStats]
