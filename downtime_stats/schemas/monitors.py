from pydantic import BaseModel


class MonitorInfo(BaseModel):
    id: int
    name: str
    url: str | None = None


class MonitorListResponse(BaseModel):
    monitors: list[MonitorInfo]
