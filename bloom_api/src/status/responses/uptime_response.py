from pydantic import BaseModel


class UptimeResponse(BaseModel):
    """Process uptime split into calendar units"""
    days: int
    hours: int
    minutes: int
    seconds: int
