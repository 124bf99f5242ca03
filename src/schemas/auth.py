from pydantic import BaseModel


class CurrentUser(BaseModel):
    """Caller identity taken from the host's access token"""
    id: str
