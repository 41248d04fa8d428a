from pydantic import BaseModel, Field


class Principal(BaseModel):
    """The authenticated caller of an HTTP request."""

    user_id: str = Field(..., description="Internal users.id")
    identity: str = Field(..., description="External identity; what rooms authorize")
    is_admin: bool = False
