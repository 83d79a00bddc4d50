from pydantic import BaseModel, Field


class Episode(BaseModel):
    """The slice of catalog metadata the economy needs."""

    id: str
    is_free: bool = False
    price_coins: int = Field(0, ge=0)

    model_config = {"frozen": True}
