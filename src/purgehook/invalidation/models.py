"""Configuration and request models shared by the dispatch pipeline."""

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DispatchConfig(BaseModel):
    """Immutable webhook configuration supplied at dispatcher construction."""

    model_config = ConfigDict(frozen=True)

    webhook_url: str
    method: str = "POST"
    secret: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    body_template: str
    retry_count: int = Field(default=3, ge=1)
    retry_delay_ms: int = Field(default=1000, ge=0)
    debug: bool = False
    public_url: str

    @field_validator("method")
    @classmethod
    def _upper_method(cls, v: str) -> str:
        return v.upper()

    @property
    def retry_delay_seconds(self) -> float:
        return self.retry_delay_ms / 1000


@dataclass(frozen=True)
class RenderedRequest:
    """A fully rendered webhook request, as it will be sent."""

    method: str
    url: str
    headers: dict[str, str]
    body: str
