from pydantic import BaseModel, ConfigDict, Field


class RetryPolicy(BaseModel):
    """Bounded retry with linear backoff: attempt n waits ``base_delay_seconds * n``."""

    max_attempts: int = Field(default=3, ge=1)
    base_delay_seconds: float = Field(default=1.0, ge=0.0)

    model_config = ConfigDict(frozen=True)

    def delay_after(self, attempt: int) -> float:
        return self.base_delay_seconds * attempt

    def should_retry(self, attempt: int) -> bool:
        return attempt < self.max_attempts
