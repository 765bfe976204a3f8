from typing import Optional

from pydantic import BaseModel, ConfigDict

from app.schemas.common import ChannelOutcome


class ChannelResult(BaseModel):
    """Outcome of one delivery attempt on one channel.

    ``skipped`` means no attempt was made (no address, no credentials);
    ``failed`` means an attempt was made and raised.  Both carry a reason.
    """

    model_config = ConfigDict(frozen=True)

    outcome: ChannelOutcome
    reason: Optional[str] = None

    @classmethod
    def sent(cls) -> "ChannelResult":
        return cls(outcome=ChannelOutcome.sent)

    @classmethod
    def failed(cls, reason: str) -> "ChannelResult":
        return cls(outcome=ChannelOutcome.failed, reason=reason or "Unknown error")

    @classmethod
    def skipped(cls, reason: str) -> "ChannelResult":
        return cls(outcome=ChannelOutcome.skipped, reason=reason)

    @property
    def is_sent(self) -> bool:
        return self.outcome is ChannelOutcome.sent

    @property
    def is_failed(self) -> bool:
        return self.outcome is ChannelOutcome.failed
