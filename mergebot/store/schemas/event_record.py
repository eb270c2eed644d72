"""Logged ref update as stored in .mergebot/events/{id}.yaml."""

from datetime import datetime

from pydantic import Field

from mergebot.models import RefPayload


class EventRecord(RefPayload):
    """Ref payload accepted by the event poller, with the time it was logged."""

    logged_at: datetime = Field(..., description="When the payload was written to the store")

    model_config = {"extra": "forbid"}
