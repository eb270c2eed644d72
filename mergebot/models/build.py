"""Jenkins build as returned by the job's api/json listing."""

from pydantic import BaseModel, Field

SUCCESS = "SUCCESS"
FAILURE = "FAILURE"
TERMINAL_RESULTS = (SUCCESS, FAILURE)


class Build(BaseModel):
    """One Jenkins build (read-only view)."""

    number: int | None = None
    url: str = ""
    building: bool = False
    result: str | None = None
    parameters: dict[str, str] = Field(default_factory=dict)

    def parameter(self, name: str) -> str | None:
        return self.parameters.get(name)

    @property
    def is_terminal(self) -> bool:
        return self.result in TERMINAL_RESULTS

    @property
    def console_url(self) -> str:
        return f"{self.url.rstrip('/')}/console"
