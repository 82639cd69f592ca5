"""Stack-related data models."""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class Stack(BaseModel):
    """A directory holding one compose file, started and stopped as a unit."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Path relative to the stacks root, POSIX separators")
    path: Path = Field(description="Absolute stack directory")
    compose_file: Path
    project: str | None = Field(None, description="Top-level 'name:' of the compose file")

    @property
    def label(self) -> str:
        """Name shown to the user."""
        if self.project and self.project != self.name:
            return f"{self.name} ({self.project})"
        return self.name


class StackResult(BaseModel):
    """Outcome of running one verb against one stack."""

    stack: str
    verb: str
    returncode: int
    failed_step: str | None = None
    error: str | None = Field(None, description="Why the runtime could not be started")

    @property
    def success(self) -> bool:
        return self.returncode == 0


class FanOutResult(BaseModel):
    """Per-stack outcomes of a verb applied to every stack."""

    verb: str
    results: list[StackResult] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    prune_returncode: int | None = None

    @property
    def failures(self) -> list[StackResult]:
        return [result for result in self.results if not result.success]

    @property
    def returncode(self) -> int:
        """First non-zero stack exit code, then the prune exit code, else 0."""
        for result in self.results:
            if not result.success:
                return result.returncode
        return self.prune_returncode or 0
