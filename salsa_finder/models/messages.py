"""Request and response models exchanged with the API layer."""

import datetime as dt
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class SearchResult(BaseModel):
    """One hit returned by the search-results provider."""

    url: str
    snippet: str = ""


class StepEntry(BaseModel):
    """One line of the discovery trace."""

    step: str
    message: str


class RunSummary(BaseModel):
    """Outcome of a discovery run: step trace plus aggregate counts."""

    city: str
    query: Optional[str] = None
    steps: List[StepEntry] = Field(default_factory=list)
    extracted: int = 0
    inserted: int = 0
    skipped: int = 0
    errored: int = 0
    error: Optional[str] = None

    def add_step(self, step: str, message: str) -> None:
        self.steps.append(StepEntry(step=step, message=message))


class VoteRequest(BaseModel):
    """Body of a vote action."""

    event_id: int = Field(..., gt=0)
    type: str
    user_id: str = Field(..., min_length=1, max_length=100)


class ExistenceVoteCounts(BaseModel):
    """All-time and current-week tallies of exists/notexists votes."""

    model_config = ConfigDict(populate_by_name=True)

    exists: int = 0
    notexists: int = 0
    week_exists: int = Field(0, alias="weekExists")
    week_not_exists: int = Field(0, alias="weekNotExists")


class VenueVoteCounts(BaseModel):
    """All-time and current-week tallies of indoor/outdoor votes."""

    model_config = ConfigDict(populate_by_name=True)

    indoor: int = 0
    outdoor: int = 0
    week_indoor: int = Field(0, alias="weekIndoor")
    week_outdoor: int = Field(0, alias="weekOutdoor")


class VoteRecord(BaseModel):
    """A stored vote row."""

    id: int
    event_id: int
    type: str
    voted_at: dt.datetime
    user_id: str
