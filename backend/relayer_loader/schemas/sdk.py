from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from relayer_loader.loader.models import LoaderOptions, LoaderOutcome


class SdkStatus(BaseModel):
    environment_available: bool = Field(..., description="Whether the loader has a page context")
    loaded: bool = Field(..., description="Whether the namespace holds a valid capability object")
    in_flight: bool = Field(default=False, description="A load() call is currently running")
    source_url: str = Field(..., description="Script bundle injected into the page")
    namespace_key: str = Field(..., description="Global name the bundle registers under")
    injections: int = Field(default=0, description="Script nodes appended since startup")
    options: LoaderOptions
    last_outcome: LoaderOutcome | None = Field(
        default=None, description="Terminal outcome of the most recent load() call"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="UTC timestamp when the snapshot was generated",
    )


class LoadResponse(BaseModel):
    outcome: LoaderOutcome
    loaded: bool


class CancelResponse(BaseModel):
    cancelled: bool = Field(..., description="Whether a running load() was asked to stop")
