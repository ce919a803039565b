from __future__ import annotations

import enum
import re
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pagepeeker.core.config import settings

MIN_POLL_INTERVAL_SECONDS = 5

_SCHEME_PREFIX_RE = re.compile(r"^(https://|http://)")
_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9]+")


class ThumbnailSize(str, enum.Enum):
    tiny = "t"
    small = "s"
    medium = "m"
    large = "l"
    xlarge = "x"


def derive_target_file_name(source_url: str) -> str:
    """Build a local file name from the source URL.

    The leading scheme is dropped, every character that is not an ASCII letter or
    digit is removed and ``.jpg`` is appended, so ``https://example.com/page``
    becomes ``examplecompage.jpg``.
    """
    name = _SCHEME_PREFIX_RE.sub("", source_url)
    name = _NON_ALNUM_RE.sub("", name)
    return f"{name}.jpg"


class RequestParameters(BaseModel):
    model_config = ConfigDict(frozen=True)

    size: ThumbnailSize
    url: str

    def as_query(self) -> dict[str, str]:
        return {"size": self.size.value, "url": self.url}


class PollResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    ready: bool
    attempt: int = Field(ge=1)

    @classmethod
    def from_payload(cls, payload: dict[str, Any], *, attempt: int) -> "PollResult":
        return cls(ready=_is_ready_flag(payload.get("IsReady")), attempt=attempt)


def _is_ready_flag(flag: Any) -> bool:
    # The service may send the flag as a string; "0" means not ready.
    if isinstance(flag, str):
        return flag not in {"", "0"}
    return bool(flag)


class ThumbnailRequest(BaseModel):
    """Options for a single thumbnail fetch.

    Accepts the snake_case field names or the camelCase keys of the PagePeeker
    option map (``sourceUrl``, ``targetFileName``, ``pollInterval`` ...). Unknown
    keys are rejected.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    source_url: str = Field(alias="sourceUrl")
    thumbnail_size: ThumbnailSize = Field(default=ThumbnailSize.large, alias="thumbnailSize")
    target_file_name: str | None = Field(default=None, alias="targetFileName")
    poll_interval: int = Field(default=MIN_POLL_INTERVAL_SECONDS, alias="pollInterval")
    max_wait_seconds: float | None = Field(
        default_factory=lambda: settings.default_max_wait_seconds,
        gt=0,
        alias="maxWaitSeconds",
    )
    max_polls: int | None = Field(default=None, ge=1, alias="maxPolls")
    retry_transport_errors_during_poll: bool = Field(default=False, alias="retryTransportErrorsDuringPoll")

    @field_validator("source_url")
    @classmethod
    def _validate_source_url(cls, value: str) -> str:
        cleaned = (value or "").strip()
        if not cleaned or any(ch.isspace() for ch in cleaned) or "http" not in cleaned.lower():
            raise ValueError("sourceUrl is not a valid web address")
        parsed = urlparse(cleaned)
        if parsed.scheme.lower() not in {"http", "https"} or not parsed.hostname:
            raise ValueError("sourceUrl is not a valid web address")
        # .port raises ValueError for non-numeric or out of range ports.
        if parsed.port == 0:
            raise ValueError("sourceUrl is not a valid web address")
        return cleaned

    @field_validator("target_file_name")
    @classmethod
    def _blank_target_is_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None

    @field_validator("poll_interval")
    @classmethod
    def _clamp_poll_interval(cls, value: int) -> int:
        return max(MIN_POLL_INTERVAL_SECONDS, value)

    @property
    def resolved_target_file_name(self) -> str:
        return self.target_file_name or derive_target_file_name(self.source_url)

    def request_parameters(self) -> RequestParameters:
        return RequestParameters(size=self.thumbnail_size, url=self.source_url)
