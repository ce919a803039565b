"""PagePeeker thumbnail client.

Example::

    async with ThumbnailClient({"sourceUrl": "https://example.com", "pollInterval": 5}) as client:
        path = await client.fetch_thumbnail()

``fetch_thumbnail`` triggers the render, polls the status endpoint until the
thumbnail is ready and writes the image to the target file. It returns the target
path, or ``None`` when the service answered with an empty image.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Mapping
from typing import Any

import httpx
from pydantic import ValidationError

from pagepeeker.core.config import settings
from pagepeeker.core.logging_config import job_id_ctx_var
from pagepeeker.schemas.thumbnail import PollResult, ThumbnailRequest
from pagepeeker.services import storage

logger = logging.getLogger(__name__)


class ThumbnailClientError(RuntimeError):
    pass


class InvalidConfiguration(ThumbnailClientError, ValueError):
    pass


class RequestFailed(ThumbnailClientError):
    def __init__(self, message: str, *, path: str) -> None:
        super().__init__(message)
        self.path = path


class PollTimeout(ThumbnailClientError):
    def __init__(self, message: str, *, attempts: int) -> None:
        super().__init__(message)
        self.attempts = attempts


class ThumbnailWriteError(ThumbnailClientError):
    def __init__(self, message: str, *, path: str) -> None:
        super().__init__(message)
        self.path = path


async def _sleep(seconds: float) -> None:
    await asyncio.sleep(seconds)


def _monotonic() -> float:
    return time.monotonic()


def _summarize_validation_error(exc: ValidationError) -> str:
    parts: list[str] = []
    for err in exc.errors():
        loc = ".".join(str(item) for item in err.get("loc", ())) or "config"
        parts.append(f"{loc}: {err.get('msg', 'invalid value')}")
    return "; ".join(parts)


def _coerce_config(config: ThumbnailRequest | Mapping[str, Any]) -> ThumbnailRequest:
    if isinstance(config, ThumbnailRequest):
        return config
    if not isinstance(config, Mapping):
        raise InvalidConfiguration("Thumbnail options must be a mapping")
    if "sourceUrl" not in config and "source_url" not in config:
        raise InvalidConfiguration("sourceUrl is a required parameter")
    try:
        return ThumbnailRequest.model_validate(dict(config))
    except ValidationError as exc:
        raise InvalidConfiguration(_summarize_validation_error(exc)) from exc


def _build_http_client(base_url: str) -> httpx.AsyncClient:
    timeout = httpx.Timeout(settings.request_timeout_seconds, connect=settings.connect_timeout_seconds)
    headers = {"User-Agent": settings.user_agent}
    return httpx.AsyncClient(base_url=base_url, timeout=timeout, headers=headers, follow_redirects=True)


class ThumbnailClient:
    """Drives one PagePeeker render: submit, poll, download.

    Sequential fetches on one instance reuse the connection pool; concurrent
    fetches on the same instance are not supported.
    """

    def __init__(
        self,
        config: ThumbnailRequest | Mapping[str, Any],
        *,
        http_client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
    ) -> None:
        self.config = _coerce_config(config)
        self.target_file_name = self.config.resolved_target_file_name
        self.request_parameters = self.config.request_parameters()
        self.base_url = (base_url or settings.base_url).rstrip("/")
        self._request_path = settings.request_path
        self._status_path = settings.status_path
        self._owns_client = http_client is None
        self._client = http_client if http_client is not None else _build_http_client(self.base_url)

    async def __aenter__(self) -> "ThumbnailClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _send(self, path: str) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            resp = await self._client.get(url, params=self.request_parameters.as_query())
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise RequestFailed(str(exc) or exc.__class__.__name__, path=path) from exc
        return resp

    async def _poll_once(self, attempt: int) -> PollResult:
        resp = await self._send(self._status_path)
        try:
            payload = resp.json()
        except ValueError as exc:
            raise RequestFailed(f"Invalid JSON from status endpoint: {exc}", path=self._status_path) from exc
        if not isinstance(payload, dict):
            raise RequestFailed("Status endpoint returned a non-object JSON payload", path=self._status_path)
        return PollResult.from_payload(payload, attempt=attempt)

    def _check_poll_budget(self, attempt: int, deadline: float | None) -> None:
        max_polls = self.config.max_polls
        if max_polls is not None and attempt >= max_polls:
            raise PollTimeout(f"Thumbnail not ready after {attempt} polls", attempts=attempt)
        if deadline is not None and _monotonic() + self.config.poll_interval > deadline:
            raise PollTimeout(
                f"Thumbnail not ready within {self.config.max_wait_seconds:g} seconds",
                attempts=attempt,
            )

    async def wait_until_ready(self) -> PollResult:
        interval = self.config.poll_interval
        max_wait = self.config.max_wait_seconds
        deadline = _monotonic() + max_wait if max_wait is not None else None
        attempt = 0
        while True:
            attempt += 1
            try:
                result = await self._poll_once(attempt)
            except RequestFailed as exc:
                if not self.config.retry_transport_errors_during_poll:
                    raise
                logger.warning("thumbnail_poll_failed", extra={"attempt": attempt, "error": str(exc)})
            else:
                if result.ready:
                    logger.info("thumbnail_ready", extra={"attempt": attempt})
                    return result
                logger.info("thumbnail_not_ready", extra={"attempt": attempt, "retry_in_seconds": interval})
            self._check_poll_budget(attempt, deadline)
            await _sleep(interval)

    async def _download(self) -> bytes:
        resp = await self._send(self._request_path)
        return bytes(resp.content or b"")

    def _discard_stale_file(self) -> None:
        try:
            storage.delete_file(self.target_file_name)
        except OSError as exc:
            raise ThumbnailWriteError(
                f"Could not remove stale thumbnail {self.target_file_name}: {exc}",
                path=self.target_file_name,
            ) from exc

    def _save(self, image_bytes: bytes) -> int:
        try:
            return storage.write_image_bytes(self.target_file_name, image_bytes)
        except OSError as exc:
            raise ThumbnailWriteError(
                f"Could not write thumbnail to {self.target_file_name}: {exc}",
                path=self.target_file_name,
            ) from exc

    async def fetch_thumbnail(self) -> str | None:
        token = job_id_ctx_var.set(uuid.uuid4().hex[:12])
        try:
            logger.info(
                "thumbnail_requested",
                extra={"source_url": self.config.source_url, "size": self.config.thumbnail_size.value},
            )
            await self._send(self._request_path)
            await self.wait_until_ready()
            image_bytes = await self._download()
            if not image_bytes:
                logger.warning("thumbnail_unavailable", extra={"reason": "empty_body"})
                self._discard_stale_file()
                return None
            written = self._save(image_bytes)
            logger.info("thumbnail_saved", extra={"path": self.target_file_name, "bytes": written})
            return self.target_file_name
        finally:
            job_id_ctx_var.reset(token)


async def fetch_thumbnail(config: ThumbnailRequest | Mapping[str, Any], **client_kwargs: Any) -> str | None:
    async with ThumbnailClient(config, **client_kwargs) as client:
        return await client.fetch_thumbnail()
