"""Laboratory API client used as the collaboration core's request collaborator."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from labcollab.samples.config import get_settings
from labcollab.samples.schemas import (
    Assignee,
    DomainEvent,
    ImageSet,
    Label,
    Sample,
    SampleImage,
)
from labcollab.shared.utils.logging import get_logger

logger = get_logger(__name__)

# Global client instance
_lab_api_client: LabApiClient | None = None

_ModelT = TypeVar("_ModelT", bound=BaseModel)


class LabApiError(Exception):
    """Raised when the laboratory API fails or answers with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def _validate(model: type[_ModelT], data: Any, path: str) -> _ModelT:
    """Validate a response body, reporting schema mismatches as ``LabApiError``."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.warning(
            "lab_api_invalid_payload",
            path=path,
            model=model.__name__,
            error_count=e.error_count(),
        )
        raise LabApiError(f"Unexpected response from {path}") from e


def _items(data: Any, key: str) -> list[Any]:
    """List payload, either bare or wrapped as ``{key: [...]}``."""
    if isinstance(data, dict):
        data = data.get(key)
    return data if isinstance(data, list) else []


@dataclass(frozen=True)
class Credentials:
    """Credential passed explicitly into the client.

    ``scheme`` is prefixed to the token when set (``"Bearer"``); the
    laboratory API also accepts the raw token.
    """

    token: str
    scheme: str = ""

    def header_value(self) -> str:
        return f"{self.scheme} {self.token}" if self.scheme else self.token


class LabApiClient:
    """
    Async client for the laboratory API.

    Wraps the sample, label and lab-user endpoints the collaboration
    layer depends on. All methods raise ``LabApiError`` on failure.
    """

    def __init__(
        self,
        base_url: str | None = None,
        credentials: Credentials | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            base_url: API base URL, defaults to settings
            credentials: Authorization credential, or None for anonymous calls
            timeout: Request timeout in seconds, defaults to settings
            transport: Optional httpx transport (used by tests)
        """
        settings = get_settings()
        self._base_url = (base_url or settings.api_base_url).rstrip("/")
        self._credentials = credentials
        self._timeout = timeout if timeout is not None else settings.request_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            headers = {"accept": "application/json"}
            if self._credentials is not None:
                headers["Authorization"] = self._credentials.header_value()
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers=headers,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> LabApiClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        files: dict[str, Any] | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body (or None)."""
        client = await self._get_client()
        try:
            response = await client.request(method, path, json=json, files=files)
        except httpx.HTTPError as e:
            logger.warning("lab_api_transport_error", method=method, path=path, error=str(e))
            raise LabApiError(str(e) or e.__class__.__name__) from e

        parsed: Any = None
        if response.content:
            try:
                parsed = response.json()
            except ValueError:
                parsed = None

        if response.is_error:
            message = None
            if isinstance(parsed, dict):
                message = parsed.get("message") or parsed.get("detail")
            if not isinstance(message, str) or not message:
                message = f"{response.status_code} {response.reason_phrase}"
            logger.info(
                "lab_api_error_response",
                method=method,
                path=path,
                status_code=response.status_code,
                message=message,
            )
            raise LabApiError(message, status_code=response.status_code)

        return parsed

    # ------------------------------------------------------------------
    # Samples
    # ------------------------------------------------------------------

    async def get_sample(self, sample_id: str) -> Sample:
        path = f"/v1/laboratory/samples/{sample_id}"
        return _validate(Sample, await self._request("GET", path), path)

    async def get_sample_images(self, sample_id: str) -> ImageSet:
        """Images of a sample.

        The service answers either ``{"images": [...]}`` or a bare list.
        """
        path = f"/v1/laboratory/samples/{sample_id}/images"
        data = await self._request("GET", path)
        sample_ref = data.get("sample_id") if isinstance(data, dict) else None
        return _validate(
            ImageSet,
            {"sample_id": sample_ref or sample_id, "images": _items(data, "images")},
            path,
        )

    async def get_sample_events(self, sample_id: str) -> list[DomainEvent]:
        """Events for a sample in ascending chronological order."""
        path = f"/v1/laboratory/samples/{sample_id}/events"
        data = await self._request("GET", path)
        return [_validate(DomainEvent, item, path) for item in _items(data, "events")]

    async def update_sample_state(self, sample_id: str, state: str) -> Sample | None:
        data = await self._request(
            "PATCH",
            f"/v1/laboratory/samples/{sample_id}/state",
            json={"state": state},
        )
        if isinstance(data, dict) and "id" in data:
            return _validate(Sample, data, f"/v1/laboratory/samples/{sample_id}/state")
        return None

    async def update_sample_notes(self, sample_id: str, notes: str | None) -> None:
        await self._request(
            "PATCH",
            f"/v1/laboratory/samples/{sample_id}/notes",
            json={"notes": notes or None},
        )

    async def update_sample_assignees(self, sample_id: str, assignee_ids: list[str]) -> None:
        """Replace the full assignee set of a sample."""
        await self._request(
            "PUT",
            f"/v1/laboratory/samples/{sample_id}/assignees",
            json={"assignee_ids": assignee_ids},
        )

    async def update_sample_labels(self, sample_id: str, label_ids: list[str]) -> None:
        """Replace the sample's own label set. Order-level labels are not sent."""
        await self._request(
            "PUT",
            f"/v1/laboratory/samples/{sample_id}/labels",
            json={"label_ids": label_ids},
        )

    async def upload_sample_image(
        self,
        sample_id: str,
        filename: str,
        content: bytes,
        content_type: str = "application/octet-stream",
    ) -> SampleImage | None:
        data = await self._request(
            "POST",
            f"/v1/laboratory/samples/{sample_id}/images",
            files={"file": (filename, content, content_type)},
        )
        if isinstance(data, dict) and "id" in data:
            return _validate(SampleImage, data, f"/v1/laboratory/samples/{sample_id}/images")
        return None

    async def delete_sample_image(self, sample_id: str, image_id: str) -> None:
        await self._request("DELETE", f"/v1/laboratory/samples/{sample_id}/images/{image_id}")

    # ------------------------------------------------------------------
    # Labels and users
    # ------------------------------------------------------------------

    async def list_labels(self) -> list[Label]:
        path = "/v1/laboratory/labels/"
        data = await self._request("GET", path)
        return [_validate(Label, item, path) for item in _items(data, "labels")]

    async def create_label(self, name: str, color: str) -> Label:
        data = await self._request(
            "POST",
            "/v1/laboratory/labels/",
            json={"name": name, "color": color},
        )
        return _validate(Label, data, "/v1/laboratory/labels/")

    async def list_lab_users(self) -> list[Assignee]:
        path = "/v1/laboratory/users/search"
        data = await self._request("GET", path)
        return [_validate(Assignee, item, path) for item in _items(data, "users")]


def get_lab_api_client(credentials: Credentials | None = None) -> LabApiClient:
    """Get or create the shared client instance."""
    global _lab_api_client
    if _lab_api_client is None:
        _lab_api_client = LabApiClient(credentials=credentials)
        logger.info("lab_api_client_created", base_url=_lab_api_client._base_url)
    return _lab_api_client


async def close_lab_api_client() -> None:
    """Close the shared client instance."""
    global _lab_api_client
    if _lab_api_client is not None:
        await _lab_api_client.close()
        _lab_api_client = None
        logger.info("lab_api_client_closed")
