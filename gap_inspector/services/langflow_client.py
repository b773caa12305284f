"""
Langflow HTTP client

Wraps the handful of Langflow endpoints the relay touches: flow runs
(blocking and streamed), file upload, build monitoring and flow lookup.
One client per request; every failure is raised as UpstreamError.
"""
import json
import logging
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    """
    A failed call to the flow engine.

    `details` carries the upstream error body verbatim when one was
    returned, otherwise the transport error text.
    """

    def __init__(self, message: str, details: Any = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.details = details if details is not None else message
        self.status_code = status_code


def _response_details(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or response.reason_phrase


class UpstreamStream:
    """
    An open streamed run: a lazy, finite, non-restartable sequence of
    `{"event": ..., "data": ...}` dicts read line by line.
    """

    def __init__(self, response: httpx.Response):
        self._response = response
        self._consumed = False

    async def events(self) -> AsyncIterator[Dict[str, Any]]:
        if self._consumed:
            raise RuntimeError("Upstream stream can only be iterated once")
        self._consumed = True

        async for line in self._response.aiter_lines():
            line = line.strip()
            if not line:
                continue
            try:
                event = json.loads(line)
            except ValueError:
                logger.warning("Skipping unparseable upstream line: %s", line[:200])
                continue
            if isinstance(event, dict):
                yield event

    async def aclose(self) -> None:
        await self._response.aclose()


class LangflowClient:
    """
    Minimal async client for a Langflow server

    Args:
        base_url: Langflow base address, without trailing slash
        api_key: Access credential sent as `x-api-key`
        timeout: Seconds allowed per upstream read
        transport: Optional httpx transport (tests pass a MockTransport)
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 600.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"x-api-key": api_key},
            timeout=httpx.Timeout(timeout, connect=30.0),
            transport=transport,
        )

    async def __aenter__(self) -> "LangflowClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    @staticmethod
    def build_run_payload(
        input_value: str,
        session_id: str,
        tweaks: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        payload = {
            "input_value": input_value,
            "input_type": "chat",
            "output_type": "chat",
            "session_id": session_id,
        }
        if tweaks:
            payload["tweaks"] = tweaks
        return payload

    async def run(
        self,
        flow_id: str,
        input_value: str,
        session_id: str,
        tweaks: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Run a flow and wait for its complete result

        Returns:
            The upstream JSON payload, unmodified
        """
        payload = self.build_run_payload(input_value, session_id, tweaks)
        response = await self._request(
            "POST", f"/api/v1/run/{flow_id}", params={"stream": "false"}, json=payload
        )
        return self._json(response)

    async def open_stream(
        self,
        flow_id: str,
        input_value: str,
        session_id: str,
        tweaks: Optional[Dict[str, Any]] = None,
    ) -> UpstreamStream:
        """
        Start a streamed run. Returns once the upstream has answered with
        a successful status; the body is read lazily through the stream.
        """
        payload = self.build_run_payload(input_value, session_id, tweaks)
        request = self._http.build_request(
            "POST", f"/api/v1/run/{flow_id}", params={"stream": "true"}, json=payload
        )
        try:
            response = await self._http.send(request, stream=True)
        except httpx.HTTPError as e:
            raise UpstreamError(f"Upstream stream failed: {e}") from e

        if response.is_error:
            try:
                await response.aread()
                details = _response_details(response)
            except httpx.HTTPError as e:
                details = str(e) or response.reason_phrase
            finally:
                await response.aclose()
            raise UpstreamError(
                f"Upstream returned {response.status_code}",
                details=details,
                status_code=response.status_code,
            )

        return UpstreamStream(response)

    async def upload_file(
        self,
        flow_id: str,
        path: Path,
        filename: str,
        content_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Upload a local file into the flow's file store

        Returns:
            Upstream payload; guaranteed to contain `file_path`
        """
        with open(path, "rb") as fh:
            files = {"file": (filename, fh, content_type or "application/octet-stream")}
            response = await self._request("POST", f"/api/v1/files/upload/{flow_id}", files=files)

        data = self._json(response)
        if not isinstance(data, dict) or not data.get("file_path"):
            raise UpstreamError("Upstream upload response has no file_path", details=data)
        return data

    async def get_builds(self, flow_id: str) -> Any:
        response = await self._request("GET", "/api/v1/monitor/builds", params={"flow_id": flow_id})
        return self._json(response)

    async def get_flow(self, flow_id: str) -> Dict[str, Any]:
        response = await self._request("GET", f"/api/v1/flows/{flow_id}")
        return self._json(response)

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self._http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise UpstreamError(f"Upstream request failed: {e}") from e

        if response.is_error:
            raise UpstreamError(
                f"Upstream returned {response.status_code}",
                details=_response_details(response),
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError("Upstream returned a malformed payload", details=response.text) from e


def flow_component_ids(flow: Dict[str, Any]) -> set:
    """Node ids of a flow definition as returned by `GET /api/v1/flows/{id}`"""
    nodes = (flow.get("data") or {}).get("nodes") or []
    return {node.get("id") for node in nodes if isinstance(node, dict) and node.get("id")}
