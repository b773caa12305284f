"""
Streaming analysis relay

Re-frames a streamed Langflow run into the NDJSON events the browser
reads, merged with a timer-driven keep-alive. Per-request states:

    pending -> started -> streaming* -> ended | errored

Upstream events are pumped into a request-local queue by one task, the
heartbeat by another; events() drains the queue until the terminal event
and cancels both tasks on every exit path.
"""
import asyncio
import json
import logging
import time
from typing import Any, AsyncIterator, Dict, List, Optional

from gap_inspector.services.langflow_client import LangflowClient, UpstreamStream
from gap_inspector.utils.sections import parse_sections

logger = logging.getLogger(__name__)

TERMINAL_EVENTS = ("end", "error")


class AnalysisStream:
    """
    One streamed analysis run

    Args:
        client: Upstream client owned by this stream (closed by aclose())
        flow_id: Flow to run
        input_value: Chat message
        session_id: Session passed through to the flow
        tweaks: Component overrides, e.g. the uploaded file path
        keepalive_interval: Seconds between keep-alive events
    """

    def __init__(
        self,
        client: LangflowClient,
        flow_id: str,
        input_value: str,
        session_id: str,
        tweaks: Optional[Dict[str, Any]] = None,
        keepalive_interval: float = 30.0,
    ):
        self.client = client
        self.flow_id = flow_id
        self.input_value = input_value
        self.session_id = session_id
        self.tweaks = tweaks
        self.keepalive_interval = keepalive_interval

        self.state = "pending"
        self.chunks: List[str] = []
        self.started_at = time.monotonic()

        self._upstream: Optional[UpstreamStream] = None
        self._heartbeat_task: Optional[asyncio.Task] = None
        self._pump_task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def text(self) -> str:
        return "".join(self.chunks)

    @property
    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.started_at) * 1000)

    @property
    def heartbeat_active(self) -> bool:
        return self._heartbeat_task is not None and not self._heartbeat_task.done()

    async def open(self) -> None:
        """
        Open the upstream streamed call (pending -> started).

        Raises:
            UpstreamError: if the call cannot be opened; nothing has been
                sent to the caller yet at that point
        """
        self.started_at = time.monotonic()
        self._upstream = await self.client.open_stream(
            self.flow_id, self.input_value, self.session_id, self.tweaks
        )
        self.state = "started"
        logger.info("Stream opened for session %s", self.session_id)

    async def events(self) -> AsyncIterator[Dict[str, Any]]:
        """Yield relay events up to and including exactly one terminal event"""
        if self._upstream is None:
            raise RuntimeError("open() must succeed before events() is iterated")

        queue: asyncio.Queue = asyncio.Queue()
        self._pump_task = asyncio.create_task(self._pump(queue))
        self._heartbeat_task = asyncio.create_task(self._heartbeat(queue))

        try:
            yield {
                "type": "start",
                "message": "Analysis started, streaming results...",
                "session_id": self.session_id,
            }
            while True:
                event = await queue.get()
                if event["type"] in TERMINAL_EVENTS:
                    self._stop_heartbeat()
                    self.state = "ended" if event["type"] == "end" else "errored"
                    yield event
                    return
                if event["type"] != "keepalive":
                    self.state = "streaming"
                yield event
        finally:
            if self.state not in ("ended", "errored"):
                logger.warning(
                    "Client disconnected from session %s after %.1fs",
                    self.session_id, self.elapsed_ms / 1000,
                )
            await self.aclose()

    async def aclose(self) -> None:
        """Cancel both producers and release the upstream. Idempotent."""
        if self._closed:
            return
        self._closed = True

        self._stop_heartbeat()
        tasks = [t for t in (self._heartbeat_task, self._pump_task) if t is not None]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        try:
            if self._upstream is not None:
                await self._upstream.aclose()
        finally:
            await self.client.aclose()

    def _stop_heartbeat(self) -> None:
        if self._heartbeat_task is not None and not self._heartbeat_task.done():
            self._heartbeat_task.cancel()

    async def _heartbeat(self, queue: asyncio.Queue) -> None:
        while True:
            await asyncio.sleep(self.keepalive_interval)
            queue.put_nowait({"type": "keepalive"})

    async def _pump(self, queue: asyncio.Queue) -> None:
        upstream_events = self._upstream.events()
        try:
            async for upstream_event in upstream_events:
                kind = upstream_event.get("event")
                data = upstream_event.get("data")

                if kind == "add_message":
                    queue.put_nowait({"type": "add_message", "data": data})
                elif kind == "token":
                    chunk = data.get("chunk", "") if isinstance(data, dict) else str(data or "")
                    self.chunks.append(chunk)
                    queue.put_nowait({"type": "token", "data": chunk})
                elif kind == "end":
                    queue.put_nowait(self._end_event())
                    return
                elif kind == "error":
                    queue.put_nowait(self._error_event(self._upstream_error_text(data)))
                    return

            queue.put_nowait(self._error_event("upstream stream closed before completion"))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("Stream relay failed for session %s: %s", self.session_id, e)
            queue.put_nowait(self._error_event(str(e) or type(e).__name__))
        finally:
            await upstream_events.aclose()

    def _end_event(self) -> Dict[str, Any]:
        elapsed_ms = self.elapsed_ms
        logger.info("✓ Analysis completed (%dms, %d tokens)", elapsed_ms, len(self.chunks))
        return {
            "type": "end",
            "session_id": self.session_id,
            "elapsed_ms": elapsed_ms,
            "sections": parse_sections(self.text).to_dict(),
        }

    def _error_event(self, reason: str) -> Dict[str, Any]:
        elapsed = self.elapsed_ms / 1000
        return {
            "type": "error",
            "error": f"Analysis failed after {elapsed:.1f}s: {reason}",
            "session_id": self.session_id,
        }

    @staticmethod
    def _upstream_error_text(data: Any) -> str:
        if isinstance(data, dict):
            return str(data.get("error") or data.get("text") or data)
        return str(data or "upstream reported an error")


def to_ndjson(event: Dict[str, Any]) -> str:
    return json.dumps(event) + "\n"


async def ndjson_lines(stream: AnalysisStream) -> AsyncIterator[str]:
    async for event in stream.events():
        yield to_ndjson(event)
