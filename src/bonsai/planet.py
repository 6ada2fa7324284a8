"""Asynchronous planet mesh requests served by a background worker."""

import asyncio
import itertools
import multiprocessing
import pickle
import threading
from collections.abc import Callable
from dataclasses import dataclass
from multiprocessing.connection import Connection
from multiprocessing.process import BaseProcess
from typing import Any

import structlog

from .config import WorkerConfig
from .exceptions import TransportError
from .protocol import (
    MESSAGE_ERROR,
    MESSAGE_RESULT,
    Message,
    decode_result,
    generate_request,
    shutdown_request,
)
from .terrain.config import GenerationOptions
from .terrain.generator import GenerationResult, fallback_mesh
from .worker import run_worker

logger = structlog.get_logger()

MeshCallback = Callable[[GenerationResult], None]

DEFAULT_DETAIL = GenerationOptions.model_fields["detail"].default


@dataclass
class PendingRequest:
    """A request awaiting its response."""

    future: asyncio.Future
    callback: MeshCallback | None
    fallback_detail: int


class Planet:
    """Requests planet meshes from a generation worker.

    Each request gets a fresh ID and a future. The response with the
    same ID resolves it exactly once, with the generated mesh or, if
    generation failed, a plain fallback sphere. Responses with unknown
    IDs are logged and dropped.

    Example:
        async with Planet({"biome": "forest"}, WorkerConfig(mode="thread")) as planet:
            mesh = await planet.create_mesh({"detail": 10})
    """

    def __init__(
        self,
        options: GenerationOptions | dict[str, Any] | None = None,
        worker: WorkerConfig | None = None,
    ):
        """Create a planet; the worker starts with the first request.

        Args:
            options: Defaults merged under every request's options.
            worker: Worker settings.
        """
        if isinstance(options, GenerationOptions):
            options = options.model_dump()
        self.options: dict[str, Any] = dict(options or {})
        self.worker_config = worker or WorkerConfig()

        self._pending: dict[int, PendingRequest] = {}
        self._ids = itertools.count(1)
        self._loop: asyncio.AbstractEventLoop | None = None
        self._requests: Connection | None = None
        self._responses: Connection | None = None
        self._worker: threading.Thread | BaseProcess | None = None
        self._listener: threading.Thread | None = None
        self._closed = False

    @property
    def running(self) -> bool:
        """Whether the worker is alive."""
        return self._worker is not None and self._worker.is_alive()

    @property
    def pending_count(self) -> int:
        """Number of requests still awaiting a response."""
        return len(self._pending)

    async def __aenter__(self) -> "Planet":
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await asyncio.to_thread(self.close)

    def start(self) -> None:
        """Start the worker and response listener.

        Must be called from a coroutine; responses are delivered on the
        running event loop.

        Raises:
            RuntimeError: If the planet has been closed.
        """
        if self._closed:
            raise RuntimeError("Planet is closed")
        if self._worker is not None:
            return

        self._loop = asyncio.get_running_loop()
        cfg = self.worker_config

        if cfg.mode == "process":
            ctx = multiprocessing.get_context(cfg.start_method)
            request_reader, request_writer = ctx.Pipe(duplex=False)
            response_reader, response_writer = ctx.Pipe(duplex=False)
            worker: threading.Thread | BaseProcess = ctx.Process(
                target=run_worker,
                args=(request_reader, response_writer),
                name="bonsai-worker",
                daemon=True,
            )
            worker.start()
            # The child holds its own copies; closing ours lets EOF propagate
            request_reader.close()
            response_writer.close()
        else:
            request_reader, request_writer = multiprocessing.Pipe(duplex=False)
            response_reader, response_writer = multiprocessing.Pipe(duplex=False)
            worker = threading.Thread(
                target=run_worker,
                args=(request_reader, response_writer),
                name="bonsai-worker",
                daemon=True,
            )
            worker.start()

        self._requests = request_writer
        self._responses = response_reader
        self._worker = worker
        self._listener = threading.Thread(
            target=self._listen,
            args=(response_reader, self._loop),
            name="bonsai-listener",
            daemon=True,
        )
        self._listener.start()
        logger.info("worker_started", mode=cfg.mode)

    def request_mesh(
        self,
        options: GenerationOptions | dict[str, Any] | None = None,
        callback: MeshCallback | None = None,
    ) -> asyncio.Future:
        """Ask the worker for a mesh.

        Args:
            options: Per-request options, merged over the planet's defaults.
            callback: Called once on the event loop with the mesh.

        Returns:
            Future resolving to a GenerationResult. It never raises for
            generation failures; those resolve to a fallback mesh.
        """
        self.start()
        assert self._loop is not None and self._requests is not None

        if isinstance(options, GenerationOptions):
            options = options.model_dump()
        merged = {**self.options, **(options or {})}

        request_id = next(self._ids)
        future = self._loop.create_future()
        self._pending[request_id] = PendingRequest(
            future=future,
            callback=callback,
            fallback_detail=self._fallback_detail(merged),
        )

        try:
            self._requests.send(generate_request(request_id, merged))
        except (OSError, ValueError, TypeError, pickle.PicklingError) as e:
            logger.error("request_send_failed", request_id=request_id, error=str(e))
            self._loop.call_soon(self._fail_request, request_id, str(e))
        else:
            logger.debug("mesh_requested", request_id=request_id)
        return future

    async def create_mesh(
        self, options: GenerationOptions | dict[str, Any] | None = None
    ) -> GenerationResult:
        """Request a mesh and wait for it."""
        return await self.request_mesh(options)

    def close(self) -> None:
        """Stop the worker after it finishes queued requests.

        Blocks until the worker exits or the shutdown timeout passes.
        """
        if self._closed:
            return
        self._closed = True
        if self._worker is None:
            return

        timeout = self.worker_config.shutdown_timeout
        try:
            self._requests.send(shutdown_request())
        except (OSError, ValueError) as e:
            logger.debug("shutdown_send_failed", error=str(e))

        self._worker.join(timeout)
        if isinstance(self._worker, BaseProcess) and self._worker.is_alive():
            logger.warning("worker_terminated", pid=self._worker.pid)
            self._worker.terminate()
            self._worker.join(timeout)

        self._requests.close()
        if self._listener is not None:
            self._listener.join(timeout)
        self._responses.close()
        logger.info("worker_stopped")

    def _fallback_detail(self, options: dict[str, Any]) -> int:
        """Detail of the fallback sphere for a request: lower, and small."""
        try:
            detail = int(options.get("detail", DEFAULT_DETAIL))
        except (TypeError, ValueError):
            detail = 0
        return max(0, min(self.worker_config.fallback_detail, detail - 1))

    def _listen(self, connection: Connection, loop: asyncio.AbstractEventLoop) -> None:
        """Forward worker responses to the event loop until the channel closes."""
        while True:
            try:
                message = connection.recv()
            except (EOFError, OSError):
                break
            try:
                loop.call_soon_threadsafe(self._handle_message, message)
            except RuntimeError:
                logger.debug("event_loop_closed")
                return
        try:
            loop.call_soon_threadsafe(self._on_worker_exit)
        except RuntimeError:
            logger.debug("event_loop_closed")

    def _handle_message(self, message: Message) -> None:
        """Resolve the request a worker response belongs to."""
        request_id = message.get("request_id") if isinstance(message, dict) else None
        pending = self._pending.pop(request_id, None) if isinstance(request_id, int) else None
        if pending is None:
            logger.warning("unknown_response", request_id=request_id)
            return

        kind = message.get("type")
        if kind == MESSAGE_RESULT:
            try:
                result = decode_result(message)
            except TransportError as e:
                logger.error("response_decode_failed", request_id=request_id, error=str(e))
                result = fallback_mesh(pending.fallback_detail)
        elif kind == MESSAGE_ERROR:
            logger.warning(
                "mesh_generation_failed",
                request_id=request_id,
                error=message.get("message"),
            )
            result = fallback_mesh(pending.fallback_detail)
        else:
            logger.error("unexpected_response", request_id=request_id, type=kind)
            result = fallback_mesh(pending.fallback_detail)

        self._deliver(request_id, pending, result)

    def _fail_request(self, request_id: int, reason: str) -> None:
        pending = self._pending.pop(request_id, None)
        if pending is None:
            return
        logger.warning("mesh_request_failed", request_id=request_id, error=reason)
        self._deliver(request_id, pending, fallback_mesh(pending.fallback_detail))

    def _on_worker_exit(self) -> None:
        """Resolve every outstanding request once the worker is gone."""
        if self._pending:
            logger.warning("worker_exited_with_pending", pending=len(self._pending))
        for request_id in list(self._pending):
            self._fail_request(request_id, "worker exited")

    def _deliver(self, request_id: int, pending: PendingRequest, result: GenerationResult) -> None:
        if pending.callback is not None:
            try:
                pending.callback(result)
            except Exception:
                logger.exception("mesh_callback_failed", request_id=request_id)
        if not pending.future.done():
            pending.future.set_result(result)
