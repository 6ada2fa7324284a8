"""Background mesh generation worker.

The worker owns no state between requests: it reads a request from its
inbound connection, generates the mesh and posts exactly one response.
"""

import pickle
from multiprocessing.connection import Connection
from typing import Any

import structlog
from pydantic import ValidationError

from .protocol import (
    ENCODING_BINARY,
    MESSAGE_GENERATE,
    MESSAGE_SHUTDOWN,
    Message,
    as_list_encoding,
    error_response,
    result_response,
)
from .terrain.config import GenerationOptions
from .terrain.generator import generate_mesh

logger = structlog.get_logger()


def handle_message(message: Message) -> Message:
    """Turn one request into its response.

    Args:
        message: A generate request.

    Returns:
        A result message, or an error message if the request is invalid
        or generation fails.
    """
    request_id = message.get("request_id")
    if message.get("type") != MESSAGE_GENERATE:
        return error_response(request_id, f"Unknown message type: {message.get('type')!r}")

    try:
        options = GenerationOptions.model_validate(message.get("options") or {})
        result = generate_mesh(options)
    except ValidationError as e:
        logger.warning("invalid_options", request_id=request_id, errors=e.error_count())
        return error_response(request_id, f"Invalid options: {e}")
    except Exception as e:
        logger.exception("generation_failed", request_id=request_id)
        return error_response(request_id, str(e))

    logger.debug(
        "mesh_generated",
        request_id=request_id,
        faces=result.face_count,
        vegetation=result.vegetation_count,
    )
    return result_response(request_id, result, ENCODING_BINARY)


def post_response(connection: Connection, response: Message) -> None:
    """Send a response, falling back to list-encoded buffers.

    Args:
        connection: Outbound connection.
        response: Response to send.
    """
    try:
        connection.send(response)
    except (pickle.PicklingError, TypeError, ValueError) as e:
        logger.warning(
            "buffer_transfer_failed",
            request_id=response.get("request_id"),
            error=str(e),
        )
        connection.send(as_list_encoding(response))


def run_worker(requests: Connection, responses: Connection) -> None:
    """Serve generation requests until shutdown or the channel closes.

    Args:
        requests: Connection requests arrive on.
        responses: Connection responses are posted to.
    """
    logger.info("worker_started")
    try:
        while True:
            try:
                message: Any = requests.recv()
            except EOFError:
                logger.info("request_channel_closed")
                break

            if not isinstance(message, dict):
                logger.warning("malformed_request", kind=type(message).__name__)
                continue
            if message.get("type") == MESSAGE_SHUTDOWN:
                break

            post_response(responses, handle_message(message))
    finally:
        responses.close()
        requests.close()
        logger.info("worker_stopped")
