"""Messages exchanged between a Planet and its generation worker.

Every message is a plain dictionary that pickles across a pipe. Requests
and responses carry a ``request_id`` that pairs them. Vertex buffers
travel as raw float32 bytes, or as flat float lists when raw transfer
is not possible.
"""

from typing import Any

import numpy as np
from numpy.typing import NDArray

from .exceptions import TransportError
from .terrain.generator import GenerationResult, MeshBuffers, OceanBuffers

MESSAGE_GENERATE = "generate"
MESSAGE_RESULT = "result"
MESSAGE_ERROR = "error"
MESSAGE_SHUTDOWN = "shutdown"

ENCODING_BINARY = "binary"
ENCODING_LIST = "list"

BUFFER_DTYPE = "<f4"

TERRAIN_BUFFERS = ("positions", "colors", "normals")
OCEAN_BUFFERS = ("positions", "colors", "normals", "morph_positions", "morph_normals")

Message = dict[str, Any]


def generate_request(request_id: int, options: dict[str, Any]) -> Message:
    """Build a mesh generation request."""
    return {"type": MESSAGE_GENERATE, "request_id": request_id, "options": options}


def shutdown_request() -> Message:
    return {"type": MESSAGE_SHUTDOWN}


def error_response(request_id: int | None, message: str) -> Message:
    """Build a response reporting a failed generation."""
    return {"type": MESSAGE_ERROR, "request_id": request_id, "message": message}


def encode_buffer(array: NDArray[np.floating], encoding: str = ENCODING_BINARY) -> dict[str, Any]:
    """Encode an (N, 3) vertex buffer.

    Args:
        array: Buffer to encode.
        encoding: ENCODING_BINARY for raw bytes, ENCODING_LIST for floats.

    Returns:
        Encoded buffer dictionary.
    """
    flat = np.ascontiguousarray(array, dtype=BUFFER_DTYPE).reshape(-1)
    if encoding == ENCODING_BINARY:
        return {"encoding": ENCODING_BINARY, "dtype": BUFFER_DTYPE, "data": flat.tobytes()}
    if encoding == ENCODING_LIST:
        return {"encoding": ENCODING_LIST, "data": flat.tolist()}
    raise ValueError(f"Unknown buffer encoding: {encoding}")


def decode_buffer(payload: dict[str, Any]) -> NDArray[np.float32]:
    """Decode a buffer produced by encode_buffer.

    Returns:
        (N, 3) float32 array.

    Raises:
        TransportError: If the payload is malformed.
    """
    try:
        encoding = payload["encoding"]
        data = payload["data"]
        if encoding == ENCODING_BINARY:
            flat = np.frombuffer(data, dtype=payload.get("dtype", BUFFER_DTYPE))
        elif encoding == ENCODING_LIST:
            flat = np.asarray(data, dtype=np.float64)
        else:
            raise TransportError(f"Unknown buffer encoding: {encoding}")
    except (KeyError, TypeError, ValueError) as e:
        raise TransportError(f"Malformed buffer: {e}") from e

    if flat.size % 3 != 0:
        raise TransportError(f"Buffer length {flat.size} is not a multiple of 3")
    return flat.astype(np.float32).reshape(-1, 3)


def _encode_mesh(mesh: MeshBuffers, names: tuple[str, ...], encoding: str) -> dict[str, Any]:
    return {name: encode_buffer(getattr(mesh, name), encoding) for name in names}


def result_response(
    request_id: int, result: GenerationResult, encoding: str = ENCODING_BINARY
) -> Message:
    """Build a response carrying a generated mesh."""
    return {
        "type": MESSAGE_RESULT,
        "request_id": request_id,
        "shape": result.shape,
        "detail": result.detail,
        "is_fallback": result.is_fallback,
        "buffers": {
            "terrain": _encode_mesh(result.terrain, TERRAIN_BUFFERS, encoding),
            "ocean": _encode_mesh(result.ocean, OCEAN_BUFFERS, encoding),
        },
        "vegetation": {
            name: np.asarray(points, dtype=np.float64).reshape(-1, 3).tolist()
            for name, points in result.vegetation.items()
        },
    }


def as_list_encoding(message: Message) -> Message:
    """Re-encode every binary buffer of a result message as float lists."""
    if message.get("type") != MESSAGE_RESULT:
        return message

    sections = {}
    for section, names in (("terrain", TERRAIN_BUFFERS), ("ocean", OCEAN_BUFFERS)):
        buffers = dict(message["buffers"][section])
        for name in names:
            if buffers[name].get("encoding") == ENCODING_BINARY:
                buffers[name] = encode_buffer(decode_buffer(buffers[name]), ENCODING_LIST)
        sections[section] = buffers
    return {**message, "buffers": sections}


def decode_result(message: Message) -> GenerationResult:
    """Rebuild a GenerationResult from a result message.

    Raises:
        TransportError: If the message is incomplete or malformed.
    """
    try:
        terrain = message["buffers"]["terrain"]
        ocean = message["buffers"]["ocean"]
        vegetation = message.get("vegetation") or {}
        result = GenerationResult(
            terrain=MeshBuffers(**{name: decode_buffer(terrain[name]) for name in TERRAIN_BUFFERS}),
            ocean=OceanBuffers(**{name: decode_buffer(ocean[name]) for name in OCEAN_BUFFERS}),
            vegetation={
                name: np.asarray(points, dtype=np.float32).reshape(-1, 3)
                for name, points in vegetation.items()
            },
            shape=message.get("shape", "sphere"),
            detail=int(message.get("detail", 0)),
            is_fallback=bool(message.get("is_fallback", False)),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise TransportError(f"Malformed result message: {e}") from e

    counts = {
        len(buffer)
        for buffer in (
            result.terrain.positions,
            result.terrain.colors,
            result.terrain.normals,
        )
    }
    if len(counts) != 1 or result.terrain.vertex_count % 3 != 0:
        raise TransportError("Terrain buffers disagree on vertex count")
    return result
