"""Cancel in-flight work when the HTTP client disconnects."""
import asyncio
from typing import Awaitable, TypeVar

from fastapi import Request

T = TypeVar("T")

DISCONNECT_POLL_SECONDS = 0.5


class ClientDisconnected(Exception):
    """The client went away before the work finished."""


async def run_until_disconnected(
    request: Request,
    work: Awaitable[T],
    poll_interval: float = DISCONNECT_POLL_SECONDS,
) -> T:
    """
    Await ``work`` while watching the request; cancel it if the client leaves.

    Cancelling the task propagates into whatever outbound call it is awaiting
    (LLM, OCR), so upstream requests are torn down with the inbound one.

    Raises:
        ClientDisconnected: If the client disconnected first
    """
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll_interval)
            if done:
                return task.result()
            if await request.is_disconnected():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
                raise ClientDisconnected()
    finally:
        if not task.done():
            task.cancel()
