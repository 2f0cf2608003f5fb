"""
Route dependencies.
"""

from typing import Annotated

from fastapi import Depends, Request

from jobqueue.queue import JobQueue


def get_queue(request: Request) -> JobQueue:
    """Queue created at startup by the application lifespan."""
    return request.app.state.queue


QueueDep = Annotated[JobQueue, Depends(get_queue)]
