"""
Concurrent join used by the upload and extraction fan-outs.
"""

import asyncio
from typing import List

from .errors import PipelineError


def _has_failed(task: "asyncio.Future") -> bool:
    return task.cancelled() or task.exception() is not None


async def wait_all_or_first_failure(tasks: List["asyncio.Future"]) -> None:
    """
    Wait until every task has finished or one of them has failed.

    On failure the still-running tasks are cancelled and the first error is
    re-raised. A task that ended cancelled counts as a failure.
    """
    pending = set(tasks)
    failed = []
    while pending and not failed:
        done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
        failed = [task for task in tasks if task in done and _has_failed(task)]
    if not failed:
        return

    for task in pending:
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)

    first = failed[0]
    if first.cancelled():
        raise PipelineError("A concurrent task was cancelled before it finished")
    raise first.exception()
