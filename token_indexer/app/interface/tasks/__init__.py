from __future__ import annotations

from collections.abc import Awaitable, Callable

from .domain.token_transfers_task import index_token_transfers_task as domain__index_token_transfers_task

TaskFn = Callable[..., Awaitable[None]]

TASKS: dict[str, TaskFn] = {
    "domain__index_token_transfers_task": domain__index_token_transfers_task,
}
