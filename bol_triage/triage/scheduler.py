import asyncio

from bol_triage.logging.logger import Log
from bol_triage.triage.runner import ProcessingRunner


class ProcessingScheduler:
    """Owns one asyncio task per document; a new attempt supersedes the old one."""

    def __init__(self, runner: ProcessingRunner) -> None:
        self._runner = runner
        self._tasks: dict[int, asyncio.Task[object]] = {}

    def schedule(
        self,
        document_id: int,
        generation: int,
        content: bytes,
        filename: str,
        mime_type: str,
        *,
        is_retry: bool = False,
    ) -> asyncio.Task[object]:
        self.cancel(document_id)
        task: asyncio.Task[object] = asyncio.create_task(
            self._runner.run(
                document_id,
                generation,
                content,
                filename,
                mime_type,
                is_retry=is_retry,
            ),
            name=f"triage-{document_id}-{generation}",
        )
        self._tasks[document_id] = task
        task.add_done_callback(lambda done: self._forget(document_id, done))
        return task

    def cancel(self, document_id: int) -> bool:
        task = self._tasks.pop(document_id, None)
        if task is None or task.done():
            return False
        task.cancel()
        Log.info("Cancelled in-flight processing", document_id=document_id)
        return True

    def cancel_all(self) -> int:
        return sum(self.cancel(document_id) for document_id in list(self._tasks))

    def pending(self) -> int:
        return sum(1 for task in self._tasks.values() if not task.done())

    async def drain(self) -> None:
        """Wait until no processing task is outstanding."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    def _forget(self, document_id: int, task: asyncio.Task[object]) -> None:
        if self._tasks.get(document_id) is task:
            del self._tasks[document_id]
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            Log.error(f"Processing task crashed: {exc!r}", document_id=document_id)
