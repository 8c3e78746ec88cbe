from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from zipfile import ZipFile

from ..errors import SheetDecodeError, XlsxGridError
from ..model import DeclaredSheet, ReadOptions, SharedStringResolver, SheetContent, StyleResolver
from .content import build_sheet_content
from .worksheet import decode_worksheet

logger = logging.getLogger(__name__)


class SheetState(str, Enum):
    PENDING = "pending"
    DECODING = "decoding"
    DONE = "done"
    FAILED = "failed"


@dataclass(slots=True)
class SheetResult:
    index: int
    state: SheetState
    sheet: SheetContent | None = None
    error: Exception | None = None


@dataclass(slots=True)
class SheetTask:
    index: int
    declared: DeclaredSheet
    path: str
    state: SheetState = SheetState.PENDING


class SheetPipeline:
    def __init__(
        self,
        zip_file: ZipFile,
        *,
        shared_strings: SharedStringResolver,
        styles: StyleResolver | None,
        options: ReadOptions,
        date1904: bool = False,
    ) -> None:
        self.zip_file = zip_file
        self.shared_strings = shared_strings
        self.styles = styles
        self.options = options
        self.date1904 = date1904

    def run(self, sheets: list[tuple[DeclaredSheet, str]]) -> list[SheetContent]:
        tasks = [SheetTask(index=idx, declared=declared, path=path) for idx, (declared, path) in enumerate(sheets)]
        if not tasks:
            return []

        results: queue.Queue[SheetResult] = queue.Queue(maxsize=len(tasks))
        workers = max(1, min(self.options.max_workers, len(tasks)))
        if workers == 1:
            self._produce_sequential(tasks, results)
            return self._collect(tasks, results)

        stop = threading.Event()
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="xlsxgrid-sheet")
        futures: list[Future[None]] = []
        try:
            for task in tasks:
                futures.append(executor.submit(self._produce_one, task, results, stop))
            return self._collect(tasks, results)
        except BaseException:
            stop.set()
            for future in futures:
                future.cancel()
            raise
        finally:
            executor.shutdown(wait=True)

    def _produce_sequential(self, tasks: list[SheetTask], results: queue.Queue[SheetResult]) -> None:
        for task in tasks:
            result = self._decode(task)
            results.put(result)
            if result.state is SheetState.FAILED:
                return

    def _produce_one(self, task: SheetTask, results: queue.Queue[SheetResult], stop: threading.Event) -> None:
        if stop.is_set():
            return
        results.put(self._decode(task))

    def _decode(self, task: SheetTask) -> SheetResult:
        task.state = SheetState.DECODING
        name = task.declared.name
        logger.debug("Decoding sheet %r from %s", name, task.path)
        try:
            with self.zip_file.open(task.path) as stream:
                raw = decode_worksheet(stream, self.options.row_limit, path=task.path)
            sheet = build_sheet_content(
                raw,
                shared_strings=self.shared_strings,
                styles=self.styles,
                name=name,
                path=task.path,
                date1904=self.date1904,
                decode_validations=self.options.decode_validations,
            )
        except Exception as exc:
            task.state = SheetState.FAILED
            return SheetResult(index=task.index, state=task.state, error=_tag_error(exc, name))
        task.state = SheetState.DONE
        return SheetResult(index=task.index, state=task.state, sheet=sheet)

    def _collect(self, tasks: list[SheetTask], results: queue.Queue[SheetResult]) -> list[SheetContent]:
        ordered: list[SheetContent | None] = [None] * len(tasks)
        for _ in tasks:
            result = results.get()
            if result.state is SheetState.FAILED and result.error is not None:
                logger.debug("Sheet %r failed: %s", tasks[result.index].declared.name, result.error)
                raise result.error
            ordered[result.index] = result.sheet
        return [sheet for sheet in ordered if sheet is not None]


def _tag_error(exc: Exception, sheet_name: str) -> Exception:
    if isinstance(exc, SheetDecodeError):
        if not exc.sheet_name:
            exc.sheet_name = sheet_name
            exc.details.setdefault("sheet", sheet_name)
        return exc
    if isinstance(exc, XlsxGridError):
        exc.details.setdefault("sheet", sheet_name)
        return exc
    error = SheetDecodeError(f"Failed to decode sheet {sheet_name!r}: {exc}", sheet_name=sheet_name)
    error.__cause__ = exc
    return error
