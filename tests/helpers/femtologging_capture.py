"""Collect femtologging records so tests can assert on emitted events.

femtologging delivers records on its own worker thread, so assertions must
wait for the expected number of records before reading them.
"""

from __future__ import annotations

import contextlib
import dataclasses
import threading
import typing as typ

from femtologging import get_logger


@dataclasses.dataclass(frozen=True, slots=True)
class CapturedRecord:
    """One record seen by :class:`FemtoLogCapture`."""

    logger: str
    level: str
    message: str
    exc_info: object | None = None


class FemtoLogCapture:
    """femtologging handler that keeps every record it receives."""

    def __init__(self) -> None:
        """Start with no records."""
        self.records: list[CapturedRecord] = []
        self._arrived = threading.Condition()

    def handle_record(self, record: dict[str, object]) -> None:
        """Keep a structured record, including any attached exception."""
        self._keep(
            CapturedRecord(
                logger=str(record.get("logger", "")),
                level=str(record.get("level", "")),
                message=str(record.get("message", "")),
                exc_info=record.get("exc_info"),
            )
        )

    def handle(self, logger: str, level: str, message: str) -> None:
        """Keep a plain record."""
        self._keep(CapturedRecord(str(logger), str(level), message))

    def _keep(self, record: CapturedRecord) -> None:
        with self._arrived:
            self.records.append(record)
            self._arrived.notify_all()

    def wait_for_count(self, count: int, timeout: float = 1.0) -> None:
        """Wait until at least ``count`` records arrived, failing on timeout."""
        with self._arrived:
            arrived = self._arrived.wait_for(
                lambda: len(self.records) >= count, timeout=timeout
            )
        assert arrived, f"expected {count} log records, got {len(self.records)}"

    def messages(self) -> list[str]:
        """Return the captured messages in arrival order."""
        with self._arrived:
            return [record.message for record in self.records]


@contextlib.contextmanager
def capture_femto_logs(
    logger_name: str, *, level: str = "TRACE"
) -> typ.Iterator[FemtoLogCapture]:
    """Route ``logger_name`` to a fresh capture for the duration of the block.

    The logger stops propagating while captured and gets its previous level
    and propagation back afterwards.
    """
    logger = get_logger(logger_name)
    saved = (logger.level, logger.propagate)
    capture = FemtoLogCapture()
    logger.set_level(level)
    logger.set_propagate(False)
    logger.add_handler(capture)
    try:
        yield capture
    finally:
        logger.remove_handler(capture)
        logger.set_level(saved[0])
        logger.set_propagate(saved[1])
