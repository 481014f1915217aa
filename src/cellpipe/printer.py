import logging
import threading

logger = logging.getLogger(__name__)


class Printer:
    """
    Diagnostic sink shared by every stage and worker of a pipeline.

    Messages are forwarded to logging and retained for later inspection. All
    methods are internally synchronized so concurrent workers can report
    without any locking of their own.
    """

    def __init__(self, name: str = "cellpipe"):
        self._logger = logger.getChild(name)
        self._lock = threading.RLock()
        self._messages: list[str] = []
        self._failures: list[BaseException] = []

    def error(self, message: str) -> None:
        with self._lock:
            self._messages.append(message)
        self._logger.error(message)

    def report_failure(self, failure: BaseException) -> None:
        with self._lock:
            self._failures.append(failure)
            self._messages.append(str(failure))
        self._logger.error(f"{type(failure).__name__}: {failure}")

    @property
    def messages(self) -> list[str]:
        with self._lock:
            return list(self._messages)

    @property
    def failures(self) -> list[BaseException]:
        with self._lock:
            return list(self._failures)

    def clear(self) -> None:
        with self._lock:
            self._messages.clear()
            self._failures.clear()
