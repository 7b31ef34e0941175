from __future__ import annotations

import datetime as _dt
import sys
from typing import Optional, TextIO


class ProgressPrinter:
    """Timestamped operator log written to stdout."""

    def __init__(self, verbose: bool = False, stream: Optional[TextIO] = None) -> None:
        self._verbose = verbose
        self._stream = stream
        self._last_message: Optional[str] = None

    @property
    def last_message(self) -> Optional[str]:
        return self._last_message

    def _timestamp(self) -> str:
        return _dt.datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    def _write(self, line: str) -> None:
        print(line, file=self._stream or sys.stdout, flush=True)

    def info(self, message: str) -> None:
        self._write(f"[{self._timestamp()}] {message}")
        self._last_message = message

    def debug(self, message: str) -> None:
        if self._verbose:
            self.info(f"[DEBUG] {message}")

    def step(self, message: str) -> None:
        self.info(f"➡️  {message}")

    def success(self, message: str) -> None:
        self.info(f"✅ {message}")

    def warning(self, message: str) -> None:
        self.info(f"⚠️  {message}")

    def error(self, message: str) -> None:
        self.info(f"❌ {message}")

    def divider(self) -> None:
        self._write("-" * 60)
