"""In-memory control-file namespace for testing without GPIO hardware."""

from __future__ import annotations

import threading
from typing import Dict, Iterable, List, Optional, Tuple

from powerloop.hardware.gpio.control_files import ControlFiles
from powerloop.hardware.gpio.models import EXPORT_FILE


class MockControlFiles(ControlFiles):
    """Simulates the kernel's export behaviour and records every write.

    Writing a line id to ``export`` makes ``gpio<id>`` with its ``direction`` and ``value`` files appear, as the
    kernel does. Writes to files of unexported lines fail with ``FileNotFoundError``.

    Usage:
        >>> files = MockControlFiles(exported=[17])
        >>> files.write_text("gpio17/value", "0")
        >>> files.writes
        [('gpio17/value', '0')]
        >>> files.fail("export", PermissionError("read-only"))
    """

    def __init__(self, exported: Optional[Iterable[int]] = None, **kwargs):
        """
        Args:
            exported: Line ids that are already exported when the mock is created.
            **kwargs: Additional Powerloop initialization parameters
        """
        super().__init__(**kwargs)
        self._lock = threading.Lock()
        self._values: Dict[str, str] = {}
        self._failures: Dict[str, OSError] = {}
        self.writes: List[Tuple[str, str]] = []
        for line_id in exported or ():
            self._export(line_id)

    def _export(self, line_id: int) -> None:
        self._values[f"gpio{line_id}"] = ""
        self._values[f"gpio{line_id}/direction"] = "in"
        self._values[f"gpio{line_id}/value"] = "0"

    def fail(self, path: str, error: Optional[OSError] = None) -> None:
        """Make every later write to ``path`` raise ``error`` (EIO by default)."""
        self._failures[path] = error if error is not None else OSError(5, "Input/output error", path)

    def read_text(self, path: str) -> str:
        return self._values[path]

    def writes_to(self, path: str) -> List[str]:
        return [text for written, text in self.writes if written == path]

    def exists(self, path: str) -> bool:
        with self._lock:
            return path in self._values

    def write_text(self, path: str, text: str) -> None:
        with self._lock:
            if path in self._failures:
                raise self._failures[path]
            if path == EXPORT_FILE:
                line_id = int(text.strip())
                if f"gpio{line_id}" in self._values:
                    raise OSError(16, "Device or resource busy", path)
                self.writes.append((path, text))
                self._export(line_id)
                return
            if path not in self._values:
                raise FileNotFoundError(2, "No such file or directory", path)
            self.writes.append((path, text))
            self._values[path] = text
