"""Access to the kernel's GPIO control-file namespace.

The namespace is process-wide shared state outside of powerloop's control. Every read and write goes through a
``ControlFiles`` implementation so the power switch never touches the file system directly and tests can substitute
``MockControlFiles``.
"""

from __future__ import annotations

from abc import abstractmethod
from pathlib import Path
from typing import Optional

from powerloop.core import PowerloopABC


class ControlFiles(PowerloopABC):
    """Abstract capability over a control-file namespace.

    Paths are relative to the namespace root, e.g. ``"export"`` or ``"gpio17/value"``.
    """

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Return True if ``path`` exists in the namespace."""

    @abstractmethod
    def write_text(self, path: str, text: str) -> None:
        """Write ``text`` to the control file at ``path``.

        Raises:
            OSError: If the write is rejected.
        """


class SysfsControlFiles(ControlFiles):
    """Control files under a real directory, by default ``/sys/class/gpio``."""

    def __init__(self, root: Optional[str | Path] = None, **kwargs):
        """
        Args:
            root: Namespace root. Defaults to the ``POWERLOOP_GPIO.CONTROL_ROOT`` setting.
            **kwargs: Additional Powerloop initialization parameters
        """
        super().__init__(**kwargs)
        self.root = Path(root if root is not None else self.settings.POWERLOOP_GPIO.CONTROL_ROOT)

    def exists(self, path: str) -> bool:
        return (self.root / path).exists()

    def write_text(self, path: str, text: str) -> None:
        target = self.root / path
        self.logger.debug(f"control_file_write path={target} value={text!r}")
        with open(target, "w") as f:
            f.write(text)

    def __repr__(self) -> str:
        return f"SysfsControlFiles(root='{self.root}')"
