"""Persistent command history for the interactive prompt."""

import logging
from pathlib import Path
from typing import Callable, List, Optional

try:
    import readline
    _HAS_READLINE = True
except ImportError:
    _HAS_READLINE = False

logger = logging.getLogger(__name__)


class CommandHistory:
    """Bounded, line-delimited history file.

    Entries are appended after every command. Once the file holds twice
    ``max_entries`` lines it is rewritten with only the most recent
    ``max_entries``, so most appends never touch earlier lines.
    Read and write errors are logged and otherwise ignored.
    """

    def __init__(self, path: Path, max_entries: int = 500):
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.path = Path(path)
        self.max_entries = max_entries
        self._count: Optional[int] = None

    def load(self) -> List[str]:
        """Return the most recent entries, oldest first."""
        try:
            lines = self.path.read_text(encoding="utf-8").splitlines()
        except FileNotFoundError:
            self._count = 0
            return []
        except OSError as e:
            logger.warning(f"Could not read history file {self.path}: {e}")
            return []

        entries = [line for line in lines if line.strip()][-self.max_entries:]
        self._count = len(lines)
        return entries

    def append(self, line: str) -> None:
        line = line.strip()
        if not line:
            return

        if self._count is None:
            self.load()

        try:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
            self._count = (self._count or 0) + 1
            if self._count >= 2 * self.max_entries:
                self._truncate()
        except OSError as e:
            logger.warning(f"Could not write history file {self.path}: {e}")

    def _truncate(self) -> None:
        entries = self.load()
        self.path.write_text("".join(entry + "\n" for entry in entries), encoding="utf-8")
        self._count = len(entries)


def install_readline(entries: List[str], completer: Callable[[str], List[str]]) -> bool:
    """Seed readline history and bind tab completion.

    Args:
        entries: Previous commands, oldest first
        completer: Returns candidate completions for the whole line buffer

    Returns:
        False when readline is not available on this platform
    """
    if not _HAS_READLINE:
        logger.debug("readline not available, history recall and completion disabled")
        return False

    readline.clear_history()
    for entry in entries:
        readline.add_history(entry)

    def complete(text: str, state: int) -> Optional[str]:
        candidates = completer(readline.get_line_buffer())
        matches = [c for c in candidates if c.startswith(text)]
        return matches[state] if state < len(matches) else None

    readline.set_completer(complete)
    readline.set_completer_delims(" ,")
    readline.parse_and_bind("tab: complete")
    return True
