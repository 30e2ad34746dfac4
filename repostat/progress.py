"""
Progress reporting utilities for repostat.

Provides progress reporting that respects piping and redirection:
progress goes to stderr, and the progress line is cleared before the
status table is printed on stdout.
"""

import os
import queue
import shutil
import sys
import threading
import time
from typing import Optional, TextIO

from .domain import ResultEntry

# Queue sentinel telling the consumer thread to exit
_STOP = object()


class ProgressReporter:
    """
    Shows "K/N" completion progress while repositories are inspected.

    Completion events are pushed onto a queue by the worker threads
    (``notify`` never blocks) and drained by a single consumer thread,
    which owns the completed counter and all progress output.

    Example:
        reporter = ProgressReporter()
        with reporter.track(len(refs)):
            result_set = Scheduler(inspect, listener=reporter.notify).run(refs)
        print(render(result_set))
    """

    def __init__(self, enabled: Optional[bool] = None, stream: Optional[TextIO] = None,
                 force_tty: bool = False, use_unicode: Optional[bool] = None,
                 use_colors: Optional[bool] = None, description: str = "Processing..."):
        """
        Initialize progress reporter.

        Args:
            enabled: Explicitly enable/disable progress. None = auto-detect
            stream: Output stream (default: sys.stderr at write time)
            force_tty: Treat the stream as a TTY even if it's not (for testing)
            use_unicode: Use Unicode characters for the progress bar
            use_colors: Use ANSI colors in output
            description: Prefix shown before the progress bar
        """
        self._stream = stream
        self.is_tty = force_tty or self._stream_isatty()

        if enabled is None:
            # Auto-detect: show progress if the stream is a terminal
            self.enabled = self.is_tty
        else:
            self.enabled = enabled

        # Auto-detect Unicode support
        if use_unicode is None:
            encoding = getattr(self.stream, 'encoding', None) or ''
            self.use_unicode = encoding.lower() in ['utf-8', 'utf8']
        else:
            self.use_unicode = use_unicode

        # Auto-detect color support
        if use_colors is None:
            self.use_colors = self.is_tty and os.environ.get('NO_COLOR') is None
        else:
            self.use_colors = use_colors

        self.description = description
        self.total = 0
        self.completed = 0
        self.failed = 0
        self.start_time: Optional[float] = None
        self.last_update: float = 0.0
        self.min_update_interval = 0.1  # Don't redraw more than 10x per second
        self.bar_width = 40

        self._queue: "queue.Queue[object]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._running = False
        self._line_dirty = False
        self._write_lock = threading.Lock()

        # Color codes
        self.colors = {
            'reset': '\033[0m',
            'red': '\033[31m',
        }

        # Progress bar characters
        if self.use_unicode:
            self.bar_chars = {
                'filled': '█',
                'empty': '░',
                'start': '│',
                'end': '│'
            }
        else:
            self.bar_chars = {
                'filled': '=',
                'empty': ' ',
                'start': '[',
                'end': ']'
            }

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stderr

    @property
    def running(self) -> bool:
        return self._running

    def _stream_isatty(self) -> bool:
        isatty = getattr(self.stream, 'isatty', None)
        return bool(isatty and isatty())

    def _colorize(self, text: str, color: str) -> str:
        """Add color to text if colors are enabled."""
        if self.use_colors and color in self.colors:
            return f"{self.colors[color]}{text}{self.colors['reset']}"
        return text

    def _write(self, text: str) -> None:
        with self._write_lock:
            self.stream.write(text)
            self.stream.flush()

    def _terminal_width(self) -> int:
        if self.is_tty:
            return shutil.get_terminal_size((80, 24)).columns
        return 80

    def start(self, total: int) -> None:
        """
        Begin tracking a batch of ``total`` inspections.

        Args:
            total: Number of inspections that will complete
        """
        if self._running:
            raise RuntimeError("Progress reporter already running")

        self.total = total
        self.completed = 0
        self.failed = 0
        self.start_time = time.time()
        self.last_update = 0.0
        if not self.enabled or total <= 0:
            return

        self._queue = queue.Queue()
        self._running = True
        self._thread = threading.Thread(target=self._consume, name="repostat-progress", daemon=True)
        self._thread.start()

    def notify(self, entry: ResultEntry) -> None:
        """
        Record a completed inspection. Never blocks; ignored once stopped.

        Args:
            entry: The completed ResultEntry
        """
        if self._running:
            self._queue.put_nowait(entry)

    def stop(self) -> None:
        """
        Stop reporting: drain pending events, join the consumer thread
        and clear the progress line. Safe to call more than once.
        """
        if not self._running:
            return
        self._running = False
        self._queue.put(_STOP)
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        self._clear_line()

    def track(self, total: int) -> 'ProgressReporter':
        """Start tracking and return self for use as a context manager."""
        self.start(total)
        return self

    def __enter__(self) -> 'ProgressReporter':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    def _consume(self) -> None:
        """Consumer loop: the only place the completed counter changes."""
        while True:
            item = self._queue.get()
            if item is _STOP:
                break
            self.completed += 1
            if isinstance(item, ResultEntry) and not item.outcome.ok:
                self.failed += 1
            self._render(item)

    def _render(self, item: object) -> None:
        """Render the progress line for the latest completion."""
        name = item.ref.name if isinstance(item, ResultEntry) else ""
        progress_part = f"{self.completed}/{self.total}"

        if not self.is_tty:
            # Non-TTY: one plain line per completion
            line = f"{self.description} [{progress_part}]"
            if name:
                line += f" {name}"
            self._write(line + "\n")
            return

        # Rate limit redraws, but always draw the final state
        current_time = time.time()
        if current_time - self.last_update < self.min_update_interval and self.completed < self.total:
            return
        self.last_update = current_time

        filled = int(self.bar_width * self.completed / self.total) if self.total else self.bar_width
        bar = self.bar_chars['start']
        bar += self.bar_chars['filled'] * filled
        bar += self.bar_chars['empty'] * (self.bar_width - filled)
        bar += self.bar_chars['end']

        terminal_width = self._terminal_width()
        base_msg = f"{self.description} {bar} {progress_part}"
        available = terminal_width - len(base_msg) - 3
        if name and available > 10:
            # Truncate item if too long
            if len(name) > available:
                name = name[:available - 3] + "..."
            msg = f"{base_msg}: {name}"
        else:
            msg = base_msg

        # Pad to clear previous content
        self._write(f"\r{msg:<{terminal_width - 1}}")
        self._line_dirty = True

    def _clear_line(self) -> None:
        if self._line_dirty:
            width = self._terminal_width()
            self._write('\r' + ' ' * (width - 1) + '\r')
            self._line_dirty = False

    def error(self, message: str):
        """Always output errors to stderr."""
        self._clear_line()
        self._write(self._colorize(f"ERROR: {message}", 'red') + "\n")


# Global progress reporter instance
_progress = None


def get_progress(enabled: Optional[bool] = None) -> ProgressReporter:
    """
    Get the global progress reporter.

    Args:
        enabled: Override auto-detection of progress display

    Returns:
        ProgressReporter instance
    """
    global _progress
    if _progress is None or enabled is not None:
        _progress = ProgressReporter(enabled)
    return _progress


# Environment variable override
if os.environ.get('REPOSTAT_PROGRESS') == '0':
    _progress = ProgressReporter(enabled=False)
elif os.environ.get('REPOSTAT_PROGRESS') == '1':
    _progress = ProgressReporter(enabled=True)
