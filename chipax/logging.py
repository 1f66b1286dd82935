"""Console logging for Chipax.

``ConsoleLogger`` prints levelled, optionally coloured lines with elapsed-time
stamps. ``MachineLogger`` adds the machine lifecycle events and the DEBUG
instruction trace. ``scan_with_progress`` drives a tqdm bar from inside a
JIT-compiled ``lax.scan`` through ``io_callback``.
"""

import sys
import time
from typing import Callable, Optional, TextIO

import jax
from jax.experimental import io_callback

from tqdm import tqdm

LEVELS = {
    "DEBUG": 0,
    "INFO": 1,
    "WARNING": 2,
    "ERROR": 3,
    "CRITICAL": 4,
}

COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}
RESET = "\033[0m"


class ConsoleLogger:
    """Levelled console logger with optional colours and timestamps."""

    def __init__(
        self,
        name: str = "Chipax",
        log_level: str = "INFO",
        use_colors: bool = True,
        show_timestamps: bool = True,
        stream: Optional[TextIO] = None,
    ):
        self.name = name
        self.level = log_level
        self.stream = stream
        self.use_colors = use_colors
        self.show_timestamps = show_timestamps
        self.start_time = time.time()

    @property
    def level(self) -> str:
        return self._level

    @level.setter
    def level(self, log_level: str):
        level = log_level.upper()
        if level not in LEVELS:
            raise ValueError(f"Unknown log level '{log_level}'. Available: {list(LEVELS)}")
        self._level = level

    def is_enabled(self, level: str) -> bool:
        return LEVELS[level.upper()] >= LEVELS[self._level]

    def _format_message(self, level: str, message: str, colored: bool) -> str:
        timestamp = f"[{time.time() - self.start_time:8.2f}s]" if self.show_timestamps else ""
        level_str = f"[{level:>8s}]"
        if colored:
            level_str = f"{COLORS[level]}{level_str}{RESET}"
        return f"{timestamp}{level_str}[{self.name}] {message}"

    def log(self, level: str, message: str):
        level = level.upper()
        if not self.is_enabled(level):
            return
        # Resolved per call so redirected stdout is honoured
        stream = self.stream or sys.stdout
        colored = self.use_colors and hasattr(stream, "isatty") and stream.isatty()
        print(self._format_message(level, message, colored), file=stream, flush=True)

    def debug(self, message: str):
        self.log("DEBUG", message)

    def info(self, message: str):
        self.log("INFO", message)

    def warning(self, message: str):
        self.log("WARNING", message)

    def error(self, message: str):
        self.log("ERROR", message)

    def critical(self, message: str):
        self.log("CRITICAL", message)


class MachineLogger(ConsoleLogger):
    """Logger for machine lifecycle events and instruction traces."""

    def __init__(self, name: str = "Machine", **kwargs):
        super().__init__(name, **kwargs)

    @property
    def tracing(self) -> bool:
        return self.is_enabled("DEBUG")

    def log_load(self, size: int, source: Optional[str] = None):
        origin = f" from {source}" if source else ""
        self.info(f"Loaded {size} byte program{origin} at 0x200")

    def log_reset(self):
        self.info("Machine reset")

    def log_fault(self, fault: Exception):
        self.error(f"Machine halted: {fault}")

    def log_trace(self, state, instruction: int):
        """Dump registers, PC and I alongside the instruction about to run."""
        if not self.tracing:
            return
        registers = " ".join(f"{int(v):02X}" for v in state.V)
        self.debug(
            f"V[0..F]: {registers} | PC: {int(state.pc):03X} | I: {int(state.I):03X} | OP: {instruction:04X}"
        )


def build_progress_bar(
    n: int,
    print_rate: Optional[int] = None,
    desc: Optional[str] = None,
    **tqdm_kwargs,
) -> Callable:
    """Build an ``update(iteration)`` hook that drives a tqdm bar from traced code.

    The bar opens on iteration 0, advances every ``print_rate`` iterations and
    closes after iteration ``n - 1``. Host calls go through ordered
    ``io_callback`` so updates arrive in loop order.
    """
    if desc is None:
        desc = f"Running {n:,} cycles"
    if print_rate is None:
        print_rate = min(n // 20, 50)
    print_rate = max(1, min(print_rate, n))
    remainder = n % print_rate

    for kwarg in ("total", "unit", "mininterval", "maxinterval", "miniters"):
        tqdm_kwargs.pop(kwarg, None)

    bars = {}

    def _open():
        bars["bar"] = tqdm(total=n, desc=desc, unit="cycle", **tqdm_kwargs)

    def _advance(count):
        if "bar" in bars:
            bars["bar"].update(int(count))

    def _close():
        bar = bars.pop("bar", None)
        if bar is not None:
            bar.close()

    def update(iteration):
        done = iteration + 1
        last = iteration == n - 1

        jax.lax.cond(
            iteration == 0,
            lambda: io_callback(_open, None, ordered=True),
            lambda: None,
        )
        jax.lax.cond(
            done % print_rate == 0,
            lambda: io_callback(_advance, None, print_rate, ordered=True),
            lambda: None,
        )
        if remainder:
            jax.lax.cond(
                last,
                lambda: io_callback(_advance, None, remainder, ordered=True),
                lambda: None,
            )
        jax.lax.cond(
            last,
            lambda: io_callback(_close, None, ordered=True),
            lambda: None,
        )

    return update


def scan_with_progress(
    n: int,
    print_rate: Optional[int] = None,
    desc: Optional[str] = None,
    **tqdm_kwargs,
) -> Callable:
    """Decorate a ``lax.scan`` body whose ``x`` is the iteration number."""
    update = build_progress_bar(n, print_rate, desc, **tqdm_kwargs)

    def _scan_progress_decorator(func):
        def wrapper_with_progress(carry, x):
            update(x)
            return func(carry, x)

        return wrapper_with_progress

    return _scan_progress_decorator
