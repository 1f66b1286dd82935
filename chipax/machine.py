from typing import Optional, Sequence

import jax
import jax.numpy as jnp
import numpy as np

from chipax.constants import NUM_KEYS, FAULT_NONE
from chipax.driver import KeypadProvider, check_fault, cycle, tick, run_frame
from chipax.emulator import fetch
from chipax.errors import MachineFault
from chipax.logging import MachineLogger
from chipax.rom import read_rom
from chipax.state import MachineState, create_state, load_program, reset, clear_fault


class Machine:
    """Host-side wrapper around a single ``MachineState``.

    Bundles the functional core with configuration, an input provider,
    logging and a fault policy. The external scheduler calls ``cycle`` at the
    instruction rate and ``tick`` at 60 Hz, or ``run_frame`` once per frame for
    headless use. The display is read back through ``display`` or ``framebuffer``.
    """

    def __init__(
        self,
        rom: Optional[str] = None,
        seed: int = 0,
        instruction_frequency: int = 700,
        fps: int = 60,
        raise_on_fault: bool = True,
        keypad_provider: Optional[KeypadProvider] = None,
        logger: Optional[MachineLogger] = None,
    ):
        """Initialize the machine.

        Args:
            rom: Optional path of a ROM file to load immediately
            seed: Seed for the random number instruction
            instruction_frequency: Instructions executed per second (typically 700)
            fps: Frames per second; timers tick once per frame (typically 60)
            raise_on_fault: Raise ``MachineFault`` on guest faults instead of logging and halting
            keypad_provider: Callable returning the 16 key flags, polled before every cycle
                and repeatedly while a key wait is pending
            logger: Logger for lifecycle events, faults and DEBUG instruction traces
        """
        if instruction_frequency <= 0:
            raise ValueError(f"instruction_frequency must be positive, got {instruction_frequency}")
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")

        self.seed = seed
        self.instruction_frequency = instruction_frequency
        self.fps = fps
        self.raise_on_fault = raise_on_fault
        self.keypad_provider = keypad_provider
        self.logger = logger or MachineLogger()

        self.state: MachineState = create_state(jax.random.PRNGKey(seed))

        if rom is not None:
            self.load_rom(rom)

    @classmethod
    def from_rom(cls, path: str, **kwargs) -> "Machine":
        """Create a machine with the ROM at ``path`` already loaded."""
        return cls(rom=path, **kwargs)

    @property
    def instructions_per_frame(self) -> int:
        """Number of instructions executed between two timer ticks.

        Returns:
            Instructions per frame based on frequency and FPS, at least 1
        """
        return max(1, self.instruction_frequency // self.fps)

    @property
    def halted(self) -> bool:
        return int(self.state.fault) != FAULT_NONE

    @property
    def sound_active(self) -> bool:
        return int(self.state.sound_timer) > 0

    @property
    def framebuffer(self) -> np.ndarray:
        """Display as a (32, 64) uint8 array of 0/1 cells."""
        return np.asarray(self.state.display)

    @property
    def display(self) -> np.ndarray:
        """Display as a flat, row-major array of 2048 cells."""
        return np.asarray(self.state.display).ravel()

    def load_program(self, program: bytes, source: Optional[str] = None):
        self.state = load_program(self.state, program)
        self.logger.log_load(len(program), source)

    def load_rom(self, path: str):
        self.load_program(read_rom(path), source=path)

    def reset(self):
        self.state = reset(self.state)
        self.logger.log_reset()

    def clear_fault(self):
        self.state = clear_fault(self.state)

    def press(self, key: int):
        self._check_key(key)
        self.state = self.state.replace(keypad=self.state.keypad.at[key].set(True))

    def release(self, key: int):
        self._check_key(key)
        self.state = self.state.replace(keypad=self.state.keypad.at[key].set(False))

    def set_keypad(self, keys: Sequence[bool]):
        keypad = jnp.asarray(keys, dtype=jnp.bool_)
        if keypad.shape != (NUM_KEYS,):
            raise ValueError(f"Expected {NUM_KEYS} key flags, got shape {keypad.shape}")
        self.state = self.state.replace(keypad=keypad)

    @staticmethod
    def _check_key(key: int):
        if not 0 <= key < NUM_KEYS:
            raise ValueError(f"Key must be in 0..{NUM_KEYS - 1}, got {key}")

    def _handle_fault(self, fault: MachineFault):
        self.state = fault.state
        self.logger.log_fault(fault)
        if self.raise_on_fault:
            raise fault

    def cycle(self):
        """Execute one instruction. A halted machine does nothing unless faults raise."""
        if self.halted and not self.raise_on_fault:
            return
        if self.logger.tracing:
            _, instruction = fetch(self.state)
            self.logger.log_trace(self.state, int(instruction))
        try:
            self.state = cycle(self.state, self.keypad_provider)
        except MachineFault as fault:
            self._handle_fault(fault)

    def tick(self):
        """Decrement both timers. A halted machine is frozen and does not tick."""
        if self.halted:
            return
        self.state = tick(self.state)

    def run_frame(self):
        """Run one frame of instructions followed by one timer tick.

        With a keypad provider or tracing enabled, instructions run one at a
        time through ``cycle``; otherwise the whole frame runs as one compiled batch.
        """
        if self.keypad_provider is not None or self.logger.tracing:
            for _ in range(self.instructions_per_frame):
                self.cycle()
                if self.halted:
                    break
            self.tick()
            return

        if self.halted and not self.raise_on_fault:
            return
        self.state = run_frame(self.state, self.instructions_per_frame)
        try:
            check_fault(self.state)
        except MachineFault as fault:
            self._handle_fault(fault)

    def run(self, frames: int):
        """Run ``frames`` frames, stopping early if the machine halts."""
        for _ in range(frames):
            self.run_frame()
            if self.halted:
                break
