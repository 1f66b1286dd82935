"""Virtual machine state structures."""

import jax
import jax.numpy as jnp
import numpy as np
from flax.struct import dataclass, PyTreeNode

from chipax.constants import (
    PROGRAM_START, FONT_START, FONT_DATA, SCREEN_WIDTH, SCREEN_HEIGHT, STACK_SIZE, MEMORY_SIZE,
    MAX_PROGRAM_SIZE, NUM_REGISTERS, NUM_KEYS, ADDRESS_MASK, FAULT_NONE
)
from chipax.errors import LoadError


@dataclass(frozen=True)
class StackState:
    """Return address stack for subroutine calls."""
    data: jnp.ndarray
    pointer: jnp.ndarray


class MachineState(PyTreeNode):
    """Complete machine state.

    ``display`` is indexed ``[y, x]`` so ``display.ravel()`` is the row-major
    framebuffer. ``fault`` is non-zero once the machine has halted on a fault,
    with ``fault_opcode`` and ``fault_address`` identifying the culprit.
    """
    rng: jax.random.PRNGKey
    memory: jnp.ndarray
    pc: jnp.ndarray
    display: jnp.ndarray
    stack: StackState
    delay_timer: jnp.ndarray
    sound_timer: jnp.ndarray
    keypad: jnp.ndarray
    V: jnp.ndarray
    I: jnp.ndarray
    awaiting_key: jnp.ndarray
    fault: jnp.ndarray
    fault_opcode: jnp.ndarray
    fault_address: jnp.ndarray


def empty_stack() -> StackState:
    return StackState(
        data=jnp.zeros(STACK_SIZE, dtype=jnp.uint16),
        pointer=jnp.zeros((), dtype=jnp.int32),
    )


def create_state(rng: jax.random.PRNGKey = None) -> MachineState:
    """Create a zeroed machine with the font table copied into low memory."""
    if rng is None:
        rng = jax.random.PRNGKey(0)
    memory = jnp.zeros(MEMORY_SIZE, dtype=jnp.uint8)
    return MachineState(
        rng=rng,
        memory=memory.at[FONT_START:FONT_START + len(FONT_DATA)].set(FONT_DATA),
        pc=jnp.astype(PROGRAM_START, jnp.uint16),
        display=jnp.zeros((SCREEN_HEIGHT, SCREEN_WIDTH), dtype=jnp.uint8),
        stack=empty_stack(),
        delay_timer=jnp.zeros((), dtype=jnp.uint8),
        sound_timer=jnp.zeros((), dtype=jnp.uint8),
        keypad=jnp.zeros(NUM_KEYS, dtype=jnp.bool_),
        V=jnp.zeros(NUM_REGISTERS, dtype=jnp.uint8),
        I=jnp.zeros((), dtype=jnp.uint16),
        awaiting_key=jnp.zeros((), dtype=jnp.bool_),
        fault=jnp.astype(FAULT_NONE, jnp.uint8),
        fault_opcode=jnp.zeros((), dtype=jnp.uint16),
        fault_address=jnp.zeros((), dtype=jnp.uint16),
    )


def load_program(state: MachineState, program) -> MachineState:
    """Copy a program image into memory at 0x200.

    The whole program area is cleared first so a shorter image never inherits
    bytes from a previous one. Images larger than the program area are rejected.
    """
    data = np.frombuffer(bytes(program), dtype=np.uint8)
    if len(data) > MAX_PROGRAM_SIZE:
        raise LoadError(
            f"Program is {len(data)} bytes, but only {MAX_PROGRAM_SIZE} bytes are available"
        )
    program_area = np.zeros(MAX_PROGRAM_SIZE, dtype=np.uint8)
    program_area[:len(data)] = data
    return state.replace(memory=state.memory.at[PROGRAM_START:].set(jnp.asarray(program_area)))


def reset(state: MachineState) -> MachineState:
    """Clear registers, stack, timers and display; memory and keypad are kept."""
    return state.replace(
        pc=jnp.astype(PROGRAM_START, jnp.uint16),
        display=jnp.zeros_like(state.display),
        stack=empty_stack(),
        delay_timer=jnp.zeros_like(state.delay_timer),
        sound_timer=jnp.zeros_like(state.sound_timer),
        V=jnp.zeros_like(state.V),
        I=jnp.zeros_like(state.I),
        awaiting_key=jnp.zeros_like(state.awaiting_key),
        fault=jnp.zeros_like(state.fault),
        fault_opcode=jnp.zeros_like(state.fault_opcode),
        fault_address=jnp.zeros_like(state.fault_address),
    )


def set_fault(state: MachineState, code: int, opcode) -> MachineState:
    """Record a fault raised by the instruction fetched just before ``state.pc``."""
    return state.replace(
        fault=jnp.astype(code, jnp.uint8),
        fault_opcode=jnp.astype(opcode, jnp.uint16),
        fault_address=jnp.astype((state.pc - 2) & ADDRESS_MASK, jnp.uint16),
    )


def clear_fault(state: MachineState) -> MachineState:
    """Leave the fault state so execution can continue after the faulting opcode."""
    return state.replace(
        fault=jnp.zeros_like(state.fault),
        fault_opcode=jnp.zeros_like(state.fault_opcode),
        fault_address=jnp.zeros_like(state.fault_address),
    )
