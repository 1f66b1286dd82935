"""Instruction fetch and two-level dispatch."""

import jax
import jax.lax
import jax.numpy as jnp
from chipax.state import MachineState
from chipax.decode import decode
from chipax.constants import ADDRESS_MASK
from chipax.instructions.system import execute_system_instruction
from chipax.instructions.control_flow import (
    execute_jump, execute_call, execute_skip_if_equal_immediate,
    execute_skip_if_not_equal_immediate, execute_skip_if_equal_register,
    execute_skip_if_not_equal_register, execute_jump_with_offset,
    execute_key_instruction
)
from chipax.instructions.alu import execute_alu_operation
from chipax.instructions.memory import execute_set, execute_add, execute_set_index, execute_random
from chipax.instructions.display import execute_display
from chipax.instructions.misc import execute_misc_instruction

# Indexed by the top nibble; groups 0x0, 0x8, 0xE and 0xF dispatch again internally
INSTRUCTION_TABLE = [
    execute_system_instruction,
    execute_jump,
    execute_call,
    execute_skip_if_equal_immediate,
    execute_skip_if_not_equal_immediate,
    execute_skip_if_equal_register,
    execute_set,
    execute_add,
    execute_alu_operation,
    execute_skip_if_not_equal_register,
    execute_set_index,
    execute_jump_with_offset,
    execute_random,
    execute_display,
    execute_key_instruction,
    execute_misc_instruction,
]


def execute(state: MachineState, instruction: int) -> MachineState:
    """Execute single instruction. ``state.pc`` must already point past it."""
    decoded_instruction = decode(instruction)
    return jax.lax.switch(decoded_instruction.opcode, INSTRUCTION_TABLE, state, decoded_instruction)


def _pack_u16(high: jnp.uint8, low: jnp.uint8) -> jnp.uint16:
    """Pack two bytes into uint16."""
    return (high.astype(jnp.uint16) << 8) | low.astype(jnp.uint16)


def fetch(state: MachineState) -> tuple[MachineState, jnp.uint16]:
    """Fetch the big-endian instruction at PC and advance PC by 2."""
    instruction = _pack_u16(
        state.memory[state.pc & ADDRESS_MASK],
        state.memory[(state.pc + 1) & ADDRESS_MASK]
    )
    return state.replace(pc=(state.pc + 2) & ADDRESS_MASK), instruction


@jax.jit
def step(state: MachineState) -> MachineState:
    """One fetch/execute step with no input refresh."""
    state, instruction = fetch(state)
    return execute(state, instruction)
