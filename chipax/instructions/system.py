"""System instructions (0x0xxx) and shared dispatch helpers."""

import jax
import jax.lax
import jax.numpy as jnp
from chipax.state import MachineState, set_fault
from chipax.decode import DecodedInstruction
from chipax.constants import FAULT_BAD_INSTRUCTION, FAULT_STACK_UNDERFLOW
from chipax.stack import pop


def bad_instruction(state: MachineState, instruction: DecodedInstruction) -> MachineState:
    """Undefined opcode: halt with a bad instruction fault."""
    return set_fault(state, FAULT_BAD_INSTRUCTION, instruction.raw)


def make_byte_dispatcher(cases: dict, default=bad_instruction):
    """Factory for second-level dispatch keyed on the low byte (kk)."""
    keys = jnp.array(list(cases.keys()), dtype=jnp.int32)
    branches = list(cases.values()) + [default]

    def dispatch(state: MachineState, instruction: DecodedInstruction) -> MachineState:
        matches = keys == instruction.kk
        index = jnp.where(jnp.any(matches), jnp.argmax(matches), len(keys))
        return jax.lax.switch(index, branches, state, instruction)

    return dispatch


def execute_clear_screen(state: MachineState, instruction: DecodedInstruction) -> MachineState:
    """00E0 - Clear display."""
    return state.replace(display=jnp.zeros_like(state.display))


def execute_return(state: MachineState, instruction: DecodedInstruction) -> MachineState:
    """00EE - Return from subroutine."""
    stack, address, underflow = pop(state.stack)
    return jax.lax.cond(
        underflow,
        lambda s: set_fault(s, FAULT_STACK_UNDERFLOW, instruction.raw),
        lambda s: s.replace(stack=stack, pc=address),
        state
    )


execute_system_instruction = make_byte_dispatcher({
    0xE0: execute_clear_screen,
    0xEE: execute_return,
})
