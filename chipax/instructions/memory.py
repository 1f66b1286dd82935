"""Register load, add, index and random instructions."""

import jax
import jax.numpy as jnp
from chipax.state import MachineState
from chipax.decode import DecodedInstruction


def execute_set(state: MachineState, instruction: DecodedInstruction) -> MachineState:
    """6XKK - Set VX = KK."""
    return state.replace(V=state.V.at[instruction.x].set(jnp.astype(instruction.kk, jnp.uint8)))


def execute_add(state: MachineState, instruction: DecodedInstruction) -> MachineState:
    """7XKK - Add KK to VX, wrapping at 8 bits. VF is untouched."""
    total = (jnp.astype(state.V[instruction.x], jnp.int32) + instruction.kk) & 0xFF
    return state.replace(V=state.V.at[instruction.x].set(jnp.astype(total, jnp.uint8)))


def execute_set_index(state: MachineState, instruction: DecodedInstruction) -> MachineState:
    """ANNN - Set I = NNN."""
    return state.replace(I=jnp.astype(instruction.nnn, jnp.uint16))


def execute_random(state: MachineState, instruction: DecodedInstruction) -> MachineState:
    """CXKK - Set VX = random byte & KK."""
    key, subkey = jax.random.split(state.rng)
    random_value = jax.random.randint(subkey, shape=(), minval=0, maxval=256, dtype=jnp.int32)
    value = jnp.astype(random_value & instruction.kk, jnp.uint8)
    return state.replace(V=state.V.at[instruction.x].set(value), rng=key)
