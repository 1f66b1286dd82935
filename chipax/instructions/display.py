"""Display operations."""

import jax.numpy as jnp
from chipax.state import MachineState
from chipax.decode import DecodedInstruction
from chipax.constants import SCREEN_WIDTH, SCREEN_HEIGHT, MEMORY_SIZE, FLAG_REGISTER

# Pre-computed coordinate grids for display operations, indexed [y, x]
yy, xx = jnp.meshgrid(jnp.arange(SCREEN_HEIGHT), jnp.arange(SCREEN_WIDTH), indexing='ij')


def execute_display(state: MachineState, instruction: DecodedInstruction) -> MachineState:
    """DXYN - XOR an 8xN sprite from memory[I] onto the display at (VX, VY).

    The origin wraps around the screen; pixels past the right or bottom edge
    are clipped. VF is 1 if any lit pixel was turned off, otherwise 0.
    """
    sprite_x = jnp.astype(state.V[instruction.x], jnp.int32) % SCREEN_WIDTH
    sprite_y = jnp.astype(state.V[instruction.y], jnp.int32) % SCREEN_HEIGHT

    row_offset = yy - sprite_y
    col_offset = xx - sprite_x
    in_sprite = (col_offset >= 0) & (col_offset < 8) & (row_offset >= 0) & (row_offset < instruction.n)

    addresses = (jnp.astype(state.I, jnp.int32) + jnp.clip(row_offset, 0, 15)) % MEMORY_SIZE
    sprite_bytes = jnp.astype(state.memory[addresses], jnp.int32)
    sprite_bits = (sprite_bytes >> (7 - jnp.clip(col_offset, 0, 7))) & 1
    sprite = jnp.astype(sprite_bits & in_sprite, jnp.uint8)

    collision = jnp.any((state.display & sprite) != 0)
    return state.replace(
        display=state.display ^ sprite,
        V=state.V.at[FLAG_REGISTER].set(jnp.astype(collision, jnp.uint8))
    )
