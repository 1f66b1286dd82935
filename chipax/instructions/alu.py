"""ALU operations (8xxx)."""

import jax
import jax.lax
import jax.numpy as jnp
from chipax.state import MachineState
from chipax.decode import DecodedInstruction
from chipax.constants import FLAG_REGISTER
from chipax.instructions.system import bad_instruction


def alu_set(vx: int, vy: int) -> int:
    """8XY0 - Set: VX = VY."""
    return vy


def alu_or(vx: int, vy: int) -> int:
    """8XY1 - Binary OR: VX |= VY."""
    return vx | vy


def alu_and(vx: int, vy: int) -> int:
    """8XY2 - Binary AND: VX &= VY."""
    return vx & vy


def alu_xor(vx: int, vy: int) -> int:
    """8XY3 - Logical XOR: VX ^= VY."""
    return vx ^ vy


def alu_add(vx: int, vy: int) -> tuple[int, int]:
    """8XY4 - Add: VX += VY, VF = carry."""
    result = jnp.astype(vx, jnp.int32) + vy
    carry = jnp.astype(result > 0xFF, jnp.uint8)
    return result & 0xFF, carry


def alu_sub_xy(vx: int, vy: int) -> tuple[int, int]:
    """8XY5 - Subtract: VX -= VY, VF = NOT borrow."""
    not_borrow = jnp.astype(vx >= vy, jnp.uint8)
    result = (jnp.astype(vx, jnp.int32) - vy) & 0xFF
    return result, not_borrow


def alu_shift_right(vx: int, vy: int) -> tuple[int, int]:
    """8XY6 - Shift right: VX >>= 1, VF = bit shifted out. VY is ignored."""
    shifted_bit = vx & 1
    result = vx >> 1
    return result, shifted_bit


def alu_sub_yx(vx: int, vy: int) -> tuple[int, int]:
    """8XY7 - Subtract: VX = VY - VX, VF = 1 when VY > VX."""
    flag = jnp.astype(vy > vx, jnp.uint8)
    result = (jnp.astype(vy, jnp.int32) - vx) & 0xFF
    return result, flag


def alu_shift_left(vx: int, vy: int) -> tuple[int, int]:
    """8XYE - Shift left: VX <<= 1, VF = bit shifted out. VY is ignored."""
    shifted_bit = (vx >> 7) & 1
    result = (jnp.astype(vx, jnp.int32) << 1) & 0xFF
    return result, shifted_bit


def register_op(alu_fn):
    """Wrap an ALU function that only writes VX."""
    def handler(state: MachineState, instruction: DecodedInstruction) -> MachineState:
        result = alu_fn(state.V[instruction.x], state.V[instruction.y])
        return state.replace(V=state.V.at[instruction.x].set(jnp.astype(result, jnp.uint8)))
    return handler


def flag_op(alu_fn):
    """Wrap an ALU function that writes VX and then VF (so VF wins when X is F)."""
    def handler(state: MachineState, instruction: DecodedInstruction) -> MachineState:
        result, vf = alu_fn(state.V[instruction.x], state.V[instruction.y])
        new_V = state.V.at[instruction.x].set(jnp.astype(result, jnp.uint8))
        new_V = new_V.at[FLAG_REGISTER].set(jnp.astype(vf, jnp.uint8))
        return state.replace(V=new_V)
    return handler


ALU_OPERATIONS = [
    register_op(alu_set),          # 8XY0
    register_op(alu_or),           # 8XY1
    register_op(alu_and),          # 8XY2
    register_op(alu_xor),          # 8XY3
    flag_op(alu_add),              # 8XY4
    flag_op(alu_sub_xy),           # 8XY5
    flag_op(alu_shift_right),      # 8XY6
    flag_op(alu_sub_yx),           # 8XY7
    bad_instruction,               # 8XY8
    bad_instruction,               # 8XY9
    bad_instruction,               # 8XYA
    bad_instruction,               # 8XYB
    bad_instruction,               # 8XYC
    bad_instruction,               # 8XYD
    flag_op(alu_shift_left),       # 8XYE
    bad_instruction,               # 8XYF
]


def execute_alu_operation(state: MachineState, instruction: DecodedInstruction) -> MachineState:
    """8XYN - ALU operations dispatcher."""
    return jax.lax.switch(instruction.n, ALU_OPERATIONS, state, instruction)
