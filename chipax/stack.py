"""Bounded return address stack."""

import jax.numpy as jnp
from chipax.constants import STACK_SIZE
from chipax.state import StackState


def push(stack: StackState, address: jnp.ndarray) -> tuple[StackState, jnp.ndarray]:
    """Push address onto stack.

    Returns the new stack and an overflow flag. On overflow the stack is returned unchanged.
    """
    overflow = stack.pointer >= STACK_SIZE
    slot = jnp.minimum(stack.pointer, STACK_SIZE - 1)
    new_data = jnp.where(overflow, stack.data, stack.data.at[slot].set(address))
    new_pointer = jnp.where(overflow, stack.pointer, stack.pointer + 1)
    return stack.replace(data=new_data, pointer=new_pointer), overflow


def pop(stack: StackState) -> tuple[StackState, jnp.ndarray, jnp.ndarray]:
    """Pop address from stack.

    Returns the new stack, the popped address and an underflow flag. On
    underflow the stack is unchanged and the address is meaningless.
    """
    underflow = stack.pointer <= 0
    slot = jnp.maximum(stack.pointer - 1, 0)
    popped_address = stack.data[slot]
    new_data = jnp.where(underflow, stack.data, stack.data.at[slot].set(0))
    new_pointer = jnp.where(underflow, stack.pointer, slot)
    return stack.replace(data=new_data, pointer=new_pointer), popped_address, underflow
