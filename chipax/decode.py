"""Instruction decoding."""

import jax.numpy as jnp
from chex import dataclass

from chipax.constants import ADDRESS_MASK


@dataclass(frozen=True)
class DecodedInstruction:
    """Operand fields of one 16-bit instruction word.

    Nibble and byte fields are ``uint8``; ``raw`` and the 12-bit address
    ``nnn`` are ``uint16``.
    """
    raw: jnp.ndarray
    opcode: jnp.ndarray  # group nibble, selects the first-level handler
    x: jnp.ndarray
    y: jnp.ndarray
    n: jnp.ndarray
    kk: jnp.ndarray
    nnn: jnp.ndarray


def _nibble(word: jnp.ndarray, shift: int) -> jnp.ndarray:
    return jnp.astype((word >> shift) & 0xF, jnp.uint8)


def decode(instruction) -> DecodedInstruction:
    """Split a big-endian instruction word into ``opcode x y n``, ``kk`` and ``nnn``."""
    word = jnp.asarray(instruction, dtype=jnp.uint16)
    return DecodedInstruction(
        raw=word,
        opcode=_nibble(word, 12),
        x=_nibble(word, 8),
        y=_nibble(word, 4),
        n=_nibble(word, 0),
        kk=jnp.astype(word & 0xFF, jnp.uint8),
        nnn=word & ADDRESS_MASK,
    )
