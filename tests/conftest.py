"""Test configuration and fixtures for virtual machine tests."""

import pytest
import jax.numpy as jnp
from chipax import create_state, load_program


@pytest.fixture
def fresh_state():
    """Provide a fresh machine state for each test."""
    return create_state()


@pytest.fixture
def program_state():
    """Provide a factory that loads a program into a fresh state."""
    def _load(program):
        return load_program(create_state(), bytes(program))
    return _load


def setup_sprite_in_memory(state, address, sprite_bytes):
    """Helper to put sprite data in memory."""
    return state.replace(
        memory=state.memory.at[address:address+len(sprite_bytes)].set(
            jnp.array(sprite_bytes, dtype=jnp.uint8)
        )
    )


def with_registers(state, **registers):
    """Helper to set registers by name, e.g. with_registers(state, V1=0x10, VF=1)."""
    V = state.V
    for name, value in registers.items():
        V = V.at[int(name[1:], 16)].set(value)
    return state.replace(V=V)
