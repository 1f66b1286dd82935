"""Cycle and tick driver.

``cycle`` and ``tick`` are the only entry points an external scheduler needs:
call ``cycle`` as often as the desired instruction rate and ``tick`` at a
fixed 60 Hz. ``run_cycles`` and ``run_frame`` are JIT-compiled batch
equivalents for headless execution, where no input provider is consulted.
"""

from functools import partial
from typing import Callable, Optional, Sequence

import jax
import jax.lax
import jax.numpy as jnp

from chipax.constants import NUM_KEYS, FAULT_NONE
from chipax.emulator import step
from chipax.errors import MachineFault
from chipax.logging import scan_with_progress
from chipax.state import MachineState

KeypadProvider = Callable[[MachineState], Sequence[bool]]


def refresh_keypad(state: MachineState, provider: KeypadProvider) -> MachineState:
    """Ask the input provider for the 16 logical key flags and install them."""
    keys = jnp.asarray(provider(state), dtype=jnp.bool_)
    if keys.shape != (NUM_KEYS,):
        raise ValueError(f"Keypad provider must return {NUM_KEYS} key flags, got shape {keys.shape}")
    return state.replace(keypad=keys)


def check_fault(state: MachineState) -> MachineState:
    """Raise ``MachineFault`` if the state is halted on a fault."""
    code = int(state.fault)
    if code != FAULT_NONE:
        raise MachineFault(code, int(state.fault_opcode), int(state.fault_address), state)
    return state


def cycle(state: MachineState, provider: Optional[KeypadProvider] = None) -> MachineState:
    """Refresh input, then fetch and execute one instruction.

    When the instruction is a key wait and no key is down, the provider is
    polled again and the wait retried until a key is pressed. Without a
    provider the wait is left pending and retried on the next cycle.

    Raises:
        MachineFault: if the state was already halted or the instruction faulted
    """
    check_fault(state)
    if provider is not None:
        state = refresh_keypad(state, provider)
    state = step(state)
    while provider is not None and bool(state.awaiting_key):
        state = refresh_keypad(state, provider)
        state = step(state)
    return check_fault(state)


@jax.jit
def tick(state: MachineState) -> MachineState:
    """Decrement both timers, stopping at zero."""
    return state.replace(
        delay_timer=jnp.where(state.delay_timer > 0, state.delay_timer - 1, state.delay_timer),
        sound_timer=jnp.where(state.sound_timer > 0, state.sound_timer - 1, state.sound_timer),
    )


def _guarded_step(state: MachineState, _) -> tuple[MachineState, None]:
    """Scan body: a faulted machine stays frozen."""
    state = jax.lax.cond(state.fault != FAULT_NONE, lambda s: s, step, state)
    return state, None


@partial(jax.jit, static_argnums=(1, 2))
def run_cycles(state: MachineState, n: int, progress: bool = False) -> MachineState:
    """Run ``n`` fetch/execute steps without consulting an input provider."""
    body = _guarded_step
    if progress:
        body = scan_with_progress(n, desc=f"Running {n:,} cycles")(body)
    state, _ = jax.lax.scan(body, state, jnp.arange(n))
    return state


@partial(jax.jit, static_argnums=1)
def run_frame(state: MachineState, cycles_per_frame: int) -> MachineState:
    """Run one display frame worth of cycles, then tick the timers once.

    A machine that faulted during the frame is left frozen, timers included.
    """
    state = run_cycles(state, cycles_per_frame)
    return jax.lax.cond(state.fault != FAULT_NONE, lambda s: s, tick, state)
