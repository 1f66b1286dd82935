"""Timer, keypad, font, BCD and register block instructions (Fxxx)."""

import jax
import jax.lax
import jax.numpy as jnp
from chipax.state import MachineState
from chipax.decode import DecodedInstruction
from chipax.constants import ADDRESS_MASK, FONT_START, GLYPH_SIZE, MEMORY_SIZE, NUM_REGISTERS
from chipax.instructions.system import make_byte_dispatcher


def execute_get_delay_timer(state: MachineState, instruction: DecodedInstruction) -> MachineState:
    """FX07 - Set VX to delay timer value."""
    return state.replace(V=state.V.at[instruction.x].set(state.delay_timer))


def execute_set_delay_timer(state: MachineState, instruction: DecodedInstruction) -> MachineState:
    """FX15 - Set delay timer to VX."""
    return state.replace(delay_timer=state.V[instruction.x])


def execute_set_sound_timer(state: MachineState, instruction: DecodedInstruction) -> MachineState:
    """FX18 - Set sound timer to VX."""
    return state.replace(sound_timer=state.V[instruction.x])


def execute_add_to_index(state: MachineState, instruction: DecodedInstruction) -> MachineState:
    """FX1E - Add VX to I, wrapping at 16 bits. VF is untouched."""
    new_i = (jnp.astype(state.I, jnp.int32) + state.V[instruction.x]) & 0xFFFF
    return state.replace(I=jnp.astype(new_i, jnp.uint16))


def execute_wait_for_key(state: MachineState, instruction: DecodedInstruction) -> MachineState:
    """FX0A - Wait for key press.

    Stores the lowest pressed key in VX. With no key down, the instruction is
    rewound and ``awaiting_key`` is raised so the driver can spin on input.
    """
    def key_pressed_action(state):
        pressed_key = jnp.argmax(state.keypad)
        return state.replace(
            V=state.V.at[instruction.x].set(jnp.astype(pressed_key, jnp.uint8)),
            awaiting_key=jnp.zeros((), dtype=jnp.bool_)
        )

    def wait_action(state):
        return state.replace(pc=(state.pc - 2) & ADDRESS_MASK, awaiting_key=jnp.ones((), dtype=jnp.bool_))

    return jax.lax.cond(jnp.any(state.keypad), key_pressed_action, wait_action, state)


def execute_font_character(state: MachineState, instruction: DecodedInstruction) -> MachineState:
    """FX29 - Set I to location of sprite for digit VX."""
    font_address = FONT_START + jnp.astype(state.V[instruction.x], jnp.int32) * GLYPH_SIZE
    return state.replace(I=jnp.astype(font_address, jnp.uint16))


def execute_bcd_conversion(state: MachineState, instruction: DecodedInstruction) -> MachineState:
    """FX33 - Store BCD representation of VX at I, I+1, I+2."""
    value = state.V[instruction.x]

    digits = jnp.array([
        value // 100,
        (value // 10) % 10,
        value % 10
    ], dtype=jnp.uint8)

    indices = (jnp.arange(3) + state.I) % MEMORY_SIZE
    return state.replace(memory=state.memory.at[indices].set(digits))


def execute_store_registers(state: MachineState, instruction: DecodedInstruction) -> MachineState:
    """FX55 - Store V0 through VX in memory starting at I, then I += X + 1."""
    register_mask = jnp.arange(NUM_REGISTERS) <= instruction.x
    base_indices = (state.I + jnp.arange(NUM_REGISTERS)) % MEMORY_SIZE
    current_memory_values = state.memory[base_indices]
    new_memory_values = jnp.where(register_mask, state.V, current_memory_values)
    return state.replace(
        memory=state.memory.at[base_indices].set(new_memory_values),
        I=jnp.astype((state.I + instruction.x + 1) & 0xFFFF, jnp.uint16)
    )


def execute_load_registers(state: MachineState, instruction: DecodedInstruction) -> MachineState:
    """FX65 - Load V0 through VX from memory starting at I, then I += X + 1."""
    register_mask = jnp.arange(NUM_REGISTERS) <= instruction.x
    base_indices = (state.I + jnp.arange(NUM_REGISTERS)) % MEMORY_SIZE
    memory_values = state.memory[base_indices]
    return state.replace(
        V=jnp.where(register_mask, memory_values, state.V),
        I=jnp.astype((state.I + instruction.x + 1) & 0xFFFF, jnp.uint16)
    )


execute_misc_instruction = make_byte_dispatcher({
    0x07: execute_get_delay_timer,
    0x0A: execute_wait_for_key,
    0x15: execute_set_delay_timer,
    0x18: execute_set_sound_timer,
    0x1E: execute_add_to_index,
    0x29: execute_font_character,
    0x33: execute_bcd_conversion,
    0x55: execute_store_registers,
    0x65: execute_load_registers,
})
