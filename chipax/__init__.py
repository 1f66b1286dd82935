"""Chipax: an 8-bit virtual machine on JAX."""

from chipax.state import MachineState, StackState, create_state, load_program, reset, clear_fault
from chipax.emulator import execute, fetch, step
from chipax.decode import DecodedInstruction, decode
from chipax.driver import cycle, tick, refresh_keypad, run_cycles, run_frame
from chipax.errors import ChipaxError, LoadError, MachineFault
from chipax.rom import read_rom, load_rom
from chipax.machine import Machine
from chipax.constants import *

__all__ = [
    "MachineState",
    "StackState",
    "create_state",
    "load_program",
    "reset",
    "clear_fault",
    "fetch",
    "execute",
    "step",
    "cycle",
    "tick",
    "refresh_keypad",
    "run_cycles",
    "run_frame",
    "read_rom",
    "load_rom",
    "Machine",
    "ChipaxError",
    "LoadError",
    "MachineFault",
    "DecodedInstruction",
    "decode",
    "PROGRAM_START",
    "FONT_START",
    "SCREEN_WIDTH",
    "SCREEN_HEIGHT",
    "MEMORY_SIZE",
    "STACK_SIZE",
    "FAULT_NONE",
    "FAULT_BAD_INSTRUCTION",
    "FAULT_STACK_OVERFLOW",
    "FAULT_STACK_UNDERFLOW",
]
