"""Exceptions raised at the host boundary."""

from chipax.constants import FAULT_NAMES


class ChipaxError(Exception):
    """Base class for all virtual machine errors."""


class LoadError(ChipaxError):
    """A program image could not be read or does not fit in program memory."""


class MachineFault(ChipaxError):
    """The guest program put the machine into a fault state.

    Attributes:
        code: One of the ``FAULT_*`` constants
        opcode: The offending 16-bit instruction word
        address: Address the instruction was fetched from
        state: The halted ``MachineState``; pass it through ``clear_fault`` to resume
    """

    def __init__(self, code: int, opcode: int, address: int, state=None):
        self.code = code
        self.opcode = opcode
        self.address = address
        self.state = state
        name = FAULT_NAMES.get(code, f"fault {code}")
        super().__init__(f"{name}: opcode {opcode:04X} at {address:03X}")
