"""Program image loading from disk."""

from chipax.errors import LoadError
from chipax.state import MachineState, load_program


def read_rom(filename: str) -> bytes:
    """Read a ROM image, reporting missing or unreadable files as ``LoadError``."""
    try:
        with open(filename, 'rb') as f:
            return f.read()
    except OSError as e:
        raise LoadError(f"Failed to open ROM '{filename}': {e.strerror or e}") from e


def load_rom(state: MachineState, filename: str) -> MachineState:
    """Load ROM data into memory starting at 0x200."""
    return load_program(state, read_rom(filename))
