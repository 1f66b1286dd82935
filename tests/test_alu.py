"""Tests for ALU operations (8xxx)."""

import pytest
from chipax import execute, FAULT_BAD_INSTRUCTION, FAULT_NONE
from conftest import with_registers


class TestBasicALU:
    """Test register-to-register logic operations."""

    def test_alu_set_basic(self, fresh_state):
        """8XY0 - Set VX = VY."""
        state = with_registers(fresh_state, V1=0x42, V2=0x99)

        state = execute(state, 0x8120)  # V1 = V2

        assert state.V[1] == 0x99
        assert state.V[2] == 0x99

    def test_alu_or_basic(self, fresh_state):
        """8XY1 - OR operation."""
        state = with_registers(fresh_state, V1=0xF0, V2=0x0F)

        state = execute(state, 0x8121)  # V1 |= V2

        assert state.V[1] == 0xFF

    def test_alu_and_basic(self, fresh_state):
        """8XY2 - AND operation."""
        state = with_registers(fresh_state, V1=0xF0, V2=0xF1)

        state = execute(state, 0x8122)  # V1 &= V2

        assert state.V[1] == 0xF0

    def test_alu_xor_basic(self, fresh_state):
        """8XY3 - XOR operation."""
        state = with_registers(fresh_state, V1=0xFF, V2=0xF0)

        state = execute(state, 0x8123)  # V1 ^= V2

        assert state.V[1] == 0x0F

    @pytest.mark.parametrize("instruction", [0x8120, 0x8121, 0x8122, 0x8123])
    def test_logic_operations_leave_vf_alone(self, fresh_state, instruction):
        """8XY0-8XY3 never write the flag register."""
        state = with_registers(fresh_state, V1=0x0C, V2=0x0A, VF=0x77)

        state = execute(state, instruction)

        assert state.V[15] == 0x77

    def test_logic_operation_into_vf(self, fresh_state):
        """8FY1 - The result lands in VF when X is F."""
        state = with_registers(fresh_state, V2=0x0F, VF=0xF0)

        state = execute(state, 0x8F21)  # VF |= V2

        assert state.V[15] == 0xFF


class TestALUArithmetic:
    """Test arithmetic ALU operations."""

    @pytest.mark.parametrize("vx,vy", [
        (0x00, 0x00), (0x10, 0x20), (0x7F, 0x80), (0xFF, 0x00),
        (0xFF, 0x01), (0x80, 0x80), (0xFF, 0xFF), (0x01, 0xFE),
    ])
    def test_alu_add_carry(self, fresh_state, vx, vy):
        """8XY4 - VF is 1 exactly when the unsigned sum exceeds 255."""
        state = with_registers(fresh_state, V1=vx, V2=vy)

        state = execute(state, 0x8124)  # V1 += V2

        assert state.V[1] == (vx + vy) % 256
        assert state.V[15] == (1 if vx + vy > 255 else 0)

    def test_alu_add_uses_vf_as_source(self, fresh_state):
        """8XY4 - Reading VF as an input happens before the flag is written."""
        state = with_registers(fresh_state, V1=0x10, VF=0x42)

        state = execute(state, 0x81F4)  # V1 += VF

        assert state.V[1] == 0x52
        assert state.V[15] == 0

    def test_alu_sub_xy_no_borrow(self, fresh_state):
        """8XY5 - Subtract VX - VY, no borrow."""
        state = with_registers(fresh_state, V1=0x30, V2=0x10)

        state = execute(state, 0x8125)  # V1 -= V2

        assert state.V[1] == 0x20
        assert state.V[15] == 1  # No borrow (VX >= VY)

    def test_alu_sub_xy_equal(self, fresh_state):
        """8XY5 - Equal operands count as no borrow."""
        state = with_registers(fresh_state, V1=0x30, V2=0x30)

        state = execute(state, 0x8125)

        assert state.V[1] == 0x00
        assert state.V[15] == 1

    def test_alu_sub_xy_with_borrow(self, fresh_state):
        """8XY5 - Subtract VX - VY, with borrow."""
        state = with_registers(fresh_state, V3=0x10, V4=0x30)

        state = execute(state, 0x8345)  # V3 -= V4

        assert state.V[3] == 0xE0  # 16 - 48 = -32 → 224
        assert state.V[15] == 0  # Borrow (VX < VY)

    def test_alu_sub_yx_no_borrow(self, fresh_state):
        """8XY7 - Subtract VY - VX, no borrow."""
        state = with_registers(fresh_state, V1=0x10, V2=0x30)

        state = execute(state, 0x8127)  # V1 = V2 - V1

        assert state.V[1] == 0x20  # 48 - 16 = 32
        assert state.V[15] == 1

    def test_alu_sub_yx_equal(self, fresh_state):
        """8XY7 - VF needs VY strictly greater than VX."""
        state = with_registers(fresh_state, V1=0x30, V2=0x30)

        state = execute(state, 0x8127)

        assert state.V[1] == 0x00
        assert state.V[15] == 0

    def test_alu_sub_yx_with_borrow(self, fresh_state):
        """8XY7 - Result wraps when VX > VY."""
        state = with_registers(fresh_state, V1=0x04, V2=0x02)

        state = execute(state, 0x8127)

        assert state.V[1] == 0xFE
        assert state.V[2] == 0x02
        assert state.V[15] == 0

    def test_flag_wins_when_x_is_vf(self, fresh_state):
        """8FY4 - Writing VF as the destination is overwritten by the flag."""
        state = with_registers(fresh_state, VF=0xFF, V1=0x01)

        state = execute(state, 0x8F14)  # VF += V1, carry out

        assert state.V[15] == 1


class TestALUShifts:
    """Test shift operations."""

    @pytest.mark.parametrize("value", [0x00, 0x01, 0x04, 0x05, 0x7F, 0x80, 0x81, 0xFE, 0xFF])
    def test_shift_right_flag(self, fresh_state, value):
        """8XY6 - VF holds the pre-shift least-significant bit."""
        state = with_registers(fresh_state, V3=value, V4=0xAA)

        state = execute(state, 0x8346)  # V3 >>= 1

        assert state.V[3] == value >> 1
        assert state.V[4] == 0xAA  # VY ignored
        assert state.V[15] == value & 1

    @pytest.mark.parametrize("value", [0x00, 0x01, 0x04, 0x7F, 0x80, 0x81, 0xC0, 0xFE, 0xFF])
    def test_shift_left_flag(self, fresh_state, value):
        """8XYE - VF holds the pre-shift most-significant bit."""
        state = with_registers(fresh_state, V3=value, V4=0x01)

        state = execute(state, 0x834E)  # V3 <<= 1

        assert state.V[3] == (value << 1) & 0xFF
        assert state.V[4] == 0x01  # VY ignored
        assert state.V[15] == value >> 7


class TestALUEdgeCases:
    """Test edge cases and comprehensive scenarios."""

    @pytest.mark.parametrize("op", [0x8, 0x9, 0xA, 0xB, 0xC, 0xD, 0xF])
    def test_alu_undefined_operations(self, fresh_state, op):
        """Unused 8XYN slots fault without touching the registers."""
        state = with_registers(fresh_state, V1=0x42, V2=0x99)

        instruction = 0x8120 | op
        state = execute(state, instruction)

        assert state.fault == FAULT_BAD_INSTRUCTION
        assert state.fault_opcode == instruction
        assert state.V[1] == 0x42, f"Undefined op {op:X} changed VX"
        assert state.V[15] == 0, f"Undefined op {op:X} set VF"

    def test_defined_operations_do_not_fault(self, fresh_state):
        state = with_registers(fresh_state, V1=0x01, V2=0x02)
        for op in [0x0, 0x1, 0x2, 0x3, 0x4, 0x5, 0x6, 0x7, 0xE]:
            state = execute(state, 0x8120 | op)
            assert state.fault == FAULT_NONE, f"Defined op {op:X} faulted"

    def test_alu_self_operations(self, fresh_state):
        """Test operations where VX and VY are the same register."""
        state = with_registers(fresh_state, V5=0xAA)

        # V5 ^= V5 (should become 0)
        state = execute(state, 0x8553)
        assert state.V[5] == 0x00, "Self XOR should result in 0"

        state = with_registers(state, V5=0x80)
        state = execute(state, 0x8554)  # V5 += V5
        assert state.V[5] == 0x00, "Self ADD should wrap on overflow"
        assert state.V[15] == 1, "Self ADD should set carry flag"
