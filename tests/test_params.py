import pytest

from tinyunix.params import STA_R, STA_W, STA_X, Syscall, seg_asm, seg_null


def test_null_descriptor_is_all_zero():
    assert seg_null() == bytes(8)


def test_flat_code_segment_encoding():
    assert seg_asm(STA_X | STA_R, 0, 0xFFFFFFFF) == bytes.fromhex("ffff0000009acf00")


def test_data_segment_access_byte():
    desc = seg_asm(STA_W, 0, 0xFFFFFFFF)
    assert desc[5] == 0x92
    assert len(desc) == 8


@pytest.mark.parametrize("base", [0, 0x12345678, 0xFFFFFFFF, 0x00010000])
def test_base_round_trip(base):
    desc = seg_asm(STA_W, base, 0xFFFFFFFF)
    rebuilt = desc[2] | (desc[3] << 8) | (desc[4] << 16) | (desc[7] << 24)
    assert rebuilt == base


@pytest.mark.parametrize("lim", [0xFFFFFFFF, 0x0FFFF000, 0x12345FFF])
def test_limit_round_trip_in_pages(lim):
    desc = seg_asm(STA_X, 0, lim)
    low_word = desc[0] | (desc[1] << 8)
    rebuilt = ((desc[6] & 0xF) << 28) | (low_word << 12)
    assert rebuilt == lim & ~0xFFF
    assert desc[6] & 0xF0 == 0xC0


def test_unknown_syscall_number_rejected():
    with pytest.raises(ValueError):
        Syscall(0)