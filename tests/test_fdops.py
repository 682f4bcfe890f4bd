"""Tests for FdOps: pure fd-table simulation."""

import pytest

from ediff.fdops import (
    COMPARATOR_SLOTS,
    MIN_ALIAS_FD,
    FdOps,
    OpClearCloexec,
    OpClose,
    OpDup2,
    OpEmptyInput,
)

# =============================================================================
# Empty state
# =============================================================================


def test_empty() -> None:
    fdo = FdOps()
    assert fdo.ops == ()
    assert fdo.live == frozenset()
    assert fdo.exec_fds() == ()


def test_initial_live_set_is_inheritable() -> None:
    fdo = FdOps(live={0, 1, 2})
    assert fdo.live == frozenset({0, 1, 2})
    assert fdo.exec_fds() == (0, 1, 2)


def test_slot_constants() -> None:
    assert COMPARATOR_SLOTS == (3, 4)
    assert MIN_ALIAS_FD == 5


# =============================================================================
# add_live()
# =============================================================================


def test_add_live_is_cloexec() -> None:
    """Parent-allocated fds are live in the child but vanish at exec."""
    fdo = FdOps(live={0, 1, 2})
    fdo.add_live(7)
    assert 7 in fdo.live
    assert fdo.ops == ()
    assert fdo.exec_fds() == (0, 1, 2)


# =============================================================================
# dup2()
# =============================================================================


def test_dup2_records_op() -> None:
    fdo = FdOps(live={0, 1, 2})
    fdo.add_live(7)
    fdo.dup2(7, 3)
    assert fdo.ops == (OpDup2(7, 3),)
    assert 3 in fdo.live


def test_dup2_target_is_cloexec() -> None:
    fdo = FdOps(live={0, 1, 2})
    fdo.add_live(7)
    fdo.dup2(7, 3)
    assert fdo.exec_fds() == (0, 1, 2)


def test_dup2_over_inheritable_fd_makes_it_cloexec() -> None:
    fdo = FdOps(live={0, 1, 2})
    fdo.add_live(7)
    fdo.dup2(7, 1)
    assert fdo.exec_fds() == (0, 2)


def test_dup2_does_not_remove_src() -> None:
    fdo = FdOps()
    fdo.add_live(5)
    fdo.dup2(5, 3)
    assert 5 in fdo.live
    assert 3 in fdo.live


def test_dup2_rejects_non_live_src() -> None:
    fdo = FdOps(live={0, 1, 2})
    with pytest.raises(ValueError, match="fd 7 is not live"):
        fdo.dup2(7, 3)


# =============================================================================
# close() / move_fd()
# =============================================================================


def test_close_records_op() -> None:
    fdo = FdOps(live={0, 1, 2})
    fdo.close(2)
    assert fdo.ops == (OpClose(2),)
    assert fdo.exec_fds() == (0, 1)


def test_move_fd() -> None:
    fdo = FdOps(live={0, 1, 2})
    fdo.add_live(9)
    fdo.move_fd(9, 3)
    assert fdo.ops == (OpDup2(9, 3), OpClose(9))
    assert 9 not in fdo.live
    assert 3 in fdo.live


# =============================================================================
# clear_cloexec()
# =============================================================================


def test_clear_cloexec_exposes_fd() -> None:
    fdo = FdOps(live={0, 1, 2})
    fdo.add_live(9)
    fdo.move_fd(9, 3)
    fdo.clear_cloexec(3)
    assert fdo.ops[-1] == OpClearCloexec(3)
    assert fdo.exec_fds() == (0, 1, 2, 3)


def test_clear_cloexec_rejects_dead_fd() -> None:
    fdo = FdOps(live={0, 1, 2})
    with pytest.raises(ValueError, match="fd 3"):
        fdo.clear_cloexec(3)


# =============================================================================
# empty_input()
# =============================================================================


def test_empty_input_on_stdin() -> None:
    fdo = FdOps(live={0, 1, 2})
    fdo.empty_input(0)
    assert fdo.ops == (OpEmptyInput(0),)
    assert fdo.exec_fds() == (0, 1, 2)


def test_empty_input_revives_closed_fd() -> None:
    fdo = FdOps(live={0, 1, 2})
    fdo.close(0)
    fdo.empty_input(0)
    assert fdo.exec_fds() == (0, 1, 2)


# =============================================================================
# Full child protocols
# =============================================================================


def test_producer_protocol() -> None:
    """stdout -> pipe write end, stdin exhausted, pipe end itself gone."""
    fdo = FdOps(live={0, 1, 2})
    fdo.add_live(6)
    fdo.move_fd(6, 1)
    fdo.clear_cloexec(1)
    fdo.empty_input(0)
    assert fdo.ops == (OpDup2(6, 1), OpClose(6), OpClearCloexec(1), OpEmptyInput(0))
    assert fdo.exec_fds() == (0, 1, 2)


def test_comparator_protocol_leaks_nothing() -> None:
    """Setup pipes never reach the exec'd program; only 0-4 do."""
    fdo = FdOps(live={0, 1, 2})
    for fd in (5, 6, 7, 8):
        fdo.add_live(fd)
    fdo.dup2(5, 3)
    fdo.dup2(7, 4)
    fdo.clear_cloexec(3)
    fdo.clear_cloexec(4)
    fdo.empty_input(0)
    assert fdo.exec_fds() == (0, 1, 2, 3, 4)
