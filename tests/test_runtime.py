"""Tests for the per-iteration runtime state."""

from edgecd.sync.runtime import RuntimeState


def test_new_state_is_empty():
    state = RuntimeState()
    assert state.services_to_restart() == []
    assert state.reboot is False


def test_add_service_restart_is_idempotent():
    state = RuntimeState()
    for _ in range(5):
        state.add_service_restart("nginx")
    assert state.services_to_restart() == ["nginx"]


def test_services_sorted_regardless_of_insertion_order():
    state = RuntimeState()
    for name in ["zebra", "alpha", "beta"]:
        state.add_service_restart(name)
    assert state.services_to_restart() == ["alpha", "beta", "zebra"]


def test_getter_does_not_mutate_state():
    state = RuntimeState()
    state.add_service_restart("b")
    state.add_service_restart("a")
    services = state.services_to_restart()
    services.append("c")
    assert state.services_to_restart() == ["a", "b"]


def test_reboot_is_monotonic():
    state = RuntimeState()
    state.require_reboot()
    state.merge([], reboot=False)
    state.require_reboot()
    assert state.reboot is True


def test_merge_deduplicates_and_ors_reboot():
    state = RuntimeState()
    state.add_service_restart("edge-cd")
    state.merge(["nginx", "edge-cd", "nginx"], reboot=False)
    assert state.services_to_restart() == ["edge-cd", "nginx"]
    assert state.reboot is False

    state.merge([], reboot=True)
    assert state.reboot is True
