import pytest

from watchparty.exceptions import SessionAlreadyExists, SessionNotFound


def test_create_installs_fresh_session(registry) -> None:
    session = registry.create("s1", "https://www.youtube.com/watch?v=abc")

    assert session.playing is True
    assert session.started is False
    assert session.reference_position == 0.0
    assert "s1" in registry


def test_create_rejects_duplicate_id(registry) -> None:
    registry.create("s1", "https://a")
    registry.apply_state_change("s1", False, 30.0)

    with pytest.raises(SessionAlreadyExists):
        registry.create("s1", "https://b")

    session = registry.get("s1")
    assert session.media_ref == "https://a"
    assert session.reference_position == 30.0


def test_get_unknown_session(registry) -> None:
    with pytest.raises(SessionNotFound):
        registry.get("missing")
    assert registry.find("missing") is None


def test_state_change_with_position_is_taken_verbatim(registry, clock) -> None:
    registry.create("s1", "https://a")
    clock.advance(20)

    session = registry.apply_state_change("s1", True, 7.5)

    assert session.reference_position == 7.5
    assert session.reference_wall_time == clock.now
    assert session.started is True


def test_bare_pause_keeps_elapsed_time(registry, clock) -> None:
    registry.create("s1", "https://a")
    registry.apply_state_change("s1", True, 10.0)
    t = clock.now
    clock.advance(5)

    session = registry.apply_state_change("s1", False)

    assert session.playing is False
    assert session.reference_position == pytest.approx(15.0)
    assert session.reference_wall_time == t + 5
    assert registry.snapshot("s1").position == pytest.approx(15.0)


def test_bare_play_after_pause_does_not_add_paused_time(registry, clock) -> None:
    registry.create("s1", "https://a")
    registry.apply_state_change("s1", False, 40.0)
    clock.advance(60)

    session = registry.apply_state_change("s1", True)

    assert session.reference_position == 40.0
    clock.advance(2)
    assert registry.current_position("s1") == pytest.approx(42.0)


def test_state_change_on_unknown_session(registry) -> None:
    with pytest.raises(SessionNotFound):
        registry.apply_state_change("missing", True, 1.0)


def test_mark_bootstrapped_resets_wall_time_only(registry, clock) -> None:
    registry.create("s1", "https://a")
    clock.advance(30)

    session = registry.mark_bootstrapped("s1")

    assert session.reference_wall_time == clock.now
    assert session.reference_position == 0.0
    assert session.playing is True
    assert session.started is True
    assert registry.current_position("s1") == 0.0


def test_switch_media_restarts_session(registry, clock) -> None:
    registry.create("s1", "https://a")
    registry.apply_state_change("s1", False, 99.0)

    session = registry.switch_media("s1", "https://b")

    assert session.media_ref == "https://b"
    assert session.playing is True
    assert session.started is False
    assert session.reference_position == 0.0


def test_remove_is_idempotent(registry) -> None:
    registry.create("s1", "https://a")
    registry.remove("s1")
    registry.remove("s1")

    assert "s1" not in registry
    assert len(registry) == 0


def test_position_never_goes_negative_when_clock_steps_back(registry, clock) -> None:
    registry.create("s1", "https://a")
    registry.apply_state_change("s1", True, 2.0)
    clock.advance(-10)

    assert registry.current_position("s1") == 0.0
    session = registry.apply_state_change("s1", False)
    assert session.reference_position == 0.0
