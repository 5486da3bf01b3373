from planning_poker.constants import UNKNOWN_ESTIMATE
from planning_poker.schemas import Story
from planning_poker.stats import calculate_estimation_stats
from planning_poker.timer import VotingTimer

STORY = Story(title="Checkout")


def test_timer_remaining_is_derived():
    timer = VotingTimer.start(now=100.0, duration=300)
    assert timer.remaining(100.0) == 300
    assert timer.remaining(250.4) == 150
    assert timer.remaining(1000.0) == 0
    assert timer.is_expired(399.9) is False
    assert timer.is_expired(400.0) is True


def test_stopped_timer_never_expires():
    timer = VotingTimer.start(now=0.0, duration=10)
    timer.stop()
    assert timer.is_expired(1000.0) is False
    assert timer.view(5.0).active is False


def test_story_starts_default_timer(engine, store, clock, room_id):
    engine.submit_story(room_id, STORY)
    clock.advance(100)
    view = store.get_room_snapshot(room_id).voting_timer
    assert view.remaining_time == 200
    assert view.active is True


def test_timer_expiry_is_detected(engine, clock, room_id):
    engine.submit_story(room_id, STORY)
    clock.advance(299)
    assert engine.is_voting_timer_expired(room_id) is False
    clock.advance(1)
    assert engine.is_voting_timer_expired(room_id) is True


def test_expired_timer_reads_as_zero_remaining(engine, store, clock, room_id):
    engine.submit_story(room_id, STORY)
    clock.advance(400)
    view = store.get_room_snapshot(room_id).voting_timer
    assert view.remaining_time == 0
    assert view.active is False


def test_reveal_if_expired_reveals_once(engine, store, clock, room_id):
    engine.submit_story(room_id, STORY)
    assert engine.reveal_if_expired(room_id) is False
    clock.advance(300)
    assert engine.reveal_if_expired(room_id) is True
    assert engine.reveal_if_expired(room_id) is False

    snapshot = store.get_room_snapshot(room_id)
    assert snapshot.revealed is True
    assert snapshot.voting_timer is None
    assert engine.is_voting_timer_expired(room_id) is False


def test_manual_reveal_deactivates_timer(engine, clock, room_id):
    engine.submit_story(room_id, STORY)
    engine.reveal_estimates(room_id)
    clock.advance(1000)
    assert engine.is_voting_timer_expired(room_id) is False


def test_reset_restarts_timer(engine, store, clock, room_id):
    engine.submit_story(room_id, STORY)
    clock.advance(250)
    engine.reset_estimates(room_id)
    clock.advance(100)
    assert engine.is_voting_timer_expired(room_id) is False
    assert store.get_room_snapshot(room_id).voting_timer.remaining_time == 200


def test_new_story_restarts_timer(engine, store, clock, room_id):
    engine.submit_story(room_id, STORY)
    clock.advance(299)
    engine.submit_story(room_id, Story(title="Next"))
    clock.advance(10)
    assert store.get_room_snapshot(room_id).voting_timer.remaining_time == 290


def test_clear_removes_timer(engine, clock, room_id):
    engine.submit_story(room_id, STORY)
    engine.clear_story_and_reset(room_id)
    clock.advance(1000)
    assert engine.is_voting_timer_expired(room_id) is False


def test_custom_timer_and_stop(engine, store, clock, room_id):
    assert engine.start_voting_timer(room_id, 60) is False  # no story yet
    engine.submit_story(room_id, STORY)
    assert engine.start_voting_timer(room_id, 60) is True
    clock.advance(30)
    assert store.get_room_snapshot(room_id).voting_timer.remaining_time == 30

    assert engine.stop_voting_timer(room_id) is True
    clock.advance(100)
    assert engine.is_voting_timer_expired(room_id) is False
    assert store.get_room_snapshot(room_id).voting_timer is None


def test_stats_ignore_unknown_votes():
    stats = calculate_estimation_stats([8, UNKNOWN_ESTIMATE, 3, 5, 13])
    assert stats.min == 3
    assert stats.max == 13
    assert stats.average == 7.2
    assert stats.median == 6.5
    assert stats.consensus is False


def test_stats_consensus_and_empty():
    assert calculate_estimation_stats([5, 5, 5]).consensus is True
    assert calculate_estimation_stats([UNKNOWN_ESTIMATE]) is None
    assert calculate_estimation_stats([]) is None
