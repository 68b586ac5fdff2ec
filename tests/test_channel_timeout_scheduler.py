from src.devicevalidation.application.services import ChannelTimeoutScheduler


def make_scheduler(timers, expired):
    return ChannelTimeoutScheduler(
        on_expire=lambda device_id, channel: expired.append((device_id, channel)),
        window_seconds=1.0,
        timer_factory=timers
    )


def test_schedule_arms_one_second_timer(timers):
    scheduler = make_scheduler(timers, [])

    scheduler.schedule('A1', '1')

    assert len(timers.live()) == 1
    assert timers.timers[0].interval == 1.0
    assert scheduler.is_pending('A1', '1')


def test_fire_calls_expire_and_clears_handle(timers):
    expired = []
    scheduler = make_scheduler(timers, expired)
    scheduler.schedule('A1', '2')

    timers.timers[0].fire()

    assert expired == [('A1', '2')]
    assert not scheduler.is_pending('A1', '2')


def test_rearm_cancels_previous_timer(timers):
    expired = []
    scheduler = make_scheduler(timers, expired)

    scheduler.schedule('A1', '1')
    scheduler.schedule('A1', '1')

    first, second = timers.timers
    assert first.cancelled
    assert not second.cancelled
    assert scheduler.pending_count() == 1

    # A stale callback that slipped through cancellation does nothing
    first.fire()
    assert expired == []

    second.fire()
    assert expired == [('A1', '1')]


def test_timers_are_independent_per_key(timers):
    expired = []
    scheduler = make_scheduler(timers, expired)

    scheduler.schedule('A1', '1')
    scheduler.schedule('A1', '2')
    scheduler.schedule('B2', '1')

    assert scheduler.pending_count() == 3
    timers.timers[1].fire()
    assert expired == [('A1', '2')]
    assert scheduler.pending_count() == 2


def test_cancel_device_only_cancels_that_device(timers):
    scheduler = make_scheduler(timers, [])
    scheduler.schedule('A1', '1')
    scheduler.schedule('A1', '3')
    scheduler.schedule('B2', '1')

    assert scheduler.cancel_device('A1') == 2
    assert scheduler.is_pending('B2', '1')
    assert not scheduler.is_pending('A1', '1')


def test_cancel_is_idempotent(timers):
    scheduler = make_scheduler(timers, [])
    scheduler.schedule('A1', '1')

    assert scheduler.cancel('A1', '1') is True
    assert scheduler.cancel('A1', '1') is False
    assert scheduler.cancel_device('A1') == 0


def test_fired_after_cancel_is_noop(timers):
    expired = []
    scheduler = make_scheduler(timers, expired)
    scheduler.schedule('A1', '1')
    scheduler.cancel_all()

    timers.timers[0].fire()

    assert expired == []


def test_expire_errors_are_logged_not_raised(timers):
    def broken(device_id, channel):
        raise RuntimeError('boom')

    scheduler = ChannelTimeoutScheduler(broken, 1.0, timer_factory=timers)
    scheduler.schedule('A1', '1')

    timers.timers[0].fire()

    assert scheduler.pending_count() == 0
