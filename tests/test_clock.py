import copy
from datetime import timedelta

import pytest

from copperrt.clock import (
    ClockProvider,
    CuDuration,
    CuTimeRange,
    OptionCuTime,
    PartialCuTimeRange,
    RobotClock,
)
from copperrt.codec import Decoder, Encoder

U64_MAX = 0xFFFF_FFFF_FFFF_FFFF


def test_mock():
    clock, mock = RobotClock.mock()
    assert clock.now() == CuDuration.from_timedelta(timedelta(seconds=0))
    mock.increment(timedelta(seconds=1))
    assert clock.now() == CuDuration.from_timedelta(timedelta(seconds=1))


def test_mock_clone():
    clock, mock = RobotClock.mock()
    assert clock.now() == CuDuration.from_timedelta(timedelta(seconds=0))
    clock_clone = copy.copy(clock)
    mock.increment(timedelta(seconds=1))
    assert clock_clone.now() == CuDuration.from_timedelta(timedelta(seconds=1))


def test_from_ref_time():
    tolerance_ms = 10
    clock = RobotClock.from_ref_time(1_000_000_000)
    elapsed_ms = clock.now().to_timedelta() / timedelta(milliseconds=1)
    assert abs(elapsed_ms - 1000) <= tolerance_ms


def test_longuest_duration():
    maxcu = CuDuration(U64_MAX)
    maxd = maxcu.to_timedelta()
    assert maxd.days * 86_400 + maxd.seconds == U64_MAX // 1_000_000_000
    years = maxd.days // 365
    assert years >= 584


def test_some_time_arithmetics():
    a = CuDuration(10)
    b = CuDuration(20)
    c = a + b
    assert c.nanos == 30
    d = b - a
    assert d.nanos == 10


def test_build_range_from_slice():
    r = CuTimeRange.from_times([CuDuration(20), CuDuration(10), CuDuration(30)])
    assert r.start == CuDuration(10)
    assert r.end == CuDuration(30)


def test_range_from_empty_raises():
    with pytest.raises(ValueError):
        CuTimeRange.from_times([])


def test_sub_underflow_raises():
    with pytest.raises(OverflowError):
        CuDuration(10) - CuDuration(20)


def test_negative_duration_rejected():
    with pytest.raises(OverflowError):
        CuDuration(-1)


def test_mul_and_div():
    assert CuDuration(10) * 3 == CuDuration(30)
    assert 3 * CuDuration(10) == CuDuration(30)
    assert CuDuration(30) / 4 == CuDuration(7)
    assert CuDuration(30) // 3 == CuDuration(10)


def test_min_max():
    a, b = CuDuration(5), CuDuration(9)
    assert a.max(b) == b
    assert a.min(b) == a
    assert b.max(a) == b


def test_constants():
    assert CuDuration.MIN == CuDuration(0)
    assert CuDuration.MAX == CuDuration(U64_MAX - 1)


@pytest.mark.parametrize(
    "nanos,text",
    [
        (999, "999 ns"),
        (1_500, "1.500 µs"),
        (2_000_000, "2.000 ms"),
        (1_500_000_000, "1.500 s"),
        (90_000_000_000, "1.500 m"),
        (5_400_000_000_000, "1.500 h"),
        (129_600_000_000_000, "1.500 d"),
    ],
)
def test_display(nanos, text):
    assert str(CuDuration(nanos)) == text


def test_timedelta_round_trip():
    delta = timedelta(days=2, seconds=5, microseconds=7)
    assert CuDuration.from_timedelta(delta).to_timedelta() == delta


def test_duration_encode_round_trip():
    enc = Encoder()
    CuDuration(123456789).encode(enc)
    assert CuDuration.decode(Decoder(enc.getvalue())) == CuDuration(123456789)


def test_option_none():
    opt = OptionCuTime.none()
    assert opt.is_none()
    assert opt.to_optional() is None
    assert str(opt) == "None"
    with pytest.raises(ValueError):
        opt.unwrap()


def test_option_some():
    opt = OptionCuTime.from_optional(CuDuration(42))
    assert not opt.is_none()
    assert opt.unwrap() == CuDuration(42)
    assert opt.to_optional() == CuDuration(42)
    assert str(opt) == "42 ns"


def test_option_default_is_none():
    assert OptionCuTime().is_none()
    assert OptionCuTime.from_optional(None) == OptionCuTime.none()


def test_partial_range_default():
    r = PartialCuTimeRange()
    assert r.start.is_none()
    assert r.end.is_none()


def test_mock_value_and_set_value():
    clock, mock = RobotClock.mock()
    mock.set_value(500)
    assert mock.value() == 500
    assert mock.now() == CuDuration(500)
    assert clock.now() == CuDuration(500)
    mock.set_value(200)
    assert clock.now() == CuDuration(200)
    mock.decrement(CuDuration(50))
    assert clock.recent() == CuDuration(150)


def test_real_clock_is_monotonic():
    clock = RobotClock()
    first = clock.now()
    second = clock.now()
    assert second >= first


def test_clock_provider():
    class Provider(ClockProvider):
        def __init__(self):
            self.clock, self.mock = RobotClock.mock()

        def get_clock(self):
            return self.clock

    provider = Provider()
    provider.mock.increment(CuDuration(7))
    assert provider.get_clock().now() == CuDuration(7)


def test_clock_provider_is_abstract():
    with pytest.raises(TypeError):
        ClockProvider()