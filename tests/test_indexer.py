from oura_trends.services.indexer import (
    Cardinality,
    HeartRateAccumulator,
    heart_rate_by_day,
    index_by_day,
)


def test_one_cardinality_keeps_first_sample_for_a_day():
    first = {"day": "2024-01-05", "steps": 1000}
    second = {"day": "2024-01-05", "steps": 9999}

    index = index_by_day([first, second], Cardinality.ONE)

    assert index["2024-01-05"] is first
    assert len(index) == 1


def test_one_cardinality_is_order_sensitive():
    a = {"day": "2024-01-05", "source": "a"}
    b = {"day": "2024-01-05", "source": "b"}

    assert index_by_day([a, b])["2024-01-05"]["source"] == "a"
    assert index_by_day([b, a])["2024-01-05"]["source"] == "b"


def test_many_cardinality_accumulates_in_arrival_order():
    samples = [
        {"day": "2024-01-05", "activity": "walking"},
        {"day": "2024-01-06", "activity": "cycling"},
        {"day": "2024-01-05", "activity": "running"},
    ]

    index = index_by_day(samples, Cardinality.MANY)

    assert [w["activity"] for w in index["2024-01-05"]] == ["walking", "running"]
    assert [w["activity"] for w in index["2024-01-06"]] == ["cycling"]


def test_samples_without_day_are_absent():
    index = index_by_day([{"steps": 10}, {"day": None, "steps": 20}])

    assert len(index) == 0
    assert index.lookup("2024-01-05") == {}


def test_lookup_defaults_follow_cardinality():
    assert index_by_day([], Cardinality.ONE).lookup("2024-01-05") == {}
    assert index_by_day([], Cardinality.MANY).lookup("2024-01-05") == []


def test_heart_rate_accumulates_per_timestamp_day():
    samples = [
        {"timestamp": "2024-01-05T08:00:00+00:00", "bpm": 60},
        {"timestamp": "2024-01-05T08:05:00+00:00", "bpm": 61},
        {"timestamp": "2024-01-06T08:00:00+00:00", "bpm": 70},
        {"timestamp": "2024-01-06T08:05:00+00:00", "bpm": None},
        {"bpm": 80},
    ]

    by_day = heart_rate_by_day(samples)

    assert by_day["2024-01-05"] == HeartRateAccumulator(sum=121, count=2)
    assert by_day["2024-01-06"] == HeartRateAccumulator(sum=70, count=1)
    assert set(by_day) == {"2024-01-05", "2024-01-06"}


def test_heart_rate_mean_rounds_half_up():
    assert HeartRateAccumulator(sum=121, count=2).mean() == 61
    assert HeartRateAccumulator(sum=125, count=2).mean() == 63
    assert HeartRateAccumulator(sum=200, count=3).mean() == 67
    assert HeartRateAccumulator().mean() is None
