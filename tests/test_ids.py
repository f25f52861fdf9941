"""Identifier generation and boundary parsing.

Learn: Two properties matter most:
1. Monotonicity — ids from one process sort in creation order, even
   within a single millisecond and across threads.
2. Version pinning — parse() accepts only the version we mint and keeps
   "malformed" and "wrong version" distinguishable.
"""

import uuid
from concurrent.futures import ThreadPoolExecutor

import pytest

from tessera import ids
from tessera.errors import InvalidIdFormat, InvalidIdVersion
from tessera.ids import IdGenerator, id_timestamp_ms, new_id, parse_id


class FrozenMs:
    def __init__(self, now_ms: int):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms


# ═══════════════════════════════════════════════════════════
# Generation
# ═══════════════════════════════════════════════════════════


def test_new_id_is_version_7():
    value = new_id()
    assert value.version == 7
    assert value.variant == uuid.RFC_4122


def test_new_ids_strictly_increase():
    values = [new_id() for _ in range(10_000)]
    assert all(a.int < b.int for a, b in zip(values, values[1:]))
    assert all(a.bytes < b.bytes for a, b in zip(values, values[1:]))


def test_same_millisecond_still_increases():
    """With the clock stuck, the counter alone keeps ordering strict."""
    gen = IdGenerator(clock_ms=FrozenMs(1_760_000_000_000))
    values = [gen.generate() for _ in range(1_000)]
    assert len(set(values)) == 1_000
    assert all(a.int < b.int for a, b in zip(values, values[1:]))
    assert {id_timestamp_ms(v) for v in values} == {1_760_000_000_000}


def test_clock_stepping_backwards_keeps_order():
    clock = FrozenMs(1_760_000_000_500)
    gen = IdGenerator(clock_ms=clock)
    first = gen.generate()
    clock.now_ms -= 400
    second = gen.generate()
    assert second.int > first.int
    assert id_timestamp_ms(second) == 1_760_000_000_500


def test_counter_overflow_advances_timestamp():
    gen = IdGenerator(clock_ms=FrozenMs(1_760_000_000_000))
    first = gen.generate()
    gen._counter = ids._COUNTER_MAX
    second = gen.generate()
    assert second.int > first.int
    assert id_timestamp_ms(second) == 1_760_000_000_001


def test_new_millisecond_sorts_after_previous():
    clock = FrozenMs(1_760_000_000_000)
    gen = IdGenerator(clock_ms=clock)
    earlier = [gen.generate() for _ in range(50)]
    clock.now_ms += 1
    later = gen.generate()
    assert all(v.int < later.int for v in earlier)


def test_concurrent_generation_is_unique_and_ordered_per_thread():
    gen = IdGenerator()

    def batch(_):
        return [gen.generate() for _ in range(2_000)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        batches = list(pool.map(batch, range(8)))

    everything = [v for b in batches for v in b]
    assert len(set(everything)) == len(everything)
    for b in batches:
        assert all(x.int < y.int for x, y in zip(b, b[1:]))


def test_embedded_timestamp_is_current():
    import time

    before = time.time_ns() // 1_000_000
    value = new_id()
    after = time.time_ns() // 1_000_000
    assert before <= id_timestamp_ms(value) <= after + 1


# ═══════════════════════════════════════════════════════════
# Parsing
# ═══════════════════════════════════════════════════════════


def test_parse_round_trip():
    for _ in range(100):
        value = new_id()
        assert parse_id(str(value)) == value


def test_parse_accepts_uuid_instances():
    value = new_id()
    assert parse_id(value) is value


def test_parse_accepts_uppercase_text():
    value = new_id()
    assert parse_id(str(value).upper()) == value


@pytest.mark.parametrize(
    "foreign",
    [
        uuid.uuid4(),
        uuid.uuid1(),
        uuid.uuid5(uuid.NAMESPACE_DNS, "example.com"),
        uuid.UUID(int=0),
    ],
)
def test_parse_rejects_foreign_versions(foreign):
    with pytest.raises(InvalidIdVersion):
        parse_id(str(foreign))
    with pytest.raises(InvalidIdVersion):
        parse_id(foreign)


def test_parse_rejects_v7_layout_with_wrong_variant():
    value = new_id().int & ~(0b11 << 62)  # clear variant bits
    with pytest.raises(InvalidIdVersion) as exc_info:
        parse_id(str(uuid.UUID(int=value)), field="app_id")
    assert exc_info.value.fields == {"app_id": ["unsupported identifier variant"]}


@pytest.mark.parametrize(
    "text",
    ["", "not-a-uuid", "0190f1b2-7c1d-7abc", "zzzzzzzz-zzzz-7zzz-8zzz-zzzzzzzzzzzz", "12345"],
)
def test_parse_rejects_malformed_text(text):
    with pytest.raises(InvalidIdFormat):
        parse_id(text)


def test_parse_rejects_non_string_input():
    with pytest.raises(InvalidIdFormat):
        parse_id(12345)


def test_parse_errors_carry_field_name():
    with pytest.raises(InvalidIdFormat) as exc_info:
        parse_id("nope", field="org_id")
    assert exc_info.value.field == "org_id"
    assert "org_id" in exc_info.value.fields

    with pytest.raises(InvalidIdVersion) as exc_info:
        parse_id(str(uuid.uuid4()), field="project_id")
    assert exc_info.value.version == 4
    assert exc_info.value.code == "invalid_id_version"
