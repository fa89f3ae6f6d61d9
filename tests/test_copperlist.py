import pytest

from copperrt.copperlist import CopperList, CopperListState, CuListsManager


def _filled(values, capacity=5):
    q = CuListsManager(capacity)
    for value in values:
        q.create().msgs = value
    return q


def test_empty_queue():
    q = CuListsManager(5)
    assert q.is_empty()
    assert next(q.iter(), None) is None


def test_partially_full_queue():
    q = _filled([1, 2, 3])
    assert not q.is_empty()
    assert len(q) == 3
    assert [x.msgs for x in q.iter()] == [3, 2, 1]


def test_full_queue():
    q = _filled([1, 2, 3, 4, 5])
    assert len(q) == 5
    assert q.is_full()
    assert [x.msgs for x in q.iter()] == [5, 4, 3, 2, 1]


def test_over_full_queue():
    q = _filled([1, 2, 3, 4, 5])
    assert q.create() is None
    assert len(q) == 5
    assert [x.msgs for x in q.iter()] == [5, 4, 3, 2, 1]


def test_clear():
    q = _filled([1, 2, 3, 4, 5])
    assert q.create() is None
    assert len(q) == 5

    q.clear()
    assert len(q) == 0
    assert next(q.iter(), None) is None

    for value in (1, 2, 3):
        q.create().msgs = value
    assert len(q) == 3
    assert [x.msgs for x in q.iter()] == [3, 2, 1]


def test_mutable_iteration():
    q = _filled([1, 2, 3, 4, 5])
    for x in q.iter():
        x.msgs *= 2
    assert [x.msgs for x in q.iter()] == [10, 8, 6, 4, 2]


def test_zero_sized():
    q = CuListsManager(5, msgs_factory=tuple)
    for _ in range(3):
        q.create()
    assert len(q) == 3
    items = list(q.iter())
    assert [x.msgs for x in items] == [(), (), ()]


def test_drop_last():
    q = _filled([1, 2, 3, 4, 5])
    q._drop_last()
    assert len(q) == 4
    assert [x.msgs for x in q.iter()] == [4, 3, 2, 1]


def test_pop():
    q = _filled([1, 2, 3, 4, 5])
    last = q.pop()
    assert last.msgs == 5
    assert len(q) == 4
    assert [x.msgs for x in q.iter()] == [4, 3, 2, 1]


def test_pop_empty_returns_none():
    q = CuListsManager(3)
    assert q.pop() is None
    assert len(q) == 0


def test_peek():
    q = _filled([1, 2, 3, 4, 5])
    last = q.peek()
    assert last.msgs == 5
    assert len(q) == 5
    assert [x.msgs for x in q.iter()] == [5, 4, 3, 2, 1]


def test_peek_empty_returns_none():
    assert CuListsManager(2).peek() is None


def test_ids_increase_across_reuse():
    q = CuListsManager(2)
    assert q.create().id == 0
    assert q.create().id == 1
    q.pop()
    assert q.create().id == 2


def test_asc_iter_is_reverse_of_iter():
    q = _filled([1, 2, 3, 4, 5])
    q.pop()
    q.pop()
    q.create().msgs = 6
    assert [x.msgs for x in q.asc_iter()] == [1, 2, 3, 6]
    assert [x.msgs for x in q.asc_iter()] == [x.msgs for x in q.iter()][::-1]


def test_dunder_iter_matches_iter():
    q = _filled([7, 8])
    assert [x.msgs for x in q] == [8, 7]


def test_copper_list_state_changes():
    cl = CopperList(0, "payload")
    assert cl.state is CopperListState.INITIALIZED
    cl.change_state(CopperListState.PROCESSING)
    assert cl.state is CopperListState.PROCESSING


@pytest.mark.parametrize(
    "state, text",
    [
        (CopperListState.DONE_PROCESSING, "DoneProcessing"),
        (CopperListState.BEING_SERIALIZED, "BeingSerialized"),
        (CopperListState.FREE, "Free"),
        (CopperListState.PROCESSING, "Processing"),
    ],
)
def test_state_display(state, text):
    cl = CopperList(0, None)
    assert str(cl.state) == "Initialized"
    cl.change_state(state)
    assert str(cl.state) == text


def test_preallocated_slots_start_free():
    q = CuListsManager(3)
    assert q.create().state is CopperListState.FREE


@pytest.mark.parametrize("capacity", [0, -1])
def test_invalid_capacity(capacity):
    with pytest.raises(ValueError):
        CuListsManager(capacity)