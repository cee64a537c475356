"""Tests for the filter pipeline and its reconciliation pass."""

from datetime import date, datetime, timezone

import pytest

from core import FilterState, FlowMode, NodeKind, TransactionRecord, TxStatus
from core.filters import apply_filters
from core.graph import build_graph

ROOT = "0x" + "a" * 64
ALICE = "0x" + "b" * 64
BOB = "0x" + "c" * 64
CAROL = "0x" + "d" * 64


def _record(tx_id, sender, recipients, amount=0, ts=None, status=TxStatus.SUCCESS):
    return TransactionRecord(
        id=tx_id,
        timestamp=ts,
        sender=sender,
        recipients=tuple(recipients),
        amount=amount,
        gas_used=0,
        status=status,
    )


def _day(d: int, hour: int = 12) -> datetime:
    return datetime(2024, 5, d, hour, tzinfo=timezone.utc)


@pytest.fixture
def records():
    """ROOT -> ALICE (5), ALICE -> BOB (10), BOB -> ROOT (20) on May 1st, 2nd, 3rd."""
    return [
        _record("t1", ROOT, [ALICE], 5, _day(1)),
        _record("t2", ALICE, [BOB], 10, _day(2)),
        _record("t3", BOB, [ROOT], 20, _day(3)),
    ]


@pytest.fixture
def graph(records):
    return build_graph(records, ROOT)


def _tx_ids(view):
    return [e.transaction_id for e in view.edges]


def _assert_consistent(view):
    assert ROOT in view.nodes
    for e in view.edges:
        assert e.source in view.nodes
        assert e.target in view.nodes


# ── No-op ─────────────────────────────────────────────────────────────────────


def test_default_filters_return_the_whole_graph(graph, records):
    view = apply_filters(graph, records, FilterState())

    assert view.nodes == graph.nodes
    assert view.edges == graph.edges


def test_default_filters_keep_isolated_nodes():
    """A sender with no derivable recipients still shows up unfiltered."""
    records = [_record("t1", ROOT, [ALICE], 5), _record("t2", CAROL, [])]
    graph = build_graph(records, ROOT)

    view = apply_filters(graph, records, FilterState())

    assert set(view.nodes) == {ROOT, ALICE, CAROL}
    assert apply_filters(view, records, FilterState()).nodes == view.nodes


def test_inputs_are_not_mutated(graph, records):
    nodes_before = dict(graph.nodes)
    edges_before = list(graph.edges)

    apply_filters(graph, records, FilterState(text_query="bbbb", flow_mode=FlowMode.OUT))

    assert graph.nodes == nodes_before
    assert graph.edges == edges_before


# ── Node stages ───────────────────────────────────────────────────────────────


def test_text_query_keeps_root_and_matching_nodes(graph, records):
    view = apply_filters(graph, records, FilterState(text_query="BBBB"))

    assert set(view.nodes) == {ROOT, ALICE}
    assert _tx_ids(view) == ["t1"]
    _assert_consistent(view)


def test_text_query_matches_type_and_name(graph, records):
    by_type = apply_filters(graph, records, FilterState(text_query="wallet"))
    by_name = apply_filters(graph, records, FilterState(text_query="user:"))

    assert set(by_type.nodes) == {ROOT, ALICE, BOB}
    assert set(by_name.nodes) == {ROOT, ALICE, BOB}


def test_text_query_matching_nothing_leaves_root(graph, records):
    view = apply_filters(graph, records, FilterState(text_query="zzzz"))

    assert list(view.nodes) == [ROOT]
    assert view.edges == []


def test_kind_filter(graph, records):
    wallets = apply_filters(graph, records, FilterState(allowed_kinds=frozenset({NodeKind.WALLET})))
    root_only = apply_filters(graph, records, FilterState(allowed_kinds=frozenset({NodeKind.ROOT})))

    assert set(wallets.nodes) == {ROOT, ALICE, BOB}
    assert list(root_only.nodes) == [ROOT]
    assert root_only.edges == []


def test_contract_kind_excludes_every_wallet(graph, records):
    view = apply_filters(graph, records, FilterState(allowed_kinds=frozenset({NodeKind.CONTRACT})))

    assert list(view.nodes) == [ROOT]
    assert view.edges == []


def test_empty_kind_selection_means_all(graph, records):
    view = apply_filters(graph, records, FilterState(allowed_kinds=frozenset()))
    assert set(view.nodes) == set(graph.nodes)


# ── Edge stages ───────────────────────────────────────────────────────────────


def test_flow_out_prunes_orphans(graph, records):
    view = apply_filters(graph, records, FilterState(flow_mode=FlowMode.OUT))

    assert _tx_ids(view) == ["t1"]
    assert set(view.nodes) == {ROOT, ALICE}


def test_flow_in(graph, records):
    view = apply_filters(graph, records, FilterState(flow_mode=FlowMode.IN))

    assert _tx_ids(view) == ["t3"]
    assert set(view.nodes) == {ROOT, BOB}


def test_other_edges_only_under_all(graph, records):
    """ALICE -> BOB does not touch the root and only passes the ALL mode."""
    for mode in (FlowMode.IN, FlowMode.OUT, FlowMode.INTERNAL):
        view = apply_filters(graph, records, FilterState(flow_mode=mode))
        assert "t2" not in _tx_ids(view)

    assert "t2" in _tx_ids(apply_filters(graph, records, FilterState()))


def test_flow_internal():
    records = [_record("self", ROOT, [ROOT], 3), _record("out", ROOT, [ALICE], 4)]
    graph = build_graph(records, ROOT)

    view = apply_filters(graph, records, FilterState(flow_mode=FlowMode.INTERNAL))

    assert _tx_ids(view) == ["self"]
    assert list(view.nodes) == [ROOT]


def test_amount_bounds_are_inclusive(graph, records):
    view = apply_filters(graph, records, FilterState(min_amount=10, max_amount=20))
    assert _tx_ids(view) == ["t2", "t3"]


def test_min_amount_only(graph, records):
    view = apply_filters(graph, records, FilterState(min_amount=11))

    assert _tx_ids(view) == ["t3"]
    assert set(view.nodes) == {ROOT, BOB}


def test_fan_out_edges_filtered_on_nominal_value():
    """Edges of a multi-recipient transaction carry value 1, not the amount."""
    records = [_record("t1", ROOT, [ALICE, BOB], 1000)]
    graph = build_graph(records, ROOT)

    view = apply_filters(graph, records, FilterState(min_amount=2))

    assert view.edges == []
    assert list(view.nodes) == [ROOT]


def test_date_range_uses_whole_days(graph, records):
    view = apply_filters(
        graph, records, FilterState(start_date=date(2024, 5, 2), end_date=date(2024, 5, 2))
    )
    assert _tx_ids(view) == ["t2"]
    _assert_consistent(view)


def test_date_bounds_are_inclusive_at_day_edges():
    records = [
        _record("early", ROOT, [ALICE], 1, datetime(2024, 5, 2, 0, 0, tzinfo=timezone.utc)),
        _record("late", ROOT, [BOB], 1, datetime(2024, 5, 2, 23, 59, 59, tzinfo=timezone.utc)),
        _record("next", ROOT, [CAROL], 1, datetime(2024, 5, 3, 0, 0, tzinfo=timezone.utc)),
    ]
    graph = build_graph(records, ROOT)

    view = apply_filters(
        graph, records, FilterState(start_date=date(2024, 5, 2), end_date=date(2024, 5, 2))
    )

    assert _tx_ids(view) == ["early", "late"]


def test_start_date_only(graph, records):
    view = apply_filters(graph, records, FilterState(start_date=date(2024, 5, 2)))
    assert _tx_ids(view) == ["t2", "t3"]


def test_missing_timestamp_excluded_only_when_dates_set():
    records = [_record("t1", ROOT, [ALICE], 5, None)]
    graph = build_graph(records, ROOT)

    unfiltered = apply_filters(graph, records, FilterState())
    dated = apply_filters(graph, records, FilterState(end_date=date(2030, 1, 1)))

    assert _tx_ids(unfiltered) == ["t1"]
    assert dated.edges == []


# ── Combined stages ───────────────────────────────────────────────────────────


def test_node_and_edge_stages_combine(graph, records):
    state = FilterState(text_query="cccc", flow_mode=FlowMode.IN, min_amount=20)
    view = apply_filters(graph, records, state)

    assert _tx_ids(view) == ["t3"]
    assert set(view.nodes) == {ROOT, BOB}


def test_edges_to_removed_nodes_are_dropped(graph, records):
    view = apply_filters(graph, records, FilterState(text_query="cccc"))

    assert set(view.nodes) == {ROOT, BOB}
    assert _tx_ids(view) == ["t3"]
    _assert_consistent(view)


# ── Edge-less nodes ──────────────────────────────────────────────────────────


def _with_lonely_sender():
    """ROOT -> ALICE on May 1st; CAROL sends on May 9th with no recipients."""
    records = [
        _record("t1", ROOT, [ALICE], 5, _day(1)),
        _record("t2", CAROL, [], 0, _day(9)),
    ]
    return build_graph(records, ROOT), records


def test_edge_filters_drop_edgeless_sender():
    graph, records = _with_lonely_sender()
    state = FilterState(
        start_date=date(2024, 5, 1),
        end_date=date(2024, 5, 1),
        min_amount=1e9,
        flow_mode=FlowMode.IN,
    )

    view = apply_filters(graph, records, state)

    assert list(view.nodes) == [ROOT]
    assert view.edges == []


@pytest.mark.parametrize(
    "state",
    [
        FilterState(flow_mode=FlowMode.OUT),
        FilterState(min_amount=1),
        FilterState(start_date=date(2024, 5, 1), end_date=date(2024, 5, 1)),
    ],
)
def test_any_edge_stage_drops_edgeless_sender(state):
    graph, records = _with_lonely_sender()

    view = apply_filters(graph, records, state)

    assert CAROL not in view.nodes
    assert set(view.nodes) == {ROOT, ALICE}


def test_node_filters_keep_matching_edgeless_sender():
    graph, records = _with_lonely_sender()

    view = apply_filters(graph, records, FilterState(text_query="dddd"))

    assert set(view.nodes) == {ROOT, CAROL}


def test_naive_timestamps_are_treated_as_utc():
    records = [
        _record("t1", ROOT, [ALICE], 1, datetime(2024, 5, 2, 23, 30)),
        _record("t2", ROOT, [BOB], 1, datetime(2024, 5, 3, 0, 30)),
    ]
    graph = build_graph(records, ROOT)

    view = apply_filters(graph, records, FilterState(end_date=date(2024, 5, 2)))

    assert _tx_ids(view) == ["t1"]
