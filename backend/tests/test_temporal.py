"""
Tests for the temporal analyzer.
"""

from smurfwatch.models.schemas import (
    GraphLink,
    Severity,
    TemporalPatternType,
    Wallet,
)
from smurfwatch.services.graph_builder import index_by_wallet
from smurfwatch.services.temporal import (
    calculate_temporal_attention_score,
    detect_bursts,
    enrich_wallet,
    enrich_wallets,
    filter_by_age,
    generate_temporal_heatmap,
    get_temporal_patterns,
    ledger_time_range,
    sort_links_by_time,
    wallet_time_range,
)
from smurfwatch.services.wallet_store import WalletStore


def wallet_with_ages(make_tx, ages, address="w"):
    txs = [make_tx(address, f"r{i}", age=age) for i, age in enumerate(ages)]
    return Wallet(address=address), txs


def test_burst_periodic_and_concentration(make_tx):
    # one burst (+10), CV 0 (+25), all in the first pseudo-hour (+15), no gap <= 5s
    wallet, txs = wallet_with_ages(make_tx, [1000, 990, 980])
    assert calculate_temporal_attention_score(wallet, txs) == 50


def test_rapid_sequence_adds_to_score(make_tx):
    wallet, txs = wallet_with_ages(make_tx, [100, 98, 96, 94])
    assert calculate_temporal_attention_score(wallet, txs) == 65

    patterns = get_temporal_patterns(wallet, txs)
    assert [p.type for p in patterns] == [
        TemporalPatternType.BURST,
        TemporalPatternType.PERIODIC,
        TemporalPatternType.RAPID_SEQUENCE,
    ]
    burst, periodic, rapid = patterns
    assert burst.severity == Severity.MEDIUM
    assert burst.description == "4 transactions within 6s"
    assert periodic.severity == Severity.HIGH
    assert rapid.severity == Severity.MEDIUM
    assert len(rapid.involved_transactions) == 4
    assert rapid.time_range.start == 100
    assert rapid.time_range.end == 94


def test_single_rapid_gap_is_not_a_sequence(make_tx):
    wallet, txs = wallet_with_ages(make_tx, [100, 98, 50])
    assert get_temporal_patterns(wallet, txs) == []


def test_trailing_rapid_run_is_reported(make_tx):
    wallet, txs = wallet_with_ages(make_tx, [5000, 3000, 1000, 999, 998, 997, 996])
    rapid = [
        p for p in get_temporal_patterns(wallet, txs)
        if p.type == TemporalPatternType.RAPID_SEQUENCE
    ]
    assert len(rapid) == 1
    assert len(rapid[0].involved_transactions) == 5
    assert rapid[0].severity == Severity.HIGH


def test_too_few_transactions(make_tx):
    wallet, txs = wallet_with_ages(make_tx, [100])
    assert calculate_temporal_attention_score(wallet, txs) == 0
    assert get_temporal_patterns(wallet, txs) == []
    assert calculate_temporal_attention_score(Wallet(address="nobody"), txs) == 0


def test_detect_bursts():
    assert detect_bursts([]) == []
    assert detect_bursts([100, 90, 80, 10, 0]) == [(0, 2)]
    assert detect_bursts([100, 90, 80, 70, 0]) == [(0, 3)]
    assert detect_bursts([100, 90]) == []


def test_heatmap_cells(make_tx):
    txs = [make_tx("a", "b", age=age) for age in (0, 100, 200)]
    cells = generate_temporal_heatmap(txs)

    assert len(cells) == 168
    assert (cells[0].day, cells[0].hour) == (0, 0)
    assert (cells[-1].day, cells[-1].hour) == (6, 23)

    by_slot = {(c.day, c.hour): c for c in cells}
    # the newest and oldest transactions both wrap onto day 0, hour 0
    assert by_slot[(0, 0)].tx_count == 2
    assert by_slot[(0, 0)].intensity == 0.2
    assert by_slot[(3, 12)].tx_count == 1
    assert sum(c.tx_count for c in cells) == 3


def test_heatmap_saturates(make_tx):
    txs = [make_tx("a", "b", age=500) for _ in range(25)]
    cells = generate_temporal_heatmap(txs)
    assert cells[0].tx_count == 25
    assert cells[0].intensity == 1.0


def test_empty_heatmap():
    cells = generate_temporal_heatmap([])
    assert len(cells) == 168
    assert all(c.tx_count == 0 and c.intensity == 0 for c in cells)


def test_time_ranges(make_tx):
    txs = [
        make_tx("a", "b", age=300),
        make_tx("b", "c", age=50),
        make_tx("c", "d", age=900),
    ]
    assert ledger_time_range(txs) == (50, 900)
    assert ledger_time_range([]) == (0, 0)
    assert wallet_time_range("b", txs) == (300, 50)
    assert wallet_time_range("zzz", txs) == (0, 0)
    assert [tx.age for tx in filter_by_age(txs, 50, 300)] == [300, 50]


def test_sort_links_by_time(make_tx):
    txs = [
        make_tx("a", "b", age=10, tx_hash="new"),
        make_tx("b", "c", age=500, tx_hash="old"),
        make_tx("c", "d", age=200, tx_hash="mid"),
    ]
    links = [
        GraphLink(source=tx.sender, target=tx.recipient, value=tx.value, age=tx.age, tx_hash=tx.tx_hash)
        for tx in txs
    ]
    ordered = sort_links_by_time(links, txs)

    assert [link.tx_hash for link in ordered] == ["old", "mid", "new"]
    assert [link.temporal_index for link in ordered] == [0, 1, 2]
    assert all(link.temporal_index is None for link in links)


def test_enrich_wallet(make_tx):
    wallet, txs = wallet_with_ages(make_tx, [100, 98, 96, 94])
    enrich_wallet(wallet, txs)

    assert wallet.temporal_attention_score == 65
    assert len(wallet.temporal_patterns) == 3
    assert wallet.first_seen == 100
    assert wallet.last_seen == 94


def test_enrich_wallets_uses_index(make_tx):
    txs = [make_tx("a", "b", age=age) for age in (30, 20, 10)]
    store = WalletStore()
    for address in ("a", "b", "idle"):
        store.get_or_create(address)

    assert enrich_wallets(store, index_by_wallet(txs)) == 3
    assert store.get("a").temporal_attention_score == 50
    assert store.get("b").first_seen == 30
    assert store.get("idle").temporal_attention_score == 0
    assert store.get("idle").temporal_patterns == []
