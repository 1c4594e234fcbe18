"""
Tests for seed-driven subgraph expansion and the inverse topology mapping.
"""

import math
import random

import pytest

from smurfwatch.config import settings
from smurfwatch.models.schemas import (
    ExpansionConfig,
    ExpansionDirection,
    LinkDirection,
    Relationship,
    SeedWallet,
    TimeRange,
    Wallet,
)
from smurfwatch.services.scorer import score_wallets
from smurfwatch.services.subgraph import (
    create_seed,
    default_expansion_config,
    expand_subgraph,
    generate_inverse_mapping,
)
from smurfwatch.services.wallet_store import WalletStore


def seed(address):
    return SeedWallet(id=address, address=address)


def config(*addresses, **kwargs):
    return ExpansionConfig(seeds=[seed(a) for a in addresses], **kwargs)


def scored(txs):
    store, _ = score_wallets(txs, WalletStore())
    return store


@pytest.fixture
def chain(make_tx):
    """s -> a -> b -> c"""
    return [
        make_tx("s", "a", value=4.0, age=300),
        make_tx("a", "b", value=3.0, age=200),
        make_tx("b", "c", value=2.0, age=100),
    ]


def hops(subgraph):
    return {node.id: node.hop_distance for node in subgraph.nodes}


def test_forward_expansion(chain):
    store = scored(chain)
    sub = expand_subgraph(
        config("s", k_hops=2, expansion_direction=ExpansionDirection.FORWARD), chain, store
    )

    assert hops(sub) == {"s": 0, "a": 1, "b": 2}
    assert {(l.source, l.target) for l in sub.links} == {("s", "a"), ("a", "b")}
    assert all(l.direction == LinkDirection.FORWARD for l in sub.links)
    paths = {node.id: node.path_from_seed for node in sub.nodes}
    assert paths["b"] == ["s", "a", "b"]


def test_single_hop(chain):
    sub = expand_subgraph(
        config("s", k_hops=1, expansion_direction=ExpansionDirection.FORWARD),
        chain,
        scored(chain),
    )
    assert hops(sub) == {"s": 0, "a": 1}


def test_zero_hops_keeps_only_seeds(chain):
    sub = expand_subgraph(config("s", k_hops=0), chain, scored(chain))
    assert hops(sub) == {"s": 0}
    assert sub.links == []


def test_backward_expansion_keeps_send_direction(chain):
    sub = expand_subgraph(
        config("c", k_hops=3, expansion_direction=ExpansionDirection.BACKWARD),
        chain,
        scored(chain),
    )
    assert hops(sub) == {"c": 0, "b": 1, "a": 2, "s": 3}
    assert {(l.source, l.target) for l in sub.links} == {("b", "c"), ("a", "b"), ("s", "a")}
    assert all(l.direction == LinkDirection.BACKWARD for l in sub.links)


def test_bidirectional_expansion(chain):
    sub = expand_subgraph(config("a", k_hops=1), chain, scored(chain))

    assert hops(sub) == {"a": 0, "s": 1, "b": 1}
    directions = {(l.source, l.target): l.direction for l in sub.links}
    assert directions == {("a", "b"): LinkDirection.FORWARD, ("s", "a"): LinkDirection.BACKWARD}


def test_no_seeds(chain):
    sub = expand_subgraph(default_expansion_config(), chain, scored(chain))
    assert sub.nodes == []
    assert sub.links == []
    assert sub.seeds == []


def test_default_config():
    cfg = default_expansion_config()
    assert cfg.k_hops == 2
    assert cfg.expansion_direction == ExpansionDirection.BIDIRECTIONAL
    assert cfg.entity_type_filter == []
    assert cfg.time_range is None


def test_value_and_time_filters(chain):
    store = scored(chain)

    sub = expand_subgraph(config("s", k_hops=3, min_value_threshold=3.5), chain, store)
    assert hops(sub) == {"s": 0, "a": 1}

    sub = expand_subgraph(
        config("s", k_hops=3, time_range=TimeRange(start=250, end=400)), chain, store
    )
    assert hops(sub) == {"s": 0, "a": 1}


def test_entity_filter(make_tx):
    txs = [
        make_tx("s", "ex", recipient_entity_type="exchange"),
        make_tx("s", "p"),
    ]
    sub = expand_subgraph(config("s", entity_type_filter=["exchange"]), txs, scored(txs))
    assert hops(sub) == {"s": 0, "ex": 1}


def test_shortest_distance_wins(make_tx):
    txs = [
        make_tx("s", "a"),
        make_tx("a", "b"),
        make_tx("b", "c"),
        make_tx("s", "c"),
    ]
    sub = expand_subgraph(
        config("s", k_hops=3, expansion_direction=ExpansionDirection.FORWARD), txs, scored(txs)
    )
    assert hops(sub) == {"s": 0, "a": 1, "c": 1, "b": 2}
    assert {node.id: node.path_from_seed for node in sub.nodes}["c"] == ["s", "c"]


def test_multiple_seeds(chain):
    sub = expand_subgraph(
        config("s", "c", k_hops=1, expansion_direction=ExpansionDirection.FORWARD),
        chain,
        scored(chain),
    )
    assert hops(sub) == {"s": 0, "c": 0, "a": 1}
    assert [s.address for s in sub.seeds] == ["s", "c"]


def test_unknown_wallets_are_skipped(chain):
    store = scored(chain)
    partial = WalletStore({a: w for a, w in store.items() if a != "a"})
    sub = expand_subgraph(
        config("s", k_hops=2, expansion_direction=ExpansionDirection.FORWARD), chain, partial
    )
    assert hops(sub) == {"s": 0, "b": 2}


def test_node_styling(chain):
    sub = expand_subgraph(config("s", k_hops=1), chain, scored(chain))
    nodes = {node.id: node for node in sub.nodes}

    assert nodes["s"].is_seed is True
    assert nodes["s"].val == settings.SEED_NODE_SIZE
    assert nodes["s"].color == settings.SEED_NODE_COLOR
    assert nodes["a"].is_seed is False
    assert nodes["a"].val == pytest.approx(math.sqrt(7) * 2)


@pytest.fixture
def round_trip(make_tx):
    return [
        make_tx("s", "a", value=2.0, age=100),
        make_tx("a", "s", value=3.0, age=90),
        make_tx("a", "s", value=1.0, age=80),
    ]


def test_bidirectional_pair_keeps_both_links(round_trip):
    store = scored(round_trip)
    sub = expand_subgraph(config("s", k_hops=1), round_trip, store)

    assert {(l.source, l.target) for l in sub.links} == {("s", "a"), ("a", "s")}

    (mapping,) = generate_inverse_mapping(sub, store, round_trip)
    assert mapping.seed_address == "s"
    (connected,) = mapping.connected_wallets
    assert connected.address == "a"
    assert connected.relationship == Relationship.BIDIRECTIONAL
    assert connected.total_value == 6.0
    assert connected.tx_count == 3
    assert connected.hop_distance == 1


def test_mapping_totals_ignore_filters(round_trip):
    store = scored(round_trip)
    sub = expand_subgraph(config("s", k_hops=1, min_value_threshold=2.5), round_trip, store)

    assert {(l.source, l.target) for l in sub.links} == {("a", "s")}
    (connected,) = generate_inverse_mapping(sub, store, round_trip)[0].connected_wallets
    assert connected.relationship == Relationship.SENDS_TO
    assert connected.total_value == 6.0
    assert connected.tx_count == 3


def test_mapping_relationships_and_order(chain):
    store = scored(chain)
    store.get("a").suspicion_score = 20
    store.get("b").suspicion_score = 80
    sub = expand_subgraph(
        config("s", k_hops=2, expansion_direction=ExpansionDirection.FORWARD), chain, store
    )

    (mapping,) = generate_inverse_mapping(sub, store, chain)
    connected = mapping.connected_wallets
    assert [c.address for c in connected] == ["b", "a"]
    # b has no direct link with s
    assert connected[0].relationship == Relationship.RECEIVES_FROM
    assert connected[0].total_value == 0
    assert connected[0].tx_count == 0
    assert connected[1].relationship == Relationship.RECEIVES_FROM
    assert connected[1].total_value == 4.0


def test_create_seed():
    wallet = Wallet(address="0xabcdef0123")
    seed_wallet = create_seed(wallet, rng=random.Random(0), now=1234)

    assert seed_wallet.id == seed_wallet.address == "0xabcdef0123"
    assert seed_wallet.label == "Seed 0xabcd"
    assert seed_wallet.added_at == 1234
    assert seed_wallet.color == random.Random(0).choice(settings.SEED_PALETTE)

    labelled = create_seed(wallet, label="Exchange hot wallet")
    assert labelled.label == "Exchange hot wallet"
    assert labelled.color in settings.SEED_PALETTE
    assert labelled.added_at > 0
