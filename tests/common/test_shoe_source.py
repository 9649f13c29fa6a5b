import random
from collections import Counter

import pytest

from pitboss.common.card import Card, Rank, Suit
from pitboss.common.shoe import CardSource, ScriptedCardSource, Shoe, standard_deck


def test_standard_deck():
    deck = standard_deck()
    assert len(deck) == 52
    assert len(set(deck)) == 52


def test_shoe_initialization():
    shoe = Shoe(6)
    assert shoe.total_cards == 312
    assert shoe.remaining == 312
    assert shoe.cards_dealt == 0
    assert shoe.penetration() == 0


def test_shoe_rejects_zero_decks():
    with pytest.raises(ValueError):
        Shoe(0)


def test_shoe_contains_every_card_deck_count_times():
    shoe = Shoe(2, rng=random.Random(5))
    counts = Counter(shoe.cards)
    assert len(counts) == 52
    assert set(counts.values()) == {2}


def test_draw_updates_counters():
    shoe = Shoe(1, rng=random.Random(5))
    expected = shoe.cards[-1]
    assert shoe.draw() == expected
    assert shoe.remaining == 51
    assert shoe.cards_dealt == 1
    assert shoe.penetration() == pytest.approx(1 / 52)


def test_shoe_invariant_across_reshuffles():
    shoe = Shoe(1, rng=random.Random(9))
    shuffles = shoe.shuffle_count
    for _ in range(52 * 3 + 7):
        shoe.draw()
        assert shoe.remaining + shoe.cards_dealt == shoe.deck_count * 52
        if shoe.shuffle_count != shuffles:
            shuffles = shoe.shuffle_count
            # The draw that triggered the reshuffle is the only card out
            assert shoe.cards_dealt == 1
    assert shoe.shuffle_count == 4


def test_shuffle_uses_the_injected_generator():
    expected = standard_deck()
    random.Random(7).shuffle(expected)

    assert Shoe(1, rng=random.Random(7)).cards == expected


def test_same_seed_same_order():
    first = Shoe(2, rng=random.Random(42))
    second = Shoe(2, rng=random.Random(42))
    assert first.cards == second.cards


def test_shoe_is_a_card_source():
    assert isinstance(Shoe(1), CardSource)
    assert isinstance(ScriptedCardSource(Shoe(1)), CardSource)


def test_scripted_source_serves_script_then_falls_back():
    shoe = Shoe(1, rng=random.Random(3))
    next_live = shoe.cards[-1]
    script = [Card(Rank.ACE, Suit.SPADES), Card(Rank.KING, Suit.HEARTS)]
    source = ScriptedCardSource(shoe, script)

    assert source.draw() == script[0]
    assert source.pending == script[1:]
    assert source.draw() == script[1]
    assert source.cards_served == 2
    assert shoe.remaining == 52

    assert source.draw() == next_live
    assert shoe.remaining == 51


def test_scripted_source_load_replaces_and_clear_empties():
    source = ScriptedCardSource(Shoe(1))
    source.load([Card(Rank.TWO, Suit.CLUBS)])
    source.load([Card(Rank.THREE, Suit.CLUBS), Card(Rank.FOUR, Suit.CLUBS)])
    assert [card.rank for card in source.pending] == [Rank.THREE, Rank.FOUR]
    source.clear()
    assert source.pending == []
    assert source.cards_served == 0
