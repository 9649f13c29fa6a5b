import pytest

from pitboss.blackjack.action import Action
from pitboss.blackjack.errors import (
    IllegalActionError,
    InsufficientFundsError,
    InvalidBetError,
    ValidationError,
)
from pitboss.blackjack.hand import HandStatus
from pitboss.blackjack.player import Participation, Player
from pitboss.blackjack.rules import Outcome
from pitboss.blackjack.side_bets import SideBetType
from pitboss.common.card import Card
from pitboss.room.config import RoomConfig

CONFIG = RoomConfig()


def give(player, text, hand_index=0, split_aces_blackjack=True):
    for token in text.split():
        player.add_card(Card.parse(token), hand_index, split_aces_blackjack)


@pytest.fixture
def player():
    return Player("p1", "Alice", 1, bankroll=1000)


class TestBetting:
    def test_place_bet_defers_deduction(self, player):
        player.place_bet(50, CONFIG, {SideBetType.PERFECT_PAIRS: 10})
        assert player.bankroll == 1000
        assert player.current_bet == 50
        assert player.total_bets() == 60
        assert player.participation is Participation.BET_PLACED

    def test_place_bet_replaces_previous(self, player):
        player.place_bet(50, CONFIG, {SideBetType.BUST_IT: 10})
        player.place_bet(20, CONFIG)
        assert player.current_bet == 20
        assert player.side_bets[SideBetType.BUST_IT] == 0

    def test_rejected_bet_keeps_previous(self, player):
        player.place_bet(50, CONFIG)
        with pytest.raises(InvalidBetError, match="Minimum bet"):
            player.place_bet(5, CONFIG)
        with pytest.raises(InvalidBetError, match="perfectPairs"):
            player.place_bet(20, CONFIG, {SideBetType.PERFECT_PAIRS: 1})
        assert player.current_bet == 50

    def test_combined_stake_must_fit_bankroll(self):
        player = Player("p1", "Alice", 1, bankroll=100)
        with pytest.raises(InvalidBetError, match="Insufficient funds"):
            player.place_bet(60, CONFIG, {SideBetType.BUST_IT: 50})

    def test_place_side_bet(self, player):
        player.place_bet(50, CONFIG)
        player.place_side_bet(SideBetType.BUST_IT, 20, CONFIG)
        assert player.side_bets[SideBetType.BUST_IT] == 20
        assert player.total_bets() == 70
        assert player.bankroll == 1000

        player.place_side_bet(SideBetType.BUST_IT, 0, CONFIG)
        assert player.total_bets() == 50

    def test_side_bet_needs_main_bet(self, player):
        with pytest.raises(InvalidBetError, match="main bet"):
            player.place_side_bet(SideBetType.PERFECT_PAIRS, 10, CONFIG)

    def test_side_bet_limits_and_combined_stake(self):
        player = Player("p1", "Alice", 1, bankroll=100)
        player.place_bet(60, CONFIG, {SideBetType.PERFECT_PAIRS: 20})
        with pytest.raises(InvalidBetError, match="bustIt: Minimum bet"):
            player.place_side_bet(SideBetType.BUST_IT, 5, CONFIG)
        with pytest.raises(InvalidBetError, match="Insufficient funds"):
            player.place_side_bet(SideBetType.BUST_IT, 30, CONFIG)
        # Replacing a side bet only counts its new amount
        player.place_side_bet(SideBetType.PERFECT_PAIRS, 40, CONFIG)
        assert player.total_bets() == 100

    def test_side_bets_locked_once_ready(self, player):
        player.place_bet(50, CONFIG)
        player.set_ready()
        with pytest.raises(InvalidBetError, match="locked"):
            player.place_side_bet(SideBetType.BUST_IT, 10, CONFIG)

        player.clear_bets()
        player.sit_out()
        with pytest.raises(InvalidBetError, match="sitting out"):
            player.place_side_bet(SideBetType.BUST_IT, 10, CONFIG)

    def test_clear_bets_never_touches_bankroll(self, player):
        player.place_bet(50, CONFIG)
        player.set_ready()
        player.clear_bets()
        assert player.bankroll == 1000
        assert player.current_bet == 0
        assert player.participation is Participation.UNDECIDED

    def test_commit_deducts_once(self, player):
        player.place_bet(50, CONFIG, {SideBetType.TWENTY_ONE_PLUS_3: 10})
        assert player.commit_bets() == 60
        assert player.bankroll == 940
        assert player.statistics.total_wagered == 60

    def test_deduct_rejects_overdraft(self, player):
        with pytest.raises(InsufficientFundsError):
            player.deduct(1001)
        assert player.bankroll == 1000


class TestParticipation:
    def test_ready_requires_bet(self, player):
        with pytest.raises(ValidationError, match="Must place a bet first"):
            player.set_ready()

    def test_ready_is_one_way(self, player):
        player.place_bet(10, CONFIG)
        player.set_ready()
        assert player.ready
        with pytest.raises(ValidationError, match="cannot be changed"):
            player.set_ready(False)
        with pytest.raises(InvalidBetError, match="locked"):
            player.place_bet(20, CONFIG)

    def test_sit_out_and_back(self, player):
        player.place_bet(10, CONFIG)
        player.sit_out()
        assert player.eliminated and player.ready
        assert player.current_bet == 0
        with pytest.raises(InvalidBetError):
            player.place_bet(10, CONFIG)
        player.cancel_sit_out()
        assert player.participation is Participation.UNDECIDED

    def test_cancel_sit_out_requires_sitting_out(self, player):
        with pytest.raises(ValidationError, match="Not sitting out"):
            player.cancel_sit_out()

    def test_new_round_eliminates_bankrupt_player(self):
        player = Player("p1", "Alice", 1, bankroll=0)
        player.new_round()
        assert player.participation is Participation.ELIMINATED
        with pytest.raises(InvalidBetError):
            player.place_bet(10, CONFIG)


class TestHands:
    def test_blackjack_status(self, player):
        player.initialize_hand()
        give(player, "AS KH")
        assert player.hands[0].status is HandStatus.BLACKJACK
        assert not player.has_active_hand

    def test_auto_stand_on_21(self, player):
        player.initialize_hand()
        give(player, "7S 7H")
        player.hit()
        give(player, "7D")
        assert player.hands[0].status is HandStatus.STAND

    def test_bust(self, player):
        player.initialize_hand()
        give(player, "10S 6H")
        player.hit()
        give(player, "KD")
        assert player.hands[0].status is HandStatus.BUST
        assert player.statistics.busts == 1
        with pytest.raises(IllegalActionError):
            player.stand()

    def test_double(self, player):
        player.place_bet(50, CONFIG)
        player.commit_bets()
        player.initialize_hand()
        give(player, "5S 6H")
        assert player.double() == 50
        hand = player.hands[0]
        assert hand.bet == 100 and hand.is_doubled
        assert player.bankroll == 900
        assert not player.can_perform(Action.DOUBLE)

    def test_double_needs_funds(self):
        player = Player("p1", "Alice", 1, bankroll=100)
        player.place_bet(60, CONFIG)
        player.commit_bets()
        player.initialize_hand()
        give(player, "5S 6H")
        assert Action.DOUBLE not in player.available_actions()
        with pytest.raises(InsufficientFundsError):
            player.double()

    def test_split_inserts_hand_after_source(self, player):
        player.place_bet(10, CONFIG)
        player.commit_bets()
        player.initialize_hand()
        give(player, "8S 8H")
        new_hand = player.split(0)
        assert player.bankroll == 980
        assert [len(hand.cards) for hand in player.hands] == [1, 1]
        assert player.hands[1] is new_hand
        assert all(hand.from_split for hand in player.hands)
        assert new_hand.cards == [Card.parse("8H")]

    def test_split_aces_blackjack_follows_config(self, player):
        player.initialize_hand()
        give(player, "AS AH")
        player.split(0)
        give(player, "KD", 0, split_aces_blackjack=False)
        give(player, "KC", 1, split_aces_blackjack=True)
        assert player.hands[0].status is HandStatus.STAND
        assert player.hands[1].status is HandStatus.BLACKJACK

    def test_split_limit(self, player):
        player.initialize_hand()
        give(player, "8S 8H")
        for _ in range(3):
            player.split(0)
            give(player, "8D", 0)
        assert len(player.hands) == 4
        assert not player.can_perform(Action.SPLIT, 0)
        with pytest.raises(IllegalActionError, match="more than 4"):
            player.split(0)

    def test_available_actions(self, player):
        player.initialize_hand()
        give(player, "8S 8H")
        assert player.available_actions() == [
            Action.HIT,
            Action.STAND,
            Action.DOUBLE,
            Action.SPLIT,
        ]
        player.hit()
        give(player, "2C")
        assert player.available_actions() == [Action.HIT, Action.STAND]

    def test_invalid_hand_index(self, player):
        player.initialize_hand()
        with pytest.raises(IllegalActionError, match="Invalid hand index"):
            player.hit(3)
        assert not player.can_perform(Action.HIT, 3)


class TestStatistics:
    def test_hand_results(self, player):
        player.record_hand_result(Outcome.WIN, 10, 20)
        player.record_hand_result(Outcome.LOSS, 30, 0)
        player.record_hand_result(Outcome.PUSH, 10, 10)
        stats = player.statistics
        assert (stats.hands_won, stats.hands_lost, stats.hands_pushed) == (1, 1, 1)
        assert stats.net_profit == -20
        assert stats.biggest_win == 10
        assert stats.biggest_loss == 30

    def test_insurance(self, player):
        player.record_insurance(True, 5, 15)
        player.record_insurance(False, 5)
        assert player.statistics.insurance_wins == 1
        assert player.statistics.insurance_losses == 1
        assert player.statistics.net_profit == 5


def test_to_dict(player):
    player.place_bet(10, CONFIG, {SideBetType.BUST_IT: 10})
    data = player.to_dict(include_stats=True)
    assert data["id"] == "p1"
    assert data["participation"] == "bet_placed"
    assert data["sideBets"] == {"perfectPairs": 0, "bustIt": 10, "twentyOnePlus3": 0}
    assert data["statistics"]["handsPlayed"] == 0
    assert data["ready"] is False
