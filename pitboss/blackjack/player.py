"""
Player state: bankroll, deferred-commit betting, hands and running statistics.

Bets are recorded when placed but only taken from the bankroll once, when
``commit_bets`` is called at the close of betting. Editing or cancelling a bet
never touches the bankroll. Doubles, splits and insurance are deducted
immediately when they happen.
"""

import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pitboss.blackjack import rules
from pitboss.blackjack.action import Action
from pitboss.blackjack.constants import MAX_HANDS
from pitboss.blackjack.errors import (
    IllegalActionError,
    InsufficientFundsError,
    InvalidBetError,
    ValidationError,
)
from pitboss.blackjack.hand import Hand, HandStatus
from pitboss.blackjack.side_bets import SideBetType
from pitboss.common.card import Card

logger = logging.getLogger("pitboss.player")


class Participation(Enum):
    """Where a player stands in the current round."""

    UNDECIDED = "undecided"
    BET_PLACED = "bet_placed"
    READY = "ready"
    SITTING_OUT = "sitting_out"
    ELIMINATED = "eliminated"


@dataclass
class PlayerStatistics:
    hands_played: int = 0
    hands_won: int = 0
    hands_lost: int = 0
    hands_pushed: int = 0
    blackjacks: int = 0
    total_wagered: float = 0
    net_profit: float = 0
    biggest_win: float = 0
    biggest_loss: float = 0
    splits: int = 0
    doubles: int = 0
    busts: int = 0
    insurance_wins: int = 0
    insurance_losses: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {_camel(key): value for key, value in asdict(self).items()}


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _empty_side_bets() -> Dict[SideBetType, float]:
    return {bet_type: 0 for bet_type in SideBetType}


class Player:
    """A seated player. ``id`` is the connection identity."""

    def __init__(self, player_id: str, name: str, seat: int, bankroll: float = 1000):
        self.id = player_id
        self.name = name
        self.seat = seat
        self.color: Optional[str] = None
        self.is_host = False
        self.connected = True

        self.bankroll = bankroll
        self.current_bet: float = 0
        self.side_bets = _empty_side_bets()
        self.participation = Participation.UNDECIDED
        self.hands: List[Hand] = []
        # First two cards of the round, kept for side bets after a split
        self.opening_cards: Tuple[Card, ...] = ()
        self.statistics = PlayerStatistics()

    # Participation

    @property
    def ready(self) -> bool:
        """Whether the player has made their betting decision."""
        return self.participation in (Participation.READY, Participation.SITTING_OUT)

    @property
    def eliminated(self) -> bool:
        """Whether the player is out of the current round."""
        return self.participation in (
            Participation.SITTING_OUT,
            Participation.ELIMINATED,
        )

    def set_ready(self, ready: bool = True) -> None:
        if ready:
            if self.participation is Participation.READY:
                return
            if self.current_bet <= 0:
                raise ValidationError("Must place a bet first")
            self.participation = Participation.READY
        elif self.ready:
            raise ValidationError("Ready status cannot be changed once set")

    def sit_out(self) -> None:
        self.clear_bets()
        self.hands = []
        self.opening_cards = ()
        self.participation = Participation.SITTING_OUT

    def cancel_sit_out(self) -> None:
        if self.participation is not Participation.SITTING_OUT:
            raise ValidationError("Not sitting out")
        self.participation = Participation.UNDECIDED

    def fold(self) -> None:
        """Take the player out of the current round, dropping bets and hands."""
        self.clear_bets()
        self.hands = []
        self.opening_cards = ()
        self.participation = Participation.ELIMINATED

    # Betting

    def _require_open_betting(self) -> None:
        if self.participation is Participation.READY:
            raise InvalidBetError("Bets are locked once you are ready")
        if self.participation is Participation.SITTING_OUT:
            raise InvalidBetError("Cancel sitting out before placing a bet")
        if self.participation is Participation.ELIMINATED:
            raise InvalidBetError("Insufficient funds")

    def place_bet(
        self,
        amount: float,
        config,
        side_bets: Optional[Mapping[SideBetType, float]] = None,
    ) -> None:
        """
        Record a main bet and optional side bets, replacing any earlier ones.

        Nothing is deducted here. A rejected bet leaves the previous main and
        side bets in place.

        :raises InvalidBetError: If any amount breaks the table limits or the
            combined stake exceeds the bankroll.
        """
        self._require_open_betting()
        reason = rules.validate_bet(amount, config.min_bet, config.max_bet, self.bankroll)
        if reason:
            raise InvalidBetError(reason)

        previous = (self.current_bet, self.side_bets, self.participation)
        self.current_bet = amount
        self.side_bets = _empty_side_bets()
        try:
            for bet_type, side_amount in (side_bets or {}).items():
                self.place_side_bet(bet_type, side_amount, config)
        except InvalidBetError:
            self.current_bet, self.side_bets, self.participation = previous
            raise

        self.participation = (
            Participation.BET_PLACED if amount > 0 else Participation.UNDECIDED
        )

    def place_side_bet(self, bet_type: SideBetType, amount: float, config) -> None:
        """
        Set one side bet alongside the current main bet. An amount of zero
        removes it. Like the main bet, nothing is deducted until commit.
        """
        self._require_open_betting()
        if not isinstance(bet_type, SideBetType):
            raise InvalidBetError(f"Invalid side bet type: {bet_type}")
        if not amount:
            self.side_bets[bet_type] = 0
            return
        if self.current_bet <= 0:
            raise InvalidBetError("Place a main bet before side bets")
        reason = rules.validate_bet(amount, config.min_bet, config.max_bet, self.bankroll)
        if reason:
            raise InvalidBetError(f"{bet_type.value}: {reason}")

        others = sum(
            stake for other, stake in self.side_bets.items() if other is not bet_type
        )
        if self.current_bet + others + amount > self.bankroll:
            raise InvalidBetError("Insufficient funds")
        self.side_bets[bet_type] = amount

    def total_bets(self) -> float:
        return self.current_bet + sum(self.side_bets.values())

    def clear_bets(self) -> None:
        self.current_bet = 0
        self.side_bets = _empty_side_bets()
        if self.participation in (Participation.BET_PLACED, Participation.READY):
            self.participation = Participation.UNDECIDED

    def can_afford(self, amount: float) -> bool:
        return self.bankroll >= amount

    def deduct(self, amount: float) -> None:
        """
        Take ``amount`` from the bankroll and count it as wagered.

        :raises InsufficientFundsError: If the bankroll cannot cover it.
        """
        if amount > self.bankroll:
            raise InsufficientFundsError("Insufficient funds")
        self.bankroll -= amount
        self.statistics.total_wagered += amount

    def commit_bets(self) -> float:
        """Deduct the main bet and all side bets in one step."""
        total = self.total_bets()
        self.deduct(total)
        return total

    def add_winnings(self, amount: float) -> float:
        self.bankroll += amount
        return self.bankroll

    @property
    def is_bankrupt(self) -> bool:
        return self.bankroll <= 0

    # Hands

    def initialize_hand(self) -> None:
        self.hands = [Hand(bet=self.current_bet)]
        self.opening_cards = ()

    def hand(self, hand_index: int) -> Hand:
        if not 0 <= hand_index < len(self.hands):
            raise IllegalActionError(f"Invalid hand index: {hand_index}")
        return self.hands[hand_index]

    def add_card(
        self, card: Card, hand_index: int = 0, split_aces_blackjack: bool = True
    ) -> Hand:
        hand = self.hand(hand_index)
        hand.cards.append(card)
        self._update_hand_status(hand, split_aces_blackjack)
        return hand

    def _update_hand_status(self, hand: Hand, split_aces_blackjack: bool) -> None:
        if len(hand.cards) == 2 and not hand.has_acted:
            if rules.is_blackjack(hand.cards, hand.from_split, split_aces_blackjack):
                hand.status = HandStatus.BLACKJACK
                return

        value = hand.value.value
        if rules.is_bust(value):
            hand.status = HandStatus.BUST
            self.statistics.busts += 1
        elif value == rules.BLACKJACK and hand.status is HandStatus.ACTIVE:
            hand.status = HandStatus.STAND

    def hand_value(self, hand_index: int = 0) -> rules.HandValue:
        if not 0 <= hand_index < len(self.hands):
            return rules.HandValue(0, False)
        return self.hands[hand_index].value

    def all_hands_complete(self) -> bool:
        return all(not hand.is_active for hand in self.hands)

    @property
    def has_active_hand(self) -> bool:
        return bool(self.hands) and not self.all_hands_complete()

    # Actions

    def hit(self, hand_index: int = 0) -> None:
        """Validate a hit. The caller deals the card with ``add_card``."""
        hand = self.hand(hand_index)
        if not rules.can_hit(hand.value.value, hand.status):
            raise IllegalActionError("Cannot hit on this hand")
        hand.has_acted = True

    def stand(self, hand_index: int = 0) -> None:
        hand = self.hand(hand_index)
        if not hand.is_active:
            raise IllegalActionError("Cannot stand on this hand")
        hand.status = HandStatus.STAND
        hand.has_acted = True

    def double(self, hand_index: int = 0) -> float:
        """
        Double the bet on a hand. The extra stake is deducted immediately.

        :return: The additional amount wagered
        """
        hand = self.hand(hand_index)
        if not hand.is_active or not rules.can_double(hand.cards, hand.has_acted):
            raise IllegalActionError("Cannot double on this hand")
        if not self.can_afford(hand.bet):
            raise InsufficientFundsError("Insufficient funds to double")

        extra = hand.bet
        self.deduct(extra)
        hand.bet += extra
        hand.is_doubled = True
        hand.has_acted = True
        self.statistics.doubles += 1
        return extra

    def split(self, hand_index: int = 0) -> Hand:
        """
        Split a pair. The second card moves into a new hand inserted right
        after the source; both hands are marked as coming from a split.

        :return: The new hand
        """
        hand = self.hand(hand_index)
        if not hand.is_active or not rules.can_split(hand.cards):
            raise IllegalActionError("Cannot split this hand")
        if len(self.hands) >= MAX_HANDS:
            raise IllegalActionError(f"Cannot split into more than {MAX_HANDS} hands")
        if not self.can_afford(hand.bet):
            raise InsufficientFundsError("Insufficient funds to split")

        self.deduct(hand.bet)
        new_hand = Hand(bet=hand.bet, cards=[hand.cards.pop()], from_split=True)
        hand.from_split = True
        self.hands.insert(hand_index + 1, new_hand)
        self.statistics.splits += 1
        return new_hand

    def can_perform(self, action: Action, hand_index: int = 0) -> bool:
        if not 0 <= hand_index < len(self.hands):
            return False
        hand = self.hands[hand_index]
        match action:
            case Action.HIT:
                return rules.can_hit(hand.value.value, hand.status)
            case Action.STAND:
                return hand.is_active
            case Action.DOUBLE:
                return (
                    hand.is_active
                    and rules.can_double(hand.cards, hand.has_acted)
                    and self.can_afford(hand.bet)
                )
            case Action.SPLIT:
                return (
                    hand.is_active
                    and rules.can_split(hand.cards)
                    and len(self.hands) < MAX_HANDS
                    and self.can_afford(hand.bet)
                )
        return False

    def available_actions(self, hand_index: int = 0) -> List[Action]:
        return [action for action in Action if self.can_perform(action, hand_index)]

    # Statistics

    def record_hand_result(
        self, result: rules.Outcome, bet: float, payout: float
    ) -> None:
        stats = self.statistics
        stats.hands_played += 1
        profit = payout - bet
        stats.net_profit += profit

        match result:
            case rules.Outcome.WIN | rules.Outcome.BLACKJACK:
                stats.hands_won += 1
                stats.biggest_win = max(stats.biggest_win, profit)
            case rules.Outcome.LOSS:
                stats.hands_lost += 1
                stats.biggest_loss = max(stats.biggest_loss, -profit)
            case rules.Outcome.PUSH:
                stats.hands_pushed += 1

    def record_blackjack(self) -> None:
        self.statistics.blackjacks += 1

    def record_side_bet(self, wagered: float, payout: float) -> None:
        self.statistics.net_profit += payout - wagered

    def record_insurance(self, won: bool, stake: float, payout: float = 0) -> None:
        if won:
            self.statistics.insurance_wins += 1
        else:
            self.statistics.insurance_losses += 1
        self.statistics.net_profit += payout - stake

    # Lifecycle

    def new_round(self) -> None:
        """Clear bets and hands for the next round; bankrupt players sit this one out."""
        self.clear_bets()
        self.hands = []
        self.opening_cards = ()
        if self.is_bankrupt:
            logger.info("%s is out of funds and sits this round out", self.name)
            self.participation = Participation.ELIMINATED
        else:
            self.participation = Participation.UNDECIDED

    def reset(self, bankroll: float) -> None:
        """Start a fresh session. Statistics are kept."""
        self.bankroll = bankroll
        self.clear_bets()
        self.hands = []
        self.opening_cards = ()
        self.participation = Participation.UNDECIDED

    def to_dict(self, include_stats: bool = False) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "name": self.name,
            "seat": self.seat,
            "color": self.color,
            "isHost": self.is_host,
            "connected": self.connected,
            "participation": self.participation.value,
            "eliminated": self.eliminated,
            "ready": self.ready,
            "bankroll": self.bankroll,
            "currentBet": self.current_bet,
            "sideBets": {
                bet_type.value: amount for bet_type, amount in self.side_bets.items()
            },
            "hands": [hand.to_dict() for hand in self.hands],
        }
        if include_stats:
            data["statistics"] = self.statistics.to_dict()
        return data

    def __str__(self) -> str:
        return f"{self.name} (seat {self.seat})"

    def __repr__(self) -> str:
        return f"Player(id={self.id!r}, name={self.name!r}, seat={self.seat})"
