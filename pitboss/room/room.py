"""
The game room: a server-authoritative blackjack table for up to five seats.

The room owns every piece of table state and is the only thing that mutates
it. Each public coroutine validates and applies one intent completely, then
broadcasts a full snapshot. Validation failures raise errors from
``pitboss.blackjack.errors`` and leave the state untouched.

Round flow::

    lobby -> betting -> dealing -> [insurance] -> playing -> dealer -> results
                ^                                                        |
                +--------------------------------------------------------+

``end_game`` returns to the lobby from any phase. Phase deadlines go through
the room's ``PhaseClock``; the dealer turn and delayed pre-actions run as
background tasks that re-check the round epoch after every pause and give up
if the room has moved on.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, assert_never

from pitboss.blackjack import rules
from pitboss.blackjack.action import Action
from pitboss.blackjack.constants import MAX_HANDS, MAX_NAME_LENGTH, MAX_SEATS
from pitboss.blackjack.dealer import Dealer
from pitboss.blackjack.errors import (
    BlackjackError,
    IllegalActionError,
    InsufficientFundsError,
    NotYourTurnError,
    PhaseError,
    ValidationError,
)
from pitboss.blackjack.hand import HandStatus
from pitboss.blackjack.player import Player
from pitboss.blackjack.side_bets import (
    SideBetResult,
    SideBetType,
    evaluate_21_plus_3,
    evaluate_bust_it,
    evaluate_perfect_pairs,
)
from pitboss.common.card import Card
from pitboss.common.shoe import CardSource, ScriptedCardSource, Shoe
from pitboss.events.emitter import EventEmitter
from pitboss.events.messages import (
    BettingPhase,
    CardDealt,
    ConfigUpdate,
    DealerCardCount,
    DealerCardDealt,
    DealerReveal,
    FoldReason,
    GameState,
    HostTransferred,
    InsuranceOffered,
    PlayerAutoFolded,
    PlayerJoined,
    PlayerLeft,
    PlayerTurn,
    RoomEvent,
    RoundResults,
)
from pitboss.room.clock import Phase, PhaseClock
from pitboss.room.config import RoomConfig

logger = logging.getLogger("pitboss.room")


@dataclass(frozen=True)
class PreAction:
    """An action a player queued for one of their hands before their turn."""

    action: Action
    hand_index: int


class GameRoom:
    """
    A single blackjack table.

    Args:
        config: Table configuration; defaults to ``RoomConfig()``
        emitter: Where point events and snapshots are delivered
        shoe: The live shoe; built from ``config.deck_count`` if omitted
        card_source: Where cards are drawn from; defaults to the shoe
        clock: Phase deadline clock; manual clocks wait for ``advance()``
        round_observer: Optional collaborator with ``start_round()``,
            ``record_round(summary)`` and ``record_side_bet(type, wagered, payout)``
    """

    def __init__(
        self,
        config: Optional[RoomConfig] = None,
        emitter: Optional[EventEmitter] = None,
        shoe: Optional[Shoe] = None,
        card_source: Optional[CardSource] = None,
        clock: Optional[PhaseClock] = None,
        round_observer=None,
    ):
        self.config = (config or RoomConfig()).validate()
        self.emitter = emitter or EventEmitter()
        self.shoe = shoe or Shoe(self.config.deck_count)
        self.card_source: CardSource = card_source or self.shoe
        self.clock = clock or PhaseClock()
        self.round_observer = round_observer

        self.phase = Phase.LOBBY
        self.round_number = 0
        self.session_id = f"session-{uuid.uuid4().hex[:12]}"

        self.players: Dict[str, Player] = {}
        self.seats: List[Optional[str]] = [None] * MAX_SEATS
        self.host_id: Optional[str] = None
        self.dealer = Dealer()

        self.turn_order: List[str] = []
        self.current_player_index = 0
        self.current_hand_index = 0

        self.insurance_bets: Dict[str, float] = {}
        self.insurance_declined: set = set()
        self.insurance_payouts: Dict[str, float] = {}
        self.pre_actions: Dict[str, PreAction] = {}

        # Bumped on every new round and on end_game; background work started
        # in an older epoch abandons itself.
        self._epoch = 0
        # Counts applied player actions; a queued pre-action only runs if no
        # action landed while it waited.
        self._actions_applied = 0

    # Queries

    def player(self, player_id: str) -> Player:
        player = self.players.get(player_id)
        if player is None:
            raise ValidationError("Player not found")
        return player

    def seated_players(self) -> List[Player]:
        """All players in seat order."""
        return [self.players[pid] for pid in self.seats if pid is not None]

    def active_players(self) -> List[Player]:
        """Players taking part in the current round, in seat order."""
        return [player for player in self.seated_players() if not player.eliminated]

    def current_player(self) -> Optional[Player]:
        if self.phase is not Phase.PLAYING:
            return None
        if self.current_player_index >= len(self.turn_order):
            return None
        return self.players.get(self.turn_order[self.current_player_index])

    def is_current(self, player_id: str, hand_index: Optional[int] = None) -> bool:
        current = self.current_player()
        if current is None or current.id != player_id:
            return False
        return hand_index is None or hand_index == self.current_hand_index

    @property
    def manual(self) -> bool:
        return self.clock.manual

    def set_manual(self, manual: bool) -> None:
        """Switch between timer-driven and manual (``advance``) progression."""
        self.clock.set_manual(manual)

    def use_card_source(self, source: Optional[CardSource]) -> None:
        """Draw from ``source`` instead of the shoe; None restores the shoe."""
        self.card_source = source or self.shoe

    def snapshot(self) -> Dict[str, Any]:
        current = self.current_player()
        return {
            "phase": self.phase.value,
            "roundNumber": self.round_number,
            "config": self.config.to_dict(),
            "players": [player.to_dict() for player in self.players.values()],
            "seats": list(self.seats),
            "dealer": self.dealer.to_dict(
                hide_hole=self.phase not in (Phase.DEALER, Phase.RESULTS)
            ),
            "currentPlayer": current.id if current else None,
            "currentHandIndex": self.current_hand_index,
            "deckPenetration": self.shoe.penetration(),
        }

    # Plumbing

    def _emit(self, event: RoomEvent) -> None:
        self.emitter.emit(event)

    def _broadcast(self) -> None:
        self._emit(GameState(self.snapshot()))

    def _draw(self) -> Card:
        return self.card_source.draw()

    def _set_phase(self, phase: Phase) -> None:
        if phase is not self.phase:
            logger.info("Phase %s -> %s", self.phase.value, phase.value)
        self.phase = phase

    def _require_phase(self, *phases: Phase, message: str) -> None:
        if self.phase not in phases:
            raise PhaseError(message)

    def _still(self, epoch: int, phase: Phase) -> bool:
        return self._epoch == epoch and self.phase is phase

    # Seating and profile

    def _unique_name(self, name: str, exclude_id: Optional[str] = None) -> str:
        taken = {p.name for pid, p in self.players.items() if pid != exclude_id}
        candidate = name
        suffix = 2
        while candidate in taken:
            candidate = f"{name} ({suffix})"
            suffix += 1
        return candidate

    async def add_player(self, player_id: str, name: str) -> Player:
        """
        Seat a new player in the lowest free seat. Only allowed in the lobby;
        the first player to join becomes host.
        """
        self._require_phase(Phase.LOBBY, message="Game already in progress")
        if player_id in self.players:
            raise ValidationError("Already in game")
        try:
            seat_index = self.seats.index(None)
        except ValueError:
            raise ValidationError("Game is full") from None

        seat = seat_index + 1
        clean = (name or "").strip()[:MAX_NAME_LENGTH] or f"Player {seat}"
        player = Player(
            player_id, self._unique_name(clean), seat, self.config.starting_bankroll
        )
        if not self.players:
            player.is_host = True
            self.host_id = player_id

        self.players[player_id] = player
        self.seats[seat_index] = player_id
        logger.info("Player %s joined in seat %d", player.name, seat)

        self._emit(PlayerJoined(player_id, player.name, seat))
        self._broadcast()
        return player

    async def remove_player(self, player_id: str) -> None:
        """
        Remove a player (disconnect or kick). A player whose turn it is stands
        on all their hands; the host role passes on; an empty room returns to
        the lobby.
        """
        player = self.players.get(player_id)
        if player is None:
            return

        was_current = self.is_current(player_id)
        if was_current:
            self.clock.cancel()
            for index, hand in enumerate(player.hands):
                if hand.is_active:
                    player.stand(index)

        del self.players[player_id]
        self.seats[player.seat - 1] = None
        self.pre_actions.pop(player_id, None)
        logger.info("Player %s left from seat %d", player.name, player.seat)
        self._emit(PlayerLeft(player_id))

        if player_id == self.host_id:
            self._transfer_host_to_next()

        if not self.players:
            await self.end_game()
            return

        self._broadcast()

        if was_current:
            await self._start_turn()
        elif self.phase is Phase.BETTING and self._all_decided():
            await self._end_betting()
        elif self.phase is Phase.INSURANCE and self._all_insured():
            await self._end_insurance()

    def _set_host(self, player: Optional[Player]) -> None:
        old = self.players.get(self.host_id) if self.host_id else None
        if old is not None:
            old.is_host = False
        if player is None:
            self.host_id = None
            return
        player.is_host = True
        self.host_id = player.id
        logger.info("Host transferred to %s", player.name)
        self._emit(HostTransferred(player.id, player.name))

    def _transfer_host_to_next(self) -> None:
        # Insertion order: the longest-connected remaining player
        self._set_host(next(iter(self.players.values()), None))

    async def transfer_host(self, target_id: str, requester_id: Optional[str] = None) -> Player:
        """
        Make ``target_id`` the host. With a ``requester_id`` only the current
        host may do this; without one (admin) it always may.
        """
        if requester_id is not None and requester_id != self.host_id:
            raise ValidationError("Only the host can transfer host")
        target = self.player(target_id)
        self._set_host(target)
        self._broadcast()
        return target

    async def update_profile(
        self, player_id: str, name: Optional[str] = None, color: Optional[str] = None
    ) -> Player:
        player = self.player(player_id)
        self._require_phase(
            Phase.LOBBY,
            Phase.BETTING,
            message="Cannot update profile during active gameplay",
        )
        if name and name.strip():
            clean = name.strip()[:MAX_NAME_LENGTH]
            player.name = self._unique_name(clean, exclude_id=player_id)
        if color:
            player.color = color
        logger.info("Profile updated for %s", player.name)
        self._broadcast()
        return player

    async def update_config(self, updates: Mapping[str, Any]) -> RoomConfig:
        """
        Apply wire-format config updates. Lobby only; changing the deck count
        replaces the shoe.
        """
        self._require_phase(
            Phase.LOBBY, message="Cannot change configuration during active game"
        )
        config = self.config.merged(updates)
        if config.deck_count != self.shoe.deck_count:
            old_shoe = self.shoe
            self.shoe = Shoe(config.deck_count)
            if self.card_source is old_shoe:
                self.card_source = self.shoe
            elif isinstance(self.card_source, ScriptedCardSource):
                self.card_source.fallback = self.shoe
        self.config = config
        logger.info("Configuration updated")
        self._emit(ConfigUpdate(config.to_dict()))
        self._broadcast()
        return config

    # Game lifecycle

    async def start_game(self, requester_id: Optional[str] = None) -> None:
        """Leave the lobby and open betting for round 1."""
        if requester_id is not None and requester_id != self.host_id:
            raise ValidationError("Only host can start the game")
        self._require_phase(Phase.LOBBY, message="Game already in progress")
        if not self.players:
            raise ValidationError("Cannot start game - no players")
        logger.info("Starting game")
        self.round_number = 0
        await self._start_new_round()

    async def end_game(self) -> None:
        """Return to the lobby from any phase, abandoning the current round."""
        logger.info("Ending game session")
        self.clock.cancel()
        self._epoch += 1
        self._set_phase(Phase.LOBBY)
        self.round_number = 0
        self._reset_round_state()
        for player in self.players.values():
            player.reset(player.bankroll)
        self._broadcast()

    def _reset_round_state(self) -> None:
        self.dealer.clear()
        self.turn_order = []
        self.current_player_index = 0
        self.current_hand_index = 0
        self.insurance_bets.clear()
        self.insurance_declined.clear()
        self.insurance_payouts.clear()
        self.pre_actions.clear()

    async def _start_new_round(self) -> None:
        self.clock.cancel()
        self._epoch += 1
        self.round_number += 1
        logger.info("Starting round %d", self.round_number)
        self._reset_round_state()
        for player in self.players.values():
            player.new_round()
        if self.round_observer is not None:
            try:
                self.round_observer.start_round()
            except Exception as e:
                logger.error(f"Round observer failed: {e}", exc_info=True)
        self._start_betting()

    # Betting

    def _start_betting(self) -> None:
        self._set_phase(Phase.BETTING)
        self._emit(
            BettingPhase(self.config.betting_time, self.config.min_bet, self.config.max_bet)
        )
        self._broadcast()
        self.clock.arm(self.config.betting_time, self._end_betting, "betting")

    def _all_decided(self) -> bool:
        return bool(self.players) and all(
            player.ready or player.eliminated for player in self.players.values()
        )

    async def place_bet(
        self,
        player_id: str,
        amount: float,
        side_bets: Optional[Mapping[SideBetType, float]] = None,
    ) -> Player:
        """Record a bet. Nothing leaves the bankroll until betting closes."""
        player = self.player(player_id)
        self._require_phase(Phase.BETTING, message="Bets can only be placed during betting")
        player.place_bet(amount, self.config, side_bets)
        logger.info("%s bet $%s", player.name, amount)
        self._broadcast()
        return player

    async def set_ready(self, player_id: str, ready: bool = True) -> None:
        player = self.player(player_id)
        self._require_phase(Phase.BETTING, message="Cannot set ready status at this time")
        player.set_ready(ready)
        logger.info("%s ready: %s", player.name, ready)
        self._broadcast()
        if self._all_decided():
            logger.info("All players have decided - ending betting phase")
            await self._end_betting()

    async def cancel_bet(self, player_id: str) -> None:
        """Clear a player's bets. The bankroll is not touched."""
        player = self.player(player_id)
        self._require_phase(
            Phase.BETTING, message="Can only cancel bet during betting phase"
        )
        if player.current_bet <= 0:
            raise ValidationError("No bet to cancel")
        player.clear_bets()
        logger.info("%s cancelled their bet", player.name)
        self._broadcast()

    async def sit_out(self, player_id: str) -> None:
        player = self.player(player_id)
        self._require_phase(Phase.BETTING, message="Can only sit out during betting phase")
        player.sit_out()
        logger.info("%s is sitting out this round", player.name)
        self._broadcast()
        if self._all_decided():
            logger.info("All players have decided - ending betting phase")
            await self._end_betting()

    async def cancel_sit_out(self, player_id: str) -> None:
        player = self.player(player_id)
        self._require_phase(
            Phase.BETTING, message="Can only cancel sit out during betting phase"
        )
        player.cancel_sit_out()
        logger.info("%s cancelled sit out", player.name)
        self._broadcast()

    def _auto_fold(self, player: Player, reason: FoldReason) -> None:
        player.fold()
        self._emit(PlayerAutoFolded(player.id, player.name, reason))

    async def _end_betting(self) -> None:
        if self.phase is not Phase.BETTING:
            return
        self.clock.cancel()
        logger.info("Betting phase ended")

        for player in self.seated_players():
            if not player.eliminated and player.current_bet <= 0:
                logger.info("%s auto-folded (no bet)", player.name)
                player.fold()

        for player in self.active_players():
            total = player.total_bets()
            if total > player.bankroll:
                logger.warning(
                    "%s cannot afford bet ($%s > $%s); auto-folding",
                    player.name,
                    total,
                    player.bankroll,
                )
                self._auto_fold(player, FoldReason.INSUFFICIENT_FUNDS)
                continue
            try:
                player.commit_bets()
                player.initialize_hand()
            except Exception as e:
                logger.error(
                    f"Failed to deduct bets for {player.name}: {e}", exc_info=True
                )
                self._auto_fold(player, FoldReason.DEDUCTION_ERROR)

        await self._deal()

    # Dealing

    async def _deal(self) -> None:
        self._set_phase(Phase.DEALING)
        players = self.active_players()
        if not players:
            logger.info("No active players this round")
            await self._start_results()
            return

        split_aces = self.config.split_aces_blackjack
        for _ in range(2):
            for player in players:
                card = self._draw()
                player.add_card(card, 0, split_aces)
                self._emit(CardDealt(player.id, card, 0))
            if not self.dealer.cards:
                card = self._draw()
                self.dealer.add_card(card, face_up=True)
                self._emit(DealerCardDealt(card, True))
            else:
                self.dealer.add_card(self._draw(), face_up=False)
                self._emit(DealerCardDealt(None, False))

        for player in players:
            player.opening_cards = tuple(player.hands[0].cards)
            if player.hands[0].status is HandStatus.BLACKJACK:
                logger.info("%s has blackjack!", player.name)

        self._broadcast()

        if self.dealer.shows_ace():
            self._start_insurance()
        elif self.dealer.check_blackjack():
            self._reveal_dealer_blackjack()
            await self._start_results()
        else:
            await self._start_playing()

    def _reveal_dealer_blackjack(self) -> None:
        logger.info("Dealer has blackjack")
        self.dealer.is_complete = True
        self._emit(DealerReveal(self.dealer.reveal_hole_card()))

    # Insurance

    def _start_insurance(self) -> None:
        self._set_phase(Phase.INSURANCE)
        self._emit(InsuranceOffered(self.config.insurance_time))
        self._broadcast()
        self.clock.arm(self.config.insurance_time, self._end_insurance, "insurance")

    def _all_insured(self) -> bool:
        decided = self.insurance_declined | set(self.insurance_bets)
        return all(player.id in decided for player in self.active_players())

    async def place_insurance(self, player_id: str, takes_insurance: bool) -> float:
        """
        Take or decline insurance. The stake is half the main bet and is
        deducted immediately.

        Returns:
            The insurance stake (0 when declined)
        """
        player = self.player(player_id)
        self._require_phase(Phase.INSURANCE, message="Insurance is not being offered")
        if player.eliminated or not player.hands:
            raise ValidationError("Not playing this round")
        if player_id in self.insurance_bets or player_id in self.insurance_declined:
            raise ValidationError("Insurance decision already made")

        stake = 0
        if takes_insurance:
            stake = player.current_bet / 2
            if not player.can_afford(stake):
                raise InsufficientFundsError("Insufficient funds for insurance")
            player.deduct(stake)
            self.insurance_bets[player_id] = stake
            logger.info("%s took insurance ($%s)", player.name, stake)
        else:
            self.insurance_declined.add(player_id)
            logger.info("%s declined insurance", player.name)

        self._broadcast()
        if self._all_insured():
            await self._end_insurance()
        return stake

    async def _end_insurance(self) -> None:
        if self.phase is not Phase.INSURANCE:
            return
        self.clock.cancel()
        logger.info("Insurance phase ended")

        if self.dealer.check_blackjack():
            ratio = rules.parse_ratio(self.config.insurance_payout)
            for player_id, stake in self.insurance_bets.items():
                player = self.players.get(player_id)
                if player is None:
                    continue
                payout = float(stake * (ratio + 1))
                player.add_winnings(payout)
                player.record_insurance(True, stake, payout)
                self.insurance_payouts[player_id] = payout
                logger.info("%s won $%s from insurance", player.name, payout)
            self._reveal_dealer_blackjack()
            await self._start_results()
            return

        logger.info("Dealer does not have blackjack")
        for player_id, stake in self.insurance_bets.items():
            player = self.players.get(player_id)
            if player is not None:
                player.record_insurance(False, stake)
                self.insurance_payouts[player_id] = 0
        await self._start_playing()

    # Playing

    async def _start_playing(self) -> None:
        self._set_phase(Phase.PLAYING)
        self.turn_order = [p.id for p in self.active_players() if p.has_active_hand]
        self.current_player_index = 0
        self.current_hand_index = 0

        if not self.turn_order:
            logger.info("No players with active hands, skipping to dealer turn")
            self._start_dealer_turn()
            return

        self._broadcast()
        await self._start_turn()

    async def _start_turn(self) -> None:
        """
        Move the turn cursor to the next active hand at or after the current
        position and offer it to its player.
        """
        while True:
            player = self.current_player()
            if player is None:
                if self.current_player_index >= len(self.turn_order):
                    self._start_dealer_turn()
                    return
                # Player left the table
                self.current_player_index += 1
                self.current_hand_index = 0
                continue

            index = self.current_hand_index
            while index < len(player.hands) and not player.hands[index].is_active:
                index += 1
            if index < len(player.hands):
                self.current_hand_index = index
                break

            self.current_player_index += 1
            self.current_hand_index = 0

        logger.info("%s's turn (hand %d)", player.name, index + 1)
        self._emit(
            PlayerTurn(
                player.id,
                index,
                self.config.action_time,
                tuple(player.available_actions(index)),
            )
        )
        self._broadcast()

        queued = self.pre_actions.get(player.id)
        if queued is not None and queued.hand_index <= index:
            del self.pre_actions[player.id]
            if queued.hand_index == index:
                self.clock.cancel()
                self.clock.spawn(
                    self._run_pre_action(
                        self._epoch, self._actions_applied, player.id, queued
                    ),
                    name=f"pre-action:{player.id}",
                )
                return
            logger.debug("Discarded stale pre-action for %s", player.name)

        self._arm_action_timer()

    def _arm_action_timer(self) -> None:
        self.clock.arm(self.config.action_time, self._auto_stand_current, "action")

    async def handle_action(
        self, player_id: str, action: Action, hand_index: int
    ) -> None:
        """
        Apply hit/stand/double/split to the current hand.

        Raises:
            PhaseError: Outside the playing phase
            NotYourTurnError: If it is not this player's turn on this hand
            IllegalActionError: If the action is not legal for the hand
            InsufficientFundsError: If a double or split cannot be covered
        """
        player = self.player(player_id)
        self._require_phase(Phase.PLAYING, message="Not in playing phase")
        if not self.is_current(player_id, hand_index):
            raise NotYourTurnError("Not your turn")

        split_aces = self.config.split_aces_blackjack
        match action:
            case Action.HIT:
                player.hit(hand_index)
                self.clock.cancel()
                card = self._draw()
                player.add_card(card, hand_index, split_aces)
                self._emit(CardDealt(player_id, card, hand_index))
            case Action.STAND:
                player.stand(hand_index)
                self.clock.cancel()
            case Action.DOUBLE:
                player.double(hand_index)
                self.clock.cancel()
                card = self._draw()
                hand = player.add_card(card, hand_index, split_aces)
                self._emit(CardDealt(player_id, card, hand_index))
                if hand.is_active:
                    player.stand(hand_index)
            case Action.SPLIT:
                player.split(hand_index)
                self.clock.cancel()
                for offset in (0, 1):
                    card = self._draw()
                    player.add_card(card, hand_index + offset, split_aces)
                    self._emit(CardDealt(player_id, card, hand_index + offset))
            case _:
                raise IllegalActionError(f"Invalid action: {action}")

        self._actions_applied += 1
        logger.info("%s %s (hand %d)", player.name, action.value, hand_index)
        await self._start_turn()

    async def set_pre_action(
        self, player_id: str, action: Action, hand_index: int = 0
    ) -> bool:
        """
        Queue an action for a hand before its turn comes up. If that hand is
        already up, the action is applied at once.

        Returns:
            True if the action was applied immediately, False if queued
        """
        player = self.player(player_id)
        self._require_phase(
            Phase.INSURANCE,
            Phase.PLAYING,
            message="Pre-actions are only accepted once cards are dealt",
        )
        if player.eliminated or not player.hands:
            raise ValidationError("Not playing this round")
        if not 0 <= hand_index < MAX_HANDS:
            raise ValidationError(f"Invalid hand index: {hand_index}")

        if self.is_current(player_id):
            if hand_index == self.current_hand_index:
                await self.handle_action(player_id, action, hand_index)
                return True
            if hand_index < self.current_hand_index:
                raise ValidationError("That hand has already been played")

        self.pre_actions[player_id] = PreAction(action, hand_index)
        logger.info("%s queued %s for hand %d", player.name, action.value, hand_index)
        return False

    async def _run_pre_action(
        self, epoch: int, actions_seen: int, player_id: str, queued: PreAction
    ) -> None:
        await self.clock.sleep(self.config.pre_action_delay)
        if not self._still(epoch, Phase.PLAYING) or not self.is_current(
            player_id, queued.hand_index
        ):
            return
        if self._actions_applied != actions_seen:
            logger.info(
                f"Dropped pre-action {queued.action.value} for {player_id}: already acted"
            )
            return
        try:
            await self.handle_action(player_id, queued.action, queued.hand_index)
        except BlackjackError as e:
            logger.info(f"Dropped pre-action {queued.action.value} for {player_id}: {e}")
            self._arm_action_timer()
            self._broadcast()

    async def _auto_stand_current(self) -> None:
        if self.phase is not Phase.PLAYING:
            return
        player = self.current_player()
        if player is not None:
            logger.info("Auto-stand %s (timeout)", player.name)
            try:
                player.stand(self.current_hand_index)
            except IllegalActionError:
                logger.debug("Hand %d already complete", self.current_hand_index)
        await self._start_turn()

    # Dealer

    def _start_dealer_turn(self) -> None:
        self.clock.cancel()
        self._set_phase(Phase.DEALER)
        self._emit(DealerReveal(self.dealer.reveal_hole_card()))
        self._broadcast()
        self.clock.spawn(self._play_dealer(self._epoch), name="dealer-turn")

    async def _play_dealer(self, epoch: int) -> None:
        await self.clock.sleep(self.config.dealer_reveal_delay)
        if not self._still(epoch, Phase.DEALER):
            logger.info("Dealer turn abandoned")
            return

        while self.dealer.should_hit():
            card = self._draw()
            self.dealer.add_card(card)
            self._emit(DealerCardDealt(card, True))
            self._emit(DealerCardCount(self.dealer.card_count))
            self._broadcast()
            await self.clock.sleep(self.config.dealer_draw_delay)
            if not self._still(epoch, Phase.DEALER):
                logger.info("Dealer turn abandoned")
                return

        self.dealer.is_complete = True
        logger.info("Dealer finished with %d", self.dealer.hand_value().value)
        await self._start_results()

    # Results

    def _settle_side_bet(
        self, player: Player, bet_type: SideBetType, stake: float
    ) -> SideBetResult:
        match bet_type:
            case SideBetType.PERFECT_PAIRS:
                result = evaluate_perfect_pairs(player.opening_cards, stake)
            case SideBetType.BUST_IT:
                result = evaluate_bust_it(self.dealer.cards, stake)
            case SideBetType.TWENTY_ONE_PLUS_3:
                result = evaluate_21_plus_3(
                    player.opening_cards, self.dealer.up_card, stake
                )
            case _:
                assert_never(bet_type)
        player.record_side_bet(stake, result.payout)
        if self.round_observer is not None:
            try:
                self.round_observer.record_side_bet(bet_type, stake, result.payout)
            except Exception as e:
                logger.error(f"Round observer failed: {e}", exc_info=True)
        return result

    def _settle_player(self, player: Player, dealer_value: int) -> Dict[str, Any]:
        dealer_blackjack = self.dealer.has_blackjack
        ratio = self.config.blackjack_payout
        summary = {
            "playerId": player.id,
            "name": player.name,
            "hands": [],
            "sideBets": {},
            "totalWinnings": 0,
            "newBankroll": 0,
        }

        for index, hand in enumerate(player.hands):
            value = hand.value.value
            is_blackjack = hand.status is HandStatus.BLACKJACK
            if is_blackjack:
                player.record_blackjack()
            if is_blackjack and not dealer_blackjack:
                result = rules.Outcome.BLACKJACK
            else:
                result = rules.compare_hands(
                    value, dealer_value, is_blackjack, dealer_blackjack
                )
            amount = rules.payout(hand.bet, result, ratio)
            player.record_hand_result(result, hand.bet, amount)
            summary["hands"].append(
                {
                    "handIndex": index,
                    "cards": [card.to_dict() for card in hand.cards],
                    "value": value,
                    "bet": hand.bet,
                    "isDoubled": hand.is_doubled,
                    "fromSplit": hand.from_split,
                    "result": result.value,
                    "payout": amount,
                }
            )
            summary["totalWinnings"] += amount

        for bet_type, stake in player.side_bets.items():
            if stake <= 0:
                continue
            side = self._settle_side_bet(player, bet_type, stake)
            summary["sideBets"][bet_type.value] = {
                "bet": stake,
                "payout": side.payout,
                "won": side.won,
                "handType": side.hand_type,
                "multiplier": side.multiplier,
            }
            summary["totalWinnings"] += side.payout

        if player.id in self.insurance_bets:
            summary["insurance"] = {
                "bet": self.insurance_bets[player.id],
                "payout": self.insurance_payouts.get(player.id, 0),
            }

        if summary["totalWinnings"] > 0:
            player.add_winnings(summary["totalWinnings"])
        summary["newBankroll"] = player.bankroll
        return summary

    async def _start_results(self) -> None:
        self.clock.cancel()
        self._set_phase(Phase.RESULTS)
        dealer_value = self.dealer.hand_value().value

        results = [
            self._settle_player(player, dealer_value)
            for player in self.active_players()
            if player.hands
        ]

        self._emit(
            RoundResults(
                tuple(self.dealer.cards),
                dealer_value,
                self.dealer.has_blackjack,
                self.dealer.is_bust,
                tuple(results),
            )
        )
        self._broadcast()

        if self.round_observer is not None:
            try:
                self.round_observer.record_round(
                    {
                        "roundNumber": self.round_number,
                        "activePlayers": len(results),
                        "dealer": self.dealer.stats(),
                        "players": results,
                    }
                )
            except Exception as e:
                logger.error(f"Round observer failed: {e}", exc_info=True)

        self.clock.arm(self.config.round_delay, self._next_round, "round")

    async def _next_round(self) -> None:
        if self.phase is not Phase.RESULTS:
            return
        await self._start_new_round()

    # Manual control

    async def advance(self) -> Phase:
        """
        Fire the current phase deadline now: close betting or insurance, stand
        the current hand, or start the next round.

        Returns:
            The phase the room is in afterwards

        Raises:
            PhaseError: In phases that have no deadline (lobby, dealing, dealer)
        """
        logger.info("Manual phase advance from '%s'", self.phase.value)
        match self.phase:
            case Phase.LOBBY:
                raise PhaseError("Cannot advance from lobby; start the game first")
            case Phase.DEALING:
                raise PhaseError("Dealing phase is instant, already advanced")
            case Phase.DEALER:
                raise PhaseError("Dealer phase is automatic, already in progress")
            case Phase.BETTING | Phase.INSURANCE | Phase.PLAYING | Phase.RESULTS:
                if not await self.clock.fire() and self.phase is Phase.PLAYING:
                    # A queued pre-action is pending; stand the hand instead
                    await self._auto_stand_current()
        return self.phase

    async def close(self) -> None:
        """Stop all timers and background work."""
        self._epoch += 1
        await self.clock.close()
