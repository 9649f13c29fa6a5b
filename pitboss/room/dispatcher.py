"""
Routes parsed intents to the room and builds the acknowledgement for the
sender.
"""

import logging
from typing import Optional, assert_never

from pitboss.blackjack.errors import BlackjackError
from pitboss.blackjack.side_bets import payout_tables
from pitboss.events.messages import (
    Ack,
    CancelBet,
    CancelSitOut,
    GetConfig,
    Intent,
    JoinGame,
    PlaceBet,
    PlaceInsurance,
    PlayerAction,
    PreSelectAction,
    RequestPlayerInfo,
    SaveConfig,
    SetReady,
    SitOut,
    StartGame,
    TransferHost,
    UpdateProfile,
)
from pitboss.room.room import GameRoom

logger = logging.getLogger("pitboss.room.dispatcher")


class Dispatcher:
    """
    Applies intents from a connected client to a ``GameRoom``.

    Rule violations come back as failure acks carrying the error message.
    Anything else is logged and reported as an internal error, so one bad
    message never takes down the connection.
    """

    def __init__(self, room: GameRoom):
        self.room = room

    async def dispatch(self, player_id: str, intent: Intent) -> Optional[Ack]:
        """
        Apply ``intent`` on behalf of ``player_id``.

        Returns:
            The acknowledgement for the sender, or None when the broadcast
            state is the only reply
        """
        try:
            return await self._apply(player_id, intent)
        except BlackjackError as e:
            logger.info("%s from %s rejected: %s", intent.name, player_id, e)
            return Ack.failed(intent, str(e))
        except Exception as e:
            logger.error(f"Error handling {intent.name} from {player_id}: {e}", exc_info=True)
            return Ack.failed(intent, "Internal error")

    async def _apply(self, player_id: str, intent: Intent) -> Optional[Ack]:
        room = self.room
        match intent:
            case JoinGame(player_name=name):
                player = await room.add_player(player_id, name)
                return Ack(
                    "join-success", {"seat": player.seat, "player": player.to_dict()}
                )
            case StartGame():
                await room.start_game(player_id)
                return None
            case TransferHost(target_player_id=target):
                await room.transfer_host(target, requester_id=player_id)
                return None
            case PlaceBet(main_bet=amount, side_bets=side_bets):
                player = await room.place_bet(player_id, amount, side_bets)
                return Ack(
                    "bet-placed",
                    {
                        "mainBet": player.current_bet,
                        "sideBets": {
                            bet_type.value: stake
                            for bet_type, stake in player.side_bets.items()
                        },
                    },
                )
            case SetReady(ready=ready):
                await room.set_ready(player_id, ready)
                return Ack("ready-confirmed", {"ready": ready})
            case CancelBet():
                await room.cancel_bet(player_id)
                return Ack("bet-cancelled")
            case SitOut():
                await room.sit_out(player_id)
                return Ack("sit-out-confirmed")
            case CancelSitOut():
                await room.cancel_sit_out(player_id)
                return Ack("cancel-sit-out-confirmed")
            case PlaceInsurance(takes_insurance=takes):
                stake = await room.place_insurance(player_id, takes)
                return Ack("insurance-placed", {"takesInsurance": takes, "amount": stake})
            case PlayerAction(action=action, hand_index=hand_index):
                await room.handle_action(player_id, action, hand_index)
                return Ack(
                    "action-confirmed", {"action": action.value, "handIndex": hand_index}
                )
            case PreSelectAction(action=action, hand_index=hand_index):
                executed = await room.set_pre_action(player_id, action, hand_index)
                return Ack(
                    "pre-action-set",
                    {
                        "action": action.value,
                        "handIndex": hand_index,
                        "executed": executed,
                    },
                )
            case UpdateProfile(player_name=name, player_color=color):
                player = await room.update_profile(player_id, name, color)
                return Ack(
                    "profile-updated", {"playerName": player.name, "playerColor": player.color}
                )
            case SaveConfig(config=updates):
                config = await room.update_config(updates)
                return Ack("config-saved", {"config": config.to_dict()})
            case GetConfig():
                return Ack(
                    "config-update",
                    {"config": room.config.to_dict(), "payoutTables": payout_tables()},
                )
            case RequestPlayerInfo(player_id=target_id):
                target = room.player(target_id)
                return Ack(
                    "player-info",
                    {
                        "playerId": target.id,
                        "detailedInfo": target.to_dict(include_stats=True),
                    },
                )
            case _:
                assert_never(intent)
