import json

import pytest

from pitboss.admin.statistics import Statistics
from pitboss.blackjack.side_bets import SideBetType


@pytest.fixture
def stats(room):
    statistics = Statistics(room)
    room.round_observer = statistics
    return statistics


def round_summary(final_value, bust=False, blackjack=False, players=()):
    return {
        "roundNumber": 1,
        "activePlayers": len(players),
        "dealer": {
            "hasBlackjack": blackjack,
            "isBust": bust,
            "finalValue": final_value,
            "cardCount": 3 if bust else 2,
        },
        "players": list(players),
    }


def test_empty_session(stats, room):
    session = stats.session_stats()
    assert session["sessionId"] == room.session_id
    assert session["totalRounds"] == 0
    assert session["avgHandsPerRound"] == 0.0
    assert session["dealer"]["avgFinalValue"] == 0.0
    assert session["dealer"]["bustRate"] == 0.0
    assert session["endTime"] is None
    assert set(session["sideBets"]) == {"perfectPairs", "bustIt", "twentyOnePlus3"}


def test_dealer_stats(stats):
    stats.start_round()
    stats.record_round(round_summary(24, bust=True))
    stats.start_round()
    stats.record_round(round_summary(21, blackjack=True))
    stats.start_round()
    stats.record_round(round_summary(18))
    stats.start_round()
    stats.record_round(round_summary(17))

    dealer = stats.dealer_stats()
    assert dealer["totalHands"] == 4
    assert dealer["busts"] == 1
    assert dealer["bustRate"] == 25.0
    assert dealer["blackjackRate"] == 25.0
    assert dealer["avgFinalValue"] == pytest.approx(20.0)


def test_side_bet_summary(stats):
    stats.record_side_bet(SideBetType.BUST_IT, 10, 0)
    stats.record_side_bet(SideBetType.BUST_IT, 10, 0)
    stats.record_side_bet(SideBetType.BUST_IT, 10, 60)

    bust_it = stats.side_bet_summary()["bustIt"]
    assert bust_it["totalBets"] == 3
    assert bust_it["wins"] == 1
    assert bust_it["winRate"] == pytest.approx(33.33)
    assert bust_it["netProfit"] == 30
    assert bust_it["roi"] == 100.0


@pytest.mark.asyncio
async def test_rounds_are_recorded_from_the_room(stats, table, room):
    await table.seat("Alice")
    table.deal("AS 10D KH 9H")
    await table.play_round({"p1": 10}, {"p1": {SideBetType.BUST_IT: 10}})

    assert stats.total_rounds == 1
    assert stats.total_hands_played == 1
    assert stats.dealer_values == [19]
    (entry,) = stats.recent_hands()
    assert entry["round"] == 1
    assert entry["players"][0]["hands"][0]["result"] == "blackjack"
    assert stats.side_bet_summary()["bustIt"]["losses"] == 1

    player = stats.player_stats("p1")
    assert player["handsPlayed"] == 1
    assert player["winRate"] == 100.0
    assert player["totalWagered"] == 20
    assert player["netProfit"] == 5
    assert player["avgBet"] == 20.0
    assert player["roi"] == 25.0
    assert player["currentBankroll"] == 1005


def test_unknown_player(stats):
    assert stats.player_stats("nobody") is None
    assert stats.format_player("nobody") == "Player not found"


def test_recent_hands(stats):
    for value in (17, 18, 19):
        stats.start_round()
        stats.record_round(round_summary(value))

    assert [entry["dealer"]["finalValue"] for entry in stats.recent_hands(2)] == [18, 19]
    assert stats.recent_hands(0) == []


def test_clear(stats):
    stats.start_round()
    stats.record_round(round_summary(24, bust=True))
    stats.record_side_bet(SideBetType.PERFECT_PAIRS, 10, 0)

    stats.clear()

    assert stats.total_rounds == 0
    assert stats.hand_history == []
    assert stats.dealer_stats()["totalHands"] == 0
    assert stats.side_bet_summary()["perfectPairs"]["totalBets"] == 0


@pytest.mark.asyncio
async def test_export_json(stats, room, tmp_path):
    await room.add_player("p1", "Alice")
    stats.start_round()
    stats.record_round(round_summary(22, bust=True))
    directory = tmp_path / "exports"

    path = await stats.export_json(str(directory))

    assert path.startswith(str(directory))
    assert f"stats-{room.session_id}-" in path
    with open(path, encoding="utf-8") as export_file:
        data = json.load(export_file)
    assert data["totalRounds"] == 1
    assert data["endTime"] is not None
    assert data["configuration"]["deckCount"] == 6
    assert data["players"][0]["name"] == "Alice"
    assert len(data["handHistory"]) == 1


def test_formatting(stats):
    assert stats.format_history() == "No hand history available"

    stats.start_round()
    stats.record_round(
        round_summary(
            24,
            bust=True,
            players=[
                {
                    "name": "Alice",
                    "hands": [{"result": "win"}],
                    "totalWinnings": 20,
                    "newBankroll": 1010,
                }
            ],
        )
    )

    history = stats.format_history()
    assert "Round 1 - Dealer: 24 (BUST)" in history
    assert "Alice: win | won $20 | bankroll $1010" in history
    assert "SESSION STATISTICS" in stats.format_session()
