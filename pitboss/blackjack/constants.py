"""Blackjack table constants and payout tables."""

MAX_SEATS = 5
MAX_HANDS = 4  # one dealt hand plus up to three splits
MAX_NAME_LENGTH = 20

BLACKJACK = 21
DEALER_STANDS_ON = 17

# Perfect Pairs: first two player cards
PERFECT_PAIR_MULTIPLIER = 25
COLORED_PAIR_MULTIPLIER = 12
MIXED_PAIR_MULTIPLIER = 6

# Bust It: dealer card count when the dealer busts. 8 or more cards pay the top tier.
BUST_IT_MULTIPLIERS = {
    3: 2,
    4: 4,
    5: 15,
    6: 50,
    7: 100,
    8: 250,
}
BUST_IT_TOP_TIER = 8

# 21+3: player's first two cards plus the dealer up-card, highest first
SUITED_TRIPS_MULTIPLIER = 100
STRAIGHT_FLUSH_MULTIPLIER = 40
THREE_OF_A_KIND_MULTIPLIER = 30
STRAIGHT_MULTIPLIER = 10
FLUSH_MULTIPLIER = 5
