"""Dancer action and status identifiers used by the gauge modules."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

# Actions
CASCADE = 15989
FOUNTAIN = 15990
REVERSE_CASCADE = 15991
FOUNTAINFALL = 15992
WINDMILL = 15993
BLADESHOWER = 15994
RISING_WINDMILL = 15995
BLOODSHOWER = 15996
STANDARD_FINISH = 16003
TECHNICAL_FINISH = 16004
SABER_DANCE = 16005
SINGLE_STANDARD_FINISH = 16191
DOUBLE_STANDARD_FINISH = 16192
SINGLE_TECHNICAL_FINISH = 16193
DOUBLE_TECHNICAL_FINISH = 16194
TRIPLE_TECHNICAL_FINISH = 16195
QUADRUPLE_TECHNICAL_FINISH = 16196

# Statuses
STATUS_TECHNICAL_FINISH = 1822
STATUS_CLOSED_POSITION = 1823
STATUS_IMPROVISATION = 1827
STATUS_ESPRIT = 1847

STANDARD_FINISHES = frozenset(
    {STANDARD_FINISH, SINGLE_STANDARD_FINISH, DOUBLE_STANDARD_FINISH}
)
TECHNICAL_FINISHES = frozenset(
    {
        TECHNICAL_FINISH,
        SINGLE_TECHNICAL_FINISH,
        DOUBLE_TECHNICAL_FINISH,
        TRIPLE_TECHNICAL_FINISH,
        QUADRUPLE_TECHNICAL_FINISH,
    }
)

# Dances span more than one GCD, during which the party keeps generating
# Esprit, so finishes weigh more than a single weaponskill.
ESPRIT_GENERATION_MULTIPLIERS: Mapping[int, int] = MappingProxyType(
    {
        CASCADE: 1,
        REVERSE_CASCADE: 1,
        FOUNTAIN: 1,
        FOUNTAINFALL: 1,
        WINDMILL: 1,
        RISING_WINDMILL: 1,
        BLADESHOWER: 1,
        BLOODSHOWER: 1,
        SABER_DANCE: 1,
        **{action: 2 for action in STANDARD_FINISHES},
        **{action: 3 for action in TECHNICAL_FINISHES},
    }
)

ESPRIT_GENERATION_AMOUNT = 10
ESPRIT_RATE_SELF = 0.25
ESPRIT_RATE_PARTY = 0.2

MAX_ESPRIT = 100
SABER_DANCE_COST = 50

IMPROVISATION_TICK_INTERVAL = 3000
IMPROVISATION_MAX_TICKS = 5
IMPROVISATION_TICK_AMOUNT = ESPRIT_GENERATION_AMOUNT
