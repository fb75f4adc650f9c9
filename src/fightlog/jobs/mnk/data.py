"""Monk cooldown identifiers."""

FISTS_OF_EARTH = 60
FISTS_OF_WIND = 73
FISTS_OF_FIRE = 63
MANTRA = 65
PERFECT_BALANCE = 69
RIDDLE_OF_EARTH = 7394
RIDDLE_OF_FIRE = 7395
BROTHERHOOD = 7396
THE_FORBIDDEN_CHAKRA = 3547
ELIXIR_FIELD = 3545
TORNADO_KICK = 3543
