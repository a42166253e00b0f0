"""
GridGame
Two-player, turn-based strategy engine on a 25x25 grid.
"""
__version__ = "1.0.0"
