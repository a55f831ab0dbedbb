"""
GiftSwap - White Elephant Gift Exchange Engine

A deterministic, rules-driven engine for running gift exchanges where
players open hidden gifts or steal opened ones. The engine provides:
- Session state management
- Turn order and the final-round endgame
- Steal limits and the steal-back rule
- Legal move generation
- An HTTP/WebSocket API and a CLI simulator
"""

__version__ = "0.1.0"
