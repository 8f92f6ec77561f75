"""
DEX Sentry decision core.

Strategy signals, pre-trade validation, emergency exit monitoring, trailing
stops and position sizing for a Solana DEX trading agent.
"""

__version__ = "0.1.0"
