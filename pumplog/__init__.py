"""
Pump.fun Log Scanner

Extracts trading events from Solana transaction execution logs:
- Token creations on the bonding curve program
- Buy / sell trades, attributed to dev, bot or user wallets
- Raydium swap logs (ray_log payloads)

Feed it the log lines of one transaction, get typed events back.
"""

__version__ = "1.0.0"
