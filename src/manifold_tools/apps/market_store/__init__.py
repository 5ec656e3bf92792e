"""Persistent market catalog, snapshot history and bet ledger.

Store periodic market snapshots for replay, the bot's bets and bankroll
history in any SQLAlchemy async database (SQLite via ``aiosqlite`` by
default).
"""
