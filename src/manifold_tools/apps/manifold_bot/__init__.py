"""Manifold automated trading bot.

Turn periodic market snapshots into risk-bounded bets.  The same
generate-then-size pipeline runs against live polling of the Manifold API
or against snapshots replayed from the market store.
"""
