"""
finquest - Source Package

The finance state and intelligence engine behind a gamified
personal-finance tracker: accounts, categorized transactions, budgets,
savings goals, and the XP / level / achievement layer derived from them.

DESIGN PRINCIPLES:
1. One owner of state (the entity store)
2. Balances always follow the transaction history
3. Derived numbers are recomputed, never cached
4. Failed operations leave no trace in the store
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "finquest team"
