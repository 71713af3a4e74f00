# Ranking package for the DecisionBox engine
"""
Softmax ranking of feasible outputs.

Every probability is decomposable into the soft rules that
produced it.
"""
