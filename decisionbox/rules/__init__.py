# Rules package for the DecisionBox engine
"""
Rule catalog, feasibility filter and relevance resolver.

Everything here is a pure function of (catalog, assignment).
"""
