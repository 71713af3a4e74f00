# CLI package for the DecisionBox engine
"""
Read-only CLI interface for evaluating rule catalogs locally.

Commands:
    decisionbox check     — Validate a configuration
    decisionbox evaluate  — Show feasible outputs and ranking
    decisionbox explain   — Explain one output
"""
