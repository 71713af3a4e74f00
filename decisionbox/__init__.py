# DecisionBox Engine
# Rule-driven solution selection under incomplete information

"""
Core invariant: an output is only ruled out by a rule that is
definitely violated. Missing information never disqualifies.

Typical use:

    catalog = load_catalog(document)
    session = DecisionSession(catalog)
    session.set_value("tipo", "Residencial")
    session.get_ranked_results()
"""

from .domain import ConfigurationError, ValidationError
from .expression import ExpressionEvaluationError, Truth
from .loader import load_catalog, load_catalog_file, load_catalog_files
from .session import DecisionSession, Evaluation, SessionState

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "DecisionSession",
    "Evaluation",
    "ExpressionEvaluationError",
    "SessionState",
    "Truth",
    "ValidationError",
    "load_catalog",
    "load_catalog_file",
    "load_catalog_files",
]
