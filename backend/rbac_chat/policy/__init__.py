from .evaluator import AccessDecision, AccessQuery, evaluate_access

__all__ = ["AccessDecision", "AccessQuery", "evaluate_access"]
