"""contextkeeper token estimation."""

from contextkeeper.tokens.estimator import TokenEstimator, heuristic_tokens, render_message

__all__ = ["TokenEstimator", "heuristic_tokens", "render_message"]
