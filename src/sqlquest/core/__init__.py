"""Core challenge evaluation logic.

Modules:
- challenges: Challenge catalog model and loader
- fixture_loader: Schema + seed rows -> provisioning plan
- sandbox: Fresh isolated database per attempt
- query_executor: Run learner SQL, capture rows or engine error
- comparator: Canonical result comparison
- evaluator: The full evaluation pipeline
- progression: XP, levels, unlocks and completions
- game: Evaluation + progression service
"""

__all__ = [
    "challenges",
    "fixture_loader",
    "sandbox",
    "query_executor",
    "comparator",
    "evaluator",
    "progression",
    "game",
]
