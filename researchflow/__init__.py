"""researchflow - iterative research workflows.

A planner decomposes a question into small batches of search and summary
tasks, an executor runs each batch concurrently, and every result is
written back into a single JSON plan document that feeds the next round.
"""

__version__ = "0.1.0"
