"""Flowmon - workflow submission and execution monitoring client.

Submits node graphs to a remote workflow service and follows each run
by polling until it reaches a terminal state.
"""

__version__ = "0.1.0"
