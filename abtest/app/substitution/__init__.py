"""
Scoped state substitution.

Capture/materialize bridge between snapshots and the host's live
configuration, and the controller that applies a snapshot for one
generation and restores the prior state.
"""
