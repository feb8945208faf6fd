"""State layer.

This package is the single source of truth for how incoming device
snapshots are folded into the immutable per-session :class:`SystemState`:
the bounded history window, the deduplicated event log, the transition
detector and the reducer composing them.
"""
