"""
Snapshot diff engine.

Structural comparison of prompt sets (structural.py) and the two-tier
line/word text diff used to inspect content changes (text_diff.py).
"""
