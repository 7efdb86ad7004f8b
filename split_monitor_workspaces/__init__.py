"""
split-monitor-workspaces

Per-monitor workspace numbering for Sway. Each output gets its own
workspaces 1-10 and a set of special (scratchpad) workspaces shown on all
outputs together, packed into Sway's single workspace number space.
"""

__version__ = "1.1.0"
