"""
battstatus - battery status change monitor

Watches the host power status and reports changes the way the battery systray
would, holding back charge state during battery revival cycling and remaining
lifetime right after a resume from sleep.
"""

__version__ = "1.0.0"
