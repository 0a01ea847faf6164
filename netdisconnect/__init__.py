"""
Network Disconnect Analyzer
Finds out why a wired network adapter keeps dropping its link by correlating
Windows event log entries and, optionally, watching adapter state live.
"""

__version__ = "1.0.0"
