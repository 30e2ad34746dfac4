"""
Click commands for repostat.
"""
