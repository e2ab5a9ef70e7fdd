"""
Command line programs: the workflow starter and the management CLI.
"""
