"""
HTTP API for starting and inspecting workflows.
"""
