"""
agentx: MCP servers, skills and plugins across AI coding agents.
"""

__version__ = "0.4.0"
