"""packscript - sequential command interpreter for package scripts."""

__version__ = "1.0.0"
