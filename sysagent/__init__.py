"""
sysagent - device system status and remote configuration agent

Serves machine telemetry and device control actions over HTTP, and on
the vendor embedded platform edits the vendor's INI configuration file.
"""

__version__ = "0.3.0"
