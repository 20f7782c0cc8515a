"""
Agent Services

- system        - Telemetry, platform info, OS actions, HTTP service
- vendor_config - Typed INI store, comment codec, config field facade
"""
