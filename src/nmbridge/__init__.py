"""NetworkManager bridge.

Typed access to the NetworkManager D-Bus service featuring:
- Current connection resolution and visible network scans
- Connect, disconnect, radio and networking switches
- Saved profile listing and removal
- Debounced change notifications
- CLI and REST API front ends
"""

__version__ = "1.0.0"
