"""Building blocks for a user-space TCP/IP stack: wire formats, checksums, sockets and an event loop."""

__version__ = "0.1.0"