"""Networking tools: link emulation, file transfers, chat, DNS, statistics, routing and ICMP."""

__version__ = "0.1.0"