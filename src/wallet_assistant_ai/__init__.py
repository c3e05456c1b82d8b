"""Wallet Assistant AI - a chat-driven custodial wallet for EVM chains."""

__version__ = "0.1.0"
