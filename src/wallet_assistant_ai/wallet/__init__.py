"""Custodial wallet engine for Wallet Assistant AI.

Keeps each user's EVM private key encrypted in process memory, reads native
and token balances from the chain, and runs a confirm-before-send flow for
transfers: a transfer is only staged until the user confirms it, and it is
broadcast at most once.
"""
