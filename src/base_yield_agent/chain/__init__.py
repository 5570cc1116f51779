"""EVM chain access for Base Yield Agent.

Provides the supported chain set (Base, Ethereum mainnet, Arbitrum, Optimism,
Polygon), a cached async web3 client per chain, and stateless read/build
operations that report failures as data rather than raising.
"""
