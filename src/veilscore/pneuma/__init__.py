"""
Pneuma - On-chain interaction layer.

Provides the JSON-RPC ledger client, ABI handling, transaction building
and node-response validation for the CreditAnalyzer contract.

Uses httpx + eth-account + eth-abi instead of the heavyweight web3.py.
"""
