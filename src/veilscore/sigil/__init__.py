"""
Sigil - Keys and sealing.

- eth:     wallet key loading and signing accounts
- sealing: encryption of confidential credit fields
"""
