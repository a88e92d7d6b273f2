"""
Praxis - Transaction execution for the CreditAnalyzer client.

- fees:         gas/fee estimation with a fixed safety buffer
- monitor:      lifecycle tracking and ordered status updates
- orchestrator: estimate, submit, monitor, classify
- errors:       the user-facing failure taxonomy
- models:       value types shared by the above
- background:   detached best-effort side tasks
"""
