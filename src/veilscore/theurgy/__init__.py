"""
Theurgy - Command implementations for the veilscore CLI.

- credit: submit, update, evaluate, request-loan
- invoke: any state-changing contract method
- query:  estimate, status, inspect
- wiring: client/orchestrator construction and status rendering
"""
