"""EcoLedger: waste-report reward ledger and collection task lifecycle.

Users file waste reports, collectors accept and complete them, and every
reward or redemption is recorded as an immutable ledger entry. Balances are
always folded from the ledger on demand.

Modules:
    - services.ledger_service: append-only ledger store
    - services.balance_service: balance fold over ledger history
    - services.task_service: task record and state changes
    - services.lifecycle_service: accept/complete orchestration and rewards
    - services.identity_service: admin identity to actor id resolution
    - services.notification_service: notification emitter
    - routes: FastAPI HTTP surface
"""

__version__ = "0.1.0"
