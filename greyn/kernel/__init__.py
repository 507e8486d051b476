"""
Kernel layer: models, identity, audit trail and the role route table.

Invariants:
- Security-relevant mutations are audited before commit; audit rows are never updated
- Roles come from server-issued token claims, never from client input
"""
