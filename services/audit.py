"""
Audit log service for Plastic Clever Schools Evidence Review

Append-only activity records. Called after the primary change has been
committed; a failed audit write is rolled back on its own, logged and
never propagated.
"""

from flask import current_app


class AuditLogService:
    def __init__(self, gateway):
        self.gateway = gateway

    def record(self, actor_id, action, target_type=None, target_id=None, details=None) -> bool:
        try:
            self.gateway.add(self.gateway.AuditLog(
                actor_id=actor_id,
                action=action,
                target_type=target_type,
                target_id=str(target_id) if target_id is not None else None,
                details=details or {},
            ))
            self.gateway.commit()
            return True
        except Exception as e:
            self.gateway.rollback()
            current_app.logger.error(f"Audit log write failed ({action} {target_type} {target_id}): {e}")
            return False
