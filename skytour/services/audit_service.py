import uuid, json
from sqlalchemy.orm import Session
from skytour.models.audit_log import AuditLog
from skytour.models.enums import AuditStatus


def _dumps(values: dict | None) -> str:
    return json.dumps(values or {}, ensure_ascii=False, default=str)


def log_audit(
    db: Session,
    action: str,
    log_type: str,
    target_table: str,
    target_id: str,
    actor: str = "system",
    status: AuditStatus = AuditStatus.SUCCESS,
    message: str = "",
    old_values: dict | None = None,
    new_values: dict | None = None,
) -> AuditLog:
    """Add an entry to the session; it commits together with the caller's change."""
    entry = AuditLog(
        id=str(uuid.uuid4()),
        log_type=log_type,
        status=status,
        action=action,
        message=message,
        target_table=target_table,
        target_id=target_id,
        actor=actor or "system",
        old_values_json=_dumps(old_values),
        new_values_json=_dumps(new_values),
    )
    db.add(entry)
    return entry


def list_audit_logs(
    db: Session,
    log_type: str | None = None,
    target_id: str | None = None,
    status: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[AuditLog], int]:
    q = db.query(AuditLog)
    if log_type:
        q = q.filter(AuditLog.log_type == log_type)
    if target_id:
        q = q.filter(AuditLog.target_id == target_id)
    if status:
        q = q.filter(AuditLog.status == AuditStatus(status))
    total = q.count()
    items = q.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).offset(offset).limit(limit).all()
    return items, total
