# taskboard/models/assignment.py
from datetime import datetime
from ..extensions import db

REQUEST_PENDING = "Pending"
REQUEST_APPROVED = "Approved"
REQUEST_REJECTED = "Rejected"


class AssignmentRequest(db.Model):
    __tablename__ = "assignment_request"

    id = db.Column(db.Integer, primary_key=True)
    task_id = db.Column(db.Integer, db.ForeignKey("task.id"), nullable=False, index=True)
    assigned_by_admin_id = db.Column(db.Integer, db.ForeignKey("user.id"), index=True)
    assigned_to_user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)

    status = db.Column(db.String(20), default=REQUEST_PENDING, nullable=False, index=True)  # Pending|Approved|Rejected
    rejection_reason = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    responded_at = db.Column(db.DateTime)

    task = db.relationship("Task", back_populates="assignment_requests")
    assigned_by = db.relationship("User", foreign_keys=[assigned_by_admin_id])
    assigned_to = db.relationship("User", foreign_keys=[assigned_to_user_id])

    # At most one Pending request per (task, candidate)
    __table_args__ = (
        db.Index(
            "uq_assignment_request_pending",
            "task_id",
            "assigned_to_user_id",
            unique=True,
            sqlite_where=db.text("status = 'Pending'"),
            postgresql_where=db.text("status = 'Pending'"),
        ),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "taskId": self.task_id,
            "assignedByAdminId": self.assigned_by_admin_id,
            "assignedToUserId": self.assigned_to_user_id,
            "status": self.status,
            "rejectionReason": self.rejection_reason,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "respondedAt": self.responded_at.isoformat() if self.responded_at else None,
        }
