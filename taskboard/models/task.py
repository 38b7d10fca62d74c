# taskboard/models/task.py
from datetime import datetime
from ..extensions import db

PRIORITIES = ("Low", "Medium", "High")

STATUS_PENDING = "Pending"
STATUS_IN_PROGRESS = "In Progress"
STATUS_COMPLETED = "Completed"
STATUS_REJECTED = "Rejected"
STATUS_PENDING_APPROVAL = "Pending Approval"

TASK_STATUSES = (
    STATUS_PENDING,
    STATUS_IN_PROGRESS,
    STATUS_COMPLETED,
    STATUS_REJECTED,
    STATUS_PENDING_APPROVAL,
)

# Provenance of an assignee row
SOURCE_DIRECT = "direct"
SOURCE_REQUEST = "request"


class Task(db.Model):
    __tablename__ = "task"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False, index=True)
    description = db.Column(db.Text)
    priority = db.Column(db.String(20), default="Medium", nullable=False, index=True)  # Low|Medium|High
    due_date = db.Column(db.DateTime, index=True)

    # Cached output of the status resolver, see services/status_resolver.py
    status = db.Column(db.String(30), default=STATUS_PENDING, nullable=False, index=True)
    progress = db.Column(db.Integer, default=0, nullable=False)

    attachments = db.Column(db.JSON, default=list)
    location_lat = db.Column(db.Float)
    location_lng = db.Column(db.Float)
    location_address = db.Column(db.String(255))

    created_by_id = db.Column(db.Integer, db.ForeignKey("user.id"), index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    created_by = db.relationship("User", foreign_keys=[created_by_id])

    assignees = db.relationship(
        "TaskAssignee",
        back_populates="task",
        lazy="selectin",
        order_by="TaskAssignee.position",
        cascade="all, delete-orphan",
    )
    checklist = db.relationship(
        "ChecklistItem",
        back_populates="task",
        lazy="selectin",
        order_by="ChecklistItem.position",
        cascade="all, delete-orphan",
    )
    assignment_requests = db.relationship(
        "AssignmentRequest",
        back_populates="task",
        lazy="select",
        order_by="AssignmentRequest.id",
        cascade="all, delete-orphan",
    )

    @property
    def assigned_to_ids(self) -> list[int]:
        return [a.user_id for a in self.assignees]

    def is_assigned(self, user_id: int) -> bool:
        return user_id in self.assigned_to_ids

    def add_assignee(self, user_id: int, source: str = SOURCE_DIRECT, request_id=None) -> bool:
        """Append ``user_id`` unless already present. Returns True if added."""
        if self.is_assigned(user_id):
            return False
        position = max((a.position for a in self.assignees), default=-1) + 1
        self.assignees.append(
            TaskAssignee(user_id=user_id, position=position, source=source, request_id=request_id)
        )
        return True

    def replace_checklist(self, items):
        self.checklist = [
            ChecklistItem(text=it["text"], completed=bool(it.get("completed")), position=i)
            for i, it in enumerate(items)
        ]

    @property
    def location(self):
        if self.location_lat is None and self.location_lng is None and not self.location_address:
            return None
        return {"lat": self.location_lat, "lng": self.location_lng, "address": self.location_address}


class TaskAssignee(db.Model):
    __tablename__ = "task_assignee"

    id = db.Column(db.Integer, primary_key=True)
    task_id = db.Column(db.Integer, db.ForeignKey("task.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    source = db.Column(db.String(20), nullable=False, default=SOURCE_DIRECT)  # direct|request
    request_id = db.Column(db.Integer, db.ForeignKey("assignment_request.id"))

    task = db.relationship("Task", back_populates="assignees")
    user = db.relationship("User", lazy="joined")

    __table_args__ = (
        db.UniqueConstraint("task_id", "user_id", name="uq_task_assignee_task_user"),
    )

    @property
    def is_direct(self) -> bool:
        return self.source == SOURCE_DIRECT


class ChecklistItem(db.Model):
    __tablename__ = "checklist_item"

    id = db.Column(db.Integer, primary_key=True)
    task_id = db.Column(db.Integer, db.ForeignKey("task.id"), nullable=False, index=True)
    text = db.Column(db.String(500), nullable=False)
    completed = db.Column(db.Boolean, default=False, nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    task = db.relationship("Task", back_populates="checklist")

    def to_dict(self) -> dict:
        return {"text": self.text, "completed": bool(self.completed)}
