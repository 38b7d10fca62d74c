from .user import User
from .task import Task, TaskAssignee, ChecklistItem
from .assignment import AssignmentRequest
