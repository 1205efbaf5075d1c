from .task import Task
from .notification import TaskNotification
