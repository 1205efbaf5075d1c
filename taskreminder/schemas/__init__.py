from .task import Task, TaskCreate, TaskUpdate
