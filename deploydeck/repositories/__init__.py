from .in_memory import InMemoryProjectRepository, InMemoryUserRepository
from .projects import ProjectRepository
from .users import UserRepository

__all__ = [
    "InMemoryProjectRepository",
    "InMemoryUserRepository",
    "ProjectRepository",
    "UserRepository",
]
