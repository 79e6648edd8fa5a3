from src.domain.models.entities.user import User

__all__ = ["User"]
