from pydantic import BaseModel

class CurrentUser(BaseModel):
    """Identity supplied by the upstream identity provider"""
    id: int
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
