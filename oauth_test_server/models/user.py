from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class User:
    id: str
    username: str
    password: str  # plaintext test fixture
    email: str
    name: str
    first_name: str
    last_name: str
    role: str | None = None

    def claims(self) -> dict[str, str]:
        """Profile claims in wire shape, password excluded, ``sub`` added."""
        out = {
            "sub": self.id,
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "name": self.name,
            "firstName": self.first_name,
            "lastName": self.last_name,
        }
        if self.role is not None:
            out["role"] = self.role
        return out

    @staticmethod
    def from_dict(data: dict[str, Any]) -> User:
        return User(
            id=str(data["id"]),
            username=str(data["username"]),
            password=str(data["password"]),
            email=data.get("email", ""),
            name=data.get("name", ""),
            first_name=data.get("firstName", ""),
            last_name=data.get("lastName", ""),
            role=data.get("role"),
        )
