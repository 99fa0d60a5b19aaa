from typing import Iterable, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["admin", "manager", "staff"]
ALL_ROLES: tuple[Role, ...] = ("admin", "manager", "staff")


class User(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    username: str
    role: Role
    name: str = ""
    email: str = ""
    last_login: Optional[str] = Field(default=None, alias="lastLogin")


class AuthSession(BaseModel):
    """
    Who is using the console.

    Immutable: login() and logout() return a new session rather than
    changing this one.  Lifecycle is anonymous -> authenticated -> anonymous.
    """
    model_config = ConfigDict(frozen=True)

    token: Optional[str] = None
    user: Optional[User] = None
    remember: bool = False

    @classmethod
    def anonymous(cls) -> "AuthSession":
        return cls()

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None and self.user is not None

    @property
    def role(self) -> Optional[Role]:
        return self.user.role if self.user else None

    def login(self, token: str, user: User, remember: bool = False) -> "AuthSession":
        return AuthSession(token=token, user=user, remember=remember)

    def logout(self) -> "AuthSession":
        return AuthSession.anonymous()

    def has_role(self, role: Role) -> bool:
        return self.role == role

    def has_any_role(self, roles: Iterable[Role]) -> bool:
        return self.is_authenticated and self.role in set(roles)

    @property
    def is_admin(self) -> bool:
        return self.has_role("admin")
