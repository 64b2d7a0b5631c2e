from dataclasses import dataclass

from hirelane.services.states import AccountStatus, Role


@dataclass(slots=True)
class Principal:
    """Authenticated actor resolved from a bearer credential."""

    actor_id: int
    role: Role
    display_name: str
    email: str
    account_status: AccountStatus = AccountStatus.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.account_status == AccountStatus.ACTIVE


def parse_bearer_header(authorization: str | None) -> str | None:
    if not authorization or not authorization.lower().startswith("bearer "):
        return None
    token = authorization.split(" ", maxsplit=1)[1].strip()
    return token or None
