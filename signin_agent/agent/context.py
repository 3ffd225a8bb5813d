from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class Credentials:
    username: str = ""
    password: str = ""

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password=***)"


@dataclass(slots=True)
class FlowContext:
    """State handed to every handler of a sign-in flow.

    Credentials are replaced as a whole by ``set_credentials``; handlers only
    read them.
    """

    credentials: Credentials = field(default_factory=Credentials)

    def set_credentials(self, username: str, password: str) -> None:
        self.credentials = Credentials(username=username, password=password)
