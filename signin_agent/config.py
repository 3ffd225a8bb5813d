from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field

from dotenv import load_dotenv

_TRUE = {"1", "true", "yes", "on"}


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in _TRUE


def _server_args(args_str: str) -> list[str]:
    args = shlex.split(args_str, posix=os.name != "nt")

    has_isolated = "--isolated" in args
    has_custom_session_target = any(
        token in {"-u", "--browserUrl", "-w", "--wsEndpoint", "--userDataDir"}
        or token.startswith(("--browserUrl=", "--wsEndpoint=", "--userDataDir="))
        for token in args
    )
    # Attaching to a running browser keeps its profile; otherwise start clean.
    if not has_isolated and not has_custom_session_target:
        args.append("--isolated")

    has_executable_arg = any(
        token in {"-e", "--executablePath"} or token.startswith("--executablePath=")
        for token in args
    )
    if not has_executable_arg and not has_custom_session_target:
        browser_executable = _resolve_browser_executable()
        if browser_executable:
            args.extend(["--executablePath", browser_executable])
    return args


def _resolve_browser_executable() -> str | None:
    configured = os.getenv("CHROME_PATH", "").strip().strip('"')
    if configured and os.path.exists(configured):
        return configured
    if os.name != "nt":
        return None

    # Edge first, then Chrome.
    program_files = os.getenv("ProgramFiles", "C:\\Program Files")
    program_files_x86 = os.getenv("ProgramFiles(x86)", "C:\\Program Files (x86)")
    local_app_data = os.getenv("LOCALAPPDATA", "")
    candidates = [
        os.path.join(program_files_x86, "Microsoft", "Edge", "Application", "msedge.exe"),
        os.path.join(program_files, "Microsoft", "Edge", "Application", "msedge.exe"),
        os.path.join(program_files, "Google", "Chrome", "Application", "chrome.exe"),
        os.path.join(local_app_data, "Google", "Chrome", "Application", "chrome.exe"),
    ]
    for candidate in candidates:
        if os.path.exists(candidate):
            return candidate
    return None


@dataclass(slots=True)
class AgentConfig:
    server_command: str = "npx"
    server_args: list[str] = field(default_factory=lambda: ["-y", "chrome-devtools-mcp@latest", "--isolated"])
    step_timeout_seconds: float = 20.0
    username: str = ""
    password: str = ""
    wait_timeout_ms: int = 5000
    poll_interval_ms: int = 100
    max_steps: int = 20
    step_retry_limit: int = 3
    settle_ms: int = 1000
    short_circuit: bool = True
    verbose: bool = False

    @classmethod
    def from_env(cls, dotenv: bool = True) -> AgentConfig:
        if dotenv:
            load_dotenv()
        return cls(
            server_command=os.getenv("MCP_SERVER_COMMAND", "npx"),
            server_args=_server_args(os.getenv("MCP_SERVER_ARGS", "-y chrome-devtools-mcp@latest")),
            step_timeout_seconds=float(os.getenv("STEP_TIMEOUT_SECONDS", "20")),
            username=os.getenv("SIGNIN_USERNAME", ""),
            password=os.getenv("SIGNIN_PASSWORD", ""),
            wait_timeout_ms=int(os.getenv("WAIT_TIMEOUT_MS", "5000")),
            poll_interval_ms=int(os.getenv("POLL_INTERVAL_MS", "100")),
            max_steps=int(os.getenv("MAX_STEPS", "20")),
            step_retry_limit=int(os.getenv("STEP_RETRY_LIMIT", "3")),
            settle_ms=int(os.getenv("SETTLE_MS", "1000")),
            short_circuit=_flag("SHORT_CIRCUIT", "1"),
            verbose=_flag("VERBOSE", "0"),
        )

    def __repr__(self) -> str:
        return (
            f"AgentConfig(server_command={self.server_command!r}, server_args={self.server_args!r}, "
            f"username={self.username!r}, password=***, wait_timeout_ms={self.wait_timeout_ms}, "
            f"max_steps={self.max_steps}, short_circuit={self.short_circuit}, verbose={self.verbose})"
        )
