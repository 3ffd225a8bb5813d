from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import shutil
import sys
from typing import Any

from rich import print as console_print
from rich.logging import RichHandler
from rich.markup import escape

from signin_agent.agent.automation import Automation
from signin_agent.agent.loop import FlowRunner
from signin_agent.browser.bridge import EVALUATE_TOOL, DevToolsBridge
from signin_agent.config import AgentConfig
from signin_agent.mcp_client.session import McpSession
from signin_agent.mcp_client.transport import StdioTransport


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Drive a Microsoft account sign-in page by step name")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("run", help="Run the whole sign-in flow with the configured credentials")
    sub.add_parser("step", help="Read the current step label and dispatch it once")
    sub.add_parser("buttons", help="List the button labels on the current page")

    call = sub.add_parser("call", help="Invoke one agent operation by its wire name")
    call.add_argument("name", help="Operation name, e.g. getText or waitFor")
    call.add_argument("args", nargs="*", help="Operation arguments")
    return parser.parse_args(argv)


def _resolve_command(command: str) -> str:
    candidate = command.strip().strip('"')
    resolved = shutil.which(candidate)
    if resolved and os.name == "nt" and resolved.lower().endswith(".ps1"):
        cmd_candidate = str(resolved)[:-4] + ".cmd"
        if os.path.exists(cmd_candidate):
            return cmd_candidate
    if resolved:
        return resolved
    if os.name == "nt" and not candidate.lower().endswith(".cmd"):
        resolved_cmd = shutil.which(f"{candidate}.cmd")
        if resolved_cmd:
            return resolved_cmd
    raise RuntimeError(
        f"MCP server command not found: {command}. Ensure Node.js/npx is installed and available in PATH."
    )


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=verbose)],
    )


async def _run(args: argparse.Namespace, config: AgentConfig) -> dict[str, Any]:
    transport = StdioTransport(_resolve_command(config.server_command), config.server_args)
    session = McpSession(transport, timeout_seconds=config.step_timeout_seconds)

    async with session:
        bridge = DevToolsBridge(session)
        if EVALUATE_TOOL not in await bridge.tool_names():
            raise RuntimeError(f"MCP server does not offer {EVALUATE_TOOL}")

        automation = Automation(
            bridge,
            default_timeout_ms=config.wait_timeout_ms,
            poll_interval_ms=config.poll_interval_ms,
            short_circuit=config.short_circuit,
        )
        installed = await automation.install()
        if not automation.ready:
            return {"command": args.command, "success": False, "install": installed.to_dict()}

        if args.command == "run":
            if not config.username or not config.password:
                raise RuntimeError("Missing SIGNIN_USERNAME or SIGNIN_PASSWORD in environment")
            automation.set_credentials(config.username, config.password)
            runner = FlowRunner(
                automation,
                max_steps=config.max_steps,
                step_retry_limit=config.step_retry_limit,
                settle_ms=config.settle_ms,
                verbose=config.verbose,
            )
            memory = await runner.run()
            return {
                "command": "run",
                "success": memory.success,
                "last_error": memory.last_error,
                "steps": memory.dispatched,
                "history_tail": memory.history[-3:],
            }

        if args.command == "step":
            automation.set_credentials(config.username, config.password)
            label = await automation.current_step_label()
            result = None
            if label.ok:
                result = await automation.dispatch(str(label.get("title", "")))
            return {
                "command": "step",
                "success": bool(result and result.ok),
                "label": label.to_dict(),
                "dispatch": result.to_dict() if result else None,
            }

        if args.command == "buttons":
            buttons = await automation.page.list_buttons()
            return {"command": "buttons", "success": buttons.ok, "buttons": buttons.get("buttons", [])}

        text = await automation.invoke(args.name, *args.args)
        return {"command": "call", "success": json.loads(text).get("code") == 0, "result": text}


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    config = AgentConfig.from_env()
    _configure_logging(config.verbose)

    result = asyncio.run(_run(args, config))

    if args.command == "call":
        console_print(escape(result.get("result", "")) or result)
    elif args.command == "buttons":
        for label in result.get("buttons", []):
            console_print(f"• {escape(label)}")
    else:
        console_print("\n" + "=" * 60)
        console_print("✅ SIGN-IN STEP DONE" if result.get("success") else "❌ SIGN-IN FAILED")
        if result.get("steps") is not None:
            console_print(f"Steps dispatched: {result['steps']}")
        if result.get("last_error"):
            console_print(f"Error: {result['last_error']}")
        console_print("=" * 60 + "\n")
        if config.verbose:
            console_print("\nDetailed result:")
            console_print(result)

    sys.exit(0 if result.get("success") else 1)


if __name__ == "__main__":
    main()
