from __future__ import annotations

from typing import Any, Dict, List, Optional
from pathlib import Path
import json
import os
import uuid

import typer
from rich.console import Console
import httpx


app = typer.Typer()
console = Console()
trace_console = Console(stderr=True)


def describe_event(payload: Dict[str, Any]) -> Optional[str]:
    """One trace line for a non-text stream event, or None when there is nothing to show."""
    ptype = payload.get("type")
    if ptype == "tool-call":
        return f"[tool] {payload.get('tool_name')} {json.dumps(payload.get('args', {}))} -> pending"
    if ptype == "tool-result":
        status = "error" if payload.get("is_error") else "complete"
        return f"[tool] {payload.get('tool_name')} -> {status}"
    if ptype == "tool-error":
        return f"[tool] {payload.get('tool_name')} -> error: {payload.get('content')}"
    if ptype == "annotation":
        annotation = payload.get("annotation") or {}
        if annotation.get("type") == "query_completion":
            data = annotation.get("data") or {}
            return (
                f"[search] {data.get('index', 0) + 1}/{data.get('total')} {data.get('query')!r} "
                f"-> {data.get('resultsCount')} results, {data.get('imagesCount')} images"
            )
        return None
    if ptype == "step-finish":
        return f"[step] finished: {payload.get('finish_reason')}"
    return None


def parse_sse_line(raw_line: str | bytes) -> Optional[Dict[str, Any]]:
    """Decode one ``data:`` line; returns {"type": "done"} for the sentinel."""
    line = raw_line.decode("utf-8") if isinstance(raw_line, (bytes, bytearray)) else raw_line
    line = line.strip()
    if not line.startswith("data:"):
        return None
    data = line[len("data:"):].strip()
    if data == "[DONE]":
        return {"type": "done"}
    try:
        payload = json.loads(data)
    except json.JSONDecodeError:
        return None
    return payload if isinstance(payload, dict) else None


@app.command()
def cli(
    prompt_str: Optional[str] = typer.Argument(None, help="The trip planning request to send."),
    model: str = typer.Option("travel-default", "--model", "-m", help="Model alias (travel-default or travel-fast)."),
    timezone: str = typer.Option(
        os.getenv("TZ", "UTC"), "--timezone", "-t", help="Your IANA timezone, e.g. Europe/Paris."
    ),
    output_file: Optional[Path] = typer.Option(None, "--output", "-o", help="Append Markdown answers to a file."),
    interactive: bool = typer.Option(
        False, "--interactive", "-i", help="Keep the conversation going after the first answer."
    ),
    show_reasoning: bool = typer.Option(False, "--reasoning", help="Print model reasoning to stderr."),
) -> None:
    orchestrator_url = os.getenv("ORCHESTRATOR_URL", "http://localhost:3002")
    url = f"{orchestrator_url.rstrip('/')}/api/chat"
    user_id = str(uuid.uuid4())
    history: List[Dict[str, Any]] = []

    def run_once(one_prompt: str) -> str:
        history.append({"role": "user", "content": one_prompt})
        answer = ""
        body = {"messages": history, "model": model, "group": "web", "user_id": user_id, "timezone": timezone}
        with console.status("Planning your trip..."):
            try:
                with httpx.stream(
                    "POST",
                    url,
                    json=body,
                    headers={"Accept": "text/event-stream", "Content-Type": "application/json"},
                    timeout=120,
                ) as resp:
                    resp.raise_for_status()
                    for raw_line in resp.iter_lines():
                        payload = parse_sse_line(raw_line)
                        if payload is None:
                            continue
                        ptype = payload.get("type")
                        if ptype == "done":
                            break
                        if ptype == "text-delta":
                            content = payload.get("content", "")
                            console.print(content, end="")
                            answer += content
                        elif ptype == "reasoning":
                            if show_reasoning:
                                trace_console.print(payload.get("content", ""), style="dim italic", end="")
                        elif ptype == "error":
                            trace_console.print(payload.get("content", "Unknown error"), style="bold red")
                        else:
                            trace = describe_event(payload)
                            if trace:
                                trace_console.print(trace, style="dim")
            except httpx.HTTPError as e:
                trace_console.print(f"Request failed: {e}", style="bold red")
        console.print()
        if answer:
            history.append({"role": "assistant", "content": answer})
        else:
            # Keep user/assistant turns alternating for the next request
            history.pop()
        return answer

    def save(md: str) -> None:
        if not (output_file and md):
            return
        try:
            output_file.parent.mkdir(parents=True, exist_ok=True)
            with output_file.open("a", encoding="utf-8") as f:
                if f.tell() > 0:
                    f.write("\n\n---\n\n")
                f.write(md)
            console.print(f"Saved answer to {output_file}", style="green")
        except OSError as e:
            trace_console.print(f"Failed to write file: {e}", style="bold red")

    if not prompt_str and not interactive:
        try:
            prompt_str = typer.prompt("Where are you going? (e.g. 'Plan 3 days in Lisbon in May')")
        except (EOFError, KeyboardInterrupt):
            raise typer.Exit(code=1)
        if not prompt_str.strip():
            console.print("No input provided.", style="bold red")
            raise typer.Exit(code=1)

    if prompt_str:
        save(run_once(prompt_str.strip()))

    if interactive:
        while True:
            try:
                user_in = typer.prompt("Ask a follow-up (type 'exit' to quit)")
            except (EOFError, KeyboardInterrupt):
                break
            if user_in.strip().lower() in {"exit", "quit", "q"}:
                break
            if user_in.strip():
                save(run_once(user_in.strip()))


if __name__ == "__main__":
    app()
