"""CLI: classify, redact, follow-ups, source search, similar cases and full draft pipeline."""

import argparse
import os
from dataclasses import replace
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.prompt import Prompt
from rich.table import Table
from rich.theme import Theme

from triage.config import Settings, configure_logging
from triage.engine import Assistant, build_assistant
from triage.guardrails import run_draft_checks
from triage.history import read_inquiries
from triage.redact import redact
from triage.workflow import draft_answer, submit_inquiry

# Theme: OK green, FAIL red, dim for meta
CLI_THEME = Theme(
    {
        "ok": "green",
        "fail": "red",
        "dim": "dim",
        "info": "cyan",
    }
)
console = Console(theme=CLI_THEME)

COMMANDS = ("run", "classify", "redact", "followups", "search", "similar", "draft")


def _status_style(ok: bool) -> str:
    return "[ok]OK[/ok]" if ok else "[fail]FAIL[/fail]"


def _preview(text: str, width: int = 80) -> str:
    flat = text.replace("\n", " ")
    return (flat[:width] + "…") if len(flat) > width else flat


def cmd_redact(text: str) -> None:
    """Redact only: input → text as it would be sent to the model."""
    console.print(Panel(text, title="[cyan]Input[/cyan]", border_style="dim"))
    console.print(Panel(redact(text), title="[green]Redacted[/green]", border_style="green"))


def cmd_classify(assistant: Assistant, text: str) -> None:
    res = assistant.summarize_and_route(text)
    lines = [
        f"[bold]Summary[/bold]: {res.summary}",
        f"[bold]Urgency[/bold]: {res.urgency}",
        f"[bold]Importance[/bold]: {res.importance}",
        f"[bold]Department[/bold]: {res.dept_suggested}",
        f"[bold]Tags[/bold]: {', '.join(res.tags) or '-'}",
        f"[bold]Engine[/bold]: {assistant.mode.value}",
    ]
    console.print(Panel(text, title="[cyan]Input[/cyan]", border_style="dim"))
    console.print(Panel("\n".join(lines), title="[cyan]Routing[/cyan]", border_style="cyan"))


def cmd_followups(assistant: Assistant, text: str) -> None:
    questions = assistant.generate_followups(text)
    table = Table(show_header=True, header_style="bold cyan", border_style="dim")
    table.add_column("ID", style="dim")
    table.add_column("Type", width=7)
    table.add_column("Question")
    table.add_column("Options", overflow="fold")
    for q in questions:
        table.add_row(q.id, q.type, q.text, " / ".join(q.options or []))
    console.print(table if questions else "[dim]No follow-up questions.[/dim]")


def cmd_search(assistant: Assistant, text: str) -> None:
    sources = assistant.search_sources(text)
    table = Table(show_header=True, header_style="bold cyan", border_style="dim")
    table.add_column("Score", justify="right", width=5)
    table.add_column("Source", width=24)
    table.add_column("Snippet", max_width=60, overflow="ellipsis")
    for s in sources:
        table.add_row(f"{s.score:.2f}", s.title, _preview(s.snippet, 60))
    console.print(table if sources else "[dim]No matching knowledge sources.[/dim]")
    self_help = assistant.recommend_self_help(text)
    lines = [f"■ {r.title}: {_preview(r.body, 60)}" for r in self_help.recommendations]
    lines.append(f"[dim]{self_help.disclaimer}[/dim]")
    console.print(Panel("\n".join(lines), title="[cyan]Self-help[/cyan]", border_style="dim"))


def cmd_similar(assistant: Assistant, text: str) -> None:
    similar = assistant.find_similar(text)
    table = Table(show_header=True, header_style="bold cyan", border_style="dim")
    table.add_column("Score", justify="right", width=5)
    table.add_column("Inquiry", style="dim", width=10)
    table.add_column("Summary", max_width=40, overflow="ellipsis")
    table.add_column("Past answer", max_width=50, overflow="ellipsis")
    for c in similar:
        table.add_row(f"{c.score:.2f}", c.inquiry_id, c.summary, _preview(c.final_answer_text or "-"))
    console.print(table if similar else "[dim]No similar answered inquiries.[/dim]")


def run_single_message(assistant: Assistant, text: str) -> None:
    """Full pipeline on one message: intake → understanding → draft → checks."""
    inquiry = submit_inquiry(assistant, text)
    understanding = assistant.understand(inquiry.normalized_text)
    result = draft_answer(assistant, inquiry)
    ok, failures = run_draft_checks(result.package, result.sources)
    status = "OK" if ok else f"FAIL:{','.join(failures)}"

    header = f"[bold]Engine[/bold]: {assistant.mode.value}"
    console.print(Panel(header, title="[cyan]Config[/cyan]", border_style="dim"))
    console.print(Panel(text, title="[cyan]Input Message[/cyan]", border_style="dim"))
    console.print(Panel(redact(text), title="[cyan]Redaction[/cyan]", border_style="yellow"))
    result_lines = [
        f"[bold]Urgency[/bold]: {inquiry.urgency}",
        f"[bold]Importance[/bold]: {inquiry.importance}",
        f"[bold]Department[/bold]: {inquiry.dept_suggested}",
        f"[bold]Tags[/bold]: {', '.join(inquiry.tags) or '-'}",
        f"[bold]Follow-ups[/bold]: {', '.join(q.id for q in understanding.followups) or '-'}",
        f"[bold]Similar[/bold]: {', '.join(c.inquiry_id for c in result.similar) or '-'}",
        f"[bold]Checks[/bold]: {_status_style(ok) if ok else f'[fail]{status}[/fail]'}",
    ]
    console.print(
        Panel("\n".join(result_lines), title="[cyan]Understanding[/cyan]", border_style="cyan")
    )
    console.print(
        Panel(result.package.answer_text, title="[cyan]Draft answer[/cyan]", border_style="green")
    )
    if result.package.supplemental_text:
        console.print(
            Panel(result.package.supplemental_text, title="[cyan]Supplement[/cyan]", border_style="dim")
        )


def run_pipeline(assistant: Assistant, inquiries_path: Path, limit: int | None = 5) -> None:
    """Batch: each row of inquiries.csv → intake → draft → checks, summarised in one table."""
    df = read_inquiries(inquiries_path)
    if df.empty:
        console.print(f"[fail]No inquiries found at {inquiries_path}[/fail]")
        return
    if limit:
        df = df.head(limit)

    console.print(
        Panel(
            f"[bold]Engine[/bold]: {assistant.mode.value}\n"
            f"[bold]Inquiries[/bold]: {len(df)} (classify → search → draft → check)",
            title="[cyan]Inquiry triage[/cyan]",
            border_style="cyan",
        )
    )

    rows: list[dict] = []
    total = len(df)
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        console=console,
    ) as progress:
        task = progress.add_task("Processing inquiries…", total=total)
        for idx, (_, row) in enumerate(df.iterrows()):
            progress.update(task, description=f"Inquiry {idx + 1}/{total}", completed=idx)
            inquiry = submit_inquiry(assistant, str(row["raw_text"]))
            result = draft_answer(assistant, inquiry)
            ok, failures = run_draft_checks(result.package, result.sources)
            rows.append(
                {
                    "id": str(row["id"]),
                    "urgency": inquiry.urgency,
                    "importance": inquiry.importance,
                    "dept": inquiry.dept_suggested,
                    "sources": len(result.sources),
                    "checks_ok": ok,
                    "status": "OK" if ok else f"FAIL:{','.join(failures)}",
                    "draft_preview": _preview(result.package.answer_text),
                }
            )
        progress.update(task, completed=total)

    table = Table(show_header=True, header_style="bold cyan", border_style="dim")
    table.add_column("ID", style="dim", width=8)
    table.add_column("Urg", width=4)
    table.add_column("Imp", width=4)
    table.add_column("Department", width=14)
    table.add_column("Src", justify="right", width=3)
    table.add_column("Checks", width=22)
    table.add_column("Draft preview", max_width=50, overflow="ellipsis")
    for r in rows:
        checks_cell = _status_style(True) if r["checks_ok"] else f'[fail]{r["status"]}[/fail]'
        table.add_row(
            r["id"],
            r["urgency"],
            r["importance"],
            r["dept"],
            str(r["sources"]),
            checks_cell,
            r["draft_preview"],
        )
    console.print(table)


def _get_message_from_args_or_prompt(
    args_message: str | None,
    prompt_enter_csv: bool = False,
) -> str:
    """Get message from positional arg, MSG env, or prompt. If prompt_enter_csv, Enter runs the CSV batch."""
    msg = (args_message or os.environ.get("MSG") or "").strip()
    if msg:
        return msg
    if prompt_enter_csv:
        prompt_text = "[cyan]Enter inquiry (or press Enter to run inquiries.csv)[/cyan]"
    else:
        prompt_text = "[cyan]Enter inquiry[/cyan]"
    return (Prompt.ask(prompt_text, default="") or "").strip()


def main() -> None:
    p = argparse.ArgumentParser(
        description="Inquiry triage pipeline (CLI). Use: triage [command] [message]",
    )
    p.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Data directory with kb/ and inquiries.csv (default: data/ or TRIAGE_DATA_DIR)",
    )
    p.add_argument("--limit", type=int, default=5, help="Rows to process for batch run (default: 5)")
    p.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    p.add_argument(
        "arg1",
        nargs="?",
        default=None,
        help=f"Command ({'|'.join(COMMANDS)}) or message for run",
    )
    p.add_argument("arg2", nargs="?", default=None, help="Message when first arg is a command")
    args = p.parse_args()
    configure_logging(args.log_level)

    if args.arg1 in COMMANDS:
        cmd, message_arg = args.arg1, args.arg2
    else:
        cmd, message_arg = "run", args.arg1

    settings = Settings.from_env()
    if args.data_dir is not None:
        settings = replace(settings, data_dir=args.data_dir)
    assistant = build_assistant(settings)

    console.print("[bold cyan]Inquiry triage[/bold cyan]")
    console.print(f"[dim]Data directory: {settings.data_dir}[/dim]\n")

    if cmd == "run":
        msg = _get_message_from_args_or_prompt(message_arg, prompt_enter_csv=True)
        if msg:
            run_single_message(assistant, msg)
        else:
            run_pipeline(assistant, settings.inquiries_path, limit=args.limit)
        return

    msg = _get_message_from_args_or_prompt(message_arg)
    if not msg:
        console.print("No message provided.")
        return
    handlers = {
        "redact": lambda: cmd_redact(msg),
        "classify": lambda: cmd_classify(assistant, msg),
        "followups": lambda: cmd_followups(assistant, msg),
        "search": lambda: cmd_search(assistant, msg),
        "similar": lambda: cmd_similar(assistant, msg),
        "draft": lambda: run_single_message(assistant, msg),
    }
    handlers[cmd]()


if __name__ == "__main__":
    main()
