"""Command line entry point for dialogtree."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.tree import Tree

from dialogtree.channels.console import ConsoleChannel, ConsoleStep
from dialogtree.config import get_settings
from dialogtree.demo import AgeData, build_age_tree
from dialogtree.logging_utils import configure_logging
from dialogtree.node import StepNode
from dialogtree.outcomes import Ending
from dialogtree.runner import Runner

app = typer.Typer(
    name="dialogtree",
    help="Walk conversation trees one turn at a time.",
    add_completion=False,
    rich_markup_mode="rich",
)


def _render(node: StepNode, branch: Tree, seen: set[int]) -> None:
    for child in node.children:
        label = child.step.name
        if child.condition is not None:
            label += f" [dim](if {getattr(child.condition, '__name__', 'condition')})[/dim]"
        if id(child) in seen:
            branch.add(f"{label} [dim]...[/dim]")
            continue
        seen.add(id(child))
        _render(child, branch.add(label), seen)


@app.command()
def tree() -> None:
    """Print the shape of the demo conversation."""
    root = build_age_tree(ConsoleStep)
    console = Console()
    rendered = Tree(f"[bold]{root.step.name}[/bold]")
    _render(root, rendered, {id(root)})
    console.print(rendered)
    status = "[green]valid[/green]" if Runner.valid(root) else "[red]invalid[/red]"
    console.print(f"Tree is {status}")


@app.command()
def demo(
    timeout: float | None = typer.Option(None, "--timeout", "-t", min=0, help="Seconds to wait for each answer"),
    log_level: str | None = typer.Option(None, "--log-level", help="Log level, defaults to DIALOGTREE_LOG_LEVEL"),
) -> None:
    """Ask for a name and an age in the terminal."""
    settings = get_settings()
    configure_logging(profile="chat", level=log_level or settings.log_level)
    duration = settings.duration_seconds if timeout is None else timeout
    console = Console()
    root = build_age_tree(ConsoleStep, duration=duration)
    runner = Runner(AgeData())
    try:
        data = asyncio.run(runner.run(root, ConsoleChannel(console)))
    except Exception as err:
        console.print(f"[bold red]Error:[/bold red] {err}")
        raise typer.Exit(1) from err
    if runner.ending == Ending.INACTIVE:
        console.print("[dim]Time expired[/dim]")
    elif runner.ending == Ending.EXITED:
        console.print("[dim]You exited[/dim]")
    else:
        console.print(f"[dim]Collected: name={data.name} age={data.age}[/dim]")
