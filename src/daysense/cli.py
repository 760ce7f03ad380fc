"""DaySense Command Line Interface."""

import asyncio

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from daysense.models import Category, Priority

app = typer.Typer(
    name="daysense",
    help="DaySense - Energy-aware productivity coach",
    no_args_is_help=True,
)
console = Console()


@app.callback()
def main(
    log_level: str | None = typer.Option(None, help="Override LOG_LEVEL"),
):
    """Configure logging before any command runs."""
    from daysense.logging_config import setup_logging

    setup_logging(log_level)


@app.command()
def status():
    """Show today's energy, flow score and service health."""
    console.print(Panel("DaySense Status", style="blue"))

    async def check_status():
        from daysense.adapters import FirestoreAdapter, IdentityAdapter, InferenceAdapter
        from daysense.aggregators.daily import DailyAggregator

        adapters = [
            ("Firestore", FirestoreAdapter()),
            ("Identity", IdentityAdapter()),
            ("Inference backend", InferenceAdapter()),
        ]

        table = Table(title="Service Status")
        table.add_column("Service", style="cyan")
        table.add_column("Status", style="green")

        for name, adapter in adapters:
            try:
                connected = await adapter.connect()
                status = "✓ Configured" if connected else "✗ Not configured"
                await adapter.disconnect()
            except Exception as e:
                status = f"✗ Error: {str(e)[:30]}"

            table.add_row(name, status)

        console.print(table)

        async with DailyAggregator() as day:
            data = day.get_status()

        console.print(
            f"\n[bold]Energy:[/bold] {data['energy_level']}/5 ({data['energy_label']})"
        )
        score = data["flow_score"]
        console.print(f"[bold]Flow score:[/bold] {score if score is not None else 'N/A'}")
        weekly = data["weekly_average"]
        console.print(f"[bold]Weekly average:[/bold] {weekly if weekly is not None else 'N/A'}")
        tasks = data["tasks"]
        console.print(
            f"[bold]Tasks:[/bold] {tasks['completed']} completed, {tasks['pending']} pending"
        )
        if data["error"]:
            console.print(f"[red]{data['error']}[/red]")

    asyncio.run(check_status())


@app.command()
def score():
    """Show flow score history for the last week."""
    console.print(Panel("Flow Score", style="blue"))

    async def show_score():
        from daysense.aggregators.daily import DailyAggregator

        async with DailyAggregator() as day:
            history = day.tracker.history
            records = history.records[-7:]

        if not records:
            console.print("[yellow]No flow scores recorded yet[/yellow]")
            return

        table = Table(title="Daily Flow Scores")
        table.add_column("Date", style="cyan")
        table.add_column("Score", style="bold")
        table.add_column("Alignment")
        table.add_column("Efficiency")
        table.add_column("Focus")

        for record in records:
            table.add_row(
                record.date.isoformat(),
                str(record.score),
                str(record.energy_alignment),
                str(record.completion_efficiency),
                str(record.focus_consistency),
            )

        console.print(table)
        console.print(f"\nWeekly average: [bold]{history.weekly_average}[/bold]")

    asyncio.run(show_score())


@app.command()
def infer(
    seed: int | None = typer.Option(None, help="Seed for the synthetic signal source"),
):
    """Sample behavioral signals and infer an energy level."""
    from daysense.scoring.inference import infer_energy
    from daysense.signals.sources import SyntheticSignalSource, local_now

    signals = SyntheticSignalSource(seed).snapshot(local_now())
    inference = infer_energy(signals)

    table = Table(title="Behavioral Signals")
    table.add_column("Signal", style="cyan")
    table.add_column("Value")
    for key, value in signals.model_dump(mode="json").items():
        table.add_row(key, str(value))
    console.print(table)

    console.print(f"\n[bold]{inference.user_message}[/bold]")
    console.print(f"{inference.signal_summary} (confidence {inference.confidence_score}%)")


@app.command()
def tasks(
    energy: int | None = typer.Option(
        None, min=1, max=5, help="Only show pending tasks this energy level can carry"
    ),
):
    """List your tasks."""
    console.print(Panel("Tasks", style="blue"))

    async def show_tasks():
        from daysense.aggregators.daily import DailyAggregator

        async with DailyAggregator(persist=False) as day:
            items = day.tasks.get_optimal(energy) if energy else day.tasks.tasks
            error = day.tasks.error

        if error:
            console.print(f"[red]{error}[/red]")
        if not items:
            console.print("[yellow]No tasks found[/yellow]")
            return

        table = Table()
        table.add_column("ID", style="dim")
        table.add_column("Done")
        table.add_column("Title", style="white")
        table.add_column("Energy", style="cyan")
        table.add_column("Minutes")
        table.add_column("Priority", style="green")

        for task in items:
            table.add_row(
                task.id,
                "✓" if task.completed else "",
                task.title[:40],
                str(task.energy_cost),
                str(task.estimated_minutes),
                task.priority.value,
            )

        console.print(table)

    asyncio.run(show_tasks())


@app.command("add-task")
def add_task(
    title: str = typer.Argument(..., help="Task title"),
    energy: int = typer.Option(3, min=1, max=5, help="Energy cost (1-5)"),
    minutes: int = typer.Option(30, min=1, help="Estimated minutes"),
    priority: Priority = typer.Option(Priority.MEDIUM, help="Task priority"),
    category: Category | None = typer.Option(None, help="Task category"),
):
    """Add a task."""

    async def do_add():
        from daysense.adapters.base import AdapterError
        from daysense.aggregators.daily import DailyAggregator
        from daysense.models import TaskCreate

        data = TaskCreate(
            title=title,
            energy_cost=energy,
            estimated_minutes=minutes,
            priority=priority,
            category=category,
        )
        async with DailyAggregator(persist=False) as day:
            try:
                task = await day.tasks.add_task(data)
            except AdapterError as e:
                console.print(f"[red]✗ {day.tasks.error}: {e.message}[/red]")
                raise typer.Exit(1)

        console.print(f"[green]✓ Added {task.title} ({task.id})[/green]")

    asyncio.run(do_add())


@app.command()
def toggle(
    task_id: str = typer.Argument(..., help="Task ID"),
):
    """Mark a task done (or not done)."""

    async def do_toggle():
        from daysense.adapters.base import AdapterError
        from daysense.aggregators.daily import DailyAggregator

        async with DailyAggregator(persist=False) as day:
            try:
                task = await day.tasks.toggle_task(task_id)
            except AdapterError as e:
                console.print(f"[red]✗ {day.tasks.error}: {e.message}[/red]")
                raise typer.Exit(1)

        if task is None:
            console.print(f"[red]✗ No task with id {task_id}[/red]")
            raise typer.Exit(1)
        state = "done" if task.completed else "not done"
        console.print(f"[green]✓ {task.title} marked {state}[/green]")

    asyncio.run(do_toggle())


@app.command()
def insight(
    question: str | None = typer.Argument(None, help="Ask the coach something"),
    energy: int = typer.Option(3, min=1, max=5, help="Your current energy level"),
    north_star: str | None = typer.Option(None, help="Today's North Star"),
):
    """Get a coaching insight for your current tasks."""
    console.print(Panel("Insight", style="blue"))

    async def get_insight():
        from daysense.aggregators.daily import DailyAggregator

        async with DailyAggregator(persist=False) as day:
            day.set_energy(energy)
            if north_star:
                day.set_north_star(north_star)
            result = await day.get_insights(question)

        console.print(f"\n[bold]{result.insight}[/bold]\n")
        console.print(f"[cyan]Recommendation:[/cyan] {result.recommendation}")
        console.print(
            f"[cyan]Optimal tasks:[/cyan] {result.optimal_tasks}  "
            f"[cyan]Completion rate:[/cyan] {result.completion_rate}%"
        )

    asyncio.run(get_insight())


@app.command()
def reflect():
    """Generate today's end-of-day reflection."""
    console.print(Panel("Evening Reflection", style="blue"))

    async def do_reflect():
        from daysense.aggregators.daily import DailyAggregator
        from daysense.aggregators.reflection import InsufficientDataError

        async with DailyAggregator() as day:
            try:
                await day.evening_reflection()
            except InsufficientDataError as e:
                console.print(f"[yellow]{e.message}[/yellow]")
                raise typer.Exit(1)
            narrative = day.journal.last_narrative

        console.print(f"\n{narrative.full_reflection}\n")
        console.print(f"[cyan]Question:[/cyan] {narrative.reflective_question}")
        if narrative.tomorrow_focus:
            console.print(f"[cyan]Tomorrow:[/cyan] {narrative.tomorrow_focus}")

    asyncio.run(do_reflect())


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind address"),
    port: int = typer.Option(8000, help="Port"),
):
    """Run the API server."""
    from daysense.api import run_server

    run_server(host=host, port=port)


@app.command()
def schedule():
    """Run the background scheduler until interrupted."""
    from daysense.autonomous.scheduler import start_scheduler

    console.print(Panel("DaySense scheduler running (Ctrl+C to stop)", style="blue"))
    start_scheduler()


@app.command()
def version():
    """Show DaySense version."""
    from daysense import __version__

    console.print(f"DaySense v{__version__}")


if __name__ == "__main__":
    app()
