"""
Command Line Interface for the bug tracker.
"""

from typing import Optional

import typer
import uvicorn
from rich import print as rprint
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..config import get_settings
from ..db.base import drop_database, get_session_local, init_database
from ..domain.enums import Role
from ..domain.primitives import Identity
from ..errors import BugTrackerError
from ..logging_config import configure_logging
from ..services.bugs import BugService
from ..services.stats import StatsService
from ..services.users import UserService

app = typer.Typer(help="Bug Tracker - issue tracking backend")
console = Console()

# Operator commands run with administrator rights
SYSTEM_IDENTITY = Identity(id="system", role=Role.ADMIN)


@app.callback()
def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level, "console")


@app.command()
def serve(
    port: Optional[int] = typer.Option(None, help="Port to run the API server on"),
    host: Optional[str] = typer.Option(None, help="Host to bind the server to"),
    dev: bool = typer.Option(False, help="Run in development mode with reload"),
):
    """Start the API server."""
    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port
    rprint(Panel.fit(f"Starting Bug Tracker on http://{host}:{port}", style="bold blue"))
    uvicorn.run(
        "bug_tracker.main:app",
        host=host,
        port=port,
        reload=dev,
        workers=1 if dev else settings.api_workers,
    )


@app.command("init-db")
def init_db():
    """Create all database tables."""
    init_database()
    console.print("✅ Database initialized")


@app.command("drop-db")
def drop_db(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
):
    """Drop all database tables."""
    if not yes and not typer.confirm("Drop all tables? Every bug and user will be lost"):
        console.print("Aborted")
        raise typer.Exit(code=1)

    drop_database()
    console.print("🗑️  Database tables dropped")


@app.command("create-user")
def create_user(
    username: str = typer.Argument(..., help="Login name (3-30 letters, digits, underscores)"),
    email: str = typer.Argument(..., help="Email address"),
    role: Role = typer.Option(Role.DEVELOPER, help="Role of the new user"),
    first_name: Optional[str] = typer.Option(None, help="First name"),
    last_name: Optional[str] = typer.Option(None, help="Last name"),
):
    """Register a user."""
    db = get_session_local()()
    try:
        user = UserService(db).register(
            {
                "username": username,
                "email": email,
                "role": role,
                "first_name": first_name,
                "last_name": last_name,
            }
        )
        console.print(f"✅ Created user {user.username} ({user.role}) with id {user.id}")
    except BugTrackerError as e:
        console.print(f"❌ {e.message}")
        raise typer.Exit(code=1)
    finally:
        db.close()


@app.command("list-bugs")
def list_bugs(
    project: Optional[str] = typer.Option(None, help="Project name substring"),
    status: Optional[str] = typer.Option(None, help="Bug status"),
    search: Optional[str] = typer.Option(None, help="Text in title, description or tags"),
    page: int = typer.Option(1, help="Page number"),
    page_size: int = typer.Option(20, help="Bugs per page"),
):
    """List bugs."""
    db = get_session_local()()
    try:
        result = BugService(db).list(
            {
                "filters": {"project": project, "status": status, "search": search},
                "page": page,
                "page_size": page_size,
            },
            SYSTEM_IDENTITY,
        )
    except BugTrackerError as e:
        console.print(f"❌ {e.message}")
        raise typer.Exit(code=1)
    finally:
        db.close()

    if not result.items:
        console.print("No bugs found")
        return

    table = Table(
        title=f"Bugs (page {result.page} of {result.total_pages}, {result.total_items} total)",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Project", style="yellow")
    table.add_column("Status", style="green")
    table.add_column("Severity", style="red")
    table.add_column("Priority", style="magenta")
    for bug in result.items:
        table.add_row(
            bug["id"],
            bug["title"],
            bug["project"],
            bug["status"],
            bug["severity"],
            bug["priority"],
        )
    console.print(table)


@app.command()
def stats(
    project: Optional[str] = typer.Option(None, help="Project name substring"),
):
    """Show bug statistics."""
    db = get_session_local()()
    try:
        overview = StatsService(db).overview(project=project)
    finally:
        db.close()

    table = Table(title="Bug Statistics", show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", style="green", justify="right")
    for name, count in overview.items():
        table.add_row(name.replace("_", " ").capitalize(), str(count))
    console.print(table)


if __name__ == "__main__":
    app()
