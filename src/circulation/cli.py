"""Command-line interface for circulation.

Built with Typer for commands and Rich for beautiful output.
"""

import logging
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .catalog import CatalogStore
from .config import get_config
from .db import get_db
from .db.schemas import BookCreate, BorrowRecordResponse, UserCreate, UserRole
from .errors import ConflictError, NotFoundError
from .lending import LendingFacade, LendingResult
from .users import UserStore

# Create the main app
app = typer.Typer(
    name="circulation",
    help="Lend library books to users, one holder at a time.",
    no_args_is_help=True,
)

# Create sub-apps for command groups
book_app = typer.Typer(help="Manage the book catalog.")
app.add_typer(book_app, name="book")

user_app = typer.Typer(help="Manage library users.")
app.add_typer(user_app, name="user")

# Rich console for pretty output
console = Console()


# ============================================================================
# Helper Functions
# ============================================================================


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/bold red] {escape(message)}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]Success:[/bold green] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[dim]{message}[/dim]")


def configure_logging(verbose: bool) -> None:
    """Route log records to stderr at the configured level."""
    level = "DEBUG" if verbose else get_config().log_level
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def format_record_table(records: list[BorrowRecordResponse], title: str) -> Table:
    """Create a rich table for displaying borrow records."""
    catalog = CatalogStore(get_db())

    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Book", style="cyan", max_width=40)
    table.add_column("Borrowed")
    table.add_column("Returned")

    for record in records:
        book = catalog.get_book(record.book_id)
        table.add_row(
            str(record.id),
            book.title if book else f"#{record.book_id}",
            record.borrowed_at.strftime("%Y-%m-%d %H:%M"),
            record.returned_at.strftime("%Y-%m-%d %H:%M") if record.returned_at else "[green]active[/green]",
        )

    return table


def exit_on_failure(result: LendingResult) -> None:
    """Print a failed result and exit with status 1."""
    if result.success:
        return
    print_error(result.message or result.code.value)
    if result.retryable:
        print_info("This is temporary, try again shortly.")
    raise typer.Exit(1)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Lend library books to users, one holder at a time."""
    configure_logging(verbose)


# ============================================================================
# Lending Commands
# ============================================================================


@app.command()
def borrow(
    user_id: int = typer.Argument(..., help="Borrowing user ID"),
    book_id: int = typer.Argument(..., help="Book ID to borrow"),
) -> None:
    """Borrow a book for a user."""
    result = LendingFacade(db=get_db()).borrow(user_id, book_id)
    exit_on_failure(result)

    record = result.records[0]
    print_success(f"Book {book_id} borrowed by user {user_id} (record {record.id})")


@app.command("return")
def return_book(
    user_id: int = typer.Argument(..., help="Returning user ID"),
    book_id: int = typer.Argument(..., help="Book ID to return"),
) -> None:
    """Return a borrowed book."""
    result = LendingFacade(db=get_db()).return_book(user_id, book_id)
    exit_on_failure(result)

    print_success(f"Book {book_id} returned by user {user_id}")


@app.command()
def holdings(
    user_id: int = typer.Argument(..., help="User ID"),
) -> None:
    """Show the books a user currently holds."""
    result = LendingFacade(db=get_db()).list_active_holdings(user_id)
    exit_on_failure(result)

    if not result.records:
        console.print("[dim]No books currently borrowed[/dim]")
        return

    console.print(format_record_table(result.records, f"Holdings of user {user_id}"))


@app.command()
def history(
    user_id: int = typer.Argument(..., help="User ID"),
) -> None:
    """Show every book a user has borrowed."""
    result = LendingFacade(db=get_db()).history(user_id)
    exit_on_failure(result)

    if not result.records:
        console.print("[dim]No borrow history[/dim]")
        return

    console.print(format_record_table(result.records, f"History of user {user_id}"))


# ============================================================================
# Catalog Commands
# ============================================================================


@book_app.command("add")
def book_add(
    title: str = typer.Argument(..., help="Book title"),
    author: str = typer.Argument(..., help="Book author"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Description"),
) -> None:
    """Add a book to the catalog."""
    try:
        data = BookCreate(title=title, author=author, description=description)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1)

    book = CatalogStore(get_db()).create_book(data)
    print_success(f"Added '{book.title}' by {book.author} (ID: {book.id})")


@book_app.command("list")
def book_list(
    page: int = typer.Option(1, "--page", "-p", help="Page number"),
    limit: int = typer.Option(10, "--limit", "-l", help="Books per page (max 100)"),
) -> None:
    """List books in the catalog, newest first."""
    result = CatalogStore(get_db()).list_books(page=page, limit=limit)

    if not result.data:
        console.print("[dim]No books found[/dim]")
        return

    table = Table(
        title=f"Books (page {result.page}/{result.total_pages}, {result.total} total)",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan", max_width=40)
    table.add_column("Author", style="green", max_width=25)
    table.add_column("Status")

    for book in result.data:
        status = "[green]available[/green]" if book.available else "[yellow]borrowed[/yellow]"
        table.add_row(str(book.id), book.title, book.author, status)

    console.print(table)


@book_app.command("show")
def book_show(
    book_id: int = typer.Argument(..., help="Book ID"),
) -> None:
    """Show a single book."""
    try:
        book = CatalogStore(get_db()).require_book(book_id)
    except NotFoundError as e:
        print_error(str(e))
        raise typer.Exit(1)

    console.print(f"[bold cyan]{book.title}[/bold cyan] by [green]{book.author}[/green]")
    if book.description:
        console.print(book.description)
    console.print("Available" if book.available else "[yellow]Borrowed[/yellow]")


# ============================================================================
# User Commands
# ============================================================================


@user_app.command("add")
def user_add(
    email: str = typer.Argument(..., help="User email"),
    role: UserRole = typer.Option(UserRole.USER, "--role", "-r", help="User role"),
) -> None:
    """Register a user."""
    try:
        data = UserCreate(email=email, role=role)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1)

    try:
        user = UserStore(get_db()).create_user(data)
    except ConflictError as e:
        print_error(str(e))
        raise typer.Exit(1)

    print_success(f"Registered {user.email} (ID: {user.id})")


@user_app.command("show")
def user_show(
    user_id: int = typer.Argument(..., help="User ID"),
) -> None:
    """Show a single user."""
    try:
        user = UserStore(get_db()).get_user(user_id)
    except NotFoundError as e:
        print_error(str(e))
        raise typer.Exit(1)

    console.print(f"[bold]{user.email}[/bold] ({user.role})")


if __name__ == "__main__":
    app()
