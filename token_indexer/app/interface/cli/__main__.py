import asyncio
import inspect
import typer
import logging
from dotenv import load_dotenv
from InquirerPy import inquirer

load_dotenv()

from token_indexer.app.interface.tasks import TASKS  # noqa: E402  settings read the env on import

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)

app = typer.Typer()
indexer_app = typer.Typer(help="cli for indexing token transfers.")
app.add_typer(indexer_app, name="indexer")


def _run_task(task_name: str, kwargs: dict[str, object]) -> None:
    task = TASKS[task_name]
    params = inspect.signature(task).parameters
    asyncio.run(task(**{k: v for k, v in kwargs.items() if k in params}))  # type: ignore


@indexer_app.command("run")
def run() -> None:
    task_name = inquirer.select(
        message="Select task:",
        choices=list(TASKS.keys()),
        pointer="❯",
        instruction="Use ↑/↓ to move, Enter to select",
    ).execute()
    chain_id = int(
        inquirer.text(
            message="Chain ID (e.g. 1 for Ethereum mainnet):",
            default="1",
        ).execute()
    )
    from_block = inquirer.text(
        message="From block (inclusive):",
        default="earliest",
    ).execute()
    to_block = inquirer.text(
        message="To block (inclusive):",
        default="latest",
    ).execute()

    _run_task(
        task_name,
        {"chain_id": chain_id, "from_block": from_block, "to_block": to_block},
    )


@indexer_app.command("exec")
def exec_task(
    task_name: str = typer.Argument(..., help="Task name, see `indexer list`."),
    chain_id: int = typer.Option(1, "--chain-id"),
    from_block: str = typer.Option("earliest", "--from-block"),
    to_block: str = typer.Option("latest", "--to-block"),
) -> None:
    """Run a task without prompts (cron / containers)."""
    if task_name not in TASKS:
        raise typer.BadParameter(f"unknown task {task_name!r}; choose from {sorted(TASKS)}")
    _run_task(
        task_name,
        {"chain_id": chain_id, "from_block": from_block, "to_block": to_block},
    )


@indexer_app.command("list")
def list_tasks() -> None:
    for name in TASKS:
        typer.echo(name)


if __name__ == "__main__":
    LOGO = r"""
     _____     _              ___           _
    |_   _|__ | | _____ _ __ |_ _|_ __   __| | _____  _____ _ __
      | |/ _ \| |/ / _ \ '_ \ | || '_ \ / _` |/ _ \ \/ / _ \ '__|
      | | (_) |   <  __/ | | || || | | | (_| |  __/>  <  __/ |
      |_|\___/|_|\_\___|_| |_|___|_| |_|\__,_|\___/_/\_\___|_|

      --- Token Indexer CLI ---
    """
    typer.echo(LOGO)
    app()
