"""Main entry point for the notion-template application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import logging
import sys
from enum import Enum
from typing import Any, Coroutine, Dict, Optional

import typer
import uvicorn
from typing_extensions import Annotated

from notiontpl import __version__

# --- Core Layer ---
from notiontpl.core.command_handler import CommandHandler
from notiontpl.core.services.clone_service import CloneService
from notiontpl.core.services.deploy_service import DeployService
from notiontpl.core.services.template_service import TemplateService
from notiontpl.core.services.tree_replicator import TreeReplicator

# --- Infrastructure Layer ---
from notiontpl.infrastructure.blueprint.loader import BlueprintLoader
from notiontpl.infrastructure.cli.display import ConsoleDisplay
from notiontpl.infrastructure.config.settings import (
    get_app_secret,
    get_backend_base_url,
    get_backoff_policy,
    get_batch_size,
    get_concurrency,
    get_config,
    get_notion_token,
    load_configuration,
)
from notiontpl.infrastructure.filesystem.local_fs import LocalFileSystem
from notiontpl.infrastructure.monitoring.logger_setup import level_from_name, setup_logging
from notiontpl.infrastructure.notion.notion_workspace import NotionWorkspace
from notiontpl.infrastructure.resilience.api_retry import ApiRetryService
from notiontpl.infrastructure.resilience.concurrency_limiter import ConcurrencyLimiter
from notiontpl.infrastructure.web.app import create_app

logger = logging.getLogger(__name__)

_options: Dict[str, Any] = {"verbose": False}
_dependencies: Optional[Dict[str, Any]] = None


def configure_logging() -> None:
    level = logging.DEBUG if _options["verbose"] else level_from_name(get_config("logging.level"))
    setup_logging(
        log_level=level,
        log_file=get_config("logging.file"),
        log_format=get_config("logging.format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
    )


# --- Dependency Injection Container (Manual) ---

def create_dependencies() -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root. A missing Notion token is fatal here,
    which is why it only runs once a command actually needs the workspace.
    """
    logger.info("Initializing application dependencies...")
    dependencies: Dict[str, Any] = {"ui": ConsoleDisplay()}
    try:
        # 1. Infrastructure adapters
        dependencies["workspace"] = NotionWorkspace(token=get_notion_token())
        dependencies["file_system"] = LocalFileSystem()
        dependencies["api_retry_service"] = ApiRetryService.from_policy(get_backoff_policy())
        dependencies["limiter"] = ConcurrencyLimiter(get_concurrency())
        dependencies["blueprint_loader"] = BlueprintLoader(dependencies["file_system"])

        # 2. Core services
        dependencies["tree_replicator"] = TreeReplicator(
            workspace=dependencies["workspace"],
            api_retry_service=dependencies["api_retry_service"],
            limiter=dependencies["limiter"],
            batch_size=get_batch_size(),
        )
        dependencies["template_service"] = TemplateService(
            workspace=dependencies["workspace"],
            api_retry_service=dependencies["api_retry_service"],
            tree_replicator=dependencies["tree_replicator"],
            file_system=dependencies["file_system"],
        )
        dependencies["clone_service"] = CloneService(
            workspace=dependencies["workspace"],
            api_retry_service=dependencies["api_retry_service"],
            tree_replicator=dependencies["tree_replicator"],
            template_service=dependencies["template_service"],
        )
        dependencies["deploy_service"] = DeployService(
            workspace=dependencies["workspace"],
            api_retry_service=dependencies["api_retry_service"],
            tree_replicator=dependencies["tree_replicator"],
            default_base_url=get_backend_base_url(),
        )

        # 3. Command handler
        dependencies["command_handler"] = CommandHandler(
            clone_service=dependencies["clone_service"],
            template_service=dependencies["template_service"],
            deploy_service=dependencies["deploy_service"],
            blueprint_loader=dependencies["blueprint_loader"],
            file_system=dependencies["file_system"],
            ui=dependencies["ui"],
        )
    except Exception as e:
        logger.error(f"Fatal Error during application initialization: {e}", exc_info=True)
        dependencies["ui"].display_error(str(e))
        raise typer.Exit(code=1)

    logger.info("All dependencies initialized successfully.")
    return dependencies


def _get_dependencies() -> Dict[str, Any]:
    global _dependencies
    if _dependencies is None:
        _dependencies = create_dependencies()
    return _dependencies


# --- Typer App Definition ---
app = typer.Typer(
    name="notion-template",
    help="Clone, export and deploy Notion templates.",
    add_completion=False,
    no_args_is_help=True,
)


# --- Helper for Running Async Commands ---
def run_async(coro: Coroutine[Any, Any, int]) -> int:
    """Runs a handler coroutine to completion and closes the Notion client."""
    dependencies = _get_dependencies()

    async def _main() -> int:
        try:
            return await coro
        finally:
            await dependencies["workspace"].aclose()

    return asyncio.run(_main())


def _exit_with(code: int) -> None:
    if code:
        raise typer.Exit(code=code)


# --- CLI Commands ---

class CloneModeChoice(str, Enum):
    under_page = "under_page"
    into_database = "into_database"


class ParentTypeChoice(str, Enum):
    page = "page"
    database = "database"


@app.command("from-master")
def from_master(
    master_id: Annotated[str, typer.Argument(help="Master page or database id.")],
    target_id: Annotated[str, typer.Argument(help="Target page (or database with --mode into_database).")],
    mode: Annotated[
        CloneModeChoice, typer.Option("--mode", help="Create under a page or as a row in a database.")
    ] = CloneModeChoice.under_page,
):
    """Clone from a master template (page or database) into a target."""
    handler: CommandHandler = _get_dependencies()["command_handler"]
    _exit_with(run_async(handler.handle_from_master(master_id, target_id, mode.value)))


@app.command("from-json")
def from_json(
    template_file: Annotated[str, typer.Argument(help="Path to a JSON template file.")],
    target_id: Annotated[str, typer.Argument(help="Page or database id to create under.")],
    parent_type: Annotated[
        ParentTypeChoice, typer.Option("--parent-type", "--parentType", help="Type of the target parent.")
    ] = ParentTypeChoice.page,
):
    """Create a page/database from a JSON template."""
    handler: CommandHandler = _get_dependencies()["command_handler"]
    _exit_with(run_async(handler.handle_from_json(template_file, target_id, parent_type.value)))


@app.command("to-json")
@app.command("export-json", hidden=True)
def to_json(
    object_id: Annotated[str, typer.Argument(help="Page or database id to export.")],
    out_file: Annotated[Optional[str], typer.Argument(help="Output file; stdout when omitted.")] = None,
    pretty: Annotated[bool, typer.Option("--pretty/--no-pretty", help="Indent the JSON output.")] = True,
):
    """Export a page/database to a JSON template."""
    handler: CommandHandler = _get_dependencies()["command_handler"]
    _exit_with(run_async(handler.handle_to_json(object_id, out_file, pretty)))


@app.command("deploy")
def deploy(
    blueprint_file: Annotated[str, typer.Argument(help="Path to a YAML blueprint.")],
    target_page_id: Annotated[str, typer.Argument(help="Page that will hold the app.")],
    base_url: Annotated[
        Optional[str], typer.Option("--base-url", "--baseUrl", help="Backend base URL for action links.")
    ] = None,
    app_secret: Annotated[
        Optional[str], typer.Option("--app-secret", "--appSecret", help="HMAC secret for signing URLs.")
    ] = None,
):
    """Deploy a Notion App from a YAML blueprint."""
    handler: CommandHandler = _get_dependencies()["command_handler"]
    code = run_async(handler.handle_deploy(
        blueprint_file,
        target_page_id,
        base_url=base_url,
        app_secret=app_secret or get_app_secret(),
    ))
    _exit_with(code)


@app.command("serve")
def serve(
    host: Annotated[str, typer.Option(help="Interface to bind.")] = "127.0.0.1",
    port: Annotated[int, typer.Option(help="Port to listen on.")] = 8787,
):
    """Run the action-link and webhook backend."""
    logger.info(f"Starting backend on {host}:{port}")
    uvicorn.run(create_app(), host=host, port=port, log_level="info" if _options["verbose"] else "warning")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
    version: Annotated[
        Optional[bool],
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show the version and exit."),
    ] = None,
):
    """Notion template CLI."""
    _options["verbose"] = verbose
    configure_logging()


# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    load_configuration()
    try:
        app()
    except KeyboardInterrupt:
        print("Interrupted.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    cli_entry_point()
