"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), validates arguments,
delegates the work to the application services and reports the outcome via
the UserInterface. Every handler returns the process exit code.
"""

import logging
from typing import Optional

from notiontpl.core.services.clone_service import CloneService
from notiontpl.core.services.deploy_service import DeployService
from notiontpl.core.services.template_service import TemplateService
from notiontpl.domain.interfaces.file_system import FileSystem
from notiontpl.domain.interfaces.user_interface import UserInterface
from notiontpl.domain.models.common import (
    CLONE_MODES,
    PARENT_TYPES,
    CloneMode,
    FilePath,
    NodeId,
    ParentType,
)
from notiontpl.infrastructure.blueprint.loader import BlueprintLoader

logger = logging.getLogger(__name__)

MIN_ID_LENGTH = 32


def assert_id_like(value: Optional[str], label: str) -> NodeId:
    """Rejects values that cannot be a Notion id (32 hex chars, hyphens optional)."""
    if not value or not isinstance(value, str) or len(value) < MIN_ID_LENGTH:
        raise ValueError(f"{label} looks invalid. Provide a 32+ char Notion ID (hyphens optional).")
    return NodeId(value)


class CommandHandler:
    """Handles incoming commands and delegates to appropriate services."""

    def __init__(
        self,
        clone_service: CloneService,
        template_service: TemplateService,
        deploy_service: DeployService,
        blueprint_loader: BlueprintLoader,
        file_system: FileSystem,
        ui: UserInterface,
    ):
        """Initializes the CommandHandler with required services."""
        self.clone_service = clone_service
        self.template_service = template_service
        self.deploy_service = deploy_service
        self.blueprint_loader = blueprint_loader
        self.file_system = file_system
        self.ui = ui

    def _fail(self, command: str, error: Exception) -> int:
        logger.error(f"{command} failed: {error}", exc_info=True)
        self.ui.display_error(str(error))
        return 1

    async def handle_from_master(self, master_id: str, target_id: str, mode: str = "under_page") -> int:
        """Handles the 'from-master' command."""
        logger.info(f"Handling 'from-master': {master_id} -> {target_id} ({mode})")
        try:
            master = assert_id_like(master_id, "masterId")
            target = assert_id_like(target_id, "targetId")
            if mode not in CLONE_MODES:
                raise ValueError(f"mode must be one of: {', '.join(CLONE_MODES)}")
            with self.ui.status("Cloning from master..."):
                created = await self.clone_service.clone_from_master(master, target, CloneMode(mode))
        except Exception as e:
            return self._fail("from-master", e)
        self.ui.display_success(f"Created: {created.get('url') or created.get('id')}")
        return 0

    async def handle_from_json(self, template_path: str, target_id: str, parent_type: str) -> int:
        """Handles the 'from-json' command."""
        logger.info(f"Handling 'from-json': {template_path} -> {target_id} ({parent_type})")
        try:
            target = assert_id_like(target_id, "targetId")
            if parent_type not in PARENT_TYPES:
                raise ValueError(f"parentType must be one of: {', '.join(PARENT_TYPES)}")
            with self.ui.status("Creating from JSON template..."):
                created = await self.template_service.create_from_json_file(
                    FilePath(template_path), target, ParentType(parent_type)
                )
        except Exception as e:
            return self._fail("from-json", e)
        self.ui.display_success(f"Created: {created.get('url') or created.get('id')}")
        return 0

    async def handle_to_json(self, object_id: str, out_file: Optional[str] = None, pretty: bool = True) -> int:
        """Handles the 'to-json' command: stdout when no output file is given."""
        logger.info(f"Handling 'to-json' for {object_id} (out_file={out_file})")
        try:
            source = assert_id_like(object_id, "id")
            with self.ui.status("Exporting to JSON template..."):
                content = await self.template_service.export_to_json(source, pretty=pretty)
                if out_file:
                    await self.file_system.write_file(FilePath(out_file), content)
        except Exception as e:
            return self._fail("to-json", e)
        if out_file:
            self.ui.display_success(f"Exported template to: {out_file}")
        else:
            self.ui.display_output(content)
        return 0

    async def handle_deploy(
        self,
        blueprint_path: str,
        target_id: str,
        base_url: Optional[str] = None,
        app_secret: Optional[str] = None,
    ) -> int:
        """Handles the 'deploy' command."""
        logger.info(f"Handling 'deploy': {blueprint_path} -> {target_id}")
        try:
            target = assert_id_like(target_id, "targetId")
            with self.ui.status("Deploying Notion App..."):
                blueprint = await self.blueprint_loader.load(FilePath(blueprint_path))
                result = await self.deploy_service.deploy(
                    blueprint, target, base_url=base_url, app_secret=app_secret
                )
        except Exception as e:
            return self._fail("deploy", e)
        self.ui.display_success(f"Deployment complete. Info page: {result.info}")
        if not app_secret:
            self.ui.display_warning(
                "Note: appSecret not provided; URL buttons were not signed/attached. "
                "Re-run a maintenance step once backend is configured."
            )
        return 0
