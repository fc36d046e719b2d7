"""Loads YAML deployment blueprints into domain Blueprint objects."""

import logging

import yaml

from notiontpl.domain.errors import BlueprintError
from notiontpl.domain.interfaces.file_system import FileSystem
from notiontpl.domain.models.blueprint import Blueprint
from notiontpl.domain.models.common import FilePath

logger = logging.getLogger(__name__)


def parse_blueprint(text: str) -> Blueprint:
    """Parses blueprint YAML text. An empty document is an empty blueprint."""
    try:
        doc = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise BlueprintError(f"Blueprint is not valid YAML: {e}") from e
    return Blueprint.from_dict(doc or {})


class BlueprintLoader:
    """Reads blueprint files through the FileSystem port."""

    def __init__(self, file_system: FileSystem):
        self.file_system = file_system

    async def load(self, path: FilePath) -> Blueprint:
        if not await self.file_system.file_exists(path):
            raise BlueprintError("Blueprint file not found")
        blueprint = parse_blueprint(await self.file_system.read_file(path))
        logger.info(
            f"Loaded blueprint '{blueprint.name}': {len(blueprint.databases)} databases, "
            f"{len(blueprint.pages)} pages"
        )
        return blueprint
